# This project was developed with assistance from AI tools.
"""Aval form schemas.

An aval always guarantees with real estate, so the property tab is
mandatory for every variant.
"""

from typing import Annotated

from pydantic import Field

from .shared import (
    STRICT_CONFIG,
    CommercialReferenceIn,
    CompanyIdentity,
    Contact,
    DocumentsTabBase,
    ForeignIdentity,
    FormModel,
    IncomeBlock,
    MexicanIdentity,
    PartialAddress,
    PersonalReferenceIn,
    PropertyGuarantee,
    ReferenceLimits,
    RelationshipToTenant,
)

REFERENCE_LIMITS = ReferenceLimits(minimum=3, maximum=3)


class AvalPersonalMexican(FormModel, MexicanIdentity, Contact):
    relationship_to_tenant: RelationshipToTenant
    address_details: PartialAddress | None = None


class AvalPersonalForeign(FormModel, ForeignIdentity, Contact):
    relationship_to_tenant: RelationshipToTenant
    address_details: PartialAddress | None = None


class AvalPersonalCompany(FormModel, CompanyIdentity, Contact):
    relationship_to_tenant: RelationshipToTenant
    address_details: PartialAddress | None = None


class AvalEmployment(FormModel, IncomeBlock):
    pass


class AvalProperty(FormModel, PropertyGuarantee):
    pass


class AvalReferences(FormModel):
    pass


class AvalDocuments(FormModel, DocumentsTabBase):
    pass


_PersonalReferences = Annotated[
    list[PersonalReferenceIn],
    Field(min_length=REFERENCE_LIMITS.minimum, max_length=REFERENCE_LIMITS.maximum),
]


class AvalIndividualMexicanStrict(
    AvalPersonalMexican, AvalEmployment, AvalProperty, AvalDocuments
):
    model_config = STRICT_CONFIG

    personal_references: _PersonalReferences


class AvalIndividualForeignStrict(
    AvalPersonalForeign, AvalEmployment, AvalProperty, AvalDocuments
):
    model_config = STRICT_CONFIG

    personal_references: _PersonalReferences


class AvalCompanyStrict(AvalPersonalCompany, AvalProperty, AvalDocuments):
    model_config = STRICT_CONFIG

    commercial_references: Annotated[
        list[CommercialReferenceIn],
        Field(min_length=REFERENCE_LIMITS.minimum, max_length=REFERENCE_LIMITS.maximum),
    ]


TAB_MODELS = {
    "personal": {
        "mexican": AvalPersonalMexican,
        "foreign": AvalPersonalForeign,
        "company": AvalPersonalCompany,
    },
    "employment": {"mexican": AvalEmployment, "foreign": AvalEmployment},
    "property": {"*": AvalProperty},
    "references": {"*": AvalReferences},
    "documents": {"*": AvalDocuments},
}

STRICT_MODELS = {
    "mexican": AvalIndividualMexicanStrict,
    "foreign": AvalIndividualForeignStrict,
    "company": AvalCompanyStrict,
}
