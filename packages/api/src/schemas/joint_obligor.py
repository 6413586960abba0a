# This project was developed with assistance from AI tools.
"""Joint obligor form schemas.

The guarantee tab switches on ``guarantee_method``: income-backed obligors
give payout bank details and income, property-backed ones pledge real
estate exactly like an aval. Until a method is chosen the tab only accepts
the choice itself.
"""

from typing import Annotated

from db.enums import GuaranteeMethod
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
    PositiveAmount,
    PropertyGuarantee,
    ReferenceLimits,
    RelationshipToTenant,
    RequiredStr,
)

REFERENCE_LIMITS = ReferenceLimits(minimum=3, maximum=3)


class JointObligorPersonalMexican(FormModel, MexicanIdentity, Contact):
    relationship_to_tenant: RelationshipToTenant
    address_details: PartialAddress | None = None


class JointObligorPersonalForeign(FormModel, ForeignIdentity, Contact):
    relationship_to_tenant: RelationshipToTenant
    address_details: PartialAddress | None = None


class JointObligorPersonalCompany(FormModel, CompanyIdentity, Contact):
    relationship_to_tenant: RelationshipToTenant
    address_details: PartialAddress | None = None


class JointObligorEmployment(FormModel, IncomeBlock):
    pass


class JointObligorGuaranteeChoice(FormModel):
    guarantee_method: GuaranteeMethod


class JointObligorIncomeGuarantee(FormModel):
    guarantee_method: GuaranteeMethod = GuaranteeMethod.INCOME
    bank_name: RequiredStr
    account_holder: RequiredStr
    monthly_income: PositiveAmount
    has_properties: bool | None = None


class JointObligorPropertyGuarantee(FormModel, PropertyGuarantee):
    guarantee_method: GuaranteeMethod = GuaranteeMethod.PROPERTY


class JointObligorReferences(FormModel):
    pass


class JointObligorDocuments(FormModel, DocumentsTabBase):
    pass


_PersonalReferences = Annotated[
    list[PersonalReferenceIn],
    Field(min_length=REFERENCE_LIMITS.minimum, max_length=REFERENCE_LIMITS.maximum),
]
_CommercialReferences = Annotated[
    list[CommercialReferenceIn],
    Field(min_length=REFERENCE_LIMITS.minimum, max_length=REFERENCE_LIMITS.maximum),
]


class JointObligorMexicanIncomeStrict(
    JointObligorPersonalMexican,
    JointObligorEmployment,
    JointObligorIncomeGuarantee,
    JointObligorDocuments,
):
    model_config = STRICT_CONFIG

    # Required here even though the employment tab leaves it optional.
    monthly_income: PositiveAmount
    personal_references: _PersonalReferences


class JointObligorMexicanPropertyStrict(
    JointObligorPersonalMexican,
    JointObligorEmployment,
    JointObligorPropertyGuarantee,
    JointObligorDocuments,
):
    model_config = STRICT_CONFIG

    personal_references: _PersonalReferences


class JointObligorForeignIncomeStrict(
    JointObligorPersonalForeign,
    JointObligorEmployment,
    JointObligorIncomeGuarantee,
    JointObligorDocuments,
):
    model_config = STRICT_CONFIG

    # Required here even though the employment tab leaves it optional.
    monthly_income: PositiveAmount
    personal_references: _PersonalReferences


class JointObligorForeignPropertyStrict(
    JointObligorPersonalForeign,
    JointObligorEmployment,
    JointObligorPropertyGuarantee,
    JointObligorDocuments,
):
    model_config = STRICT_CONFIG

    personal_references: _PersonalReferences


class JointObligorCompanyIncomeStrict(
    JointObligorPersonalCompany, JointObligorIncomeGuarantee, JointObligorDocuments
):
    model_config = STRICT_CONFIG

    commercial_references: _CommercialReferences


class JointObligorCompanyPropertyStrict(
    JointObligorPersonalCompany, JointObligorPropertyGuarantee, JointObligorDocuments
):
    model_config = STRICT_CONFIG

    commercial_references: _CommercialReferences


TAB_MODELS = {
    "personal": {
        "mexican": JointObligorPersonalMexican,
        "foreign": JointObligorPersonalForeign,
        "company": JointObligorPersonalCompany,
    },
    "employment": {"mexican": JointObligorEmployment, "foreign": JointObligorEmployment},
    "guarantee": {
        "income": JointObligorIncomeGuarantee,
        "property": JointObligorPropertyGuarantee,
        "unset": JointObligorGuaranteeChoice,
    },
    "references": {"*": JointObligorReferences},
    "documents": {"*": JointObligorDocuments},
}

STRICT_MODELS = {
    "mexican/income": JointObligorMexicanIncomeStrict,
    "mexican/property": JointObligorMexicanPropertyStrict,
    "foreign/income": JointObligorForeignIncomeStrict,
    "foreign/property": JointObligorForeignPropertyStrict,
    "company/income": JointObligorCompanyIncomeStrict,
    "company/property": JointObligorCompanyPropertyStrict,
}
