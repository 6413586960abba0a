# This project was developed with assistance from AI tools.
"""Tenant form schemas.

Tab models validate one tab save; strict models validate the accumulated
record at submission. Slot keys: ``mexican`` / ``foreign`` / ``company``
select on identity, ``*`` applies to every variant.
"""

from typing import Annotated, Any

from db.enums import EmploymentStatus
from pydantic import Field

from .shared import (
    STRICT_CONFIG,
    CompanyIdentity,
    CommercialReferenceIn,
    Contact,
    DocumentsTabBase,
    ForeignIdentity,
    FormModel,
    MexicanIdentity,
    OptionalEmail,
    OptionalPhone,
    OptionalStr,
    PartialAddress,
    PersonalReferenceIn,
    PositiveAmount,
    ReferenceLimits,
)

REFERENCE_LIMITS = ReferenceLimits(minimum=1, maximum=5)


class TenantPersonalMexican(FormModel, MexicanIdentity, Contact):
    address_details: PartialAddress | None = None


class TenantPersonalForeign(FormModel, ForeignIdentity, Contact):
    address_details: PartialAddress | None = None


class TenantPersonalCompany(FormModel, CompanyIdentity, Contact):
    address_details: PartialAddress | None = None


class TenantEmployment(FormModel):
    employment_status: EmploymentStatus
    occupation: Annotated[str, Field(min_length=1)]
    employer_name: Annotated[str, Field(min_length=1)]
    employer_address_details: PartialAddress | None = None
    position: OptionalStr = None
    monthly_income: PositiveAmount
    income_source: OptionalStr = None
    years_at_job: Annotated[int, Field(ge=0)] | None = None
    has_additional_income: bool = False
    additional_income_source: OptionalStr = None
    additional_income_amount: PositiveAmount | None = None


class TenantRental(FormModel):
    previous_landlord_name: OptionalStr = None
    previous_landlord_phone: OptionalPhone = None
    previous_landlord_email: OptionalEmail = None
    previous_rent_amount: PositiveAmount | None = None
    previous_rental_address_details: PartialAddress | None = None
    rental_history_years: Annotated[int, Field(ge=0)] | None = None
    number_of_occupants: Annotated[int, Field(ge=1)] | None = None
    reason_for_moving: OptionalStr = None
    has_pets: bool = False
    pet_description: OptionalStr = None


class TenantReferences(FormModel):
    """Reference lists travel as request metadata; the tab carries no fields."""


class TenantDocuments(FormModel, DocumentsTabBase):
    payment_method: OptionalStr = None
    requires_cfdi: bool = False
    cfdi_data: dict[str, Any] | None = None


class TenantIndividualMexicanStrict(
    TenantPersonalMexican, TenantEmployment, TenantRental, TenantDocuments
):
    model_config = STRICT_CONFIG

    personal_references: Annotated[
        list[PersonalReferenceIn],
        Field(min_length=REFERENCE_LIMITS.minimum, max_length=REFERENCE_LIMITS.maximum),
    ]


class TenantIndividualForeignStrict(
    TenantPersonalForeign, TenantEmployment, TenantRental, TenantDocuments
):
    model_config = STRICT_CONFIG

    personal_references: Annotated[
        list[PersonalReferenceIn],
        Field(min_length=REFERENCE_LIMITS.minimum, max_length=REFERENCE_LIMITS.maximum),
    ]


class TenantCompanyStrict(TenantPersonalCompany, TenantDocuments):
    model_config = STRICT_CONFIG

    commercial_references: Annotated[
        list[CommercialReferenceIn],
        Field(min_length=REFERENCE_LIMITS.minimum, max_length=REFERENCE_LIMITS.maximum),
    ]


TAB_MODELS = {
    "personal": {
        "mexican": TenantPersonalMexican,
        "foreign": TenantPersonalForeign,
        "company": TenantPersonalCompany,
    },
    "employment": {"mexican": TenantEmployment, "foreign": TenantEmployment},
    "rental": {"mexican": TenantRental, "foreign": TenantRental},
    "references": {"*": TenantReferences},
    "documents": {"*": TenantDocuments},
}

STRICT_MODELS = {
    "mexican": TenantIndividualMexicanStrict,
    "foreign": TenantIndividualForeignStrict,
    "company": TenantCompanyStrict,
}
