# This project was developed with assistance from AI tools.
"""Field types and building blocks shared by every actor form.

Identifier checks follow the ``(is_valid, error_message, normalized)``
convention so they can be reused outside pydantic; ``_checked`` adapts them
into annotated field types.
"""

import re
from collections.abc import Callable
from decimal import Decimal
from typing import Annotated, Literal

from db.enums import EmploymentStatus, MaritalStatus, Nationality
from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    StringConstraints,
    ValidationInfo,
    field_validator,
)

PHONE_RE = re.compile(r"^(\+?52)?[\s-]?(\d{2,4})[\s-]?(\d{3,4})[\s-]?(\d{4})$")
CURP_RE = re.compile(r"^[A-Z]{4}\d{6}[HMX][A-Z]{5}[A-Z0-9]\d$")
RFC_PERSON_RE = re.compile(r"^[A-ZÑ&]{4}\d{6}[A-Z0-9]{3}$")
RFC_COMPANY_RE = re.compile(r"^[A-ZÑ&]{3}\d{6}[A-Z0-9]{3}$")
CLABE_RE = re.compile(r"^\d{18}$")
POSTAL_CODE_RE = re.compile(r"^\d{5}$")
EMAIL_RE = re.compile(r"[^@\s]+@[^@\s]+\.[^@\s]+")


def validate_phone(value: str) -> tuple[bool, str, str | None]:
    """Mexican phone number, optionally prefixed with +52; separators stripped."""
    value = value.strip()
    if not PHONE_RE.fullmatch(value):
        return False, "Invalid phone format", None
    return True, "", re.sub(r"[\s-]", "", value)


def validate_email(value: str) -> tuple[bool, str, str | None]:
    value = value.strip().lower()
    if not EMAIL_RE.fullmatch(value):
        return False, "Invalid email format", None
    return True, "", value


def validate_curp(value: str) -> tuple[bool, str, str | None]:
    value = value.strip().upper()
    if not CURP_RE.fullmatch(value):
        return False, "CURP must be 18 characters (e.g. ABCD800101HDFXXX01)", None
    return True, "", value


def validate_person_rfc(value: str) -> tuple[bool, str, str | None]:
    value = value.strip().upper()
    if not RFC_PERSON_RE.fullmatch(value):
        return False, "Individual RFC must be 13 characters", None
    return True, "", value


def validate_company_rfc(value: str) -> tuple[bool, str, str | None]:
    value = value.strip().upper()
    if not RFC_COMPANY_RE.fullmatch(value):
        return False, "Company RFC must be 12 characters", None
    return True, "", value


def validate_clabe(value: str) -> tuple[bool, str, str | None]:
    value = re.sub(r"\s", "", value)
    if not CLABE_RE.fullmatch(value):
        return False, "CLABE must be 18 digits", None
    return True, "", value


def validate_postal_code(value: str) -> tuple[bool, str, str | None]:
    value = value.strip()
    if not POSTAL_CODE_RE.fullmatch(value):
        return False, "Postal code must be 5 digits", None
    return True, "", value


def _checked(check: Callable[[str], tuple[bool, str, str | None]]) -> AfterValidator:
    def _run(value: str) -> str:
        ok, message, normalized = check(value)
        if not ok:
            raise ValueError(message)
        return normalized

    return AfterValidator(_run)


def _blank_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


RequiredStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
OptionalStr = Annotated[str | None, BeforeValidator(_blank_to_none)]
Phone = Annotated[str, _checked(validate_phone)]
Email = Annotated[str, _checked(validate_email)]
Curp = Annotated[str, _checked(validate_curp)]
PersonRfc = Annotated[str, _checked(validate_person_rfc)]
CompanyRfc = Annotated[str, _checked(validate_company_rfc)]
Clabe = Annotated[str, _checked(validate_clabe)]
PostalCode = Annotated[str, _checked(validate_postal_code)]
OptionalPhone = Annotated[Phone | None, BeforeValidator(_blank_to_none)]
OptionalEmail = Annotated[Email | None, BeforeValidator(_blank_to_none)]
OptionalPersonRfc = Annotated[PersonRfc | None, BeforeValidator(_blank_to_none)]
PositiveAmount = Annotated[Decimal, Field(gt=0, max_digits=14, decimal_places=2)]

RelationshipToTenant = Literal[
    "parent", "sibling", "spouse", "friend", "business_partner", "employer", "other"
]

TAB_CONFIG = ConfigDict(extra="forbid", str_strip_whitespace=True)
STRICT_CONFIG = ConfigDict(extra="ignore", str_strip_whitespace=True)


class FormModel(BaseModel):
    """Base for single-tab schemas: unknown keys are rejected."""

    model_config = TAB_CONFIG


# ---------------------------------------------------------------------------
# Address
# ---------------------------------------------------------------------------


class Address(BaseModel):
    """Structured address as returned by the address lookup service."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    street: RequiredStr
    exterior_number: RequiredStr
    interior_number: OptionalStr = None
    neighborhood: RequiredStr
    postal_code: PostalCode
    municipality: RequiredStr
    city: RequiredStr
    state: RequiredStr
    country: str = "México"
    place_id: OptionalStr = None
    formatted_address: OptionalStr = None


class PartialAddress(BaseModel):
    """Address captured mid-form; every part optional."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    street: OptionalStr = None
    exterior_number: OptionalStr = None
    interior_number: OptionalStr = None
    neighborhood: OptionalStr = None
    postal_code: OptionalStr = None
    municipality: OptionalStr = None
    city: OptionalStr = None
    state: OptionalStr = None
    country: str = "México"
    place_id: OptionalStr = None
    formatted_address: OptionalStr = None


# ---------------------------------------------------------------------------
# Identity and contact blocks (combined by inheritance in actor schemas)
# ---------------------------------------------------------------------------


class PersonName(BaseModel):
    first_name: RequiredStr
    middle_name: OptionalStr = None
    paternal_last_name: RequiredStr
    maternal_last_name: OptionalStr = None


class MexicanIdentity(PersonName):
    """Mexican nationals identify with CURP; RFC is optional."""

    nationality: Nationality = Nationality.MEXICAN
    curp: Curp
    rfc: OptionalPersonRfc = None
    passport: OptionalStr = None


class ForeignIdentity(PersonName):
    """Foreign nationals identify with a passport; CURP/RFC when they have one."""

    nationality: Nationality = Nationality.FOREIGN
    passport: RequiredStr
    curp: Annotated[Curp | None, BeforeValidator(_blank_to_none)] = None
    rfc: OptionalPersonRfc = None


class CompanyIdentity(BaseModel):
    company_name: RequiredStr
    company_rfc: CompanyRfc
    legal_rep_first_name: RequiredStr
    legal_rep_middle_name: OptionalStr = None
    legal_rep_paternal_last_name: RequiredStr
    legal_rep_maternal_last_name: OptionalStr = None
    legal_rep_position: RequiredStr
    legal_rep_rfc: PersonRfc
    legal_rep_phone: Phone
    legal_rep_email: Email


class Contact(BaseModel):
    email: Email
    phone: Phone
    work_phone: OptionalPhone = None
    personal_email: OptionalEmail = None
    work_email: OptionalEmail = None


class IncomeBlock(BaseModel):
    """Employment fields that are optional for guarantors."""

    employment_status: EmploymentStatus | None = None
    occupation: OptionalStr = None
    employer_name: OptionalStr = None
    employer_address_details: PartialAddress | None = None
    position: OptionalStr = None
    monthly_income: PositiveAmount | None = None
    income_source: OptionalStr = None


class PropertyGuarantee(BaseModel):
    """Real-estate guarantee pledged by an aval or a property-backed joint obligor."""

    guarantee_property_details: Address
    property_value: PositiveAmount
    property_deed_number: RequiredStr
    property_registry: RequiredStr
    property_tax_account: OptionalStr = None
    property_under_legal_proceeding: bool = False
    marital_status: MaritalStatus | None = None
    spouse_name: OptionalStr = Field(default=None, validate_default=True)
    spouse_rfc: OptionalPersonRfc = None
    spouse_curp: Annotated[Curp | None, BeforeValidator(_blank_to_none)] = None

    @field_validator("spouse_name")
    @classmethod
    def _spouse_required_when_married(cls, value, info: ValidationInfo):
        marital = info.data.get("marital_status")
        if marital in (MaritalStatus.MARRIED_JOINT, MaritalStatus.MARRIED_SEPARATE) and not value:
            raise ValueError("Spouse name is required when married")
        return value


class DocumentsTabBase(BaseModel):
    additional_info: Annotated[str | None, Field(max_length=1000)] = None


# ---------------------------------------------------------------------------
# References
# ---------------------------------------------------------------------------


class PersonalReferenceIn(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True, from_attributes=True)

    first_name: RequiredStr
    middle_name: OptionalStr = None
    paternal_last_name: RequiredStr
    maternal_last_name: OptionalStr = None
    phone: Phone
    email: OptionalEmail = None
    relationship: RequiredStr
    occupation: OptionalStr = None
    address: OptionalStr = None


class CommercialReferenceIn(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True, from_attributes=True)

    company_name: RequiredStr
    contact_first_name: RequiredStr
    contact_middle_name: OptionalStr = None
    contact_paternal_last_name: RequiredStr
    contact_maternal_last_name: OptionalStr = None
    phone: Phone
    email: OptionalEmail = None
    relationship: RequiredStr
    years_of_relationship: Annotated[int, Field(ge=0)] | None = None


class ReferenceLimits(BaseModel):
    """Inclusive reference count bounds for an actor type."""

    model_config = ConfigDict(frozen=True)

    minimum: int
    maximum: int
