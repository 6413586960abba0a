# This project was developed with assistance from AI tools.
"""Landlord form schemas (owner, leased property, payout details)."""

from typing import Any

from pydantic import Field

from .shared import (
    STRICT_CONFIG,
    Clabe,
    CompanyIdentity,
    Contact,
    DocumentsTabBase,
    ForeignIdentity,
    FormModel,
    MexicanIdentity,
    OptionalStr,
    PartialAddress,
    PositiveAmount,
)

# Bank fields the primary landlord must have at submission.
PRIMARY_PAYOUT_FIELDS = ("bank_name", "account_holder", "clabe")


class LandlordOwnerMexican(FormModel, MexicanIdentity, Contact):
    address_details: PartialAddress | None = None


class LandlordOwnerForeign(FormModel, ForeignIdentity, Contact):
    address_details: PartialAddress | None = None


class LandlordOwnerCompany(FormModel, CompanyIdentity, Contact):
    address_details: PartialAddress | None = None


class LandlordPropertyInfo(FormModel):
    property_deed_number: str = Field(min_length=1)
    property_registry: OptionalStr = None
    property_value: PositiveAmount | None = None
    property_tax_account: OptionalStr = None


class LandlordFinancialInfo(FormModel):
    bank_name: OptionalStr = None
    account_holder: OptionalStr = None
    account_number: OptionalStr = None
    clabe: Clabe | None = None
    requires_cfdi: bool = False
    cfdi_data: dict[str, Any] | None = None
    has_iva: bool | None = None
    issues_tax_receipts: bool | None = None
    monthly_income: PositiveAmount | None = None


class LandlordDocuments(FormModel, DocumentsTabBase):
    pass


class LandlordIndividualMexicanStrict(
    LandlordOwnerMexican, LandlordPropertyInfo, LandlordFinancialInfo, LandlordDocuments
):
    model_config = STRICT_CONFIG


class LandlordIndividualForeignStrict(
    LandlordOwnerForeign, LandlordPropertyInfo, LandlordFinancialInfo, LandlordDocuments
):
    model_config = STRICT_CONFIG


class LandlordCompanyStrict(
    LandlordOwnerCompany, LandlordPropertyInfo, LandlordFinancialInfo, LandlordDocuments
):
    model_config = STRICT_CONFIG


TAB_MODELS = {
    "owner-info": {
        "mexican": LandlordOwnerMexican,
        "foreign": LandlordOwnerForeign,
        "company": LandlordOwnerCompany,
    },
    "property-info": {"*": LandlordPropertyInfo},
    "financial-info": {"*": LandlordFinancialInfo},
    "documents": {"*": LandlordDocuments},
}

STRICT_MODELS = {
    "mexican": LandlordIndividualMexicanStrict,
    "foreign": LandlordIndividualForeignStrict,
    "company": LandlordCompanyStrict,
}
