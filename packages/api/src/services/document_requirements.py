# This project was developed with assistance from AI tools.
"""Required documents per actor type, entity type and variant conditions.

Conditional rows apply only when their condition holds for the variant:
``foreign`` for foreign nationals, ``income_guarantee`` /
``property_guarantee`` for the chosen guarantee method. The two guarantee
sets are mutually exclusive, so the unchosen one is never required.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Literal

from db.enums import ActorType, DocumentCategory, GuaranteeMethod

from .variants import VariantTag

Condition = Literal["foreign", "income_guarantee", "property_guarantee"]


@dataclass(frozen=True)
class DocumentRequirement:
    category: DocumentCategory
    required: bool
    condition: Condition | None = None


# Human-readable labels for document categories
DOCUMENT_LABELS: dict[DocumentCategory, str] = {
    DocumentCategory.IDENTIFICATION: "Official identification",
    DocumentCategory.INCOME_PROOF: "Proof of income",
    DocumentCategory.ADDRESS_PROOF: "Proof of address",
    DocumentCategory.BANK_STATEMENT: "Bank statement",
    DocumentCategory.PROPERTY_DEED: "Property deed",
    DocumentCategory.PROPERTY_TAX_STATEMENT: "Property tax statement",
    DocumentCategory.PROPERTY_REGISTRY: "Public property registry certificate",
    DocumentCategory.TAX_RETURN: "Tax return",
    DocumentCategory.EMPLOYMENT_LETTER: "Employment letter",
    DocumentCategory.MARRIAGE_CERTIFICATE: "Marriage certificate",
    DocumentCategory.COMPANY_CONSTITUTION: "Articles of incorporation",
    DocumentCategory.LEGAL_POWERS: "Legal representative powers",
    DocumentCategory.TAX_STATUS_CERTIFICATE: "Tax status certificate",
    DocumentCategory.CREDIT_REPORT: "Credit report",
    DocumentCategory.PASSPORT: "Passport",
    DocumentCategory.IMMIGRATION_DOCUMENT: "Immigration document",
    DocumentCategory.OTHER: "Other",
}

_R = DocumentRequirement
_C = DocumentCategory

_GUARANTEE_DOCUMENTS = (
    _R(_C.INCOME_PROOF, True, "income_guarantee"),
    _R(_C.PROPERTY_DEED, True, "property_guarantee"),
    _R(_C.PROPERTY_TAX_STATEMENT, True, "property_guarantee"),
    _R(_C.PROPERTY_REGISTRY, False, "property_guarantee"),
)

_COMPANY_CORE = (
    _R(_C.COMPANY_CONSTITUTION, True),
    _R(_C.LEGAL_POWERS, True),
    _R(_C.IDENTIFICATION, True),
    _R(_C.TAX_STATUS_CERTIFICATE, True),
    _R(_C.BANK_STATEMENT, True),
)

# Key structure: DOCUMENT_REQUIREMENTS[actor_type][is_company]
DOCUMENT_REQUIREMENTS: dict[ActorType, dict[bool, tuple[DocumentRequirement, ...]]] = {
    ActorType.TENANT: {
        False: (
            _R(_C.IDENTIFICATION, True),
            _R(_C.INCOME_PROOF, True),
            _R(_C.ADDRESS_PROOF, True),
            _R(_C.BANK_STATEMENT, True),
            _R(_C.IMMIGRATION_DOCUMENT, True, "foreign"),
        ),
        True: (*_COMPANY_CORE, _R(_C.ADDRESS_PROOF, False)),
    },
    ActorType.LANDLORD: {
        False: (
            _R(_C.IDENTIFICATION, True),
            _R(_C.TAX_STATUS_CERTIFICATE, False),
            _R(_C.PROPERTY_DEED, True),
            _R(_C.PROPERTY_TAX_STATEMENT, True),
            _R(_C.BANK_STATEMENT, False),
            _R(_C.IMMIGRATION_DOCUMENT, True, "foreign"),
        ),
        True: (
            _R(_C.COMPANY_CONSTITUTION, True),
            _R(_C.LEGAL_POWERS, True),
            _R(_C.TAX_STATUS_CERTIFICATE, True),
            _R(_C.PROPERTY_DEED, True),
            _R(_C.PROPERTY_TAX_STATEMENT, True),
            _R(_C.BANK_STATEMENT, False),
        ),
    },
    ActorType.AVAL: {
        False: (
            _R(_C.IDENTIFICATION, True),
            _R(_C.ADDRESS_PROOF, True),
            _R(_C.BANK_STATEMENT, True),
            _R(_C.IMMIGRATION_DOCUMENT, True, "foreign"),
            *_GUARANTEE_DOCUMENTS,
        ),
        True: (*_COMPANY_CORE, *_GUARANTEE_DOCUMENTS),
    },
    ActorType.JOINT_OBLIGOR: {
        False: (
            _R(_C.IDENTIFICATION, True),
            _R(_C.ADDRESS_PROOF, True),
            _R(_C.BANK_STATEMENT, True),
            _R(_C.IMMIGRATION_DOCUMENT, True, "foreign"),
            *_GUARANTEE_DOCUMENTS,
        ),
        True: (*_COMPANY_CORE, *_GUARANTEE_DOCUMENTS),
    },
}


def _applies(requirement: DocumentRequirement, variant: VariantTag) -> bool:
    if requirement.condition is None:
        return True
    if requirement.condition == "foreign":
        return variant.is_foreign
    if requirement.condition == "income_guarantee":
        return variant.guarantee_method == GuaranteeMethod.INCOME
    return variant.guarantee_method == GuaranteeMethod.PROPERTY


def get_document_requirements(variant: VariantTag) -> list[DocumentRequirement]:
    """Requirements (required and optional) that apply to the variant."""
    rows = DOCUMENT_REQUIREMENTS[variant.actor_type][variant.is_company]
    return [row for row in rows if _applies(row, variant)]


def get_required_documents(variant: VariantTag) -> list[DocumentCategory]:
    return [row.category for row in get_document_requirements(variant) if row.required]


def missing_documents(
    variant: VariantTag,
    uploaded_categories: Iterable[DocumentCategory],
) -> list[DocumentCategory]:
    """Required categories with no uploaded document, in table order."""
    uploaded = set(uploaded_categories)
    return [category for category in get_required_documents(variant) if category not in uploaded]
