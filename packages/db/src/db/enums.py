# This project was developed with assistance from AI tools.
"""
Domain enums for the rental guarantee policy lifecycle.

Shared domain types used by both SQLAlchemy models (db package)
and Pydantic schemas (api package).
"""

import enum


class ActorType(str, enum.Enum):
    TENANT = "tenant"
    LANDLORD = "landlord"
    AVAL = "aval"
    JOINT_OBLIGOR = "joint_obligor"

    @property
    def is_guarantor(self) -> bool:
        return self in (ActorType.AVAL, ActorType.JOINT_OBLIGOR)

    @property
    def portal_segment(self) -> str:
        """Path segment used in self-service portal links."""
        return self.value.replace("_", "-")


class EntityType(str, enum.Enum):
    INDIVIDUAL = "INDIVIDUAL"
    COMPANY = "COMPANY"


class Nationality(str, enum.Enum):
    MEXICAN = "MEXICAN"
    FOREIGN = "FOREIGN"


class GuaranteeMethod(str, enum.Enum):
    INCOME = "income"
    PROPERTY = "property"


class VerificationStatus(str, enum.Enum):
    PENDING = "PENDING"
    IN_REVIEW = "IN_REVIEW"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class PolicyStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    COLLECTING_INFO = "COLLECTING_INFO"
    UNDER_INVESTIGATION = "UNDER_INVESTIGATION"
    PENDING_APPROVAL = "PENDING_APPROVAL"
    ACTIVE = "ACTIVE"
    CONTRACT_SIGNED = "CONTRACT_SIGNED"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"

    @classmethod
    def terminal_stages(cls) -> frozenset["PolicyStatus"]:
        """Statuses a policy never leaves."""
        return frozenset({cls.CANCELLED, cls.EXPIRED})

    @classmethod
    def actor_change_stages(cls) -> frozenset["PolicyStatus"]:
        """Statuses in which actors may still be replaced or swapped."""
        return frozenset(
            {cls.DRAFT, cls.COLLECTING_INFO, cls.UNDER_INVESTIGATION, cls.PENDING_APPROVAL}
        )

    @classmethod
    def valid_transitions(cls) -> dict["PolicyStatus", frozenset["PolicyStatus"]]:
        """Allowed status transitions in the policy lifecycle."""
        return {
            cls.DRAFT: frozenset({cls.COLLECTING_INFO, cls.CANCELLED}),
            cls.COLLECTING_INFO: frozenset({cls.UNDER_INVESTIGATION, cls.CANCELLED}),
            cls.UNDER_INVESTIGATION: frozenset(
                {cls.PENDING_APPROVAL, cls.COLLECTING_INFO, cls.CANCELLED}
            ),
            cls.PENDING_APPROVAL: frozenset({cls.ACTIVE, cls.COLLECTING_INFO, cls.CANCELLED}),
            cls.ACTIVE: frozenset({cls.CONTRACT_SIGNED, cls.EXPIRED, cls.CANCELLED}),
            cls.CONTRACT_SIGNED: frozenset({cls.EXPIRED, cls.CANCELLED}),
            cls.CANCELLED: frozenset(),
            cls.EXPIRED: frozenset(),
        }


class GuarantorType(str, enum.Enum):
    NONE = "NONE"
    JOINT_OBLIGOR = "JOINT_OBLIGOR"
    AVAL = "AVAL"
    BOTH = "BOTH"

    @property
    def needs_joint_obligors(self) -> bool:
        return self in (GuarantorType.JOINT_OBLIGOR, GuarantorType.BOTH)

    @property
    def needs_avals(self) -> bool:
        return self in (GuarantorType.AVAL, GuarantorType.BOTH)


class DocumentCategory(str, enum.Enum):
    IDENTIFICATION = "IDENTIFICATION"
    INCOME_PROOF = "INCOME_PROOF"
    ADDRESS_PROOF = "ADDRESS_PROOF"
    BANK_STATEMENT = "BANK_STATEMENT"
    PROPERTY_DEED = "PROPERTY_DEED"
    PROPERTY_TAX_STATEMENT = "PROPERTY_TAX_STATEMENT"
    PROPERTY_REGISTRY = "PROPERTY_REGISTRY"
    TAX_RETURN = "TAX_RETURN"
    EMPLOYMENT_LETTER = "EMPLOYMENT_LETTER"
    MARRIAGE_CERTIFICATE = "MARRIAGE_CERTIFICATE"
    COMPANY_CONSTITUTION = "COMPANY_CONSTITUTION"
    LEGAL_POWERS = "LEGAL_POWERS"
    TAX_STATUS_CERTIFICATE = "TAX_STATUS_CERTIFICATE"
    CREDIT_REPORT = "CREDIT_REPORT"
    PASSPORT = "PASSPORT"
    IMMIGRATION_DOCUMENT = "IMMIGRATION_DOCUMENT"
    OTHER = "OTHER"


class DocumentUploadStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETE = "complete"


class EmploymentStatus(str, enum.Enum):
    EMPLOYED = "EMPLOYED"
    SELF_EMPLOYED = "SELF_EMPLOYED"
    BUSINESS_OWNER = "BUSINESS_OWNER"
    RETIRED = "RETIRED"
    STUDENT = "STUDENT"
    UNEMPLOYED = "UNEMPLOYED"
    OTHER = "OTHER"


class MaritalStatus(str, enum.Enum):
    SINGLE = "single"
    MARRIED_JOINT = "married_joint"
    MARRIED_SEPARATE = "married_separate"


class UserRole(str, enum.Enum):
    ADMIN = "admin"
    STAFF = "staff"
    BROKER = "broker"
