# This project was developed with assistance from AI tools.
__version__ = "0.1.0"

from .database import Base, DatabaseService, get_db, get_db_service
from .enums import (
    ActorType,
    DocumentCategory,
    DocumentUploadStatus,
    EmploymentStatus,
    EntityType,
    GuaranteeMethod,
    GuarantorType,
    MaritalStatus,
    Nationality,
    PolicyStatus,
    UserRole,
    VerificationStatus,
)
from .models import (
    ACTOR_MODELS,
    Actor,
    ActorDocument,
    ActorHistory,
    AuditEvent,
    Aval,
    CommercialReference,
    JointObligor,
    Landlord,
    PersonalReference,
    Policy,
    Tenant,
)

__all__ = [
    "Base",
    "DatabaseService",
    "get_db",
    "get_db_service",
    "__version__",
    # Enums
    "ActorType",
    "DocumentCategory",
    "DocumentUploadStatus",
    "EmploymentStatus",
    "EntityType",
    "GuaranteeMethod",
    "GuarantorType",
    "MaritalStatus",
    "Nationality",
    "PolicyStatus",
    "UserRole",
    "VerificationStatus",
    # Models
    "ACTOR_MODELS",
    "Actor",
    "ActorDocument",
    "ActorHistory",
    "AuditEvent",
    "Aval",
    "CommercialReference",
    "JointObligor",
    "Landlord",
    "PersonalReference",
    "Policy",
    "Tenant",
]
