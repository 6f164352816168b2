# This project was developed with assistance from AI tools.
__version__ = "0.1.0"

from .database import Base, DatabaseService, get_db, get_db_service
from .enums import (
    ActorRole,
    DocumentCategory,
    GuarantorType,
    InvestigationVerdict,
    PerformedByType,
    PolicyStatus,
    UserRole,
    ValidationStatus,
    VerificationStatus,
)
from .models import (
    ACTOR_MODELS,
    ActorDocument,
    ActorReference,
    Aval,
    Contract,
    Investigation,
    JointObligor,
    Landlord,
    Package,
    Policy,
    PolicyActivity,
    Tenant,
)

__all__ = [
    "Base",
    "DatabaseService",
    "get_db",
    "get_db_service",
    "__version__",
    # Enums
    "ActorRole",
    "DocumentCategory",
    "GuarantorType",
    "InvestigationVerdict",
    "PerformedByType",
    "PolicyStatus",
    "UserRole",
    "ValidationStatus",
    "VerificationStatus",
    # Models
    "ACTOR_MODELS",
    "ActorDocument",
    "ActorReference",
    "Aval",
    "Contract",
    "Investigation",
    "JointObligor",
    "Landlord",
    "Package",
    "Policy",
    "PolicyActivity",
    "Tenant",
]
