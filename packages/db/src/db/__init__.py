# This project was developed with assistance from AI tools.
__version__ = "0.1.0"

from .database import Base, DatabaseService, db_service, get_db, get_db_service
from .enums import (
    AgentDecision,
    LoanStatus,
    PropertyType,
    RegistrationStatus,
    UserRole,
)
from .models import (
    BankAgentRegistration,
    LoanApplication,
    Profile,
    Property,
    SavedProperty,
)

__all__ = [
    "Base",
    "DatabaseService",
    "db_service",
    "get_db",
    "get_db_service",
    "__version__",
    # Enums
    "AgentDecision",
    "LoanStatus",
    "PropertyType",
    "RegistrationStatus",
    "UserRole",
    # Models
    "BankAgentRegistration",
    "LoanApplication",
    "Profile",
    "Property",
    "SavedProperty",
]
