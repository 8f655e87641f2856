# Storage package

from .service_registry import RegistrationResult, ServiceRegistry
from .sqlite import SQLiteStorage

__all__ = [
    "RegistrationResult",
    "ServiceRegistry",
    "SQLiteStorage",
]
