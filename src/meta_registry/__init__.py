"""Meta Registry - service revision registration with key and compatibility validation."""

__version__ = "0.1.0"

from .errors import (
    BadKeyDefinition,
    DeploymentError,
    DeploymentNotFound,
    MetaError,
    MetaRegistryError,
    RevisionConflict,
    ServiceNotFound,
)
from .validation import KeyFieldValidator, RevisionCompatibilityValidator

__all__ = [
    "BadKeyDefinition",
    "DeploymentError",
    "DeploymentNotFound",
    "MetaError",
    "MetaRegistryError",
    "RevisionConflict",
    "ServiceNotFound",
    "KeyFieldValidator",
    "RevisionCompatibilityValidator",
]
