"""Registration-time validation of service definitions and revisions."""

from .contract import ContractDiff, ContractDiffEngine, MessageDiff
from .key_field import KeyFieldValidator
from .revision import RevisionCompatibilityValidator

__all__ = [
    "ContractDiff",
    "ContractDiffEngine",
    "MessageDiff",
    "KeyFieldValidator",
    "RevisionCompatibilityValidator",
]
