"""Data models for services, deployments and revisions."""

from .deployment import Deployment, KeyFieldDefinition, ServiceRevision, generate_deployment_id
from .service import (
    KEY_FIELD_TYPE,
    PRIMITIVE_TYPES,
    MessageField,
    MessageType,
    Method,
    ServiceDefinition,
    ServiceKind,
)

__all__ = [
    "Deployment",
    "KeyFieldDefinition",
    "ServiceRevision",
    "generate_deployment_id",
    "KEY_FIELD_TYPE",
    "PRIMITIVE_TYPES",
    "MessageField",
    "MessageType",
    "Method",
    "ServiceDefinition",
    "ServiceKind",
]
