"""Custom exceptions and error codes for the meta registry."""

from typing import Any, Dict, Optional

DOCS_BASE_URL = "https://docs.meta-registry.dev/errors"


ERROR_CODES: Dict[str, Dict[str, str]] = {
    "META0002": {
        "title": "Bad key definition",
        "description": (
            "Bad key definition encountered while registering/updating a service. "
            "When a service is keyed, for each method the input message must have "
            "a field annotated with the key annotation, and the type of this field "
            "must be string."
        ),
        "link": f"{DOCS_BASE_URL}/META0002",
    },
    "META0006": {
        "title": "Service revision conflict",
        "description": (
            "Cannot register the deployment because it conflicts with an already "
            "existing service revision. A new revision of a service must keep the "
            "same service kind and the same key definitions as the previous "
            "revisions, must implement all the methods of the previous revisions, "
            "and its message contract must be backward compatible with them."
        ),
        "link": f"{DOCS_BASE_URL}/META0006",
    },
}


def explain(code: str) -> Dict[str, str]:
    """Return the catalog entry for an error code.

    Raises:
        KeyError: If the code is unknown.
    """
    normalized = code.strip().upper()
    if normalized not in ERROR_CODES:
        raise KeyError(f"Unknown error code: {code}")
    return {"code": normalized, **ERROR_CODES[normalized]}


class MetaRegistryError(Exception):
    """Base exception for meta registry errors."""
    pass


class MetaError(MetaRegistryError):
    """A validation error identified by a stable error code."""

    code: str = ""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    @property
    def link(self) -> str:
        return ERROR_CODES[self.code]["link"]

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the error for API responses."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
            "link": self.link,
        }


class BadKeyDefinition(MetaError):
    """Raised when a keyed service method input lacks a single string key field."""

    code = "META0002"

    def __init__(self, service: str, method: str, message_type: str, reason: str):
        self.service = service
        self.method = method
        self.message_type = message_type
        self.reason = reason
        super().__init__(
            f"Bad key definition for method '{method}' of keyed service '{service}': "
            f"input message '{message_type}' {reason}",
            details={
                "service": service,
                "method": method,
                "message_type": message_type,
            },
        )


class RevisionConflict(MetaError):
    """Raised when a candidate revision conflicts with a prior revision."""

    code = "META0006"

    def __init__(
        self,
        deployment_id: str,
        service: str,
        revision: int,
        attribute: str,
        reason: str,
    ):
        self.deployment_id = deployment_id
        self.service = service
        self.revision = revision
        self.attribute = attribute
        self.reason = reason
        super().__init__(
            f"Deployment '{deployment_id}' conflicts with revision {revision} of "
            f"service '{service}' ({attribute}): {reason}",
            details={
                "deployment_id": deployment_id,
                "service": service,
                "revision": revision,
                "attribute": attribute,
            },
        )


class DeploymentError(MetaRegistryError):
    """Raised when a deployment or contract document is malformed."""
    pass


class ServiceNotFound(MetaRegistryError):
    """Raised when a service has no registered revision."""

    def __init__(self, name: str, revision: Optional[int] = None):
        self.name = name
        self.revision = revision
        if revision is None:
            super().__init__(f"Service '{name}' not found")
        else:
            super().__init__(f"Revision {revision} of service '{name}' not found")


class DeploymentNotFound(MetaRegistryError):
    """Raised when a deployment id is unknown."""

    def __init__(self, deployment_id: str):
        self.deployment_id = deployment_id
        super().__init__(f"Deployment '{deployment_id}' not found")
