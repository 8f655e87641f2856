"""Data models for deployments and the service revisions they own."""

from datetime import datetime, timezone
from typing import Dict, List, Optional
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator

from .service import Method, ServiceDefinition, ServiceKind


def generate_deployment_id() -> str:
    """Generate a unique deployment ID."""
    return f"dp_{uuid4().hex}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class KeyFieldDefinition(BaseModel):
    """The key field of one method's input message."""

    name: str
    number: int
    type: str

    class Config:
        frozen = True


class ServiceRevision(BaseModel):
    """An immutable version of a service, owned by a deployment.

    Attributes:
        service_name: Name of the service this revision belongs to.
        revision: Revision number, starting at 1.
        kind: Routing kind of the service at this revision.
        public: Whether the service is public at this revision.
        deployment_id: ID of the deployment that registered the revision.
        key_definition: Key field per method name; empty for non-keyed services.
        methods: The message contract of the revision.
        created_at: When the revision was built.
    """

    service_name: str
    revision: int = Field(ge=1)
    kind: ServiceKind
    public: bool = True
    deployment_id: str
    key_definition: Dict[str, KeyFieldDefinition] = Field(default_factory=dict)
    methods: List[Method] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_utcnow)

    class Config:
        frozen = True

    @classmethod
    def from_definition(
        cls,
        definition: ServiceDefinition,
        revision: int,
        deployment_id: str,
    ) -> "ServiceRevision":
        """Build a candidate revision from a service definition."""
        key_definition = {}
        if definition.is_keyed:
            for method in definition.methods:
                key_fields = method.input.key_fields()
                if len(key_fields) == 1:
                    key_field = key_fields[0]
                    key_definition[method.name] = KeyFieldDefinition(
                        name=key_field.name,
                        number=key_field.number,
                        type=key_field.type,
                    )

        return cls(
            service_name=definition.name,
            revision=revision,
            kind=definition.kind,
            public=definition.public,
            deployment_id=deployment_id,
            key_definition=key_definition,
            methods=list(definition.methods),
        )

    @property
    def method_names(self) -> List[str]:
        return [m.name for m in self.methods]

    def get_method(self, name: str) -> Optional[Method]:
        return next((m for m in self.methods if m.name == name), None)


class Deployment(BaseModel):
    """A batch of service definitions registered together."""

    id: str = Field(default_factory=generate_deployment_id)
    endpoint: Optional[str] = None
    services: List[ServiceDefinition] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_utcnow)

    @field_validator("services")
    @classmethod
    def validate_unique_services(cls, v: List[ServiceDefinition]) -> List[ServiceDefinition]:
        """Reject a deployment that declares the same service twice."""
        names = [s.name for s in v]
        if len(names) != len(set(names)):
            raise ValueError("service names must be unique within a deployment")
        return v

    @property
    def service_names(self) -> List[str]:
        return [s.name for s in self.services]
