"""Shared fixtures for meta-registry tests."""

from typing import List, Optional

import pytest

from meta_registry.models.deployment import Deployment
from meta_registry.models.service import (
    MessageField,
    MessageType,
    Method,
    ServiceDefinition,
    ServiceKind,
)
from meta_registry.storage.service_registry import ServiceRegistry
from meta_registry.storage.sqlite import SQLiteStorage


def make_message(name: str, *fields: MessageField) -> MessageType:
    """Build a message type from fields."""
    return MessageType(name=name, fields=list(fields))


def greet_method(
    name: str = "greet",
    key_type: Optional[str] = "string",
    key_name: str = "person_id",
    extra_input: Optional[List[MessageField]] = None,
    messages: Optional[List[MessageType]] = None,
) -> Method:
    """Build a method whose input carries a key field named person_id."""
    input_fields = []
    if key_type is not None:
        input_fields.append(MessageField(name=key_name, number=1, type=key_type, key=True))
    input_fields.extend(extra_input or [])

    return Method(
        name=name,
        input=MessageType(name=f"{name.title()}Request", fields=input_fields),
        output=make_message(
            f"{name.title()}Response",
            MessageField(name="message", number=1, type="string", required=True),
        ),
        messages={m.name: m for m in messages or []},
    )


def greeter_service(kind: ServiceKind = ServiceKind.KEYED, methods: Optional[List[Method]] = None) -> ServiceDefinition:
    """Build the greeter service used throughout the tests."""
    return ServiceDefinition(
        name="greeter.Greeter",
        kind=kind,
        methods=methods if methods is not None else [greet_method()],
    )


@pytest.fixture
def db(tmp_path):
    """Create a test database."""
    return SQLiteStorage(str(tmp_path / "registry.db"))


@pytest.fixture
def service_registry(db):
    """Create a service registry for testing."""
    return ServiceRegistry(db)


@pytest.fixture
def registered_greeter(service_registry):
    """Registry holding revision 1 of a keyed greeter with method greet."""
    deployment = Deployment(id="dp_greeter_v1", services=[greeter_service()])
    service_registry.register_deployment(deployment)
    return service_registry
