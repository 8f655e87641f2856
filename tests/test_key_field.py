"""Tests for key field validation of keyed services."""

import pytest

from meta_registry.errors import BadKeyDefinition
from meta_registry.models.service import MessageField, MessageType, Method, ServiceKind
from meta_registry.validation.key_field import KeyFieldValidator

from conftest import greet_method, greeter_service


@pytest.fixture
def validator():
    return KeyFieldValidator()


class TestKeyedServices:
    """Keyed services need exactly one string key field per method input."""

    def test_single_string_key_field_passes(self, validator):
        validator.validate(greeter_service())

    def test_missing_key_field_fails(self, validator):
        service = greeter_service(methods=[greet_method(key_type=None)])

        with pytest.raises(BadKeyDefinition) as exc_info:
            validator.validate(service)

        error = exc_info.value
        assert error.code == "META0002"
        assert error.method == "greet"
        assert error.message_type == "GreetRequest"
        assert "no field annotated as key" in error.message

    def test_multiple_key_fields_fail(self, validator):
        method = greet_method(extra_input=[
            MessageField(name="tenant_id", number=2, type="string", key=True),
        ])

        with pytest.raises(BadKeyDefinition) as exc_info:
            validator.validate(greeter_service(methods=[method]))

        assert "more than one field" in exc_info.value.message
        assert "person_id, tenant_id" in exc_info.value.message

    @pytest.mark.parametrize("key_type", ["int32", "int64", "bytes", "bool", "double", "Person"])
    def test_non_string_key_field_fails(self, validator, key_type):
        service = greeter_service(methods=[greet_method(key_type=key_type)])

        with pytest.raises(BadKeyDefinition) as exc_info:
            validator.validate(service)

        assert f"has type '{key_type}'" in exc_info.value.message

    def test_every_method_is_checked(self, validator):
        service = greeter_service(methods=[
            greet_method("greet"),
            greet_method("farewell", key_type=None),
        ])

        with pytest.raises(BadKeyDefinition) as exc_info:
            validator.validate(service)

        assert exc_info.value.method == "farewell"

    def test_error_names_service_and_message(self, validator):
        service = greeter_service(methods=[greet_method(key_type=None)])

        with pytest.raises(BadKeyDefinition) as exc_info:
            validator.validate(service)

        rendered = str(exc_info.value)
        assert rendered.startswith("[META0002]")
        assert "greeter.Greeter" in rendered
        assert "GreetRequest" in rendered

    def test_keyed_service_without_methods_passes(self, validator):
        validator.validate(greeter_service(methods=[]))


class TestUnkeyedServices:
    """Non-keyed services are exempt from key checks."""

    @pytest.mark.parametrize("kind", [ServiceKind.UNKEYED, ServiceKind.SINGLETON])
    def test_no_key_field_passes(self, validator, kind):
        validator.validate(greeter_service(kind=kind, methods=[greet_method(key_type=None)]))

    @pytest.mark.parametrize("kind", [ServiceKind.UNKEYED, ServiceKind.SINGLETON])
    def test_invalid_key_annotations_are_ignored(self, validator, kind):
        method = Method(
            name="greet",
            input=MessageType(name="GreetRequest", fields=[
                MessageField(name="a", number=1, type="int32", key=True),
                MessageField(name="b", number=2, type="string", key=True),
            ]),
            output=MessageType(name="GreetResponse"),
        )

        validator.validate(greeter_service(kind=kind, methods=[method]))


def test_validate_all_stops_at_first_bad_service(validator):
    good = greeter_service()
    bad = greeter_service(methods=[greet_method(key_type="int64")]).model_copy(
        update={"name": "greeter.Broken"}
    )

    with pytest.raises(BadKeyDefinition) as exc_info:
        validator.validate_all([good, bad])

    assert exc_info.value.service == "greeter.Broken"
