import pytest

from meta_registry.errors import (
    ERROR_CODES,
    BadKeyDefinition,
    MetaError,
    RevisionConflict,
    explain,
)


def test_error_codes():
    assert BadKeyDefinition.code == "META0002"
    assert RevisionConflict.code == "META0006"
    assert set(ERROR_CODES) == {"META0002", "META0006"}


def test_bad_key_definition_to_dict():
    error = BadKeyDefinition("greeter.Greeter", "greet", "GreetRequest", "has no field annotated as key")

    data = error.to_dict()

    assert isinstance(error, MetaError)
    assert data["code"] == "META0002"
    assert data["details"] == {
        "service": "greeter.Greeter",
        "method": "greet",
        "message_type": "GreetRequest",
    }
    assert data["link"].endswith("/META0002")


def test_revision_conflict_message():
    error = RevisionConflict("dp_2", "greeter.Greeter", 1, "kind", "service kind changed")

    assert str(error) == (
        "[META0006] Deployment 'dp_2' conflicts with revision 1 of service "
        "'greeter.Greeter' (kind): service kind changed"
    )
    assert error.to_dict()["details"]["attribute"] == "kind"


def test_explain_is_case_insensitive():
    entry = explain(" meta0006 ")

    assert entry["code"] == "META0006"
    assert "backward compatible" in entry["description"]


def test_explain_unknown_code():
    with pytest.raises(KeyError):
        explain("META9999")
