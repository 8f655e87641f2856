"""Loading deployments from contract documents (YAML or JSON)."""

import json
from pathlib import Path
from typing import Any, Dict, Union

import yaml
from pydantic import ValidationError

from ..errors import DeploymentError
from ..models.deployment import Deployment
from ..models.service import PRIMITIVE_TYPES, MessageType, Method, ServiceDefinition


def load_deployment(path: Union[str, Path]) -> Deployment:
    """Load a deployment from a YAML or JSON contract document.

    Args:
        path: Path to the document

    Returns:
        Parsed Deployment

    Raises:
        DeploymentError: If the file cannot be read or is malformed
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise DeploymentError(f"Cannot read contract document {path}: {e}") from e

    try:
        if path.suffix == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise DeploymentError(f"Cannot parse contract document {path}: {e}") from e

    return parse_deployment(data)


def parse_deployment(data: Any) -> Deployment:
    """Build a Deployment from an already decoded contract document.

    Message references are resolved by name. No key or revision validation
    happens here.

    Raises:
        DeploymentError: If the document is malformed
    """
    if not isinstance(data, dict):
        raise DeploymentError("Contract document must be a mapping")

    messages = _parse_messages(data.get("messages") or {})

    raw_services = data.get("services") or []
    if not isinstance(raw_services, list):
        raise DeploymentError("'services' must be a list")

    services = []
    for raw_service in raw_services:
        if not isinstance(raw_service, dict) or "name" not in raw_service:
            raise DeploymentError("Each service must be a mapping with a 'name'")
        services.append(_parse_service(raw_service, messages))

    deployment_data = data.get("deployment") or {}
    if not isinstance(deployment_data, dict):
        raise DeploymentError("'deployment' must be a mapping")

    try:
        return Deployment.model_validate({**deployment_data, "services": services})
    except ValidationError as e:
        raise DeploymentError(f"Invalid deployment: {e}") from e


def _parse_messages(raw_messages: Dict[str, Any]) -> Dict[str, MessageType]:
    if not isinstance(raw_messages, dict):
        raise DeploymentError("'messages' must be a mapping of message name to definition")

    messages = {}
    for name, raw_message in raw_messages.items():
        raw_message = raw_message or {}
        if not isinstance(raw_message, dict):
            raise DeploymentError(f"Message '{name}' must be a mapping with a 'fields' list")
        fields = raw_message.get("fields") or []
        if not isinstance(fields, list):
            raise DeploymentError(f"'fields' of message '{name}' must be a list")
        try:
            messages[name] = MessageType(name=name, fields=fields)
        except ValidationError as e:
            raise DeploymentError(f"Invalid message '{name}': {e}") from e

    # Nested message references must resolve too
    for message in messages.values():
        for field in message.fields:
            if field.type not in PRIMITIVE_TYPES and field.type not in messages:
                raise DeploymentError(
                    f"Field '{field.name}' of message '{message.name}' "
                    f"references unknown type '{field.type}'"
                )

    return messages


def _resolve(messages: Dict[str, MessageType], name: Any, service: str, method: str) -> MessageType:
    if not isinstance(name, str):
        raise DeploymentError(
            f"Method '{method}' of service '{service}' must name its input and output messages"
        )
    if name not in messages:
        raise DeploymentError(
            f"Method '{method}' of service '{service}' references unknown message '{name}'"
        )
    return messages[name]


def _nested_messages(messages: Dict[str, MessageType], *roots: MessageType) -> Dict[str, MessageType]:
    """Collect every message type reachable from the fields of ``roots``."""
    nested: Dict[str, MessageType] = {}
    pending = list(roots)
    while pending:
        message = pending.pop()
        for field in message.fields:
            if field.is_primitive or field.type in nested:
                continue
            nested[field.type] = messages[field.type]
            pending.append(messages[field.type])
    return nested


def _parse_service(raw_service: Dict[str, Any], messages: Dict[str, MessageType]) -> ServiceDefinition:
    name = raw_service["name"]

    raw_methods = raw_service.get("methods") or []
    if not isinstance(raw_methods, list):
        raise DeploymentError(f"'methods' of service '{name}' must be a list")

    try:
        methods = []
        for raw_method in raw_methods:
            if not isinstance(raw_method, dict):
                raise DeploymentError(
                    f"Each method of service '{name}' must be a mapping with 'name', 'input' and 'output'"
                )
            method_name = raw_method.get("name")
            input_message = _resolve(messages, raw_method.get("input"), name, method_name)
            output_message = _resolve(messages, raw_method.get("output"), name, method_name)
            methods.append(Method(
                name=method_name,
                input=input_message,
                output=output_message,
                messages=_nested_messages(messages, input_message, output_message),
            ))

        return ServiceDefinition(
            name=name,
            kind=raw_service.get("kind", "unkeyed"),
            public=raw_service.get("public", True),
            methods=methods,
        )
    except ValidationError as e:
        raise DeploymentError(f"Invalid service '{name}': {e}") from e
