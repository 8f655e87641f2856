"""Key field validation for keyed services."""

from typing import Iterable

from ..errors import BadKeyDefinition
from ..models.service import KEY_FIELD_TYPE, ServiceDefinition


class KeyFieldValidator:
    """Checks that every method of a keyed service declares one string key field."""

    def validate(self, service: ServiceDefinition) -> None:
        """Validate the key fields of a single service.

        Non-keyed services are exempt, whatever their field annotations.

        Args:
            service: Service definition to check

        Raises:
            BadKeyDefinition: If a method input has zero key fields, more than
                one key field, or a key field whose type is not string.
        """
        if not service.is_keyed:
            return

        for method in service.methods:
            key_fields = method.input.key_fields()

            if not key_fields:
                raise BadKeyDefinition(
                    service.name, method.name, method.input_type,
                    "has no field annotated as key",
                )

            if len(key_fields) > 1:
                names = ", ".join(f.name for f in key_fields)
                raise BadKeyDefinition(
                    service.name, method.name, method.input_type,
                    f"has more than one field annotated as key ({names})",
                )

            key_field = key_fields[0]
            if key_field.type != KEY_FIELD_TYPE:
                raise BadKeyDefinition(
                    service.name, method.name, method.input_type,
                    f"key field '{key_field.name}' has type '{key_field.type}', "
                    f"expected '{KEY_FIELD_TYPE}'",
                )

    def validate_all(self, services: Iterable[ServiceDefinition]) -> None:
        """Validate a batch of services, stopping at the first failure."""
        for service in services:
            self.validate(service)
