"""Backward compatibility checks for method message contracts."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

from ..models.service import MessageField, MessageType, Method


@dataclass
class MessageDiff:
    """Field level differences between two versions of a message."""

    added_fields: List[MessageField] = field(default_factory=list)
    removed_fields: List[MessageField] = field(default_factory=list)
    changed_fields: List[Tuple[MessageField, MessageField]] = field(default_factory=list)


@dataclass
class ContractDiff:
    """Result of comparing two versions of a method contract."""

    method: str
    input: MessageDiff
    output: MessageDiff
    violations: List[str] = field(default_factory=list)

    @property
    def is_compatible(self) -> bool:
        return not self.violations


class ContractDiffEngine:
    """Engine for comparing method contracts across revisions.

    Fields are matched by number. Callers written against the old contract
    keep sending every input field they knew about and keep reading every
    output field that was guaranteed to be set, so:

    - input fields cannot be removed, retyped, or made required, and new
      input fields must be optional;
    - required output fields cannot be removed, retyped, or made optional;
    - renaming a field breaks callers unless ``allow_field_rename`` is set.

    The same rules apply inside nested messages. A field kept in both
    versions whose type is a message is compared by the shape of that
    message, so nested message types may be renamed.
    """

    def __init__(self, allow_field_rename: bool = False):
        self.allow_field_rename = allow_field_rename

    def diff(self, old_method: Method, new_method: Method) -> ContractDiff:
        """Compare an old method contract with its new version.

        Args:
            old_method: Method from a previously accepted revision
            new_method: Method with the same name from the candidate revision

        Returns:
            ContractDiff with top-level field differences and the
            compatibility violations found at any nesting depth
        """
        input_diff = self._diff_messages(old_method.input, new_method.input)
        output_diff = self._diff_messages(old_method.output, new_method.output)

        violations = []
        violations.extend(self._message_violations(
            "input", old_method.input, new_method.input, old_method, new_method, set()
        ))
        violations.extend(self._message_violations(
            "output", old_method.output, new_method.output, old_method, new_method, set()
        ))

        return ContractDiff(
            method=new_method.name,
            input=input_diff,
            output=output_diff,
            violations=violations,
        )

    def _message_violations(
        self,
        side: str,
        old: MessageType,
        new: MessageType,
        old_method: Method,
        new_method: Method,
        visited: Set[Tuple[str, str]],
    ) -> List[str]:
        # Each (old, new) message pair is compared once, recursive types included
        pair = (old.name, new.name)
        if pair in visited:
            return []
        visited.add(pair)

        diff = self._diff_messages(old, new)
        if side == "input":
            violations = self._input_violations(old, diff)
        else:
            violations = self._output_violations(old, diff)

        for old_field, new_field in diff.changed_fields:
            violations.extend(
                self._common_violations(side, old, old_field, new_field, old_method, new_method)
            )

        for old_field, new_field in self._common_fields(old, new):
            old_nested, new_nested = self._nested_messages(old_field, new_field, old_method, new_method)
            if old_nested is not None and new_nested is not None:
                violations.extend(self._message_violations(
                    side, old_nested, new_nested, old_method, new_method, visited
                ))

        return violations

    def _common_fields(self, old: MessageType, new: MessageType) -> List[Tuple[MessageField, MessageField]]:
        new_by_number: Dict[int, MessageField] = {f.number: f for f in new.fields}
        return [
            (old_field, new_by_number[old_field.number])
            for old_field in sorted(old.fields, key=lambda f: f.number)
            if old_field.number in new_by_number
        ]

    def _nested_messages(
        self,
        old_field: MessageField,
        new_field: MessageField,
        old_method: Method,
        new_method: Method,
    ) -> Tuple[Optional[MessageType], Optional[MessageType]]:
        if old_field.is_primitive or new_field.is_primitive:
            return None, None
        return old_method.get_message(old_field.type), new_method.get_message(new_field.type)

    def _diff_messages(self, old: MessageType, new: MessageType) -> MessageDiff:
        old_by_number: Dict[int, MessageField] = {f.number: f for f in old.fields}
        new_by_number: Dict[int, MessageField] = {f.number: f for f in new.fields}

        old_numbers = set(old_by_number.keys())
        new_numbers = set(new_by_number.keys())

        added = [new_by_number[n] for n in sorted(new_numbers - old_numbers)]
        removed = [old_by_number[n] for n in sorted(old_numbers - new_numbers)]

        changed = []
        for number in sorted(old_numbers & new_numbers):
            old_field = old_by_number[number]
            new_field = new_by_number[number]
            if self._fields_differ(old_field, new_field):
                changed.append((old_field, new_field))

        return MessageDiff(added_fields=added, removed_fields=removed, changed_fields=changed)

    def _fields_differ(self, old_field: MessageField, new_field: MessageField) -> bool:
        return (
            old_field.name != new_field.name
            or old_field.type != new_field.type
            or old_field.required != new_field.required
        )

    def _input_violations(self, message: MessageType, diff: MessageDiff) -> List[str]:
        violations = []

        for removed in diff.removed_fields:
            violations.append(
                f"input field '{removed.name}' (#{removed.number}) of '{message.name}' was removed"
            )

        for added in diff.added_fields:
            if added.required:
                violations.append(
                    f"new input field '{added.name}' (#{added.number}) of '{message.name}' is required"
                )

        for old_field, new_field in diff.changed_fields:
            if new_field.required and not old_field.required:
                violations.append(
                    f"input field '{old_field.name}' (#{old_field.number}) of "
                    f"'{message.name}' became required"
                )

        return violations

    def _output_violations(self, message: MessageType, diff: MessageDiff) -> List[str]:
        violations = []

        for removed in diff.removed_fields:
            if removed.required:
                violations.append(
                    f"required output field '{removed.name}' (#{removed.number}) of "
                    f"'{message.name}' was removed"
                )

        for old_field, new_field in diff.changed_fields:
            if old_field.required and not new_field.required:
                violations.append(
                    f"output field '{old_field.name}' (#{old_field.number}) of "
                    f"'{message.name}' is no longer required"
                )

        return violations

    def _common_violations(
        self,
        side: str,
        message: MessageType,
        old_field: MessageField,
        new_field: MessageField,
        old_method: Method,
        new_method: Method,
    ) -> List[str]:
        violations = []
        if self._type_changed(old_field, new_field, old_method, new_method):
            violations.append(
                f"{side} field '{old_field.name}' (#{old_field.number}) of '{message.name}' "
                f"changed type from '{old_field.type}' to '{new_field.type}'"
            )
        if old_field.name != new_field.name and not self.allow_field_rename:
            violations.append(
                f"{side} field #{old_field.number} of '{message.name}' was renamed "
                f"from '{old_field.name}' to '{new_field.name}'"
            )
        return violations

    def _type_changed(
        self,
        old_field: MessageField,
        new_field: MessageField,
        old_method: Method,
        new_method: Method,
    ) -> bool:
        if old_field.type == new_field.type:
            return False
        # Two message types are compared by shape when both definitions are known
        old_nested, new_nested = self._nested_messages(old_field, new_field, old_method, new_method)
        return old_nested is None or new_nested is None
