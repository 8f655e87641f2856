"""Data models for representing service contracts."""

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

PRIMITIVE_TYPES = frozenset({
    "string",
    "bytes",
    "bool",
    "int32",
    "int64",
    "uint32",
    "uint64",
    "float",
    "double",
})

KEY_FIELD_TYPE = "string"


class ServiceKind(str, Enum):
    """How invocations of a service are routed."""

    KEYED = "keyed"
    UNKEYED = "unkeyed"
    SINGLETON = "singleton"

    @classmethod
    def _missing_(cls, value):
        """Accept kinds regardless of case."""
        if isinstance(value, str):
            lowered = value.lower()
            for member in cls:
                if member.value == lowered:
                    return member
        return None


class MessageField(BaseModel):
    """A single field of a message type.

    Attributes:
        name: Field name.
        number: Wire number of the field, unique within its message.
        type: Primitive type name or the name of another message.
        key: Whether the field is annotated as the routing key.
        required: Whether callers must always set the field.
    """

    name: str
    number: int = Field(gt=0)
    type: str
    key: bool = False
    required: bool = False

    @property
    def is_primitive(self) -> bool:
        return self.type in PRIMITIVE_TYPES


class MessageType(BaseModel):
    """A named message with an ordered list of fields."""

    name: str
    fields: List[MessageField] = Field(default_factory=list)

    @field_validator("fields")
    @classmethod
    def validate_unique_fields(cls, v: List[MessageField]) -> List[MessageField]:
        """Reject duplicate field names and field numbers."""
        names = [f.name for f in v]
        if len(names) != len(set(names)):
            raise ValueError("field names must be unique within a message")
        numbers = [f.number for f in v]
        if len(numbers) != len(set(numbers)):
            raise ValueError("field numbers must be unique within a message")
        return v

    def key_fields(self) -> List[MessageField]:
        """Fields annotated as the routing key."""
        return [f for f in self.fields if f.key]

    def get_field(self, name: str) -> Optional[MessageField]:
        return next((f for f in self.fields if f.name == name), None)

    def get_field_by_number(self, number: int) -> Optional[MessageField]:
        return next((f for f in self.fields if f.number == number), None)


class Method(BaseModel):
    """A service method with its input and output messages.

    Attributes:
        name: Method name.
        input: Input message of the method.
        output: Output message of the method.
        messages: Definitions of the message types that input and output
            fields refer to, directly or through other messages, by name.
    """

    name: str
    input: MessageType
    output: MessageType
    messages: Dict[str, MessageType] = Field(default_factory=dict)

    @property
    def input_type(self) -> str:
        return self.input.name

    @property
    def output_type(self) -> str:
        return self.output.name

    def get_message(self, name: str) -> Optional[MessageType]:
        """Look up a nested message definition by type name."""
        return self.messages.get(name)


class ServiceDefinition(BaseModel):
    """A named service as declared in a contract document.

    Attributes:
        name: Fully qualified service name.
        kind: Routing kind of the service.
        public: Whether the service is reachable from outside the cluster.
        methods: Ordered methods of the service.
    """

    name: str
    kind: ServiceKind
    public: bool = True
    methods: List[Method] = Field(default_factory=list)

    @field_validator("methods")
    @classmethod
    def validate_unique_methods(cls, v: List[Method]) -> List[Method]:
        """Reject duplicate method names."""
        names = [m.name for m in v]
        if len(names) != len(set(names)):
            raise ValueError("method names must be unique within a service")
        return v

    @property
    def is_keyed(self) -> bool:
        return self.kind == ServiceKind.KEYED

    def get_method(self, name: str) -> Optional[Method]:
        return next((m for m in self.methods if m.name == name), None)
