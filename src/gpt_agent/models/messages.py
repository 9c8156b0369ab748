"""Conversation entries exchanged with the chat completion endpoint."""

from __future__ import annotations

from typing import Annotated, Any, Iterator, Literal, Union

from jsonschema import Draft7Validator
from jsonschema.exceptions import SchemaError
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator


class FunctionCall(BaseModel):
    """A tool invocation requested by the model.

    ``arguments`` is raw JSON text as the model emitted it; it is only parsed
    and validated at dispatch time.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    arguments: str


class SystemMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: Literal["system"] = "system"
    content: str


class UserMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: Literal["user"] = "user"
    content: str


class AssistantMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: Literal["assistant"] = "assistant"
    content: str = ""
    function_call: FunctionCall | None = None

    @property
    def is_terminal(self) -> bool:
        """True when control goes back to the user after this message."""
        return self.function_call is None


class FunctionMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: Literal["function"] = "function"
    name: str
    content: str


Message = Annotated[
    Union[SystemMessage, UserMessage, AssistantMessage, FunctionMessage],
    Field(discriminator="role"),
]

_MESSAGE_ADAPTER: TypeAdapter[Message] = TypeAdapter(Message)


def parse_message(data: Any) -> Message:
    """Validate a raw mapping (or an existing message) as a conversation entry."""
    if isinstance(data, BaseModel):
        data = data.model_dump()
    return _MESSAGE_ADAPTER.validate_python(data)


def serialize_message(message: Message) -> dict[str, Any]:
    return parse_message(message).model_dump(exclude_none=True)


class FunctionDefinition(BaseModel):
    """A tool as advertised to the model in the ``functions`` request field."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    description: str
    parameters: dict[str, Any]

    @field_validator("parameters")
    @classmethod
    def _check_schema(cls, value: dict[str, Any]) -> dict[str, Any]:
        try:
            Draft7Validator.check_schema(value)
        except SchemaError as e:
            raise ValueError(f"invalid argument schema: {e.message}") from e
        return value


class Conversation:
    """Append-only transcript replayed to the model on every call.

    The first entry is always the system message.  Entries are never removed
    or reordered once appended.
    """

    def __init__(self, system: SystemMessage | str) -> None:
        if isinstance(system, str):
            system = SystemMessage(content=system)
        if not isinstance(system, SystemMessage):
            raise TypeError("a conversation must start with a system message")
        self._messages: list[Message] = [system]

    @classmethod
    def from_messages(cls, messages: list[Message]) -> Conversation:
        if not messages:
            raise ValueError("a conversation needs at least a system message")
        conversation = cls(parse_message(messages[0]))  # type: ignore[arg-type]
        for message in messages[1:]:
            conversation.append(message)
        return conversation

    def append(self, message: Message) -> None:
        message = parse_message(message)
        if isinstance(message, SystemMessage):
            raise ValueError("system message is only allowed as the first entry")
        self._messages.append(message)

    @property
    def last(self) -> Message:
        return self._messages[-1]

    @property
    def messages(self) -> list[Message]:
        """A copy of the entries; mutating it does not touch the conversation."""
        return list(self._messages)

    def to_payload(self) -> list[dict[str, Any]]:
        return [serialize_message(m) for m in self._messages]

    def __iter__(self) -> Iterator[Message]:
        return iter(list(self._messages))

    def __len__(self) -> int:
        return len(self._messages)

    def __getitem__(self, index: int) -> Message:
        return self._messages[index]
