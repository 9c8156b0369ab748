"""Sanitizing and strict validation of completion endpoint responses."""

from __future__ import annotations

import json
import logging
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, JsonValue, TypeAdapter, ValidationError, field_validator

from gpt_agent.models.agent_schemas import (
    CompletionFailure,
    ResponseFormatError,
)
from gpt_agent.models.messages import AssistantMessage, FunctionCall

logger = logging.getLogger(__name__)

_JSON_VALUE: TypeAdapter[JsonValue] = TypeAdapter(JsonValue)


def sanitize_json_text(text: str) -> str:
    """Escape raw newlines the model leaves inside JSON string literals.

    Only ``\\n`` and ``\\r`` inside a string are rewritten (both become the
    two-character sequence ``\\n``); everything outside string literals is
    left untouched.
    """
    inside_string = False
    was_backslash = False
    out: list[str] = []
    for char in text:
        if char == '"' and not was_backslash:
            inside_string = not inside_string
        if inside_string and char in "\n\r":
            out.append("\\n")
        else:
            out.append(char)
        was_backslash = char == "\\"
    return "".join(out)


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not valid JSON")


def parse_json_text(text: str) -> JsonValue:
    """Sanitize and parse model-emitted JSON into plain JSON values.

    Raises ``ValueError`` (``json.JSONDecodeError`` included) on invalid input.
    """
    data = json.loads(sanitize_json_text(text), parse_constant=_reject_constant)
    try:
        return _JSON_VALUE.validate_python(data)
    except ValidationError as e:
        raise ValueError(f"not a JSON value: {e}") from e


class _StopMessage(BaseModel):
    role: Literal["assistant"]
    content: str
    function_call: None = None


class _FunctionCallMessage(BaseModel):
    role: Literal["assistant"]
    content: str | None = None
    function_call: FunctionCall

    @field_validator("function_call")
    @classmethod
    def _name_required(cls, value: FunctionCall) -> FunctionCall:
        if not value.name:
            raise ValueError("function_call.name must not be empty")
        return value


class _LengthChoice(BaseModel):
    finish_reason: Literal["length"]


class _StopChoice(BaseModel):
    finish_reason: Literal["stop"]
    message: _StopMessage


class _FunctionCallChoice(BaseModel):
    finish_reason: Literal["function_call"]
    message: _FunctionCallMessage


_CHOICE = TypeAdapter(
    Annotated[
        Union[_LengthChoice, _StopChoice, _FunctionCallChoice],
        Field(discriminator="finish_reason"),
    ]
)


class _Envelope(BaseModel):
    choices: list[JsonValue]


def parse_completion_response(text: str) -> AssistantMessage | CompletionFailure:
    """Turn a raw response body into an assistant message or a token-limit failure.

    Anything that is not one of the three legal choice shapes raises
    ``ResponseFormatError``.
    """
    try:
        data = parse_json_text(text)
    except ValueError as e:
        logger.error("Unparsable completion response: %s", text)
        raise ResponseFormatError(f"response is not valid JSON: {e}", payload=text) from e

    try:
        envelope = _Envelope.model_validate(data)
    except ValidationError as e:
        logger.error("Completion response without choices: %s", data)
        raise ResponseFormatError("response has no 'choices' list", payload=data) from e

    if not envelope.choices:
        raise ResponseFormatError("No response from GPT.", payload=data)

    choice = envelope.choices[0]
    try:
        parsed = _CHOICE.validate_python(choice)
    except ValidationError as e:
        logger.error("Unexpected completion choice: %s", json.dumps(choice))
        reason = choice.get("finish_reason") if isinstance(choice, dict) else None
        raise ResponseFormatError(
            f"GPT had unexpected finish reason or choice shape: {reason!r}", payload=choice
        ) from e

    if isinstance(parsed, _LengthChoice):
        return CompletionFailure()
    if isinstance(parsed, _StopChoice):
        return AssistantMessage(content=parsed.message.content)
    return AssistantMessage(
        content=parsed.message.content or "",
        function_call=parsed.message.function_call,
    )
