"""Outcome and error types shared by the completion client and agent loop."""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict

from gpt_agent.models.messages import AssistantMessage, Message

EXCEEDED_TOKEN_LIMIT = "exceededTokenLimit"


class CompletionSuccess(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: Literal[True] = True
    new_message: AssistantMessage
    messages: list[Message]


class CompletionFailure(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: Literal[False] = False
    error: Literal["exceededTokenLimit"] = EXCEEDED_TOKEN_LIMIT


CompletionResult = Union[CompletionSuccess, CompletionFailure]


class StepOutcome(str, Enum):
    CONTINUE = "continue"
    AWAITING_USER = "awaiting_user"
    COMPLETED = "completed"
    EXCEEDED_TOKEN_LIMIT = "exceeded_token_limit"
    MAX_STEPS = "max_steps"


class AgentResult(BaseModel):
    status: StepOutcome
    summary: str = ""
    steps: int
    tool_calls_made: int
    messages: list[Message] = []

    @property
    def completed(self) -> bool:
        return self.status is StepOutcome.COMPLETED


class AgentError(Exception):
    """Base class for unrecoverable faults within a request cycle."""


class ConfigurationError(AgentError):
    """Raised when required settings are missing or invalid."""


class TransportError(AgentError):
    """A retryable failure talking to the completion endpoint."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ClientRequestError(AgentError):
    """The endpoint rejected the request with a 4xx status; never retried."""

    def __init__(self, status_code: int, body: str = "") -> None:
        super().__init__(f"completion request rejected with status {status_code}")
        self.status_code = status_code
        self.body = body


class ResponseFormatError(AgentError):
    """The endpoint returned something that is not a legal completion."""

    def __init__(self, message: str, payload: Any = None) -> None:
        super().__init__(message)
        self.payload = payload


class UnknownToolError(AgentError):
    """The model asked for a tool that is not registered."""

    def __init__(self, name: str) -> None:
        super().__init__(f"unknown tool '{name}'")
        self.name = name


class PathTraversalError(AgentError):
    """A tool path resolved outside of the working directory."""


class ToolExecutionError(AgentError):
    """The filesystem refused a tool's read, write or delete."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"cannot access '{path}': {reason}")
        self.path = path
