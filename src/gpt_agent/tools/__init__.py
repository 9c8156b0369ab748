"""Fixed registry of tools the model can call."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable

from jsonschema import Draft7Validator
from jsonschema import ValidationError as JsonSchemaValidationError

from gpt_agent.models.agent_schemas import UnknownToolError
from gpt_agent.models.messages import FunctionCall, FunctionDefinition
from gpt_agent.services.local_service import LocalService
from gpt_agent.services.response_parser import parse_json_text

logger = logging.getLogger(__name__)

ERROR_PARSING_ARGUMENTS = "<error parsing arguments>"
END_CONVERSATION = "<end_conversation>"


@dataclass
class ExecutionContext:
    """Shared by every request cycle: the confined workspace and a confirm prompt."""

    service: LocalService
    confirm: Callable[[str], bool]


@dataclass
class Tool:
    name: str
    description: str
    parameters: dict[str, Any]
    execute: Callable[[dict[str, Any], ExecutionContext], str]
    _validator: Draft7Validator = field(init=False, repr=False)

    def __post_init__(self) -> None:
        # Also checks the schema itself
        self._validator = Draft7Validator(self.definition().parameters)

    def definition(self) -> FunctionDefinition:
        return FunctionDefinition(
            name=self.name, description=self.description, parameters=self.parameters
        )

    def validate(self, args: Any) -> None:
        self._validator.validate(args)


class ToolRegistry:
    def __init__(self, context: ExecutionContext, tools: list[Tool] | None = None) -> None:
        self.context = context
        self._tools: dict[str, Tool] = {}
        for tool in tools or []:
            self.register(tool)

    def register(self, tool: Tool) -> None:
        if tool.name in self._tools:
            raise ValueError(f"tool '{tool.name}' is already registered")
        self._tools[tool.name] = tool

    def get(self, name: str) -> Tool:
        try:
            return self._tools[name]
        except KeyError:
            raise UnknownToolError(name) from None

    def list_all(self) -> list[Tool]:
        return list(self._tools.values())

    def to_function_definitions(self) -> list[FunctionDefinition]:
        return [tool.definition() for tool in self._tools.values()]

    def dispatch(self, call: FunctionCall) -> str:
        """Run the requested tool and return its result text.

        Malformed or schema-invalid arguments give ``<error parsing arguments>``
        so the model can correct itself; an unknown tool name raises.
        """
        tool = self.get(call.name)
        try:
            args = parse_json_text(call.arguments)
            tool.validate(args)
        except (ValueError, JsonSchemaValidationError) as e:
            logger.info("Bad arguments for '%s': %s", call.name, e)
            return ERROR_PARSING_ARGUMENTS
        logger.debug("Executing tool '%s' with %s", call.name, args)
        return tool.execute(args, self.context)
