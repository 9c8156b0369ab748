"""Agent loop: alternates model calls, tool dispatch and user input."""

from __future__ import annotations

import contextlib
import logging
from typing import Callable, ContextManager, Protocol

from gpt_agent.models.agent_schemas import AgentResult, CompletionFailure, StepOutcome
from gpt_agent.models.messages import (
    AssistantMessage,
    Conversation,
    FunctionCall,
    FunctionMessage,
    UserMessage,
)
from gpt_agent.services.llm_service import LLMService
from gpt_agent.services.response_parser import parse_json_text
from gpt_agent.tools import END_CONVERSATION, ToolRegistry
from gpt_agent.tools.base_tools import LIST_FILES

logger = logging.getLogger(__name__)

_STOP_OUTCOMES = (
    StepOutcome.COMPLETED,
    StepOutcome.EXCEEDED_TOKEN_LIMIT,
    StepOutcome.AWAITING_USER,
)


class StepCallback(Protocol):
    def on_step_start(self, step: int, max_steps: int) -> None: ...
    def waiting(self, text: str) -> ContextManager: ...
    def on_assistant_message(self, text: str) -> None: ...
    def on_tool_call(self, name: str, arguments: str) -> None: ...
    def on_tool_result(self, name: str, result: str) -> None: ...
    def on_token_limit(self) -> None: ...
    def on_finish(self, summary: str, steps: int, tool_calls: int) -> None: ...


class NullCallback:
    def on_step_start(self, step: int, max_steps: int) -> None: ...
    def waiting(self, text: str) -> ContextManager:
        return contextlib.nullcontext()
    def on_assistant_message(self, text: str) -> None: ...
    def on_tool_call(self, name: str, arguments: str) -> None: ...
    def on_tool_result(self, name: str, result: str) -> None: ...
    def on_token_limit(self) -> None: ...
    def on_finish(self, summary: str, steps: int, tool_calls: int) -> None: ...


class AgenticAgent:
    """Drives one request cycle over a conversation it owns.

    The next action depends only on the last entry:

    * assistant message with a function call -> run the tool
    * assistant message without one -> ask the user (or stop, if there is no
      ``ask_user``)
    * anything else -> ask the model
    """

    def __init__(
        self,
        llm: LLMService,
        registry: ToolRegistry,
        system_prompt: str,
        ask_user: Callable[[str], str] | None = None,
        max_steps: int = 0,
        callback: StepCallback | None = None,
        model: str | None = None,
    ) -> None:
        self.llm = llm
        self.registry = registry
        self.system_prompt = system_prompt
        self.ask_user = ask_user
        self.max_steps = max_steps
        self.model = model
        self.cb: StepCallback = callback or NullCallback()
        self._summary = ""

    def start(self, request: str) -> Conversation:
        """Seed a conversation; the first action is always a file listing."""
        conversation = Conversation(self.system_prompt)
        conversation.append(UserMessage(content=request))
        conversation.append(
            AssistantMessage(content="", function_call=FunctionCall(name=LIST_FILES, arguments="{}"))
        )
        return conversation

    def step(self, conversation: Conversation) -> StepOutcome:
        last = conversation.last
        if isinstance(last, AssistantMessage):
            if last.function_call is not None:
                return self._run_tool(conversation, last.function_call)
            return self._ask_user(conversation, last)
        return self._call_model(conversation)

    def _run_tool(self, conversation: Conversation, call: FunctionCall) -> StepOutcome:
        self.cb.on_tool_call(call.name, call.arguments)
        result = self.registry.dispatch(call)
        if result == END_CONVERSATION:
            self._summary = _summary_from(call)
            logger.info("Request completed: %s", self._summary)
            return StepOutcome.COMPLETED
        self.cb.on_tool_result(call.name, result)
        conversation.append(FunctionMessage(name=call.name, content=result))
        return StepOutcome.CONTINUE

    def _ask_user(self, conversation: Conversation, message: AssistantMessage) -> StepOutcome:
        if self.ask_user is None:
            return StepOutcome.AWAITING_USER
        reply = self.ask_user(message.content)
        conversation.append(UserMessage(content=reply))
        return StepOutcome.CONTINUE

    def _call_model(self, conversation: Conversation) -> StepOutcome:
        with self.cb.waiting("Asking GPT..."):
            outcome = self.llm.complete(
                conversation.messages,
                self.registry.to_function_definitions(),
                self.model,
            )
        if isinstance(outcome, CompletionFailure):
            logger.warning("Model hit the token limit; ending this request")
            self.cb.on_token_limit()
            return StepOutcome.EXCEEDED_TOKEN_LIMIT
        message = outcome.new_message
        if message.content:
            self.cb.on_assistant_message(message.content)
        conversation.append(message)
        return StepOutcome.CONTINUE

    def run(self, request: str) -> AgentResult:
        conversation = self.start(request)
        return self.resume(conversation)

    def resume(self, conversation: Conversation) -> AgentResult:
        """Step ``conversation`` until the request ends, the user is needed, or the step limit."""
        self._summary = ""
        steps = 0
        tool_calls = 0
        while not self.max_steps or steps < self.max_steps:
            steps += 1
            self.cb.on_step_start(steps, self.max_steps)
            last = conversation.last
            if isinstance(last, AssistantMessage) and last.function_call is not None:
                tool_calls += 1
            outcome = self.step(conversation)
            if outcome in _STOP_OUTCOMES:
                if outcome is StepOutcome.COMPLETED:
                    self.cb.on_finish(self._summary, steps, tool_calls)
                return AgentResult(
                    status=outcome,
                    summary=self._summary,
                    steps=steps,
                    tool_calls_made=tool_calls,
                    messages=conversation.messages,
                )

        logger.warning("Agent hit max steps (%d)", self.max_steps)
        return AgentResult(
            status=StepOutcome.MAX_STEPS,
            steps=steps,
            tool_calls_made=tool_calls,
            messages=conversation.messages,
        )


def _summary_from(call: FunctionCall) -> str:
    args = parse_json_text(call.arguments)
    if isinstance(args, dict) and isinstance(args.get("summary"), str):
        return args["summary"]
    return ""
