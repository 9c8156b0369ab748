"""Tests for the agent loop state machine."""

from __future__ import annotations

import json
from pathlib import Path

import httpx
import pytest

from gpt_agent.agents.agentic_agent import AgenticAgent
from gpt_agent.config import ModelConfig
from gpt_agent.models.agent_schemas import (
    CompletionFailure,
    CompletionSuccess,
    StepOutcome,
    ToolExecutionError,
    UnknownToolError,
)
from gpt_agent.models.messages import (
    AssistantMessage,
    Conversation,
    FunctionCall,
    FunctionMessage,
    SystemMessage,
    UserMessage,
)
from gpt_agent.services.llm_service import LLMService
from gpt_agent.services.local_service import LocalService
from gpt_agent.tools import ExecutionContext, ToolRegistry
from gpt_agent.tools.base_tools import create_base_tools


class FakeLLM:
    """Returns scripted assistant messages (or a token-limit failure) in order."""

    def __init__(self, *outcomes):
        self._outcomes = list(outcomes)
        self.calls: list[list] = []

    def complete(self, messages, functions=(), model=None):
        self.calls.append(list(messages))
        outcome = self._outcomes.pop(0)
        if isinstance(outcome, CompletionFailure):
            return outcome
        return CompletionSuccess(new_message=outcome, messages=[*messages, outcome])


def _tool_call(name: str, **args) -> AssistantMessage:
    return AssistantMessage(content="", function_call=FunctionCall(name=name, arguments=json.dumps(args)))


def _agent(tmp_path: Path, llm, ask_user=None, max_steps: int = 0) -> AgenticAgent:
    context = ExecutionContext(service=LocalService(tmp_path), confirm=lambda _q: True)
    return AgenticAgent(
        llm=llm,
        registry=ToolRegistry(context, create_base_tools()),
        system_prompt="S",
        ask_user=ask_user,
        max_steps=max_steps,
    )


class TestStart:
    def test_seed_forces_file_listing(self, tmp_path: Path):
        conversation = _agent(tmp_path, FakeLLM()).start("write me X")
        assert conversation.messages == [
            SystemMessage(content="S"),
            UserMessage(content="write me X"),
            AssistantMessage(content="", function_call=FunctionCall(name="list_files", arguments="{}")),
        ]

    def test_first_step_lists_files_without_model(self, tmp_path: Path):
        (tmp_path / "readme.md").write_text("hi")
        llm = FakeLLM()
        agent = _agent(tmp_path, llm)
        conversation = agent.start("do it")
        assert agent.step(conversation) is StepOutcome.CONTINUE
        assert conversation.last == FunctionMessage(name="list_files", content="readme.md")
        assert llm.calls == []


class TestStep:
    def test_write_file_scenario(self, tmp_path: Path):
        llm = FakeLLM(_tool_call("write_file", path="a.txt", content="hi"))
        agent = _agent(tmp_path, llm)
        conversation = Conversation.from_messages(
            [SystemMessage(content="S"), UserMessage(content="write me X")]
        )

        assert agent.step(conversation) is StepOutcome.CONTINUE
        assert conversation.last.function_call.name == "write_file"
        assert agent.step(conversation) is StepOutcome.CONTINUE

        assert conversation.last == FunctionMessage(name="write_file", content="<done>")
        assert (tmp_path / "a.txt").read_text() == "hi"
        assert len(conversation) == 4

    def test_token_limit_appends_nothing(self, tmp_path: Path):
        agent = _agent(tmp_path, FakeLLM(CompletionFailure()))
        conversation = Conversation.from_messages(
            [SystemMessage(content="S"), UserMessage(content="write me X")]
        )
        assert agent.step(conversation) is StepOutcome.EXCEEDED_TOKEN_LIMIT
        assert len(conversation) == 2

    def test_model_sees_full_history(self, tmp_path: Path):
        llm = FakeLLM(AssistantMessage(content="ok"))
        agent = _agent(tmp_path, llm)
        conversation = agent.start("req")
        agent.step(conversation)
        agent.step(conversation)
        assert len(llm.calls) == 1
        assert llm.calls[0] == conversation.messages[:4]

    def test_terminal_assistant_without_ask_user_waits(self, tmp_path: Path):
        agent = _agent(tmp_path, FakeLLM())
        conversation = Conversation.from_messages(
            [SystemMessage(content="S"), UserMessage(content="hi"), AssistantMessage(content="Which file?")]
        )
        assert agent.step(conversation) is StepOutcome.AWAITING_USER
        assert len(conversation) == 3

    def test_terminal_assistant_asks_user(self, tmp_path: Path):
        questions: list[str] = []

        def ask_user(text: str) -> str:
            questions.append(text)
            return "the README"

        agent = _agent(tmp_path, FakeLLM(), ask_user=ask_user)
        conversation = Conversation.from_messages(
            [SystemMessage(content="S"), UserMessage(content="hi"), AssistantMessage(content="Which file?")]
        )
        assert agent.step(conversation) is StepOutcome.CONTINUE
        assert questions == ["Which file?"]
        assert conversation.last == UserMessage(content="the README")

    def test_unknown_tool_propagates(self, tmp_path: Path):
        agent = _agent(tmp_path, FakeLLM(_tool_call("format_disk")))
        conversation = Conversation.from_messages([SystemMessage(content="S"), UserMessage(content="x")])
        agent.step(conversation)
        with pytest.raises(UnknownToolError):
            agent.step(conversation)

    def test_filesystem_fault_propagates(self, tmp_path: Path):
        (tmp_path / "a.txt").write_text("x")
        agent = _agent(tmp_path, FakeLLM(_tool_call("write_file", path="a.txt/b.txt", content="hi")))
        with pytest.raises(ToolExecutionError):
            agent.run("go")

    def test_bad_arguments_fed_back(self, tmp_path: Path):
        bad = AssistantMessage(content="", function_call=FunctionCall(name="read_file", arguments="{oops"))
        agent = _agent(tmp_path, FakeLLM(bad))
        conversation = Conversation.from_messages([SystemMessage(content="S"), UserMessage(content="x")])
        agent.step(conversation)
        agent.step(conversation)
        assert conversation.last == FunctionMessage(name="read_file", content="<error parsing arguments>")


class TestRun:
    def test_complete_request_terminates_without_new_entries(self, tmp_path: Path):
        llm = FakeLLM(
            _tool_call("write_file", path="out.txt", content="data"),
            _tool_call("complete_request", summary="Wrote out.txt"),
        )
        result = _agent(tmp_path, llm).run("write out.txt")

        assert result.status is StepOutcome.COMPLETED
        assert result.completed
        assert result.summary == "Wrote out.txt"
        assert result.tool_calls_made == 3
        assert result.messages[-1].function_call.name == "complete_request"
        assert [type(m).__name__ for m in result.messages] == [
            "SystemMessage",
            "UserMessage",
            "AssistantMessage",
            "FunctionMessage",
            "AssistantMessage",
            "FunctionMessage",
            "AssistantMessage",
        ]

    def test_token_limit_reported_not_raised(self, tmp_path: Path):
        result = _agent(tmp_path, FakeLLM(CompletionFailure())).run("big job")
        assert result.status is StepOutcome.EXCEEDED_TOKEN_LIMIT
        assert not result.completed
        # seed + file listing; nothing for the failed model turn
        assert len(result.messages) == 4

    def test_conversation_with_user_reply(self, tmp_path: Path):
        llm = FakeLLM(
            AssistantMessage(content="Which name?"),
            _tool_call("complete_request", summary="ok"),
        )
        result = _agent(tmp_path, llm, ask_user=lambda _t: "bob").run("make a greeting")
        assert result.status is StepOutcome.COMPLETED
        assert UserMessage(content="bob") in result.messages

    def test_resume_after_awaiting_user(self, tmp_path: Path):
        llm = FakeLLM(
            AssistantMessage(content="Which name?"),
            _tool_call("complete_request", summary="greeted alice"),
        )
        agent = _agent(tmp_path, llm)
        conversation = agent.start("make a greeting")
        first = agent.resume(conversation)
        assert first.status is StepOutcome.AWAITING_USER

        conversation.append(UserMessage(content="alice"))
        second = agent.resume(conversation)
        assert second.status is StepOutcome.COMPLETED
        assert second.summary == "greeted alice"

    def test_max_steps(self, tmp_path: Path):
        llm = FakeLLM(*[_tool_call("list_files") for _ in range(10)])
        result = _agent(tmp_path, llm, max_steps=4).run("loop forever")
        assert result.status is StepOutcome.MAX_STEPS
        assert result.steps == 4


def test_end_to_end_with_http_endpoint(tmp_path: Path):
    """Full cycle through the real client against a mocked endpoint."""
    replies = [
        {
            "finish_reason": "function_call",
            "message": {
                "role": "assistant",
                "content": None,
                "function_call": {"name": "write_file", "arguments": '{"path": "a.txt", "content": "hi"}'},
            },
        },
        {
            "finish_reason": "function_call",
            "message": {
                "role": "assistant",
                "content": "Done.",
                "function_call": {"name": "complete_request", "arguments": '{"summary": "created a.txt"}'},
            },
        },
    ]
    seen: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content))
        return httpx.Response(200, json={"choices": [replies[len(seen) - 1]]})

    llm = LLMService(
        ModelConfig(model="gpt-4", base_url="https://llm.test/v1", api_key="k"),
        http_client=httpx.Client(transport=httpx.MockTransport(handler)),
        sleep=lambda _s: None,
    )
    result = _agent(tmp_path, llm).run("write me X")

    assert result.status is StepOutcome.COMPLETED
    assert (tmp_path / "a.txt").read_text() == "hi"
    assert [f["name"] for f in seen[0]["functions"]][0] == "list_files"
    assert seen[1]["messages"][-1] == {"role": "function", "name": "write_file", "content": "<done>"}
