"""Shared fixtures: a scripted agent service and a controllable clock."""

import itertools
from collections import deque
from collections.abc import AsyncIterator
from typing import Any

import pytest

from agent_harness.exceptions import AgentServiceError
from agent_harness.models.agents import (
    AgentConfig,
    AgentSpec,
    Message,
    MessageContent,
    Run,
    RunFinished,
    RunStatus,
    RunStreamEvent,
    TextContent,
    TextDelta,
    ToolCall,
    ToolOutput,
)
from agent_harness.services.turns import TurnExecutor
from agent_harness.tools.registry import ToolDispatchRegistry

# A script entry is either a status, or a list of tool calls meaning requires_action
ScriptStep = RunStatus | list[ToolCall]


class FakeAgentService:
    """In-memory AgentService whose runs follow scripted status sequences.

    Each created run consumes the next script from `scripts` (or `default_script`).
    Every `get_run` advances the run by one step; the last step repeats forever.
    """

    def __init__(self) -> None:
        self.scripts: deque[list[ScriptStep]] = deque()
        self.default_script: list[ScriptStep] = [RunStatus.COMPLETED]
        self.reply_text: str | None = "Hello from the agent"
        self.run_error: str | None = None
        # Streamed runs fail after their first word when set
        self.stream_error: str | None = None

        # operation name -> number of upcoming calls that fail
        self.failures: dict[str, int] = {}
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.submitted: list[list[ToolOutput]] = []
        self.closed = False

        self.agents: dict[str, AgentConfig] = {}
        self.messages: dict[str, list[Message]] = {}
        self.files: set[str] = set()
        self.vector_stores: set[str] = set()

        self._ids = itertools.count(1)
        self._steps: dict[str, deque[ScriptStep]] = {}
        self._runs: dict[str, Run] = {}

    # Helpers for assertions

    def calls_to(self, operation: str) -> list[tuple[Any, ...]]:
        return [args for name, args in self.calls if name == operation]

    def operations(self) -> list[str]:
        return [name for name, _ in self.calls]

    def _enter(self, operation: str, *args: Any) -> None:
        self.calls.append((operation, args))
        remaining = self.failures.get(operation, 0)
        if remaining:
            self.failures[operation] = remaining - 1
            raise AgentServiceError(f"{operation} failed (injected)", operation=operation)

    def _next_id(self, prefix: str) -> str:
        return f"{prefix}_{next(self._ids)}"

    # AgentService

    async def create_agent(self, spec: AgentSpec) -> AgentConfig:
        self._enter("create_agent", spec)
        agent = AgentConfig(id=self._next_id("agent"), name=spec.name, model=spec.model or "fake-model")
        self.agents[agent.id] = agent
        return agent

    async def delete_agent(self, agent_id: str) -> None:
        self._enter("delete_agent", agent_id)
        self.agents.pop(agent_id, None)

    async def create_conversation(self) -> str:
        self._enter("create_conversation")
        conversation_id = self._next_id("conv")
        self.messages[conversation_id] = []
        return conversation_id

    async def delete_conversation(self, conversation_id: str) -> None:
        self._enter("delete_conversation", conversation_id)
        self.messages.pop(conversation_id, None)

    def _reject_active_run(self, operation: str, conversation_id: str) -> None:
        for run in self._runs.values():
            if run.conversation_id == conversation_id and not run.status.is_terminal:
                message = f"Conversation {conversation_id} has an active run {run.id}"
                raise AgentServiceError(message, operation=operation)

    async def append_message(self, conversation_id: str, content: list[MessageContent]) -> Message:
        self._enter("append_message", conversation_id, content)
        self._reject_active_run("append_message", conversation_id)
        message = Message(id=self._next_id("msg"), conversation_id=conversation_id, role="user", content=content)
        self.messages.setdefault(conversation_id, []).append(message)
        return message

    async def create_run(self, conversation_id: str, agent_id: str) -> Run:
        self._enter("create_run", conversation_id, agent_id)
        self._reject_active_run("create_run", conversation_id)
        script = self.scripts.popleft() if self.scripts else self.default_script
        run = Run(id=self._next_id("run"), conversation_id=conversation_id, status=RunStatus.QUEUED)
        self._steps[run.id] = deque(script)
        self._runs[run.id] = run
        return run.model_copy()

    async def get_run(self, conversation_id: str, run_id: str) -> Run:
        self._enter("get_run", conversation_id, run_id)
        steps = self._steps[run_id]
        step = steps.popleft() if len(steps) > 1 else steps[0]

        previous = self._runs[run_id]
        if isinstance(step, list):
            run = Run(
                id=run_id,
                conversation_id=conversation_id,
                status=RunStatus.REQUIRES_ACTION,
                required_tool_calls=step,
            )
        else:
            run = Run(id=run_id, conversation_id=conversation_id, status=step)
            if step == RunStatus.FAILED:
                run.last_error = self.run_error

        if run.status == RunStatus.COMPLETED and previous.status != RunStatus.COMPLETED and self.reply_text is not None:
            reply = Message(
                id=self._next_id("msg"),
                conversation_id=conversation_id,
                role="agent",
                content=[TextContent(text=self.reply_text)] if self.reply_text else [],
            )
            self.messages.setdefault(conversation_id, []).append(reply)

        self._runs[run_id] = run
        return run.model_copy()

    async def submit_tool_outputs(self, conversation_id: str, run_id: str, outputs: list[ToolOutput]) -> Run:
        self._enter("submit_tool_outputs", conversation_id, run_id, outputs)
        self.submitted.append(outputs)
        run = Run(id=run_id, conversation_id=conversation_id, status=RunStatus.QUEUED)
        self._runs[run_id] = run
        return run.model_copy()

    async def cancel_run(self, conversation_id: str, run_id: str) -> None:
        self._enter("cancel_run", conversation_id, run_id)
        self._steps[run_id] = deque([RunStatus.CANCELLED])
        self._runs[run_id] = Run(id=run_id, conversation_id=conversation_id, status=RunStatus.CANCELLED)

    async def stream_run(self, conversation_id: str, agent_id: str) -> AsyncIterator[RunStreamEvent]:
        self._enter("stream_run", conversation_id, agent_id)
        self._reject_active_run("stream_run", conversation_id)
        run_id = self._next_id("run")
        self._runs[run_id] = Run(id=run_id, conversation_id=conversation_id, status=RunStatus.IN_PROGRESS)

        words = (self.reply_text or "").split(" ")
        for index, word in enumerate(words):
            if self.stream_error is not None and index == 1:
                self._runs[run_id] = Run(id=run_id, conversation_id=conversation_id, status=RunStatus.FAILED)
                yield RunFinished(run_id=run_id, status=RunStatus.FAILED, error=self.stream_error)
                return
            yield TextDelta(text=word if index == 0 else f" {word}")

        if self.reply_text is not None:
            reply = Message(
                id=self._next_id("msg"),
                conversation_id=conversation_id,
                role="agent",
                content=[TextContent(text=self.reply_text)] if self.reply_text else [],
            )
            self.messages.setdefault(conversation_id, []).append(reply)
        self._runs[run_id] = Run(id=run_id, conversation_id=conversation_id, status=RunStatus.COMPLETED)
        yield RunFinished(run_id=run_id, status=RunStatus.COMPLETED)

    async def list_messages(self, conversation_id: str, order: str = "desc") -> list[Message]:
        self._enter("list_messages", conversation_id, order)
        messages = list(self.messages.get(conversation_id, []))
        if order == "desc":
            messages.reverse()
        return messages

    async def upload_file(self, filename: str, data: bytes) -> str:
        self._enter("upload_file", filename, data)
        file_id = self._next_id("file")
        self.files.add(file_id)
        return file_id

    async def delete_file(self, file_id: str) -> None:
        self._enter("delete_file", file_id)
        self.files.discard(file_id)

    async def create_vector_store(self, name: str, file_ids: list[str]) -> str:
        self._enter("create_vector_store", name, file_ids)
        vector_store_id = self._next_id("vs")
        self.vector_stores.add(vector_store_id)
        return vector_store_id

    async def delete_vector_store(self, vector_store_id: str) -> None:
        self._enter("delete_vector_store", vector_store_id)
        self.vector_stores.discard(vector_store_id)

    async def close(self) -> None:
        self.closed = True


class FakeClock:
    """Monotonic clock that only moves when something sleeps."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def time(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def fake_service() -> FakeAgentService:
    return FakeAgentService()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def registry() -> ToolDispatchRegistry:
    return ToolDispatchRegistry()


@pytest.fixture
def executor(fake_service, registry, clock) -> TurnExecutor:
    """Turn executor over the fake service, sleeping on the fake clock."""
    return TurnExecutor(fake_service, registry, clock=clock.time, sleep=clock.sleep)


@pytest.fixture
def agent(fake_service) -> AgentConfig:
    config = AgentConfig(id="agent_test", name="TestAgent", model="fake-model")
    fake_service.agents[config.id] = config
    return config
