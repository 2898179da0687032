"""Thread/run agent service emulated on top of the Anthropic Messages API.

Agents, conversations and runs live in memory. Each model call runs as an asyncio
task, so callers observe the same queued -> in_progress -> requires_action ->
completed / failed lifecycle as on the hosted service and drive it by polling.
"""

import asyncio
import json
from collections.abc import AsyncIterator
from contextlib import aclosing
from dataclasses import dataclass, field

from cuid2 import cuid_wrapper

from agent_harness.clients.anthropic import AnthropicClient, AnthropicConfig, AnthropicMessage, AnthropicTool
from agent_harness.exceptions import AgentServiceError
from agent_harness.models.agents import (
    AgentConfig,
    AgentSpec,
    FunctionTool,
    ImageUrlContent,
    Message,
    MessageContent,
    MessageRole,
    Run,
    RunFinished,
    RunStatus,
    RunStreamEvent,
    TextContent,
    TextDelta,
    ToolCall,
    ToolOutput,
)
from agent_harness.models.llm import ContentBlock, ImageBlock, ImageSource, TextBlock, ToolResultBlock, ToolUseBlock
from agent_harness.services.agent_service import SortOrder
from agent_harness.utils.logging import get_logger

logger = get_logger(__name__)

cuid = cuid_wrapper()


@dataclass
class _Agent:
    config: AgentConfig
    system_prompt: str
    tools: list[AnthropicTool]


@dataclass
class _Conversation:
    id: str
    messages: list[Message] = field(default_factory=list)
    # Full Messages API transcript, including tool use and tool result turns
    transcript: list[AnthropicMessage] = field(default_factory=list)
    active_run_id: str | None = None


@dataclass
class _RunRecord:
    run: Run
    agent_id: str
    pending: list[ToolUseBlock] = field(default_factory=list)
    task: asyncio.Task | None = None


class MessagesAgentService:
    """AgentService backed by the Anthropic Messages API.

    Hosted tools (code interpreter, file search) are not available here; they are
    skipped when an agent is created, and file or vector store calls fail.
    """

    def __init__(self, client: AnthropicClient | None = None, default_model: str | None = None):
        """Initialize the service.

        Args:
            client: Anthropic client, created from ANTHROPIC_API_KEY when omitted
            default_model: Model for agents whose spec does not name one
        """
        if client is None:
            config = AnthropicConfig(model=default_model) if default_model else AnthropicConfig()
            client = AnthropicClient(config=config)
        self.client = client
        self.default_model = default_model or client.config.model

        self._agents: dict[str, _Agent] = {}
        self._conversations: dict[str, _Conversation] = {}
        self._runs: dict[str, _RunRecord] = {}

    # Agents

    async def create_agent(self, spec: AgentSpec) -> AgentConfig:
        tools = []
        for tool in spec.tools:
            if isinstance(tool, FunctionTool):
                tools.append(AnthropicTool(name=tool.name, description=tool.description, input_schema=tool.parameters))
            else:
                logger.warning(f"Agent {spec.name}: hosted tool '{tool.type}' is not available on this backend")

        system_prompt = spec.instructions
        if spec.response_format is not None:
            schema = json.dumps(spec.response_format.schema_, indent=2)
            system_prompt += (
                f"\n\nRespond only with a JSON object named '{spec.response_format.name}' "
                f"that matches this JSON schema, without any surrounding text:\n{schema}"
            )

        config = AgentConfig(id=f"agent_{cuid()}", name=spec.name, model=spec.model or self.default_model)
        self._agents[config.id] = _Agent(config=config, system_prompt=system_prompt, tools=tools)
        return config

    async def delete_agent(self, agent_id: str) -> None:
        if self._agents.pop(agent_id, None) is None:
            raise AgentServiceError(f"Agent {agent_id} not found", operation="delete_agent")

    # Conversations and messages

    async def create_conversation(self) -> str:
        conversation = _Conversation(id=f"conv_{cuid()}")
        self._conversations[conversation.id] = conversation
        return conversation.id

    async def delete_conversation(self, conversation_id: str) -> None:
        conversation = self._conversations.pop(conversation_id, None)
        if conversation is None:
            raise AgentServiceError(f"Conversation {conversation_id} not found", operation="delete_conversation")

        run_ids = [run_id for run_id, record in self._runs.items() if record.run.conversation_id == conversation_id]
        for run_id in run_ids:
            record = self._runs.pop(run_id)
            if record.task and not record.task.done():
                record.task.cancel()

    async def append_message(self, conversation_id: str, content: list[MessageContent]) -> Message:
        conversation = self._get_conversation(conversation_id, "append_message")
        if self._active_run(conversation) is not None:
            raise AgentServiceError(
                f"Conversation {conversation_id} has an active run; wait for it to finish or cancel it",
                operation="append_message",
            )

        message = self._add_message(conversation, "user", content)
        conversation.transcript.append(AnthropicMessage(role="user", content=[_to_block(item) for item in content]))
        return message

    async def list_messages(self, conversation_id: str, order: SortOrder = "desc") -> list[Message]:
        conversation = self._get_conversation(conversation_id, "list_messages")
        messages = list(conversation.messages)
        if order == "desc":
            messages.reverse()
        return messages

    # Runs

    async def create_run(self, conversation_id: str, agent_id: str) -> Run:
        record = self._start_run(conversation_id, agent_id, "create_run")
        self._schedule_step(record)
        return record.run.model_copy(deep=True)

    async def stream_run(self, conversation_id: str, agent_id: str) -> AsyncIterator[RunStreamEvent]:
        record = self._start_run(conversation_id, agent_id, "stream_run")
        run = record.run
        conversation = self._conversations[conversation_id]
        agent = self._agents[agent_id]
        if agent.tools:
            logger.warning(f"Run {run.id}: tools of agent {agent.config.name} are not offered on streamed runs")

        run.status = RunStatus.IN_PROGRESS
        parts: list[str] = []
        try:
            chunks = self.client.stream_message(
                list(conversation.transcript), system_prompt=agent.system_prompt, model=agent.config.model
            )
            async with aclosing(chunks):
                async for text in chunks:
                    parts.append(text)
                    yield TextDelta(text=text)

            reply = "".join(parts)
            if reply:
                conversation.transcript.append(AnthropicMessage(role="assistant", content=[TextBlock(text=reply)]))
            self._add_message(conversation, "agent", [TextContent(text=reply)] if reply else [])
            self._finish(record, RunStatus.COMPLETED)
        except Exception as e:
            logger.error(f"Streamed run {run.id} failed: {e}")
            run.last_error = str(e) or type(e).__name__
            self._finish(record, RunStatus.FAILED)
        finally:
            # The consumer stopped reading before the reply was complete
            if not run.status.is_terminal:
                self._finish(record, RunStatus.CANCELLED)

        yield RunFinished(run_id=run.id, status=run.status, error=run.last_error)

    async def get_run(self, conversation_id: str, run_id: str) -> Run:
        return self._get_run(conversation_id, run_id, "get_run").run.model_copy(deep=True)

    async def submit_tool_outputs(self, conversation_id: str, run_id: str, outputs: list[ToolOutput]) -> Run:
        record = self._get_run(conversation_id, run_id, "submit_tool_outputs")
        if record.run.status != RunStatus.REQUIRES_ACTION:
            raise AgentServiceError(
                f"Run {run_id} is {record.run.status}, not requires_action", operation="submit_tool_outputs"
            )

        expected = {block.id for block in record.pending}
        submitted = [output.tool_call_id for output in outputs]
        if len(submitted) != len(expected) or set(submitted) != expected:
            raise AgentServiceError(
                f"Tool outputs for run {run_id} must cover exactly the pending calls {sorted(expected)}",
                operation="submit_tool_outputs",
            )

        conversation = self._conversations[conversation_id]
        results = [
            ToolResultBlock(tool_use_id=output.tool_call_id, content=self.client.clip_tool_result(output.output))
            for output in outputs
        ]
        conversation.transcript.append(AnthropicMessage(role="user", content=results))

        record.pending = []
        record.run.required_tool_calls = []
        record.run.status = RunStatus.QUEUED
        self._schedule_step(record)
        return record.run.model_copy(deep=True)

    async def cancel_run(self, conversation_id: str, run_id: str) -> None:
        record = self._get_run(conversation_id, run_id, "cancel_run")
        if record.run.status.is_terminal:
            raise AgentServiceError(f"Run {run_id} is already {record.run.status}", operation="cancel_run")

        if record.task and not record.task.done():
            record.task.cancel()
        if record.pending:
            self._close_pending_tool_uses(self._conversations[conversation_id], record)
        self._finish(record, RunStatus.CANCELLED)
        logger.info(f"Cancelled run {run_id}")

    # Files are only meaningful for the hosted file search tool

    async def upload_file(self, filename: str, data: bytes) -> str:
        raise AgentServiceError("File upload is not supported by the messages backend", operation="upload_file")

    async def delete_file(self, file_id: str) -> None:
        raise AgentServiceError("File deletion is not supported by the messages backend", operation="delete_file")

    async def create_vector_store(self, name: str, file_ids: list[str]) -> str:
        raise AgentServiceError(
            "Vector stores are not supported by the messages backend", operation="create_vector_store"
        )

    async def delete_vector_store(self, vector_store_id: str) -> None:
        raise AgentServiceError(
            "Vector stores are not supported by the messages backend", operation="delete_vector_store"
        )

    async def close(self) -> None:
        for record in self._runs.values():
            if record.task and not record.task.done():
                record.task.cancel()
        await self.client.close()

    # Run execution

    def _schedule_step(self, record: _RunRecord) -> None:
        record.task = asyncio.create_task(self._step(record))

    async def _step(self, record: _RunRecord) -> None:
        """Make one model call and move the run to its next state."""
        run = record.run
        conversation = self._conversations.get(run.conversation_id)
        agent = self._agents.get(record.agent_id)
        if conversation is None or agent is None:
            run.last_error = "Conversation or agent was deleted during the run"
            self._finish(record, RunStatus.FAILED)
            return

        run.status = RunStatus.IN_PROGRESS
        try:
            response = await self.client.create_message(
                list(conversation.transcript),
                system_prompt=agent.system_prompt,
                tools=agent.tools or None,
                model=agent.config.model,
            )
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Run {run.id} failed: {e}")
            run.last_error = str(e) or type(e).__name__
            self._finish(record, RunStatus.FAILED)
            return

        if run.status != RunStatus.IN_PROGRESS:
            # Cancelled while the request was in flight
            return

        if response.content:
            conversation.transcript.append(AnthropicMessage(role="assistant", content=response.content))
        tool_uses = response.tool_uses

        if response.stop_reason == "tool_use" and tool_uses:
            record.pending = tool_uses
            run.required_tool_calls = [
                ToolCall(id=block.id, name=block.name, arguments=json.dumps(block.input)) for block in tool_uses
            ]
            run.status = RunStatus.REQUIRES_ACTION
            logger.debug(f"Run {run.id} requires action: {[call.name for call in run.required_tool_calls]}")
            return

        # An empty reply still marks the end of this turn in the message list
        self._add_message(conversation, "agent", [TextContent(text=response.text)] if response.text else [])
        self._finish(record, RunStatus.COMPLETED)
        logger.debug(
            f"Run {run.id} completed ({response.usage.input_tokens} in / {response.usage.output_tokens} out tokens)"
        )

    def _finish(self, record: _RunRecord, status: RunStatus) -> None:
        record.run.status = status
        record.run.required_tool_calls = []
        record.pending = []
        conversation = self._conversations.get(record.run.conversation_id)
        if conversation is not None and conversation.active_run_id == record.run.id:
            conversation.active_run_id = None

    def _close_pending_tool_uses(self, conversation: _Conversation, record: _RunRecord) -> None:
        """Answer outstanding tool_use blocks so the transcript stays valid for the next run."""
        results = [
            ToolResultBlock(tool_use_id=block.id, content="Run was cancelled", is_error=True)
            for block in record.pending
        ]
        conversation.transcript.append(AnthropicMessage(role="user", content=results))

    # Lookups

    def _get_conversation(self, conversation_id: str, operation: str) -> _Conversation:
        conversation = self._conversations.get(conversation_id)
        if conversation is None:
            raise AgentServiceError(f"Conversation {conversation_id} not found", operation=operation)
        return conversation

    def _get_run(self, conversation_id: str, run_id: str, operation: str) -> _RunRecord:
        record = self._runs.get(run_id)
        if record is None or record.run.conversation_id != conversation_id:
            raise AgentServiceError(f"Run {run_id} not found on conversation {conversation_id}", operation=operation)
        return record

    def _start_run(self, conversation_id: str, agent_id: str, operation: str) -> _RunRecord:
        conversation = self._get_conversation(conversation_id, operation)
        if agent_id not in self._agents:
            raise AgentServiceError(f"Agent {agent_id} not found", operation=operation)
        if self._active_run(conversation) is not None:
            raise AgentServiceError(f"Conversation {conversation_id} already has an active run", operation=operation)

        record = _RunRecord(
            run=Run(id=f"run_{cuid()}", conversation_id=conversation_id, status=RunStatus.QUEUED),
            agent_id=agent_id,
        )
        self._runs[record.run.id] = record
        conversation.active_run_id = record.run.id
        return record

    def _active_run(self, conversation: _Conversation) -> _RunRecord | None:
        if conversation.active_run_id is None:
            return None
        record = self._runs.get(conversation.active_run_id)
        if record is None or record.run.status.is_terminal:
            return None
        return record

    def _add_message(self, conversation: _Conversation, role: MessageRole, content: list[MessageContent]) -> Message:
        message = Message(id=f"msg_{cuid()}", conversation_id=conversation.id, role=role, content=list(content))
        conversation.messages.append(message)
        return message


def _to_block(content: MessageContent) -> ContentBlock:
    if isinstance(content, ImageUrlContent):
        return ImageBlock(source=ImageSource(url=content.url))
    return TextBlock(text=content.text)
