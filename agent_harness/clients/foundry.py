"""Azure AI Foundry agent service client."""

import io
from collections.abc import AsyncIterator, Iterator
from contextlib import contextmanager
from typing import Any

from azure.ai.agents.aio import AgentsClient
from azure.ai.agents.models import (
    AgentStreamEvent,
    CodeInterpreterToolDefinition,
    FileSearchToolDefinition,
    FileSearchToolResource,
    FilePurpose,
    FunctionDefinition,
    FunctionToolDefinition,
    ListSortOrder,
    MessageDeltaChunk,
    MessageImageUrlParam,
    MessageInputImageUrlBlock,
    MessageInputTextBlock,
    RequiredFunctionToolCall,
    ResponseFormatJsonSchema,
    ResponseFormatJsonSchemaType,
    SubmitToolOutputsAction,
    ThreadMessage,
    ThreadRun,
)
from azure.ai.agents.models import ToolOutput as FoundryToolOutput
from azure.ai.agents.models import ToolResources as FoundryToolResources
from azure.core.exceptions import AzureError
from azure.identity.aio import DefaultAzureCredential

from agent_harness.exceptions import AgentServiceError, ConfigurationError, ProtocolError
from agent_harness.models.agents import (
    AgentConfig,
    AgentSpec,
    CodeInterpreterTool,
    FileSearchTool,
    FunctionTool,
    ImageUrlContent,
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
    ToolSpec,
)
from agent_harness.services.agent_service import SortOrder
from agent_harness.utils.logging import get_logger

logger = get_logger(__name__)

# Service statuses outside the client-side run state machine
_STATUS_ALIASES = {
    "cancelling": RunStatus.CANCELLED,
    "expired": RunStatus.FAILED,
}


@contextmanager
def _service_errors(operation: str) -> Iterator[None]:
    """Re-raise Azure SDK errors as AgentServiceError."""
    try:
        yield
    except AzureError as e:
        message = getattr(e, "message", None) or str(e)
        raise AgentServiceError(f"{operation} failed: {message}", operation=operation) from e


class FoundryAgentService:
    """AgentService backed by the Azure AI Foundry agents API.

    Authenticates with DefaultAzureCredential (Azure CLI, managed identity or
    environment credentials).
    """

    def __init__(self, endpoint: str | None, model: str = "gpt-4o", client: AgentsClient | None = None):
        """Initialize the service.

        Args:
            endpoint: Foundry project endpoint
            model: Model deployment for agents whose spec does not name one
            client: Pre-built SDK client, mainly for tests

        Raises:
            ConfigurationError: If no endpoint is configured
        """
        self.model = model
        self._credential: DefaultAzureCredential | None = None

        if client is None:
            if not endpoint:
                raise ConfigurationError("AZURE_AI_PROJECT_ENDPOINT is required for the foundry backend")
            self._credential = DefaultAzureCredential()
            client = AgentsClient(endpoint=endpoint, credential=self._credential)
        self.client = client

    async def create_agent(self, spec: AgentSpec) -> AgentConfig:
        kwargs: dict[str, Any] = {
            "model": spec.model or self.model,
            "name": spec.name,
            "instructions": spec.instructions,
        }
        if spec.tools:
            kwargs["tools"] = [_to_tool_definition(tool) for tool in spec.tools]
        if spec.tool_resources and spec.tool_resources.vector_store_ids:
            kwargs["tool_resources"] = FoundryToolResources(
                file_search=FileSearchToolResource(vector_store_ids=spec.tool_resources.vector_store_ids)
            )
        if spec.response_format is not None:
            kwargs["response_format"] = ResponseFormatJsonSchemaType(
                json_schema=ResponseFormatJsonSchema(
                    name=spec.response_format.name,
                    description=spec.response_format.description,
                    schema=spec.response_format.schema_,
                )
            )

        with _service_errors("create_agent"):
            agent = await self.client.create_agent(**kwargs)
        return AgentConfig(id=agent.id, name=agent.name or spec.name, model=agent.model)

    async def delete_agent(self, agent_id: str) -> None:
        with _service_errors("delete_agent"):
            await self.client.delete_agent(agent_id)

    async def create_conversation(self) -> str:
        with _service_errors("create_conversation"):
            thread = await self.client.threads.create()
        return thread.id

    async def delete_conversation(self, conversation_id: str) -> None:
        with _service_errors("delete_conversation"):
            await self.client.threads.delete(conversation_id)

    async def append_message(self, conversation_id: str, content: list[MessageContent]) -> Message:
        blocks = [_to_input_block(item) for item in content]
        with _service_errors("append_message"):
            message = await self.client.messages.create(thread_id=conversation_id, role="user", content=blocks)
        return _to_message(message)

    async def create_run(self, conversation_id: str, agent_id: str) -> Run:
        with _service_errors("create_run"):
            run = await self.client.runs.create(thread_id=conversation_id, agent_id=agent_id)
        return _to_run(run)

    async def get_run(self, conversation_id: str, run_id: str) -> Run:
        with _service_errors("get_run"):
            run = await self.client.runs.get(thread_id=conversation_id, run_id=run_id)
        return _to_run(run)

    async def submit_tool_outputs(self, conversation_id: str, run_id: str, outputs: list[ToolOutput]) -> Run:
        tool_outputs = [FoundryToolOutput(tool_call_id=output.tool_call_id, output=output.output) for output in outputs]
        with _service_errors("submit_tool_outputs"):
            run = await self.client.runs.submit_tool_outputs(
                thread_id=conversation_id, run_id=run_id, tool_outputs=tool_outputs
            )
        return _to_run(run)

    async def cancel_run(self, conversation_id: str, run_id: str) -> None:
        with _service_errors("cancel_run"):
            await self.client.runs.cancel(thread_id=conversation_id, run_id=run_id)

    async def stream_run(self, conversation_id: str, agent_id: str) -> AsyncIterator[RunStreamEvent]:
        with _service_errors("stream_run"):
            async with await self.client.runs.stream(thread_id=conversation_id, agent_id=agent_id) as stream:
                async for event_type, event_data, _ in stream:
                    if isinstance(event_data, MessageDeltaChunk):
                        if event_data.text:
                            yield TextDelta(text=event_data.text)
                    elif isinstance(event_data, ThreadRun):
                        finished = await self._stream_status(event_data)
                        if finished is not None:
                            yield finished
                            return
                    elif event_type == AgentStreamEvent.ERROR:
                        raise AgentServiceError(f"stream_run failed: {event_data}", operation="stream_run")

        raise ProtocolError(f"Run stream on conversation {conversation_id} ended without a terminal status")

    async def _stream_status(self, thread_run: ThreadRun) -> RunFinished | None:
        """Turn a run status event into the closing event, or None while the run goes on."""
        if str(getattr(thread_run.status, "value", thread_run.status)).lower() == "requires_action":
            logger.warning(f"Run {thread_run.id} asked for tools on a streamed run, cancelling it")
            try:
                await self.client.runs.cancel(thread_id=thread_run.thread_id, run_id=thread_run.id)
            except AzureError as e:
                logger.warning(f"Could not cancel run {thread_run.id}: {e}")
            return RunFinished(
                run_id=thread_run.id,
                status=RunStatus.FAILED,
                error="Tool calls are not supported on streamed runs",
            )

        run = _to_run(thread_run)
        if not run.status.is_terminal:
            return None
        return RunFinished(run_id=run.id, status=run.status, error=run.last_error)

    async def list_messages(self, conversation_id: str, order: SortOrder = "desc") -> list[Message]:
        sort_order = ListSortOrder.DESCENDING if order == "desc" else ListSortOrder.ASCENDING
        with _service_errors("list_messages"):
            return [
                _to_message(message)
                async for message in self.client.messages.list(thread_id=conversation_id, order=sort_order)
            ]

    async def upload_file(self, filename: str, data: bytes) -> str:
        with _service_errors("upload_file"):
            uploaded = await self.client.files.upload_and_poll(
                file=io.BytesIO(data), filename=filename, purpose=FilePurpose.AGENTS
            )
        return uploaded.id

    async def delete_file(self, file_id: str) -> None:
        with _service_errors("delete_file"):
            await self.client.files.delete(file_id)

    async def create_vector_store(self, name: str, file_ids: list[str]) -> str:
        with _service_errors("create_vector_store"):
            store = await self.client.vector_stores.create_and_poll(file_ids=file_ids, name=name)
        return store.id

    async def delete_vector_store(self, vector_store_id: str) -> None:
        with _service_errors("delete_vector_store"):
            await self.client.vector_stores.delete(vector_store_id)

    async def close(self) -> None:
        await self.client.close()
        if self._credential is not None:
            await self._credential.close()


def _to_tool_definition(tool: ToolSpec) -> Any:
    if isinstance(tool, FunctionTool):
        return FunctionToolDefinition(
            function=FunctionDefinition(name=tool.name, description=tool.description, parameters=tool.parameters)
        )
    if isinstance(tool, CodeInterpreterTool):
        return CodeInterpreterToolDefinition()
    if isinstance(tool, FileSearchTool):
        return FileSearchToolDefinition()
    raise ValueError(f"Unsupported tool type: {tool!r}")


def _to_input_block(content: MessageContent) -> MessageInputTextBlock | MessageInputImageUrlBlock:
    if isinstance(content, ImageUrlContent):
        return MessageInputImageUrlBlock(image_url=MessageImageUrlParam(url=content.url, detail=content.detail))
    return MessageInputTextBlock(text=content.text)


def _to_message(message: ThreadMessage) -> Message:
    content: list[MessageContent] = [TextContent(text=item.text.value) for item in message.text_messages]
    raw_role = str(getattr(message.role, "value", message.role)).lower()
    role = "user" if raw_role == "user" else "agent"
    return Message(
        id=message.id,
        conversation_id=message.thread_id,
        role=role,
        content=content,
        created_at=message.created_at,
    )


def _to_run(run: ThreadRun) -> Run:
    """Map a service run onto the client-side run state machine.

    Raises:
        ProtocolError: If the status is unknown or requires_action carries no tool calls
    """
    raw_status = str(getattr(run.status, "value", run.status)).lower()
    status = _STATUS_ALIASES.get(raw_status) or RunStatus.parse(raw_status)

    last_error = None
    if run.last_error is not None:
        last_error = run.last_error.message or run.last_error.code
    elif raw_status == "expired":
        last_error = "Run expired"

    tool_calls: list[ToolCall] = []
    if status == RunStatus.REQUIRES_ACTION:
        if not isinstance(run.required_action, SubmitToolOutputsAction):
            raise ProtocolError(f"Run {run.id} requires an unsupported action: {run.required_action!r}")
        for call in run.required_action.submit_tool_outputs.tool_calls:
            if not isinstance(call, RequiredFunctionToolCall):
                logger.warning(f"Run {run.id}: ignoring non-function tool call {call.id}")
                continue
            tool_calls.append(ToolCall(id=call.id, name=call.function.name, arguments=call.function.arguments or "{}"))

    return Run(
        id=run.id,
        conversation_id=run.thread_id,
        status=status,
        required_tool_calls=tool_calls,
        last_error=last_error,
    )
