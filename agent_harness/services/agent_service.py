"""Interface of the remote agent service and backend selection."""

from collections.abc import AsyncIterator
from typing import Literal, Protocol

from agent_harness.config import HarnessConfig
from agent_harness.models.agents import (
    AgentConfig,
    AgentSpec,
    Message,
    MessageContent,
    Run,
    RunStreamEvent,
    ToolOutput,
)

SortOrder = Literal["asc", "desc"]


class AgentService(Protocol):
    """Operations the harness needs from a hosted agent service.

    Every call is remote and fallible; implementations raise AgentServiceError (or
    ProtocolError for responses outside the run state machine).
    """

    async def create_agent(self, spec: AgentSpec) -> AgentConfig:
        """Create an agent configuration from instructions and tool declarations."""
        ...

    async def delete_agent(self, agent_id: str) -> None:
        """Delete an agent configuration."""
        ...

    async def create_conversation(self) -> str:
        """Create an empty conversation and return its identifier."""
        ...

    async def delete_conversation(self, conversation_id: str) -> None:
        """Delete a conversation and its messages."""
        ...

    async def append_message(self, conversation_id: str, content: list[MessageContent]) -> Message:
        """Append a user message to a conversation."""
        ...

    async def create_run(self, conversation_id: str, agent_id: str) -> Run:
        """Start a run of the agent over the conversation."""
        ...

    async def get_run(self, conversation_id: str, run_id: str) -> Run:
        """Fetch the current state of a run."""
        ...

    async def submit_tool_outputs(self, conversation_id: str, run_id: str, outputs: list[ToolOutput]) -> Run:
        """Resume a run paused in requires_action with one output per pending call."""
        ...

    async def cancel_run(self, conversation_id: str, run_id: str) -> None:
        """Ask the service to cancel a run."""
        ...

    def stream_run(self, conversation_id: str, agent_id: str) -> AsyncIterator[RunStreamEvent]:
        """Start a run and stream its reply, ending with a RunFinished event.

        Streamed runs do not pause for tool calls; a run that asks for one is
        cancelled and reported as failed.
        """
        ...

    async def list_messages(self, conversation_id: str, order: SortOrder = "desc") -> list[Message]:
        """List the conversation's messages in chronological (asc) or reverse (desc) order."""
        ...

    async def upload_file(self, filename: str, data: bytes) -> str:
        """Upload a document for use by hosted tools and return its file id."""
        ...

    async def delete_file(self, file_id: str) -> None:
        """Delete an uploaded file."""
        ...

    async def create_vector_store(self, name: str, file_ids: list[str]) -> str:
        """Index uploaded files into a vector store and return its id."""
        ...

    async def delete_vector_store(self, vector_store_id: str) -> None:
        """Delete a vector store."""
        ...

    async def close(self) -> None:
        """Release the underlying connection."""
        ...


def create_agent_service(config: HarnessConfig) -> AgentService:
    """Construct the service backend selected by the configuration.

    Raises:
        ConfigurationError: If the backend's required settings are missing
    """
    if config.backend == "anthropic":
        from agent_harness.services.messages_backend import MessagesAgentService

        return MessagesAgentService(default_model=config.anthropic_model)

    from agent_harness.clients.foundry import FoundryAgentService

    return FoundryAgentService(endpoint=config.project_endpoint, model=config.model)
