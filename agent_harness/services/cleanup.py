"""Best-effort release of service resources and scoped agent lifetimes."""

from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field

from agent_harness.models.agents import AgentConfig, AgentSpec
from agent_harness.services.agent_service import AgentService
from agent_harness.utils.logging import get_logger
from agent_harness.utils.retry import RetryListener, RetryPolicy, call_with_retry

logger = get_logger(__name__)


async def _release(kind: str, resource_id: str | None, release: Callable[[str], Awaitable[None]]) -> bool:
    if not resource_id:
        return False
    try:
        await release(resource_id)
        logger.info(f"Deleted {kind} {resource_id}")
        return True
    except Exception as e:
        logger.warning(f"Cleanup of {kind} {resource_id} failed: {e}")
        return False


async def release_conversation(service: AgentService, conversation_id: str | None) -> bool:
    """Delete a conversation, logging and swallowing any failure.

    Returns:
        True if the conversation was deleted
    """
    return await _release("conversation", conversation_id, service.delete_conversation)


async def release_agent(service: AgentService, agent_id: str | None) -> bool:
    """Delete an agent configuration, logging and swallowing any failure."""
    return await _release("agent", agent_id, service.delete_agent)


async def release_vector_store(service: AgentService, vector_store_id: str | None) -> bool:
    """Delete a vector store, logging and swallowing any failure."""
    return await _release("vector store", vector_store_id, service.delete_vector_store)


async def release_file(service: AgentService, file_id: str | None) -> bool:
    """Delete an uploaded file, logging and swallowing any failure."""
    return await _release("file", file_id, service.delete_file)


@dataclass
class AgentScope:
    """Resources owned by one agent scope, released together on exit."""

    service: AgentService
    agent: AgentConfig
    conversations: list[str] = field(default_factory=list)
    closed: bool = False

    async def new_conversation(self) -> str:
        """Create a conversation owned by this scope."""
        conversation_id = await self.service.create_conversation()
        self.conversations.append(conversation_id)
        logger.info(f"Created conversation {conversation_id} for agent {self.agent.name}")
        return conversation_id

    def adopt_conversation(self, conversation_id: str | None) -> None:
        """Take ownership of a conversation created elsewhere."""
        if conversation_id and conversation_id not in self.conversations:
            self.conversations.append(conversation_id)

    def keep_conversation(self, conversation_id: str) -> None:
        """Stop owning a conversation so it outlives the scope."""
        if conversation_id in self.conversations:
            self.conversations.remove(conversation_id)

    def owns(self, conversation_id: str) -> bool:
        return conversation_id in self.conversations

    async def release_conversation(self, conversation_id: str) -> None:
        """Release one conversation early."""
        if conversation_id in self.conversations:
            self.conversations.remove(conversation_id)
        await release_conversation(self.service, conversation_id)

    async def close(self) -> None:
        """Release every conversation, then the agent configuration. Safe to call twice."""
        while self.conversations:
            await release_conversation(self.service, self.conversations.pop(0))
        if not self.closed:
            self.closed = True
            await release_agent(self.service, self.agent.id)


async def create_agent_with_retry(
    service: AgentService,
    spec: AgentSpec,
    retry: RetryPolicy | None = None,
    on_retry: RetryListener | None = None,
) -> AgentConfig:
    """Create an agent configuration, retrying transient failures.

    Raises:
        AgentServiceError: If creation still fails once the attempts are exhausted
    """
    if retry is None:
        return await service.create_agent(spec)

    return await call_with_retry(
        lambda: service.create_agent(spec),
        policy=retry,
        operation_name=f"Create agent {spec.name}",
        on_retry=on_retry,
    )


@asynccontextmanager
async def agent_scope(
    service: AgentService,
    spec: AgentSpec,
    retry: RetryPolicy | None = None,
    on_retry: RetryListener | None = None,
) -> AsyncIterator[AgentScope]:
    """Create an agent for the duration of a block.

    Conversations created through the scope are deleted before the agent on every
    exit path. Release failures are logged and never replace the block's exception.

    Args:
        service: Agent service connection
        spec: Agent instructions and tool declarations
        retry: Optional retry policy for agent creation
        on_retry: Called with (attempt, max_attempts, error, delay) before each wait
    """
    agent = await create_agent_with_retry(service, spec, retry, on_retry)
    logger.info(f"Created agent {agent.name} ({agent.id})")
    scope = AgentScope(service=service, agent=agent)
    try:
        yield scope
    finally:
        await scope.close()


@asynccontextmanager
async def document_store(
    service: AgentService,
    name: str,
    documents: dict[str, bytes],
) -> AsyncIterator[tuple[str, list[str]]]:
    """Upload documents and index them into a vector store for the duration of a block.

    Yields:
        The vector store id and the uploaded file ids

    The vector store is deleted before the files it indexes.
    """
    file_ids: list[str] = []
    vector_store_id = None
    try:
        for filename, data in documents.items():
            file_id = await service.upload_file(filename, data)
            logger.info(f"Uploaded {filename} ({file_id})")
            file_ids.append(file_id)

        vector_store_id = await service.create_vector_store(name, file_ids)
        logger.info(f"Created vector store {name} ({vector_store_id})")
        yield vector_store_id, file_ids
    finally:
        await release_vector_store(service, vector_store_id)
        for file_id in file_ids:
            await release_file(service, file_id)
