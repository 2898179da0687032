"""Lazily created agent configurations shared by HTTP chat sessions."""

import asyncio

from agent_harness.models.agents import AgentConfig
from agent_harness.services.agent_service import AgentService
from agent_harness.services.cleanup import create_agent_with_retry, release_agent
from agent_harness.tools.registry import ToolDispatchRegistry
from agent_harness.use_cases.base import UseCase
from agent_harness.utils.logging import get_logger
from agent_harness.utils.retry import RetryPolicy

logger = get_logger(__name__)


class AgentPool:
    """One agent configuration per chat-capable use case, created on first use."""

    def __init__(self, service: AgentService, registry: ToolDispatchRegistry, retry: RetryPolicy | None = None):
        self.service = service
        self.registry = registry
        self.retry = retry
        self._agents: dict[str, AgentConfig] = {}
        self._lock = asyncio.Lock()

    async def get_agent(self, use_case: UseCase) -> AgentConfig:
        """Get the agent for a use case, creating it if needed.

        Raises:
            ValueError: If the use case does not support chat
            AgentServiceError: If creation fails after retries
        """
        if use_case.chat_spec is None:
            raise ValueError(f"Use case '{use_case.key}' does not support chat")

        async with self._lock:
            agent = self._agents.get(use_case.key)
            if agent is None:
                spec = use_case.chat_spec(self.registry)
                agent = await create_agent_with_retry(self.service, spec, self.retry)
                logger.info(f"Created agent {agent.name} ({agent.id}) for use case {use_case.key}")
                self._agents[use_case.key] = agent
            return agent

    @property
    def agent_count(self) -> int:
        return len(self._agents)

    async def close(self) -> None:
        """Release every agent configuration."""
        async with self._lock:
            agents = list(self._agents.values())
            self._agents.clear()
        for agent in agents:
            await release_agent(self.service, agent.id)
