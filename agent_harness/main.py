"""Main FastAPI application."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from agent_harness import __version__
from agent_harness.api.endpoints import router
from agent_harness.config import HarnessConfig
from agent_harness.services.agent_pool import AgentPool
from agent_harness.services.agent_service import AgentService, create_agent_service
from agent_harness.services.cleanup import release_conversation
from agent_harness.services.session_manager import InMemorySessionManager
from agent_harness.services.turns import TurnExecutor
from agent_harness.tools.registry import ToolDispatchRegistry
from agent_harness.utils.logging import get_logger, setup_logging

logger = get_logger(__name__)


def create_app(
    agent_service: AgentService | None = None,
    config: HarnessConfig | None = None,
    session_timeout_minutes: int = 60,
) -> FastAPI:
    """Create the FastAPI application.

    Args:
        agent_service: Service connection to use; built from the configuration at
            startup when omitted, and then closed at shutdown
        config: Harness configuration, read from the environment when omitted
        session_timeout_minutes: Minutes of inactivity before a chat session expires

    Returns:
        Configured FastAPI application
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        harness_config = config or HarnessConfig.from_env()
        service = agent_service or create_agent_service(harness_config)
        registry = ToolDispatchRegistry()

        app.state.config = harness_config
        app.state.service = service
        app.state.executor = TurnExecutor(service, registry, policy=harness_config.turn_policy())
        app.state.agents = AgentPool(service, registry, retry=harness_config.agent_retry_policy())
        app.state.sessions = InMemorySessionManager(session_timeout_minutes=session_timeout_minutes)
        logger.info(f"Agent harness service started (backend: {harness_config.backend})")

        try:
            yield
        finally:
            for session in app.state.sessions.pop_all_sessions():
                await release_conversation(service, session.conversation_id)
            await app.state.agents.close()
            if agent_service is None:
                await service.close()
            logger.info("Agent harness service stopped")

    app = FastAPI(
        title="Agent Harness",
        description=(
            "Chat with the use case agents over HTTP. Each session keeps one conversation "
            "on the agent service; turns are retried and fall back to a canned reply."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
        openapi_tags=[
            {
                "name": "Conversation",
                "description": "Send messages to a use case agent and end chat sessions.",
            },
            {
                "name": "Use cases",
                "description": "Available use cases and whether they support chat.",
            },
            {
                "name": "Health",
                "description": "Service health monitoring and status checks.",
            },
        ],
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    setup_logging()
    uvicorn.run("agent_harness.main:app", host="0.0.0.0", port=8000, reload=True, log_level="info")
