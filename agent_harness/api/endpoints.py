"""API endpoints for chatting with the use case agents."""

from datetime import UTC, datetime
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request

from agent_harness import __version__
from agent_harness.config import HarnessConfig
from agent_harness.exceptions import AgentServiceError
from agent_harness.models.conversation import (
    ConversationRequest,
    ConversationResponse,
    HealthResponse,
    SessionDeletedResponse,
    UseCaseInfo,
)
from agent_harness.services.agent_pool import AgentPool
from agent_harness.services.agent_service import AgentService
from agent_harness.services.cleanup import release_conversation
from agent_harness.services.session_manager import InMemorySessionManager
from agent_harness.services.turns import TurnExecutor
from agent_harness.use_cases import all_use_cases, get_use_case
from agent_harness.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()


def get_service(request: Request) -> AgentService:
    return request.app.state.service


def get_executor(request: Request) -> TurnExecutor:
    return request.app.state.executor


def get_agent_pool(request: Request) -> AgentPool:
    return request.app.state.agents


def get_session_manager(request: Request) -> InMemorySessionManager:
    return request.app.state.sessions


def get_config(request: Request) -> HarnessConfig:
    return request.app.state.config


ServiceDep = Annotated[AgentService, Depends(get_service)]
ExecutorDep = Annotated[TurnExecutor, Depends(get_executor)]
AgentPoolDep = Annotated[AgentPool, Depends(get_agent_pool)]
SessionsDep = Annotated[InMemorySessionManager, Depends(get_session_manager)]
ConfigDep = Annotated[HarnessConfig, Depends(get_config)]


async def release_expired_sessions(service: AgentService, sessions: InMemorySessionManager) -> None:
    """Release the conversations of sessions that timed out."""
    for session in sessions.pop_expired_sessions():
        await release_conversation(service, session.conversation_id)


@router.post("/conversation", response_model=ConversationResponse, tags=["Conversation"])
async def handle_conversation(
    request: ConversationRequest,
    service: ServiceDep,
    executor: ExecutorDep,
    agents: AgentPoolDep,
    sessions: SessionsDep,
    config: ConfigDep,
) -> ConversationResponse:
    """Run one resilient turn of a use case agent.

    The first message of a session creates its conversation; later messages with the
    returned session_id continue it.
    """
    await release_expired_sessions(service, sessions)

    use_case = get_use_case(request.use_case)
    if use_case is None:
        raise HTTPException(status_code=400, detail=f"Unknown use case: {request.use_case}")
    if use_case.chat_spec is None:
        raise HTTPException(status_code=400, detail=f"Use case '{use_case.key}' does not support chat")

    session = None
    if request.session_id:
        logger.info(f"Validating existing session: {request.session_id}")
        session = sessions.get_session(request.session_id)
        if session is None:
            logger.warning(f"Invalid session ID provided: {request.session_id}")
            raise HTTPException(status_code=400, detail=f"Invalid session ID: {request.session_id}")
        if session.use_case != use_case.key:
            raise HTTPException(
                status_code=400,
                detail=f"Session {session.session_id} belongs to use case '{session.use_case}'",
            )

    try:
        agent = await agents.get_agent(use_case)
    except AgentServiceError as e:
        logger.error(f"Agent creation for use case {use_case.key} failed: {e}")
        raise HTTPException(status_code=503, detail="Agent service unavailable") from e

    if session is None:
        session = sessions.create_session(use_case.key)

    async with session.lock:
        logger.info(f"Processing message for session {session.session_id}: {request.message[:50]}...")
        result = await executor.execute_turn_with_retry(
            agent,
            request.message,
            session.conversation_id,
            policy=config.turn_policy(),
            retry=config.turn_retry_policy(),
        )
        session.record_turn(result.conversation_id)

    logger.info(f"Session {session.session_id} turn finished: {result.outcome} after {result.attempts} attempts")
    return ConversationResponse(
        response=result.display_text,
        session_id=session.session_id,
        use_case=use_case.key,
        outcome=result.outcome,
        attempts=result.attempts,
    )


@router.delete("/conversation/{session_id}", response_model=SessionDeletedResponse, tags=["Conversation"])
async def end_conversation(session_id: str, service: ServiceDep, sessions: SessionsDep) -> SessionDeletedResponse:
    """End a session and release its conversation."""
    session = sessions.delete_session(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Session not found: {session_id}")

    async with session.lock:
        released = await release_conversation(service, session.conversation_id)
    return SessionDeletedResponse(session_id=session_id, conversation_released=released)


@router.get("/use-cases", response_model=list[UseCaseInfo], tags=["Use cases"])
async def list_use_cases() -> list[UseCaseInfo]:
    """List every use case and whether it can be used for chat."""
    return [
        UseCaseInfo(
            number=use_case.number,
            key=use_case.key,
            title=use_case.title,
            description=use_case.description,
            chat=use_case.chat_spec is not None,
        )
        for use_case in all_use_cases()
    ]


@router.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check(sessions: SessionsDep, config: ConfigDep) -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(UTC),
        version=__version__,
        backend=config.backend,
        active_sessions=sessions.get_session_count(),
    )
