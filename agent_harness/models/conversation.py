"""Request and response models of the HTTP service."""

from datetime import datetime

from pydantic import BaseModel, Field

from agent_harness.models.turns import TurnOutcome


class ConversationRequest(BaseModel):
    """Request model for conversation endpoint."""

    message: str = Field(..., min_length=1)
    use_case: str = "basic"
    session_id: str | None = None


class ConversationResponse(BaseModel):
    """Response model for conversation endpoint."""

    response: str
    session_id: str
    use_case: str
    outcome: TurnOutcome
    attempts: int = 1


class SessionDeletedResponse(BaseModel):
    """Response model for ending a session."""

    session_id: str
    conversation_released: bool


class UseCaseInfo(BaseModel):
    """A use case as listed by the service."""

    number: int
    key: str
    title: str
    description: str
    chat: bool


class HealthResponse(BaseModel):
    """Response model for health check endpoint."""

    status: str
    timestamp: datetime
    version: str
    backend: str
    active_sessions: int
