"""Session management for in-memory storage."""

from datetime import UTC, datetime, timedelta

from cuid2 import cuid_wrapper

from agent_harness.models.session import ChatSession
from agent_harness.utils.logging import get_logger

logger = get_logger(__name__)

cuid = cuid_wrapper()


class InMemorySessionManager:
    """In-memory chat sessions with inactivity expiry.

    Expired sessions are handed back to the caller, which owns releasing their
    conversations on the agent service.
    """

    def __init__(self, session_timeout_minutes: int = 60):
        """Initialize session manager.

        Args:
            session_timeout_minutes: Minutes of inactivity before a session expires
        """
        self.sessions: dict[str, ChatSession] = {}
        self.session_timeout = timedelta(minutes=session_timeout_minutes)

    def create_session(self, use_case: str) -> ChatSession:
        """Start a new session bound to a use case."""
        session = ChatSession(session_id=self._generate_session_id(), use_case=use_case)
        self.sessions[session.session_id] = session
        logger.info(f"Created session {session.session_id} for use case {use_case}")
        return session

    def get_session(self, session_id: str) -> ChatSession | None:
        """Get existing session by ID.

        Args:
            session_id: Session identifier

        Returns:
            Session if found and not expired, None otherwise
        """
        session = self.sessions.get(session_id)
        if session is None or self._is_expired(session):
            return None
        session.update_activity()
        return session

    def delete_session(self, session_id: str) -> ChatSession | None:
        """Remove a session.

        Returns:
            The removed session, None if it was not found
        """
        return self.sessions.pop(session_id, None)

    def pop_expired_sessions(self) -> list[ChatSession]:
        """Remove and return every expired session."""
        expired = [session for session in self.sessions.values() if self._is_expired(session)]
        for session in expired:
            del self.sessions[session.session_id]
        if expired:
            logger.info(f"Expired {len(expired)} inactive sessions")
        return expired

    def pop_all_sessions(self) -> list[ChatSession]:
        """Remove and return every session."""
        sessions = list(self.sessions.values())
        self.sessions.clear()
        return sessions

    def get_session_count(self) -> int:
        """Get current number of sessions that have not expired."""
        return sum(1 for session in self.sessions.values() if not self._is_expired(session))

    def _generate_session_id(self) -> str:
        """Generate a new CUID-based session ID."""
        return cuid()

    def _is_expired(self, session: ChatSession) -> bool:
        return datetime.now(UTC) - session.last_activity > self.session_timeout
