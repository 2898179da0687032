"""Chat session state for the HTTP service."""

import asyncio
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any


@dataclass
class ChatSession:
    """A chat client's binding to one use case agent and one conversation."""

    session_id: str
    use_case: str
    conversation_id: str | None = None
    turns: int = 0
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    last_activity: datetime = field(default_factory=lambda: datetime.now(UTC))
    # Serializes turns on the conversation, which allows one active run at a time
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False, compare=False)

    def as_dict(self) -> dict[str, Any]:
        """Return the session as a dictionary."""
        return {
            "session_id": self.session_id,
            "use_case": self.use_case,
            "conversation_id": self.conversation_id,
            "turns": self.turns,
            "created_at": self.created_at.isoformat(),
            "last_activity": self.last_activity.isoformat(),
        }

    def update_activity(self) -> None:
        """Update the last activity timestamp."""
        self.last_activity = datetime.now(UTC)

    def record_turn(self, conversation_id: str | None) -> None:
        """Remember the conversation a turn ran on."""
        if conversation_id:
            self.conversation_id = conversation_id
        self.turns += 1
        self.update_activity()
