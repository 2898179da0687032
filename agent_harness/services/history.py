"""Saved conversations that a later session can resume."""

from datetime import UTC, datetime
from pathlib import Path

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from agent_harness.utils.logging import get_logger

logger = get_logger(__name__)


class SavedConversation(BaseModel):
    """A conversation kept on the service, labelled for the user."""

    conversation_id: str
    topic: str
    saved_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


_SAVED_LIST = TypeAdapter(list[SavedConversation])


class ConversationHistory:
    """JSON file of saved conversations, oldest first.

    Only ids and labels are stored; messages stay on the agent service.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def load(self) -> list[SavedConversation]:
        """Read the saved conversations. A missing or unreadable file counts as empty."""
        if not self.path.exists():
            return []
        try:
            return _SAVED_LIST.validate_json(self.path.read_bytes())
        except (OSError, ValidationError) as e:
            logger.warning(f"Ignoring unreadable conversation history {self.path}: {e}")
            return []

    def save(self, conversation_id: str, topic: str) -> SavedConversation:
        """Record a conversation, replacing an earlier entry for the same id."""
        entry = SavedConversation(conversation_id=conversation_id, topic=topic)
        saved = [item for item in self.load() if item.conversation_id != conversation_id]
        saved.append(entry)
        self._write(saved)
        logger.info(f"Saved conversation {conversation_id} as '{topic}'")
        return entry

    def forget(self, conversation_id: str) -> bool:
        """Drop a conversation from the history.

        Returns:
            True if an entry was removed
        """
        saved = self.load()
        kept = [item for item in saved if item.conversation_id != conversation_id]
        if len(kept) == len(saved):
            return False
        self._write(kept)
        logger.info(f"Forgot conversation {conversation_id}")
        return True

    def _write(self, saved: list[SavedConversation]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_bytes(_SAVED_LIST.dump_json(saved, indent=2))
