"""Turn execution results and policies."""

import math
from dataclasses import dataclass
from enum import StrEnum

NO_RESPONSE_TEXT = "[No response received]"
FALLBACK_RESPONSE_TEXT = "[Service temporarily unavailable. Please try again later.]"

# Upper bound on status checks when a turn has no wall-clock timeout
DEFAULT_MAX_POLLS = 3600


class TurnOutcome(StrEnum):
    """How a conversational turn ended."""

    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    TIMED_OUT = "timed_out"
    TOOL_LIMIT_EXCEEDED = "tool_limit_exceeded"
    UNAVAILABLE = "unavailable"


@dataclass
class TurnResult:
    """Result of driving one user turn to a terminal state."""

    conversation_id: str | None
    outcome: TurnOutcome
    text: str | None = None
    error: str | None = None
    run_id: str | None = None
    tool_rounds: int = 0
    attempts: int = 1

    @property
    def succeeded(self) -> bool:
        """Whether the turn produced an agent response."""
        return self.outcome == TurnOutcome.COMPLETED

    @property
    def display_text(self) -> str:
        """Text to show the user, falling back to the failure description."""
        if self.text is not None:
            return self.text
        return f"[Turn {self.outcome.value}]: {self.error or 'no details'}"


@dataclass
class TurnPolicy:
    """Polling and safety limits for a single turn.

    Attributes:
        poll_interval: Constant delay in seconds between run status checks
        timeout: Wall-clock limit in seconds, None to poll until a terminal state
        max_tool_rounds: Maximum tool-output submissions per run, None for unbounded
    """

    poll_interval: float = 0.5
    timeout: float | None = None
    max_tool_rounds: int | None = None

    def recursion_limit(self) -> int:
        """Graph step budget large enough for every poll the policy allows."""
        if self.timeout is not None and self.poll_interval > 0:
            polls = math.ceil(self.timeout / self.poll_interval) + 1
        else:
            polls = DEFAULT_MAX_POLLS
        # Each poll may be followed by a tool round, plus submit/respond/fail steps
        return 2 * polls + 10
