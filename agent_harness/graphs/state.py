"""State carried through the turn execution graph."""

from pydantic import BaseModel

from agent_harness.exceptions import ProtocolError
from agent_harness.models.agents import MessageContent, Run
from agent_harness.models.turns import TurnOutcome


class TurnState(BaseModel):
    """State of one user turn as it moves through the run state machine.

    The graph nodes return partial updates of these fields; `outcome` is set once the
    turn has reached a terminal state on the client side.
    """

    agent_id: str
    user_content: list[MessageContent]
    conversation_id: str | None = None

    # Run tracking
    run: Run | None = None
    started_at: float = 0.0
    tool_rounds: int = 0

    # Result
    outcome: TurnOutcome | None = None
    response: str | None = None
    error: str | None = None

    def submitted_run(self) -> tuple[str, Run]:
        """Conversation id and run of a turn past the submit node.

        Raises:
            ProtocolError: If no run has been started for this turn
        """
        if self.conversation_id is None or self.run is None:
            raise ProtocolError("Turn has no submitted run")
        return self.conversation_id, self.run
