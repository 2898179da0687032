"""Edge logic and routing for the turn execution graph."""

from typing import Literal

from agent_harness.graphs.state import TurnState
from agent_harness.models.agents import RunStatus
from agent_harness.utils.logging import get_logger

logger = get_logger(__name__)


def route_poll_output(state: TurnState) -> Literal["poll", "tools", "respond", "fail"]:
    """Route from the poll node based on the run status.

    Determines the next node based on:
    1. An outcome already decided on the client side (timeout)
    2. requires_action, which needs local tool execution
    3. Terminal statuses
    4. Otherwise keep polling
    """
    if state.outcome is not None or state.run is None:
        return "fail"

    status = state.run.status

    if status == RunStatus.REQUIRES_ACTION:
        return "tools"
    if status == RunStatus.COMPLETED:
        return "respond"
    if status in (RunStatus.FAILED, RunStatus.CANCELLED):
        return "fail"

    return "poll"


def route_tool_output(state: TurnState) -> Literal["poll", "fail"]:
    """Route from the tool node.

    Always returns to polling unless the tool round limit ended the turn.
    """
    if state.outcome is not None:
        return "fail"
    return "poll"
