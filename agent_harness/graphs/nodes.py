"""Node implementations for the turn execution graph."""

from collections.abc import Awaitable, Callable
from typing import Any

from agent_harness.exceptions import ProtocolError
from agent_harness.graphs.state import TurnState
from agent_harness.models.agents import Run, RunStatus, ToolCall
from agent_harness.models.turns import NO_RESPONSE_TEXT, TurnOutcome, TurnPolicy
from agent_harness.services.agent_service import AgentService
from agent_harness.tools.registry import ToolDispatchRegistry
from agent_harness.utils.logging import get_logger

logger = get_logger(__name__)

Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[None]]
ToolCallListener = Callable[[ToolCall], None]


class TurnNodes:
    """Graph nodes bound to one service connection, tool registry and policy."""

    def __init__(
        self,
        service: AgentService,
        registry: ToolDispatchRegistry,
        policy: TurnPolicy,
        clock: Clock,
        sleep: Sleep,
        on_tool_call: ToolCallListener | None = None,
    ):
        self.service = service
        self.registry = registry
        self.policy = policy
        self.clock = clock
        self.sleep = sleep
        self.on_tool_call = on_tool_call

        # Latest conversation and run seen, for cleanup when the graph is aborted
        self.conversation_id: str | None = None
        self.run: Run | None = None

    async def submit_node(self, state: TurnState) -> dict[str, Any]:
        """Create the conversation if needed, append the user message and start a run."""
        conversation_id = state.conversation_id
        if conversation_id is None:
            conversation_id = await self.service.create_conversation()
            logger.info(f"Created conversation {conversation_id}")

        await self.service.append_message(conversation_id, state.user_content)
        run = await self.service.create_run(conversation_id, state.agent_id)
        logger.info(f"Started run {run.id} on conversation {conversation_id} (status: {run.status})")
        self.conversation_id, self.run = conversation_id, run

        return {"conversation_id": conversation_id, "run": run, "started_at": self.clock()}

    async def poll_node(self, state: TurnState) -> dict[str, Any]:
        """Wait one poll interval, then refresh the run.

        A run that is still non-terminal after the wall-clock timeout is cancelled on a
        best-effort basis and the turn is marked timed out without waiting for the
        cancellation to be confirmed.
        """
        conversation_id, current = state.submitted_run()

        await self.sleep(self.policy.poll_interval)
        run = await self.service.get_run(conversation_id, current.id)
        self.run = run
        logger.debug(f"Run {run.id} status: {run.status}")

        elapsed = self.clock() - state.started_at
        if self.policy.timeout is not None and not run.status.is_terminal and elapsed > self.policy.timeout:
            logger.warning(f"Run {run.id} still {run.status} after {elapsed:.1f}s, cancelling")
            await self.cancel_quietly(conversation_id, run.id)
            return {
                "run": run,
                "outcome": TurnOutcome.TIMED_OUT,
                "error": f"Run did not complete within {self.policy.timeout:g}s",
            }

        return {"run": run}

    async def tools_node(self, state: TurnState) -> dict[str, Any]:
        """Execute every pending tool call and submit all outputs in one batch."""
        conversation_id, current = state.submitted_run()

        calls = current.required_tool_calls
        if not calls:
            raise ProtocolError(f"Run {current.id} requires action but has no tool calls")

        tool_rounds = state.tool_rounds + 1
        limit = self.policy.max_tool_rounds
        logger.info(f"Run {current.id} requested {len(calls)} tool calls (round {tool_rounds}/{limit or '-'})")

        outputs = []
        for call in calls:
            if self.on_tool_call:
                self.on_tool_call(call)
            outputs.append(self.registry.dispatch_call(call))

        run = await self.service.submit_tool_outputs(conversation_id, current.id, outputs)
        self.run = run
        updates: dict[str, Any] = {"run": run, "tool_rounds": tool_rounds}

        if limit is not None and tool_rounds >= limit:
            logger.warning(f"Run {run.id} reached the tool round limit ({limit}), cancelling")
            # An active run blocks new messages on its conversation
            if not run.status.is_terminal:
                await self.cancel_quietly(conversation_id, run.id)
            updates["outcome"] = TurnOutcome.TOOL_LIMIT_EXCEEDED
            updates["error"] = f"Maximum tool call rounds ({limit}) reached"

        return updates

    async def respond_node(self, state: TurnState) -> dict[str, Any]:
        """Read the newest agent message of a completed run."""
        conversation_id, _ = state.submitted_run()

        messages = await self.service.list_messages(conversation_id, order="desc")
        latest = next((message for message in messages if message.role == "agent"), None)
        if latest is None or not latest.text:
            logger.warning(f"Run completed on {conversation_id} without an agent reply")
            response = NO_RESPONSE_TEXT
        else:
            response = latest.text

        return {"outcome": TurnOutcome.COMPLETED, "response": response}

    def fail_node(self, state: TurnState) -> dict[str, Any]:
        """Record why the turn ended without a response."""
        if state.outcome is not None:
            logger.warning(f"Turn ended early: {state.outcome} ({state.error})")
            return {}

        run = state.run
        if run is not None and run.status == RunStatus.CANCELLED:
            outcome = TurnOutcome.CANCELLED
            error = run.last_error or "Run was cancelled"
        else:
            outcome = TurnOutcome.FAILED
            error = (run.last_error if run else None) or "Run failed without an error message"

        logger.warning(f"Run {run.id if run else '-'} ended with {outcome}: {error}")
        return {"outcome": outcome, "error": error}

    async def cancel_quietly(self, conversation_id: str, run_id: str) -> None:
        """Ask the service to cancel a run, logging instead of raising on failure."""
        try:
            await self.service.cancel_run(conversation_id, run_id)
        except Exception as e:
            logger.warning(f"Failed to cancel run {run_id}: {e}")
