"""Turn execution over the run state machine, plain and resilient."""

import asyncio
import time
from collections.abc import AsyncIterator
from contextlib import aclosing

from langgraph.errors import GraphRecursionError

from agent_harness.exceptions import AgentServiceError, TurnFailedError
from agent_harness.graphs.nodes import Clock, Sleep, ToolCallListener, TurnNodes
from agent_harness.graphs.state import TurnState
from agent_harness.graphs.turn import create_turn_graph
from agent_harness.models.agents import AgentConfig, MessageContent, RunFinished, RunStreamEvent, as_content
from agent_harness.models.turns import FALLBACK_RESPONSE_TEXT, TurnOutcome, TurnPolicy, TurnResult
from agent_harness.services.agent_service import AgentService
from agent_harness.tools.registry import ToolDispatchRegistry
from agent_harness.utils.logging import get_logger
from agent_harness.utils.retry import OnExhausted, RetryListener, RetryPolicy, call_with_retry

logger = get_logger(__name__)

DEFAULT_TURN_RETRY = RetryPolicy(max_attempts=2, base_delay=1.0, on_exhausted=OnExhausted.FALLBACK)


class TurnExecutor:
    """Drives user turns against an agent service, executing tool calls locally.

    The executor holds no per-conversation state; callers keep the conversation id
    from each `TurnResult` to continue a conversation.
    """

    def __init__(
        self,
        service: AgentService,
        registry: ToolDispatchRegistry | None = None,
        policy: TurnPolicy | None = None,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
        on_tool_call: ToolCallListener | None = None,
    ):
        """Initialize the executor.

        Args:
            service: Agent service connection
            registry: Tool dispatch registry, defaults to all simulated tools
            policy: Default polling policy (no timeout or tool round cap)
            clock: Monotonic clock in seconds, injectable for tests
            sleep: Awaitable sleep used between polls and retries
            on_tool_call: Called with each tool call before it is dispatched
        """
        self.service = service
        self.registry = registry or ToolDispatchRegistry()
        self.policy = policy or TurnPolicy()
        self.clock = clock
        self.sleep = sleep
        self.on_tool_call = on_tool_call

    async def execute_turn(
        self,
        agent: AgentConfig | str,
        user_message: str | list[MessageContent],
        conversation_id: str | None = None,
        policy: TurnPolicy | None = None,
    ) -> TurnResult:
        """Send one user message and drive the run to a terminal state.

        Args:
            agent: Agent configuration (or its id) that runs the turn
            user_message: Text or content blocks of the user message
            conversation_id: Existing conversation, a new one is created when None
            policy: Polling policy for this turn, defaults to the executor's

        Returns:
            TurnResult with the response text, or the failure outcome and error

        Raises:
            AgentServiceError: If a service call fails
            ProtocolError: If the service leaves the run state machine
        """
        policy = policy or self.policy
        agent_id = agent if isinstance(agent, str) else agent.id

        nodes = TurnNodes(
            service=self.service,
            registry=self.registry,
            policy=policy,
            clock=self.clock,
            sleep=self.sleep,
            on_tool_call=self.on_tool_call,
        )
        graph = create_turn_graph(nodes)
        initial_state = TurnState(
            agent_id=agent_id,
            user_content=as_content(user_message),
            conversation_id=conversation_id,
        )

        try:
            result = await graph.ainvoke(initial_state.model_dump(), {"recursion_limit": policy.recursion_limit()})
        except GraphRecursionError:
            # The conversation may have been created inside the graph
            conversation_id = nodes.conversation_id or conversation_id
            logger.error(f"Turn on conversation {conversation_id} exceeded the poll budget")
            await self._abandon_run(nodes)
            return TurnResult(
                conversation_id=conversation_id,
                outcome=TurnOutcome.FAILED,
                error="Run did not reach a terminal state within the poll budget",
                run_id=nodes.run.id if nodes.run else None,
            )
        except AgentServiceError:
            await self._abandon_run(nodes)
            raise

        state = TurnState.model_validate(result)
        run_id = state.run.id if state.run else None
        logger.info(f"Turn on conversation {state.conversation_id} finished: {state.outcome}")

        return TurnResult(
            conversation_id=state.conversation_id,
            outcome=state.outcome or TurnOutcome.FAILED,
            text=state.response,
            error=state.error,
            run_id=run_id,
            tool_rounds=state.tool_rounds,
        )

    async def _abandon_run(self, nodes: TurnNodes) -> None:
        """Cancel the last run the graph saw if it is still active."""
        run = nodes.run
        if nodes.conversation_id is None or run is None or run.status.is_terminal:
            return
        await nodes.cancel_quietly(nodes.conversation_id, run.id)

    async def execute_turn_with_retry(
        self,
        agent: AgentConfig | str,
        user_message: str | list[MessageContent],
        conversation_id: str | None = None,
        policy: TurnPolicy | None = None,
        retry: RetryPolicy | None = None,
        on_retry: RetryListener | None = None,
    ) -> TurnResult:
        """Execute a turn, retrying failed, timed out or capped attempts.

        Every attempt re-sends the user message on the same conversation. Once the
        attempts are exhausted the FALLBACK policy yields a result carrying the
        fallback text; the RAISE policy re-raises the last error.

        Args:
            agent: Agent configuration (or its id) that runs the turn
            user_message: Text or content blocks of the user message
            conversation_id: Existing conversation, a new one is created when None
            policy: Polling policy for each attempt
            retry: Retry policy, defaults to two attempts with fallback
            on_retry: Called with (attempt, max_attempts, error, delay) before each wait

        Returns:
            The first successful TurnResult, or the fallback result
        """
        retry = retry or DEFAULT_TURN_RETRY
        attempts = 0

        async def attempt() -> TurnResult:
            nonlocal attempts, conversation_id
            attempts += 1
            if conversation_id is None:
                conversation_id = await self.service.create_conversation()
                logger.info(f"Created conversation {conversation_id}")

            result = await self.execute_turn(agent, user_message, conversation_id, policy)
            result.attempts = attempts
            if not result.succeeded:
                raise TurnFailedError(result)
            return result

        def fallback(error: BaseException) -> TurnResult:
            return TurnResult(
                conversation_id=conversation_id,
                outcome=TurnOutcome.UNAVAILABLE,
                text=FALLBACK_RESPONSE_TEXT,
                error=str(error),
                attempts=attempts,
            )

        return await call_with_retry(
            attempt,
            policy=retry,
            operation_name="Turn",
            fallback=fallback,
            on_retry=on_retry,
            sleep=self.sleep,
        )

    async def stream_turn(
        self,
        agent: AgentConfig | str,
        user_message: str | list[MessageContent],
        conversation_id: str,
    ) -> AsyncIterator[RunStreamEvent]:
        """Send one user message and stream the agent's reply.

        Tool calls are not executed on streamed turns; agents that need tools go
        through `execute_turn`. The last event is always a RunFinished.

        Raises:
            AgentServiceError: If appending the message or starting the run fails
        """
        agent_id = agent if isinstance(agent, str) else agent.id
        await self.service.append_message(conversation_id, as_content(user_message))

        events = self.service.stream_run(conversation_id, agent_id)
        async with aclosing(events):
            async for event in events:
                if isinstance(event, RunFinished):
                    logger.info(f"Streamed turn on conversation {conversation_id} finished: {event.status}")
                yield event
