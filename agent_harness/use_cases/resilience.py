"""Retries with backoff, turn timeouts with fallback, and a cap on tool round trips."""

from agent_harness.exceptions import AgentServiceError
from agent_harness.models.agents import AgentSpec
from agent_harness.models.turns import TurnOutcome, TurnPolicy
from agent_harness.services.cleanup import agent_scope
from agent_harness.tools.registry import ToolDispatchRegistry
from agent_harness.use_cases.base import UseCase, UseCaseContext, print_result, print_section, print_user
from agent_harness.utils.logging import get_logger

logger = get_logger(__name__)

DATABASE_TOOL_ROUND_LIMIT = 5

RESILIENT_INSTRUCTIONS = """\
You are ResilientAssistant, a helpful AI.
Provide clear, concise answers. If asked about error handling,
give practical examples with C# or Python code."""

DATABASE_INSTRUCTIONS = """\
You help users query a database. Use the get_database_record tool
to look up records. Ask for clarification if the user's request is vague."""

QUESTIONS = [
    "What are the best practices for error handling in distributed systems?",
    "Show me a C# example of implementing the circuit breaker pattern.",
    "How should I handle transient failures in Azure service calls?",
]

DATABASE_PROMPT = (
    "Look up employee record EMP-001 from the employees table, "
    "then also find order ORD-555 from the orders table."
)

PATTERNS = [
    "Exponential backoff retry for API calls",
    "Timeout handling for long-running operations",
    "Safe tool execution that always returns a payload",
    "Best-effort resource cleanup on every exit path",
    "Max retry limits to prevent infinite loops",
]


def build_spec(registry: ToolDispatchRegistry) -> AgentSpec:
    return AgentSpec(name="ResilientAssistant", instructions=RESILIENT_INSTRUCTIONS)


def build_database_spec(registry: ToolDispatchRegistry) -> AgentSpec:
    return AgentSpec(
        name="DatabaseAssistant",
        instructions=DATABASE_INSTRUCTIONS,
        tools=registry.function_tools(["get_database_record"]),
    )


async def run_resilient_conversation(ctx: UseCaseContext) -> None:
    """Agent creation retries then raises; each turn retries then falls back."""
    async with agent_scope(
        ctx.service,
        build_spec(ctx.registry),
        retry=ctx.config.agent_retry_policy(),
        on_retry=ctx.on_retry,
    ) as scope:
        ctx.console.print(f"Agent created: {scope.agent.name} (ID: {scope.agent.id})", style="dim")
        conversation_id = await scope.new_conversation()

        for question in QUESTIONS:
            print_user(ctx.console, question)
            result = await ctx.executor.execute_turn_with_retry(
                scope.agent,
                question,
                conversation_id,
                policy=ctx.config.turn_policy(),
                retry=ctx.config.turn_retry_policy(),
                on_retry=ctx.on_retry,
            )
            if result.outcome == TurnOutcome.UNAVAILABLE:
                ctx.console.print("  [All retries exhausted, returning fallback response]", style="red", markup=False)
            print_result(ctx.console, result, speaker=scope.agent.name)


async def run_capped_tool_calls(ctx: UseCaseContext) -> None:
    """Tool errors come back as payloads and the tool round trips are capped."""
    policy = TurnPolicy(
        poll_interval=ctx.config.poll_interval,
        timeout=ctx.config.turn_timeout,
        max_tool_rounds=DATABASE_TOOL_ROUND_LIMIT,
    )
    async with agent_scope(ctx.service, build_database_spec(ctx.registry)) as scope:
        ctx.console.print(f"Agent created: {scope.agent.name}", style="dim")
        conversation_id = await scope.new_conversation()

        print_user(ctx.console, DATABASE_PROMPT)
        result = await ctx.executor.execute_turn(scope.agent, DATABASE_PROMPT, conversation_id, policy=policy)
        if result.outcome == TurnOutcome.TOOL_LIMIT_EXCEEDED:
            ctx.console.print("  [Max tool call attempts reached, stopping]", style="yellow", markup=False)
        ctx.console.print(f"  [Tool rounds used: {result.tool_rounds}]", style="dim", markup=False)
        print_result(ctx.console, result, speaker=scope.agent.name)


async def run(ctx: UseCaseContext) -> None:
    print_section(ctx.console, "Example 1: Conversation with retry logic")
    try:
        await run_resilient_conversation(ctx)
    except AgentServiceError as e:
        logger.error(f"Resilient conversation aborted: {e}")
        ctx.console.print(f"\n[Unrecoverable error]: {e}", style="red", markup=False)

    print_section(ctx.console, "Example 2: Graceful tool call error handling")
    await run_capped_tool_calls(ctx)

    print_section(ctx.console, "Error handling patterns demonstrated")
    for number, pattern in enumerate(PATTERNS, start=1):
        ctx.console.print(f"  {number}. {pattern}")


def create_resilience_use_case() -> UseCase:
    return UseCase(
        number=12,
        key="resilience",
        title="Error Handling & Retry",
        description="Backoff retries, turn timeouts with a fallback reply, and a cap on tool call rounds.",
        run=run,
        chat_spec=build_spec,
    )
