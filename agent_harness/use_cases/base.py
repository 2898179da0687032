"""Shared pieces of the console use cases."""

from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass

from rich.console import Console
from rich.panel import Panel

from agent_harness.config import HarnessConfig
from agent_harness.models.agents import AgentSpec, MessageContent, TextContent
from agent_harness.models.turns import TurnResult
from agent_harness.services.agent_service import AgentService
from agent_harness.services.cleanup import agent_scope
from agent_harness.services.turns import TurnExecutor
from agent_harness.tools.registry import ToolDispatchRegistry
from agent_harness.utils.logging import get_logger
from agent_harness.utils.retry import RetryListener

logger = get_logger(__name__)

UserMessage = str | list[MessageContent]


@dataclass
class UseCaseContext:
    """Everything a use case needs to talk to the agent service."""

    service: AgentService
    executor: TurnExecutor
    config: HarnessConfig
    console: Console
    on_retry: RetryListener | None = None

    @property
    def registry(self) -> ToolDispatchRegistry:
        return self.executor.registry


UseCaseRunner = Callable[[UseCaseContext], Awaitable[None]]
AgentSpecFactory = Callable[[ToolDispatchRegistry], AgentSpec]


@dataclass
class UseCase:
    """A runnable console demo.

    Attributes:
        number: Menu number
        key: Short identifier used by the HTTP service and chat client
        title: Menu title
        description: One-line summary shown in banners
        run: Coroutine driving the demo end to end
        chat_spec: Builds the agent used for free-form chat, None when the demo
            needs resources (documents, images) that a chat session cannot provide
    """

    number: int
    key: str
    title: str
    description: str
    run: UseCaseRunner
    chat_spec: AgentSpecFactory | None = None


def print_banner(console: Console, use_case: UseCase) -> None:
    console.print(
        Panel(
            use_case.description,
            title=f"Use case {use_case.number}: {use_case.title}",
            title_align="left",
            border_style="blue",
        )
    )


def print_section(console: Console, title: str) -> None:
    console.rule(title, style="yellow", align="left")


def print_user(console: Console, message: UserMessage, speaker: str = "You") -> None:
    if isinstance(message, str):
        text = message
    else:
        text = "\n".join(block.text for block in message if isinstance(block, TextContent))
    console.print(f"\n[{speaker}]: {text.strip()}", style="cyan", markup=False, highlight=False)


def print_result(console: Console, result: TurnResult, speaker: str = "Agent") -> None:
    """Show a turn's response, or why it produced none."""
    if result.succeeded:
        console.print(f"\n[{speaker}]: {result.text}", style="green", markup=False, highlight=False)
    elif result.text is not None:
        # Fallback replies still carry text for the user
        console.print(f"\n[{speaker}]: {result.text}", style="yellow", markup=False, highlight=False)
    else:
        console.print(
            f"\n[{speaker} {result.outcome.value}]: {result.error or 'no details'}",
            style="red",
            markup=False,
            highlight=False,
        )


async def run_conversation(ctx: UseCaseContext, spec: AgentSpec, prompts: Sequence[UserMessage]) -> list[TurnResult]:
    """Create an agent, send each prompt on one conversation and print the replies.

    The agent and its conversation are released when the script ends, including
    when a turn raises.

    Returns:
        The result of every turn, in order
    """
    results = []
    async with agent_scope(ctx.service, spec) as scope:
        ctx.console.print(f"Agent created: {scope.agent.name} (ID: {scope.agent.id})", style="dim")
        conversation_id = await scope.new_conversation()

        for prompt in prompts:
            print_user(ctx.console, prompt)
            result = await ctx.executor.execute_turn(scope.agent, prompt, conversation_id)
            print_result(ctx.console, result, speaker=scope.agent.name)
            results.append(result)

    ctx.console.print("\n[Cleanup complete]", style="dim", markup=False)
    return results
