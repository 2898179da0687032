"""Replies streamed piece by piece as the agent writes them."""

from agent_harness.models.agents import AgentConfig, AgentSpec, RunFinished, RunStatus, TextDelta
from agent_harness.services.cleanup import agent_scope
from agent_harness.tools.registry import ToolDispatchRegistry
from agent_harness.use_cases.base import UseCase, UseCaseContext, print_user

INSTRUCTIONS = """\
You are StreamingStoryteller, a creative and engaging assistant.
You excel at detailed explanations, storytelling, and technical deep-dives.
Provide thorough, well-structured responses. Use markdown formatting
(headers, bullet points, code blocks) when appropriate.
Aim for rich, detailed answers that showcase the streaming experience."""

QUESTIONS = [
    "Explain the evolution of cloud computing, from mainframes to serverless, in a storytelling style.",
    "Write a detailed comparison of REST vs GraphQL vs gRPC with code examples for each.",
    "Describe how a neural network learns, step by step, using a cooking analogy.",
]


def build_spec(registry: ToolDispatchRegistry) -> AgentSpec:
    return AgentSpec(name="StreamingStoryteller", instructions=INSTRUCTIONS)


async def stream_reply(
    ctx: UseCaseContext, agent: AgentConfig, question: str, conversation_id: str
) -> RunFinished | None:
    """Print the reply as it arrives and return the closing event."""
    ctx.console.print(f"\n[{agent.name}]: ", style="green", markup=False, highlight=False, end="")
    finished = None
    async for event in ctx.executor.stream_turn(agent, question, conversation_id):
        if isinstance(event, TextDelta):
            ctx.console.print(event.text, style="green", markup=False, highlight=False, end="")
        else:
            finished = event
    ctx.console.print()

    if finished is not None and finished.status != RunStatus.COMPLETED:
        detail = finished.error or finished.status.value
        ctx.console.print(f"[Stream error, run {finished.status.value}]: {detail}", style="red", markup=False)
    return finished


async def run(ctx: UseCaseContext) -> None:
    async with agent_scope(ctx.service, build_spec(ctx.registry)) as scope:
        ctx.console.print(f"Agent created: {scope.agent.name} (ID: {scope.agent.id})", style="dim")
        conversation_id = await scope.new_conversation()

        for question in QUESTIONS:
            print_user(ctx.console, question)
            await stream_reply(ctx, scope.agent, question, conversation_id)

    ctx.console.print("\n[Cleanup complete]", style="dim", markup=False)


def create_streaming_use_case() -> UseCase:
    return UseCase(
        number=13,
        key="streaming",
        title="Streaming Responses",
        description="Replies are printed piece by piece while the agent is still writing them.",
        run=run,
        chat_spec=build_spec,
    )
