"""Two agents in sequence: a researcher's notes are handed to a writer."""

from agent_harness.models.agents import AgentSpec
from agent_harness.services.cleanup import agent_scope
from agent_harness.use_cases.base import UseCase, UseCaseContext, print_result, print_section, print_user

TOPIC = "The impact of AI Agents on enterprise software development in 2025-2026"

RESEARCHER = AgentSpec(
    name="Researcher",
    instructions="""\
You are Researcher, a thorough and analytical research assistant.
When given a topic, provide a detailed, fact-based research brief covering:
1. Key concepts and definitions
2. Current trends and developments
3. Advantages and disadvantages
4. Real-world examples or use cases
5. Important statistics or data points (use realistic estimates)

Output your findings as structured bullet points. Be comprehensive
but factual; do not add opinions. This research will be handed off
to another agent for writing.""",
)

WRITER = AgentSpec(
    name="Writer",
    instructions="""\
You are Writer, a skilled content writer who turns research notes into
polished, engaging content. You will receive research bullet points from
a Researcher agent.

Your job:
1. Transform the raw research into a well-structured article/summary.
2. Add a compelling introduction and conclusion.
3. Use clear headings and subheadings.
4. Make the content accessible to a general technical audience.
5. Keep the total output under 500 words.
6. Do NOT add information beyond what was researched; stay faithful to the data.""",
)


def handoff_prompt(topic: str, research: str) -> str:
    """Message that hands the researcher's notes to the writer."""
    return (
        f'Here are the research notes from our Researcher agent on "{topic}":\n\n'
        f"---\n{research}\n---\n\n"
        "Please transform these research notes into a polished, well-structured summary article."
    )


async def run(ctx: UseCaseContext) -> None:
    async with agent_scope(ctx.service, RESEARCHER) as researcher, agent_scope(ctx.service, WRITER) as writer:
        ctx.console.print(f"Researcher agent created: {researcher.agent.id}", style="dim")
        ctx.console.print(f"Writer agent created: {writer.agent.id}", style="dim")

        print_section(ctx.console, "Phase 1: Research")
        research_prompt = f"Research the following topic thoroughly: {TOPIC}"
        print_user(ctx.console, research_prompt, speaker="You -> Researcher")
        research = await ctx.executor.execute_turn(
            researcher.agent, research_prompt, await researcher.new_conversation()
        )
        print_result(ctx.console, research, speaker="Researcher")
        if not research.succeeded:
            return

        print_section(ctx.console, "Phase 2: Writing")
        ctx.console.print("[You -> Writer]: Handed off research notes for polishing...", style="cyan", markup=False)
        article = await ctx.executor.execute_turn(
            writer.agent, handoff_prompt(TOPIC, research.text or ""), await writer.new_conversation()
        )
        print_result(ctx.console, article, speaker="Writer")

        if article.succeeded:
            print_section(ctx.console, "Orchestration complete")
            ctx.console.print("  Researcher -> gathered data -> Writer -> polished article", style="yellow")


def create_orchestration_use_case() -> UseCase:
    return UseCase(
        number=6,
        key="orchestration",
        title="Multi-Agent Orchestration",
        description="A Researcher agent gathers information, then a Writer agent turns it into an article.",
        run=run,
    )
