"""Basic conversation with a persona and memory across turns."""

from agent_harness.models.agents import AgentSpec
from agent_harness.tools.registry import ToolDispatchRegistry
from agent_harness.use_cases.base import UseCase, UseCaseContext, run_conversation

INSTRUCTIONS = """\
You are TechAdvisor, a friendly and knowledgeable technology consultant.
You specialize in helping people understand modern software architecture,
cloud computing, and AI concepts in simple terms.
Keep responses concise (2-3 paragraphs max).
Use analogies to explain complex topics when possible."""

PROMPTS = [
    "What is the difference between microservices and monolithic architecture?",
    # Follow-up relies on the conversation remembering the first answer
    "Which one would you recommend for a startup building an MVP?",
    "Can you explain what Azure AI Foundry is in one paragraph?",
]


def build_spec(registry: ToolDispatchRegistry) -> AgentSpec:
    return AgentSpec(name="TechAdvisor", instructions=INSTRUCTIONS)


async def run(ctx: UseCaseContext) -> None:
    await run_conversation(ctx, build_spec(ctx.registry), PROMPTS)


def create_basic_use_case() -> UseCase:
    return UseCase(
        number=1,
        key="basic",
        title="Basic Conversation",
        description="A persona agent answers three questions on one conversation, remembering earlier turns.",
        run=run,
        chat_spec=build_spec,
    )
