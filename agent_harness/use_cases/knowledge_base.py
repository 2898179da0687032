"""Retrieval over the local knowledge base tool."""

from agent_harness.models.agents import AgentSpec
from agent_harness.tools.registry import ToolDispatchRegistry
from agent_harness.use_cases.base import UseCase, UseCaseContext, run_conversation

INSTRUCTIONS = """\
You are SupportAgent, a customer support representative for a SaaS company.

IMPORTANT RULES:
1. ALWAYS search the knowledge base before answering any customer question.
2. Only provide information that comes from the knowledge base results.
3. If the knowledge base doesn't have relevant information, say "I don't have
   information about that. Let me connect you with a human agent."
4. Be polite, professional, and empathetic.
5. After answering, ask if there's anything else you can help with."""

PROMPTS = [
    "Hi, I'd like to return a product I bought 2 weeks ago. What's your refund policy?",
    "What pricing plans do you offer? I need something for a team of about 10 people.",
    "We're in a regulated industry. Can you tell me about your security certifications?",
]


def build_spec(registry: ToolDispatchRegistry) -> AgentSpec:
    return AgentSpec(
        name="SupportAgent",
        instructions=INSTRUCTIONS,
        tools=registry.function_tools(["search_knowledge_base"]),
    )


async def run(ctx: UseCaseContext) -> None:
    await run_conversation(ctx, build_spec(ctx.registry), PROMPTS)


def create_knowledge_base_use_case() -> UseCase:
    return UseCase(
        number=4,
        key="support",
        title="Knowledge Base (RAG)",
        description="A support agent grounds every answer in knowledge base search results.",
        run=run,
        chat_spec=build_spec,
    )
