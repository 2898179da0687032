"""Local function calling with the weather and stock tools."""

from agent_harness.models.agents import AgentSpec
from agent_harness.tools.registry import ToolDispatchRegistry
from agent_harness.use_cases.base import UseCase, UseCaseContext, run_conversation

INSTRUCTIONS = """\
You are MarketAssistant, a helpful assistant that provides weather and stock
market information. Use the available tools to fetch real-time data when users
ask about weather conditions or stock prices. Present the information in a
clear, readable format. If a user asks about multiple cities or stocks, look
up each one."""

PROMPTS = [
    "What's the weather like in Seattle and London today?",
    "How are MSFT, AAPL, and NVDA doing today?",
    "I'm planning a trip to Tokyo. What's the weather there? Also, check Tesla's stock price.",
]


def build_spec(registry: ToolDispatchRegistry) -> AgentSpec:
    return AgentSpec(
        name="MarketAssistant",
        instructions=INSTRUCTIONS,
        tools=registry.function_tools(["get_weather", "get_stock_price"]),
    )


async def run(ctx: UseCaseContext) -> None:
    await run_conversation(ctx, build_spec(ctx.registry), PROMPTS)


def create_function_calling_use_case() -> UseCase:
    return UseCase(
        number=3,
        key="functions",
        title="Function Calling",
        description="The agent asks the client to run weather and stock lookups, several per turn.",
        run=run,
        chat_spec=build_spec,
    )
