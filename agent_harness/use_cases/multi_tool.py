"""One agent combining the hosted code interpreter with every local tool."""

from agent_harness.models.agents import AgentSpec, CodeInterpreterTool
from agent_harness.tools.registry import ToolDispatchRegistry
from agent_harness.use_cases.base import UseCase, UseCaseContext, run_conversation

INSTRUCTIONS = """\
You are UniversalAssistant, a versatile AI agent with access to multiple tools:
- Weather lookup for any city
- Stock price checker for any ticker
- Calculator for math expressions
- Knowledge base for company policies and product info
- Code interpreter for complex analysis and code execution

Choose the appropriate tool(s) based on the user's request. You may use
multiple tools in a single response if needed. Always explain what tools
you're using and why."""

PROMPTS = [
    "If I buy 150 shares of a stock at $42.50 each, and the brokerage fee is 0.5%, what's my total cost?",
    "I'm heading to New York tomorrow. What's the weather? Also check MSFT and GOOGL stock prices.",
    "What are your pricing plans? Also, using code, calculate the annual cost for each plan.",
]


def build_spec(registry: ToolDispatchRegistry) -> AgentSpec:
    tools = [
        *registry.function_tools(["get_weather", "get_stock_price", "calculate", "search_knowledge_base"]),
        CodeInterpreterTool(),
    ]
    return AgentSpec(name="UniversalAssistant", instructions=INSTRUCTIONS, tools=tools)


async def run(ctx: UseCaseContext) -> None:
    await run_conversation(ctx, build_spec(ctx.registry), PROMPTS)


def create_multi_tool_use_case() -> UseCase:
    return UseCase(
        number=5,
        key="multi",
        title="Multi-Tool Agent",
        description="The agent picks between local functions and the code interpreter on each request.",
        run=run,
        chat_spec=build_spec,
    )
