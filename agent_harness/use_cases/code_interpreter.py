"""Hosted code interpreter for calculations and data analysis."""

from agent_harness.models.agents import AgentSpec, CodeInterpreterTool
from agent_harness.tools.registry import ToolDispatchRegistry
from agent_harness.use_cases.base import UseCase, UseCaseContext, run_conversation

INSTRUCTIONS = """\
You are DataAnalyst, an expert data scientist.
When asked to analyze data or perform calculations, use the code interpreter
to write and run Python code. Show the code you execute and explain the results.
Always provide clear, actionable insights from the data."""

PROMPTS = [
    "Calculate the first 15 Fibonacci numbers and their golden ratio approximations.",
    (
        "Create a dataset of monthly sales for a fictional company over 12 months.\n"
        "Calculate: mean, median, standard deviation, and month-over-month growth rate.\n"
        "Summarize the findings."
    ),
    "Write a Python function that checks if a string is a valid palindrome (ignoring spaces and case). "
    "Test it with 5 examples.",
]


def build_spec(registry: ToolDispatchRegistry) -> AgentSpec:
    return AgentSpec(name="DataAnalyst", instructions=INSTRUCTIONS, tools=[CodeInterpreterTool()])


async def run(ctx: UseCaseContext) -> None:
    await run_conversation(ctx, build_spec(ctx.registry), PROMPTS)


def create_code_interpreter_use_case() -> UseCase:
    return UseCase(
        number=2,
        key="code",
        title="Code Interpreter",
        description="The agent writes and runs Python in the hosted code interpreter.",
        run=run,
        chat_spec=build_spec,
    )
