"""Replies constrained to a JSON schema."""

import json

from rich.syntax import Syntax

from agent_harness.models.agents import AgentSpec, ResponseFormat
from agent_harness.services.cleanup import agent_scope
from agent_harness.tools.registry import ToolDispatchRegistry
from agent_harness.use_cases.base import UseCase, UseCaseContext, print_result, print_user

INSTRUCTIONS = """\
You analyze product reviews and return ONLY a valid JSON object.
No markdown, no explanation, just the raw JSON.

Required JSON schema:
{
  "sentiment": "positive" | "negative" | "mixed" | "neutral",
  "confidence": 0.0 to 1.0,
  "keyTopics": ["topic1", "topic2"],
  "pros": ["pro1", "pro2"],
  "cons": ["con1", "con2"],
  "suggestedRating": 1 to 5,
  "summary": "One-sentence summary"
}

Always return valid, parseable JSON."""

REVIEW_ANALYSIS_SCHEMA = {
    "type": "object",
    "properties": {
        "sentiment": {"type": "string", "enum": ["positive", "negative", "mixed", "neutral"]},
        "confidence": {"type": "number"},
        "keyTopics": {"type": "array", "items": {"type": "string"}},
        "pros": {"type": "array", "items": {"type": "string"}},
        "cons": {"type": "array", "items": {"type": "string"}},
        "suggestedRating": {"type": "number"},
        "summary": {"type": "string"},
    },
    "required": ["sentiment", "confidence", "keyTopics", "pros", "cons", "suggestedRating", "summary"],
    "additionalProperties": False,
}

REVIEWS = [
    """\
I've been using the SmartWidget Pro for 3 months in our factory. The sensor
accuracy is outstanding: temperature readings are within 0.1°C of our reference
instrument. Battery life is phenomenal, still at 92% after 3 months. However,
the initial Wi-Fi setup was painful and took our IT team 2 hours to configure.
The mobile app is clunky and crashes on Android. Would love OTA updates to fix that.
Overall great hardware, needs software polish. 4/5 stars.""",
    """\
Terrible experience. Ordered 50 units for our warehouse. 8 arrived DOA. The
ones that work lose Bluetooth connection every few hours. Customer support took
3 days to respond and then just sent generic troubleshooting steps. For $299/unit
this is unacceptable. Returning all of them and going with CompetitorX.""",
]


def build_spec(registry: ToolDispatchRegistry) -> AgentSpec:
    return AgentSpec(
        name="ReviewAnalyzer",
        instructions=INSTRUCTIONS,
        response_format=ResponseFormat(name="review_analysis", schema=REVIEW_ANALYSIS_SCHEMA),
    )


def parse_structured_reply(text: str) -> dict | None:
    """Parse a JSON reply, tolerating a surrounding markdown code fence.

    Returns:
        The decoded object, or None when the reply is not a JSON object
    """
    candidate = text.strip()
    if candidate.startswith("```"):
        candidate = candidate.strip("`").removeprefix("json").strip()
    try:
        parsed = json.loads(candidate)
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None


async def run(ctx: UseCaseContext) -> None:
    async with agent_scope(ctx.service, build_spec(ctx.registry)) as scope:
        conversation_id = await scope.new_conversation()
        for review in REVIEWS:
            prompt = f"Analyze this review:\n{review}"
            print_user(ctx.console, prompt)
            result = await ctx.executor.execute_turn(scope.agent, prompt, conversation_id)

            parsed = parse_structured_reply(result.text or "") if result.succeeded else None
            if parsed is None:
                if result.succeeded:
                    ctx.console.print("(Reply was not valid JSON, showing raw text)", style="yellow")
                print_result(ctx.console, result, speaker=scope.agent.name)
                continue

            ctx.console.print(Syntax(json.dumps(parsed, indent=2, ensure_ascii=False), "json", word_wrap=True))
            ctx.console.print(
                f"Sentiment: {parsed.get('sentiment')} | Rating: {parsed.get('suggestedRating')} | "
                f"Confidence: {parsed.get('confidence')}",
                style="green",
                markup=False,
            )


def create_structured_output_use_case() -> UseCase:
    return UseCase(
        number=11,
        key="structured",
        title="Structured Output",
        description="The agent must answer with JSON matching a review-analysis schema.",
        run=run,
        chat_spec=build_spec,
    )
