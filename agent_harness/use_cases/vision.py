"""Multi-modal turns that combine text with image URLs."""

from agent_harness.models.agents import AgentSpec, ImageUrlContent, MessageContent, TextContent
from agent_harness.tools.registry import ToolDispatchRegistry
from agent_harness.use_cases.base import UseCase, UseCaseContext, run_conversation

INSTRUCTIONS = """\
You are VisionAnalyst, an expert at analyzing images and visual content.
When the user provides an image:
1. Describe what you see in detail.
2. Identify key objects, text, colors, and patterns.
3. Provide context about what the image represents.
4. Answer any specific questions the user asks about the image.
5. If the image is a diagram or chart, interpret the data.

Be precise and observational. If you cannot see an image clearly, say so."""

ARCHITECTURE_DIAGRAM_URL = "https://learn.microsoft.com/en-us/azure/architecture/browse/thumbs/basic-web-app.png"
CODE_SCREENSHOT_URL = (
    "https://upload.wikimedia.org/wikipedia/commons/thumb/b/b5/Hello_World_in_Python.png/"
    "640px-Hello_World_in_Python.png"
)


def image_prompt(text: str, url: str) -> list[MessageContent]:
    """A question about one image."""
    return [TextContent(text=text), ImageUrlContent(url=url)]


PROMPTS = [
    image_prompt(
        "Analyze this Azure architecture diagram. What services are shown and how do they connect?",
        ARCHITECTURE_DIAGRAM_URL,
    ),
    image_prompt("What programming language is this? Explain what the code does.", CODE_SCREENSHOT_URL),
]


def build_spec(registry: ToolDispatchRegistry) -> AgentSpec:
    return AgentSpec(name="VisionAnalyst", instructions=INSTRUCTIONS)


async def run(ctx: UseCaseContext) -> None:
    for prompt in PROMPTS:
        for block in prompt:
            if isinstance(block, ImageUrlContent):
                ctx.console.print(f"  (Image: {block.url})", style="dim", markup=False)
    await run_conversation(ctx, build_spec(ctx.registry), PROMPTS)


def create_vision_use_case() -> UseCase:
    return UseCase(
        number=8,
        key="vision",
        title="Image / Vision",
        description="The agent analyzes images sent as URL content blocks next to the question.",
        run=run,
    )
