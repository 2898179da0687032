"""Conversations saved between sessions and resumed later.

Only conversation ids are stored locally; the messages stay on the agent service.
The agent is deleted at the end of every session while a saved conversation is
kept so the next session can pick it up again.
"""

from collections.abc import Sequence

from agent_harness.exceptions import AgentServiceError
from agent_harness.models.agents import AgentSpec, Message
from agent_harness.services.cleanup import AgentScope, agent_scope
from agent_harness.services.history import ConversationHistory, SavedConversation
from agent_harness.tools.registry import ToolDispatchRegistry
from agent_harness.use_cases.base import UseCase, UseCaseContext, print_result, print_section, print_user
from agent_harness.utils.logging import get_logger

logger = get_logger(__name__)

RESUME_PREVIEW_MESSAGES = 6
HISTORY_MESSAGES = 20

TOPIC = "Japan trip planning"

INSTRUCTIONS = """\
You are MemoryAssistant, a helpful AI that maintains conversation context.
You remember everything discussed in the current thread.

When a user returns to a conversation:
1. Acknowledge that you remember the previous context.
2. Reference specific details from earlier in the conversation.
3. Build upon previous discussions naturally.

Be conversational and personable. Remember user preferences and details
they've shared."""

# Scripted input; "history" and "list" are commands, everything else is sent to the agent
NEW_SESSION = [
    "Hi! I'm Sam and I'm planning a two-week trip to Japan in April.",
    "I love food markets and hiking, but I'm not a fan of big crowds.",
    "history",
    "list",
]

RESUMED_SESSION = [
    "I'm back! Do you remember where I'm travelling and what I enjoy?",
    "Suggest a three-day itinerary that fits those preferences.",
    "history",
]


def build_spec(registry: ToolDispatchRegistry) -> AgentSpec:
    return AgentSpec(name="MemoryAssistant", instructions=INSTRUCTIONS)


def print_saved(ctx: UseCaseContext, saved: Sequence[SavedConversation]) -> None:
    if not saved:
        ctx.console.print("No saved conversations.", style="dim")
        return
    for item in saved:
        ctx.console.print(
            f"  - {item.conversation_id}: {item.topic} ({item.saved_at:%Y-%m-%d %H:%M})",
            style="yellow",
            markup=False,
        )


def print_history(ctx: UseCaseContext, messages: Sequence[Message], agent_name: str, limit: int) -> None:
    """Show the newest `limit` messages of a conversation, oldest first."""
    print_section(ctx.console, "Conversation history")
    if len(messages) > limit:
        ctx.console.print(f"  (showing last {limit} of {len(messages)} messages)", style="dim", markup=False)
    for message in messages[-limit:]:
        speaker = "You" if message.role == "user" else agent_name
        style = "cyan" if message.role == "user" else "green"
        ctx.console.print(f"[{speaker}]: {message.text}", style=style, markup=False, highlight=False)


class MemorySession:
    """One console session on a conversation that may be resumed later."""

    def __init__(self, ctx: UseCaseContext, scope: AgentScope, history: ConversationHistory):
        self.ctx = ctx
        self.scope = scope
        self.history = history
        self.conversation_id: str | None = None

    async def resume_latest(self) -> bool:
        """Continue the most recently saved conversation if the service still has it."""
        saved = self.history.load()
        if not saved:
            return False

        latest = saved[-1]
        try:
            messages = await self.ctx.service.list_messages(latest.conversation_id, order="asc")
        except AgentServiceError as e:
            logger.warning(f"Saved conversation {latest.conversation_id} is gone: {e}")
            self.ctx.console.print(f"Could not resume '{latest.topic}', forgetting it", style="red", markup=False)
            self.history.forget(latest.conversation_id)
            return False

        self.conversation_id = latest.conversation_id
        self.ctx.console.print(f"\nResuming conversation: {latest.topic}", style="green", markup=False)
        print_history(self.ctx, messages, self.scope.agent.name, RESUME_PREVIEW_MESSAGES)
        return True

    async def start_new(self) -> None:
        """Switch to a fresh conversation, releasing the current one unless it is saved."""
        if self.conversation_id is not None and self.scope.owns(self.conversation_id):
            await self.scope.release_conversation(self.conversation_id)
        self.conversation_id = await self.scope.new_conversation()
        self.ctx.console.print(f"\nStarted new conversation: {self.conversation_id}", style="yellow", markup=False)

    async def handle(self, line: str) -> None:
        command = line.strip().lower()
        if command == "history":
            messages = await self.ctx.service.list_messages(self.conversation_id, order="asc")
            print_history(self.ctx, messages, self.scope.agent.name, HISTORY_MESSAGES)
        elif command == "list":
            print_saved(self.ctx, self.history.load())
        elif command == "new":
            await self.start_new()
        else:
            print_user(self.ctx.console, line)
            result = await self.ctx.executor.execute_turn(self.scope.agent, line, self.conversation_id)
            print_result(self.ctx.console, result, speaker=self.scope.agent.name)

    def save(self, topic: str) -> None:
        """Record the conversation and keep it past the end of the session."""
        self.history.save(self.conversation_id, topic)
        self.scope.keep_conversation(self.conversation_id)
        self.ctx.console.print(f"\nConversation saved with topic: {topic}", style="yellow", markup=False)


async def run(ctx: UseCaseContext) -> None:
    history = ConversationHistory(ctx.config.history_file)

    async with agent_scope(ctx.service, build_spec(ctx.registry)) as scope:
        ctx.console.print(f"Agent created: {scope.agent.name} (ID: {scope.agent.id})", style="dim")
        saved = history.load()
        ctx.console.print(f"\nFound {len(saved)} saved conversation(s)", style="yellow")
        print_saved(ctx, saved)

        session = MemorySession(ctx, scope, history)
        if await session.resume_latest():
            script = RESUMED_SESSION
        else:
            await session.start_new()
            script = NEW_SESSION

        for line in script:
            await session.handle(line)
        session.save(TOPIC)

    ctx.console.print("\n[Agent deleted, conversation kept for future sessions]", style="dim", markup=False)


def create_memory_use_case() -> UseCase:
    return UseCase(
        number=14,
        key="memory",
        title="Conversation Memory & History",
        description="Conversations are saved between sessions and resumed with their recent history.",
        run=run,
        chat_spec=build_spec,
    )
