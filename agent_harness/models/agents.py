"""Agent service data models (backend-agnostic)."""

from datetime import UTC, datetime
from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from agent_harness.exceptions import ProtocolError


class RunStatus(StrEnum):
    """Lifecycle states of a run."""

    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    REQUIRES_ACTION = "requires_action"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        """Whether the run can no longer change state."""
        return self in TERMINAL_STATUSES

    @classmethod
    def parse(cls, raw: str) -> "RunStatus":
        """Parse a status string from the service.

        Raises:
            ProtocolError: If the status is not part of the run state machine
        """
        try:
            return cls(str(raw).lower())
        except ValueError as e:
            raise ProtocolError(f"Unrecognized run status: {raw!r}") from e


TERMINAL_STATUSES = frozenset({RunStatus.COMPLETED, RunStatus.FAILED, RunStatus.CANCELLED})

MessageRole = Literal["user", "agent"]


# Message content variants
class TextContent(BaseModel):
    """Plain text content block."""

    type: Literal["text"] = "text"
    text: str


class ImageUrlContent(BaseModel):
    """Image referenced by URL."""

    type: Literal["image_url"] = "image_url"
    url: str
    detail: Literal["auto", "low", "high"] = "auto"


MessageContent = Annotated[TextContent | ImageUrlContent, Field(discriminator="type")]


class Message(BaseModel):
    """A message held by the service in a conversation."""

    id: str
    conversation_id: str
    role: MessageRole
    content: list[MessageContent]
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def text(self) -> str:
        """Concatenated text of all text blocks."""
        return "\n".join(block.text for block in self.content if isinstance(block, TextContent))


def as_content(message: str | list[MessageContent]) -> list[MessageContent]:
    """Normalize a user message into content blocks."""
    if isinstance(message, str):
        return [TextContent(text=message)]
    return list(message)


class ToolCall(BaseModel):
    """A function call the service wants the client to execute."""

    id: str
    name: str
    arguments: str = "{}"


class ToolOutput(BaseModel):
    """Result of a tool call, submitted back to resume the run."""

    tool_call_id: str
    output: str


class Run(BaseModel):
    """Snapshot of a run as last reported by the service."""

    id: str
    conversation_id: str
    status: RunStatus
    required_tool_calls: list[ToolCall] = Field(default_factory=list)
    last_error: str | None = None


# Streamed run events
class TextDelta(BaseModel):
    """A piece of the agent's reply as it is generated."""

    type: Literal["text_delta"] = "text_delta"
    text: str


class RunFinished(BaseModel):
    """Last event of a streamed run."""

    type: Literal["run_finished"] = "run_finished"
    run_id: str
    status: RunStatus
    error: str | None = None


RunStreamEvent = Annotated[TextDelta | RunFinished, Field(discriminator="type")]


# Tool declarations handed to the service at agent-configuration time
class FunctionTool(BaseModel):
    """A locally executed function exposed to the agent."""

    type: Literal["function"] = "function"
    name: str
    description: str
    parameters: dict[str, Any]


class CodeInterpreterTool(BaseModel):
    """Hosted code interpreter."""

    type: Literal["code_interpreter"] = "code_interpreter"


class FileSearchTool(BaseModel):
    """Hosted file search over vector stores."""

    type: Literal["file_search"] = "file_search"


ToolSpec = Annotated[FunctionTool | CodeInterpreterTool | FileSearchTool, Field(discriminator="type")]


class ToolResources(BaseModel):
    """Resources attached to hosted tools."""

    vector_store_ids: list[str] = Field(default_factory=list)


class ResponseFormat(BaseModel):
    """JSON schema the agent must follow for its replies."""

    name: str
    schema_: dict[str, Any] = Field(alias="schema")
    strict: bool = True
    description: str | None = None

    model_config = ConfigDict(populate_by_name=True)


class AgentSpec(BaseModel):
    """Everything needed to create an agent configuration."""

    name: str
    instructions: str
    model: str | None = None
    tools: list[ToolSpec] = Field(default_factory=list)
    tool_resources: ToolResources | None = None
    response_format: ResponseFormat | None = None

    @property
    def function_names(self) -> list[str]:
        """Names of the locally executed functions."""
        return [tool.name for tool in self.tools if isinstance(tool, FunctionTool)]


class AgentConfig(BaseModel):
    """Handle of an agent configuration created on the service."""

    id: str
    name: str
    model: str
