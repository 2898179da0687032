"""Base types and definitions for locally executed tools."""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel

from agent_harness.models.agents import FunctionTool

ToolResult = BaseModel | dict[str, Any]
ToolHandler = Callable[[Any], ToolResult]


@dataclass
class ToolDefinition:
    """Definition of a function the agent can ask the client to run."""

    name: str
    description: str
    input_schema_class: type[BaseModel]
    handler: ToolHandler

    def get_json_schema(self) -> dict[str, Any]:
        """Get JSON schema for this tool's input."""
        schema = self.input_schema_class.model_json_schema()
        schema.pop("title", None)
        return schema

    def parse_input(self, raw_input: dict[str, Any]) -> BaseModel:
        """Parse and validate tool input."""
        return self.input_schema_class.model_validate(raw_input)

    def as_function_tool(self) -> FunctionTool:
        """Declaration handed to the service at agent-configuration time."""
        return FunctionTool(name=self.name, description=self.description, parameters=self.get_json_schema())
