"""Registry that dispatches tool calls to local handlers."""

import json
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import BaseModel, ValidationError

from agent_harness.models.agents import FunctionTool, ToolCall, ToolOutput
from agent_harness.tools.base import ToolDefinition
from agent_harness.tools.calculator import create_calculator_tool
from agent_harness.tools.database import create_database_record_tool
from agent_harness.tools.knowledge_base import create_knowledge_base_tool
from agent_harness.tools.stocks import create_stock_price_tool
from agent_harness.tools.weather import create_weather_tool
from agent_harness.utils.logging import get_logger

logger = get_logger(__name__)

ToolPayload = dict[str, Any]


class ToolDispatchRegistry:
    """Maps function names to local handlers.

    `dispatch` is total: unknown names, malformed arguments and handler errors all come
    back as error payloads so a paused run can always be resumed.
    """

    def __init__(self, tools: Iterable[ToolDefinition] | None = None):
        """Initialize the registry.

        Args:
            tools: Tools to register, defaults to the full simulated tool set
        """
        self._tools: dict[str, ToolDefinition] = {}
        for tool in default_tools() if tools is None else tools:
            self.register_tool(tool)

    def register_tool(self, tool: ToolDefinition) -> None:
        """Register a tool, replacing any tool with the same name."""
        self._tools[tool.name] = tool

    def get_tool_names(self) -> list[str]:
        """Get list of all registered tool names."""
        return list(self._tools.keys())

    def has_tool(self, name: str) -> bool:
        """Check if a tool is registered."""
        return name in self._tools

    def function_tools(self, names: Iterable[str] | None = None) -> list[FunctionTool]:
        """Declarations for the named tools (all tools when names is None).

        Raises:
            KeyError: If a requested tool is not registered
        """
        selected = self._tools.keys() if names is None else names
        return [self._tools[name].as_function_tool() for name in selected]

    def dispatch(self, name: str, arguments: str | Mapping[str, Any] | None) -> ToolPayload:
        """Execute a tool call and return its result payload. Never raises."""
        logger.info(f"Tool call: {name}({arguments})")

        try:
            tool = self._tools.get(name)
            if tool is None:
                logger.error(f"Unknown tool requested: {name}")
                return {"error": f"Unknown function: {name}"}

            try:
                raw_input = _parse_arguments(arguments)
                params = tool.parse_input(raw_input)
            except (ValueError, TypeError) as e:
                # ValidationError is a ValueError subclass
                details = _describe_validation_error(e) if isinstance(e, ValidationError) else str(e)
                logger.error(f"Tool {name} received invalid arguments: {details}")
                return {"error": "Invalid argument format", "details": details}

            result = tool.handler(params)
            payload = _to_payload(result)
            logger.debug(f"Tool {name} succeeded: {str(payload)[:100]}")
            return payload

        except Exception as e:
            logger.error(f"Tool {name} failed: {e}", exc_info=True)
            return {"error": "Tool execution failed", "details": str(e) or type(e).__name__}

    def dispatch_call(self, call: ToolCall) -> ToolOutput:
        """Execute a tool call and wrap the serialized payload as a tool output."""
        payload = self.dispatch(call.name, call.arguments)
        try:
            output = json.dumps(payload, default=str)
        except (TypeError, ValueError) as e:
            logger.error(f"Tool {call.name} returned an unserializable payload: {e}")
            output = json.dumps({"error": "Tool execution failed", "details": "Result is not serializable"})
        return ToolOutput(tool_call_id=call.id, output=output)


def _parse_arguments(arguments: str | Mapping[str, Any] | None) -> dict[str, Any]:
    if arguments is None or arguments == "":
        return {}
    if isinstance(arguments, Mapping):
        return dict(arguments)
    if not isinstance(arguments, str):
        raise TypeError(f"Arguments must be a JSON object, got {type(arguments).__name__}")

    parsed = json.loads(arguments)
    if not isinstance(parsed, dict):
        raise ValueError(f"Arguments must be a JSON object, got {type(parsed).__name__}")
    return parsed


def _describe_validation_error(error: ValidationError) -> str:
    problems = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"]) or "arguments"
        problems.append(f"{location}: {item['msg']}")
    return "; ".join(problems)


def _to_payload(result: Any) -> ToolPayload:
    if isinstance(result, BaseModel):
        return result.model_dump(mode="json", by_alias=True)
    if isinstance(result, Mapping):
        return dict(result)
    return {"result": result}


def default_tools() -> list[ToolDefinition]:
    """The full set of simulated tools."""
    return [
        create_weather_tool(),
        create_stock_price_tool(),
        create_calculator_tool(),
        create_knowledge_base_tool(),
        create_database_record_tool(),
    ]
