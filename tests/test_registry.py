"""Tests for dispatching tool calls to local handlers."""

import json

from pydantic import BaseModel

from agent_harness.models.agents import FunctionTool, ToolCall
from agent_harness.tools.base import ToolDefinition
from agent_harness.tools.registry import ToolDispatchRegistry


class EchoInput(BaseModel):
    text: str


def create_failing_tool() -> ToolDefinition:
    def explode(params: EchoInput) -> dict:
        raise RuntimeError("backend exploded")

    return ToolDefinition(name="explode", description="Always fails.", input_schema_class=EchoInput, handler=explode)


class TestToolDispatchRegistry:
    """Tests for registry lookup and declarations."""

    def test_default_tools_registered(self):
        """Test that every simulated tool is registered by default."""
        registry = ToolDispatchRegistry()

        assert set(registry.get_tool_names()) == {
            "get_weather",
            "get_stock_price",
            "calculate",
            "search_knowledge_base",
            "get_database_record",
        }
        assert registry.has_tool("calculate")
        assert not registry.has_tool("send_email")

    def test_function_tools_for_selected_names(self):
        """Test that declarations carry the JSON schema of the tool input."""
        registry = ToolDispatchRegistry()

        (tool,) = registry.function_tools(["get_weather"])

        assert isinstance(tool, FunctionTool)
        assert tool.name == "get_weather"
        assert tool.parameters["properties"]["city"]["type"] == "string"
        assert tool.parameters["required"] == ["city"]
        assert "title" not in tool.parameters

    def test_database_declaration_uses_camel_case_argument(self):
        """Test that the record id is declared under its wire name."""
        (tool,) = ToolDispatchRegistry().function_tools(["get_database_record"])

        assert set(tool.parameters["properties"]) == {"recordId", "table"}

    def test_register_replaces_existing_tool(self):
        registry = ToolDispatchRegistry(tools=[])
        registry.register_tool(create_failing_tool())

        assert registry.get_tool_names() == ["explode"]


class TestDispatch:
    """Tests for the total dispatch function."""

    def test_known_function_returns_payload(self):
        payload = ToolDispatchRegistry().dispatch("calculate", '{"expression": "(100*1.5)-50"}')

        assert payload == {"expression": "(100*1.5)-50", "result": "100"}

    def test_accepts_mapping_arguments(self):
        payload = ToolDispatchRegistry().dispatch("get_stock_price", {"symbol": "aapl"})

        assert payload["Symbol"] == "AAPL"
        assert payload["Price"] == 237.40

    def test_unknown_function(self):
        """Test that an unknown name yields an error payload."""
        payload = ToolDispatchRegistry().dispatch("send_email", "{}")

        assert payload == {"error": "Unknown function: send_email"}

    def test_malformed_json(self):
        """Test that unparseable arguments yield an invalid-argument payload."""
        payload = ToolDispatchRegistry().dispatch("get_weather", "{city: Seattle")

        assert payload["error"] == "Invalid argument format"
        assert payload["details"]

    def test_non_object_json(self):
        payload = ToolDispatchRegistry().dispatch("get_weather", '["Seattle"]')

        assert payload["error"] == "Invalid argument format"
        assert "JSON object" in payload["details"]

    def test_missing_required_argument(self):
        """Test that schema validation failures name the offending field."""
        payload = ToolDispatchRegistry().dispatch("get_weather", "{}")

        assert payload["error"] == "Invalid argument format"
        assert payload["details"].startswith("city:")

    def test_handler_exception_is_captured(self):
        """Test that a raising handler yields an execution-failed payload."""
        registry = ToolDispatchRegistry(tools=[create_failing_tool()])

        payload = registry.dispatch("explode", '{"text": "hi"}')

        assert payload == {"error": "Tool execution failed", "details": "backend exploded"}

    def test_empty_arguments_are_an_empty_object(self):
        payload = ToolDispatchRegistry().dispatch("get_weather", "")

        assert payload["error"] == "Invalid argument format"


class TestDispatchCall:
    """Tests for wrapping payloads as tool outputs."""

    def test_output_is_json_for_the_same_call_id(self):
        registry = ToolDispatchRegistry()

        output = registry.dispatch_call(
            ToolCall(id="call_42", name="search_knowledge_base", arguments='{"query": "refund"}')
        )

        assert output.tool_call_id == "call_42"
        payload = json.loads(output.output)
        assert payload["query"] == "refund"
        assert payload["results"][0]["topic"] == "refund policy"

    def test_error_payload_is_still_an_output(self):
        output = ToolDispatchRegistry().dispatch_call(ToolCall(id="call_1", name="nope"))

        assert json.loads(output.output) == {"error": "Unknown function: nope"}
