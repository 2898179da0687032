"""Locally executed tools the agent service can call back into."""

from agent_harness.tools.registry import ToolDispatchRegistry, default_tools

__all__ = ["ToolDispatchRegistry", "default_tools"]
