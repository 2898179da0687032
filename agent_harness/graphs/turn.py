"""Run-polling state machine for one conversational turn."""

from langgraph.graph import END, StateGraph

from agent_harness.graphs.edges import route_poll_output, route_tool_output
from agent_harness.graphs.nodes import TurnNodes
from agent_harness.graphs.state import TurnState
from agent_harness.utils.logging import get_logger

logger = get_logger(__name__)


def create_turn_graph(nodes: TurnNodes):
    """Create the turn execution graph.

    The graph drives a run from submission to a terminal state:
    - submit: create the conversation, append the message and start the run
    - poll: wait and refresh the run status (loops on itself)
    - tools: dispatch pending calls and submit their outputs
    - respond / fail: record how the turn ended

    Args:
        nodes: Node implementations bound to a service, registry and policy

    Returns:
        Compiled LangGraph workflow
    """
    logger.debug("Creating turn graph")

    workflow = StateGraph(TurnState)

    workflow.add_node("submit", nodes.submit_node)
    workflow.add_node("poll", nodes.poll_node)
    workflow.add_node("tools", nodes.tools_node)
    workflow.add_node("respond", nodes.respond_node)
    workflow.add_node("fail", nodes.fail_node)

    workflow.set_entry_point("submit")
    workflow.add_edge("submit", "poll")

    workflow.add_conditional_edges(
        "poll",
        route_poll_output,
        {
            "poll": "poll",
            "tools": "tools",
            "respond": "respond",
            "fail": "fail",
        },
    )

    workflow.add_conditional_edges(
        "tools",
        route_tool_output,
        {
            "poll": "poll",
            "fail": "fail",
        },
    )

    workflow.add_edge("respond", END)
    workflow.add_edge("fail", END)

    return workflow.compile()
