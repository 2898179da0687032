"""Console demos of the agent service, one module per use case."""

from agent_harness.use_cases.base import UseCase, UseCaseContext
from agent_harness.use_cases.basic import create_basic_use_case
from agent_harness.use_cases.code_interpreter import create_code_interpreter_use_case
from agent_harness.use_cases.events import create_events_use_case
from agent_harness.use_cases.file_search import create_file_search_use_case
from agent_harness.use_cases.function_calling import create_function_calling_use_case
from agent_harness.use_cases.guardrails import create_guardrails_use_case
from agent_harness.use_cases.knowledge_base import create_knowledge_base_use_case
from agent_harness.use_cases.memory import create_memory_use_case
from agent_harness.use_cases.multi_tool import create_multi_tool_use_case
from agent_harness.use_cases.orchestration import create_orchestration_use_case
from agent_harness.use_cases.resilience import create_resilience_use_case
from agent_harness.use_cases.streaming import create_streaming_use_case
from agent_harness.use_cases.structured_output import create_structured_output_use_case
from agent_harness.use_cases.vision import create_vision_use_case

__all__ = ["UseCase", "UseCaseContext", "all_use_cases", "get_use_case"]


def all_use_cases() -> list[UseCase]:
    """Every use case, in menu order."""
    return [
        create_basic_use_case(),
        create_code_interpreter_use_case(),
        create_function_calling_use_case(),
        create_knowledge_base_use_case(),
        create_multi_tool_use_case(),
        create_orchestration_use_case(),
        create_file_search_use_case(),
        create_vision_use_case(),
        create_guardrails_use_case(),
        create_events_use_case(),
        create_structured_output_use_case(),
        create_resilience_use_case(),
        create_streaming_use_case(),
        create_memory_use_case(),
    ]


def get_use_case(key: str) -> UseCase | None:
    """Look up a use case by key or menu number."""
    for use_case in all_use_cases():
        if key in (use_case.key, str(use_case.number)):
            return use_case
    return None
