"""Tests for the console use cases and menu."""

import io
from datetime import UTC, datetime

import pytest
from rich.console import Console

from agent_harness.cli import HarnessMenu
from agent_harness.config import HarnessConfig
from agent_harness.exceptions import AgentServiceError
from agent_harness.models.agents import RunStatus, ToolCall
from agent_harness.models.turns import FALLBACK_RESPONSE_TEXT
from agent_harness.services.cleanup import agent_scope
from agent_harness.services.history import ConversationHistory
from agent_harness.services.turns import TurnExecutor
from agent_harness.use_cases import UseCaseContext, all_use_cases, get_use_case, memory
from agent_harness.use_cases.events import EVENTS, event_prompt
from agent_harness.use_cases.orchestration import handoff_prompt
from agent_harness.use_cases.structured_output import parse_structured_reply


@pytest.fixture
def console():
    return Console(file=io.StringIO(), width=120)


@pytest.fixture
def config(tmp_path):
    return HarnessConfig(backend="anthropic", retry_base_delay=0.0, history_file=str(tmp_path / "history.json"))


@pytest.fixture
def context(fake_service, registry, clock, console, config):
    executor = TurnExecutor(fake_service, registry, clock=clock.time, sleep=clock.sleep)
    return UseCaseContext(service=fake_service, executor=executor, config=config, console=console)


def assert_everything_released(service) -> None:
    assert service.agents == {}
    assert service.messages == {}
    assert service.files == set()
    assert service.vector_stores == set()


class TestUseCaseCatalog:
    """Tests for the use case list."""

    def test_numbers_and_keys_are_unique(self):
        use_cases = all_use_cases()

        assert [use_case.number for use_case in use_cases] == list(range(1, 15))
        assert len({use_case.key for use_case in use_cases}) == 14

    def test_lookup_by_key_or_number(self):
        assert get_use_case("functions").number == 3
        assert get_use_case("12").key == "resilience"
        assert get_use_case("nope") is None

    def test_chat_support(self):
        """Test that use cases needing documents or images are not chat-capable."""
        chat_keys = {use_case.key for use_case in all_use_cases() if use_case.chat_spec is not None}

        assert {"orchestration", "files", "vision", "events"}.isdisjoint(chat_keys)
        assert {"basic", "functions", "multi", "resilience"} <= chat_keys

    def test_chat_specs_declare_registered_functions(self, registry):
        for use_case in all_use_cases():
            if use_case.chat_spec is None:
                continue
            spec = use_case.chat_spec(registry)
            assert all(registry.has_tool(name) for name in spec.function_names)


class TestUseCaseRuns:
    """Tests that run every use case against the fake service."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("key", [use_case.key for use_case in all_use_cases() if use_case.key != "memory"])
    async def test_use_case_releases_everything(self, key, context, fake_service):
        """Test that each demo finishes and releases every resource it created."""
        await get_use_case(key).run(context)

        assert fake_service.calls_to("create_run") or fake_service.calls_to("stream_run")
        assert_everything_released(fake_service)

    @pytest.mark.asyncio
    async def test_function_calling_dispatches_tools(self, context, fake_service, console):
        fake_service.scripts.append(
            [[ToolCall(id="call_1", name="get_weather", arguments='{"city": "Seattle"}')], RunStatus.COMPLETED]
        )

        await get_use_case("functions").run(context)

        assert len(fake_service.submitted) == 1
        assert "[Cleanup complete]" in console.file.getvalue()

    @pytest.mark.asyncio
    async def test_events_release_each_conversation_right_away(self, context, fake_service):
        await get_use_case("events").run(context)

        lifecycle = ("create_conversation", "delete_conversation")
        operations = [name for name in fake_service.operations() if name in lifecycle]
        assert operations == ["create_conversation", "delete_conversation"] * len(EVENTS)

    @pytest.mark.asyncio
    async def test_orchestration_stops_when_research_fails(self, context, fake_service):
        fake_service.scripts.append([RunStatus.FAILED])

        await get_use_case("orchestration").run(context)

        assert len(fake_service.calls_to("create_run")) == 1
        assert_everything_released(fake_service)

    @pytest.mark.asyncio
    async def test_resilience_falls_back_when_turns_fail(self, context, fake_service, console):
        fake_service.default_script = [RunStatus.FAILED]

        await get_use_case("resilience").run(context)

        output = console.file.getvalue()
        assert FALLBACK_RESPONSE_TEXT in output
        assert "[All retries exhausted, returning fallback response]" in output
        assert_everything_released(fake_service)

    @pytest.mark.asyncio
    async def test_resilience_caps_tool_rounds(self, context, fake_service, console):
        call = ToolCall(
            id="call_1", name="get_database_record", arguments='{"recordId": "EMP-001", "table": "employees"}'
        )
        # The three scripted questions complete, the database turn keeps asking for tools
        fake_service.scripts.extend([[RunStatus.COMPLETED]] * 3 + [[[call]]])

        await get_use_case("resilience").run(context)

        assert len(fake_service.submitted) == 5
        assert "[Max tool call attempts reached, stopping]" in console.file.getvalue()

    @pytest.mark.asyncio
    async def test_resilience_reports_unrecoverable_agent_creation(self, context, fake_service, console):
        fake_service.failures["create_agent"] = 3

        await get_use_case("resilience").run(context)

        assert "[Unrecoverable error]" in console.file.getvalue()
        assert_everything_released(fake_service)

    @pytest.mark.asyncio
    async def test_streaming_prints_replies_as_they_arrive(self, context, fake_service, console):
        await get_use_case("streaming").run(context)

        assert len(fake_service.calls_to("stream_run")) == 3
        assert console.file.getvalue().count("[StreamingStoryteller]: Hello from the agent") == 3

    @pytest.mark.asyncio
    async def test_streaming_reports_failed_runs(self, context, fake_service, console):
        fake_service.stream_error = "Model overloaded"

        await get_use_case("streaming").run(context)

        assert console.file.getvalue().count("[Stream error, run failed]: Model overloaded") == 3
        assert_everything_released(fake_service)

    @pytest.mark.asyncio
    async def test_memory_saves_and_keeps_the_conversation(self, context, fake_service, config):
        await get_use_case("memory").run(context)

        (saved,) = ConversationHistory(config.history_file).load()
        assert saved.topic == memory.TOPIC
        assert list(fake_service.messages) == [saved.conversation_id]
        assert fake_service.agents == {}
        assert len(fake_service.calls_to("create_run")) == 2

    @pytest.mark.asyncio
    async def test_memory_resumes_the_saved_conversation(self, context, fake_service, config, console):
        await get_use_case("memory").run(context)
        fake_service.calls.clear()

        await get_use_case("memory").run(context)

        (saved,) = ConversationHistory(config.history_file).load()
        assert "create_conversation" not in fake_service.operations()
        assert {args[0] for args in fake_service.calls_to("append_message")} == {saved.conversation_id}
        assert f"Resuming conversation: {memory.TOPIC}" in console.file.getvalue()

    @pytest.mark.asyncio
    async def test_memory_forgets_a_vanished_conversation(self, context, fake_service, config, console):
        history = ConversationHistory(config.history_file)
        history.save("conv_gone", "Old topic")
        fake_service.failures["list_messages"] = 1

        await get_use_case("memory").run(context)

        (saved,) = history.load()
        assert saved.conversation_id != "conv_gone"
        assert "Could not resume 'Old topic'" in console.file.getvalue()

    @pytest.mark.asyncio
    async def test_memory_releases_an_unsaved_conversation_on_error(self, context, fake_service, config):
        fake_service.failures["create_run"] = 1

        with pytest.raises(AgentServiceError):
            await get_use_case("memory").run(context)

        assert_everything_released(fake_service)
        assert ConversationHistory(config.history_file).load() == []

    @pytest.mark.asyncio
    async def test_memory_new_command_releases_the_unsaved_conversation(self, context, fake_service, config):
        async with agent_scope(fake_service, memory.build_spec(context.registry)) as scope:
            session = memory.MemorySession(context, scope, ConversationHistory(config.history_file))
            await session.start_new()
            first = session.conversation_id

            await session.handle("new")

            assert session.conversation_id != first
            assert first not in fake_service.messages


class TestHarnessMenu:
    """Tests for the console menu."""

    @pytest.mark.asyncio
    async def test_run_use_case_reports_errors(self, fake_service, config, console):
        """Test that a failing use case is reported and the menu keeps going."""
        fake_service.failures["create_agent"] = 1
        menu = HarnessMenu(fake_service, config, console=console)

        finished = await menu.run_use_case(get_use_case("basic"))

        assert finished is False
        assert "[Error in Basic Conversation]" in console.file.getvalue()

    @pytest.mark.asyncio
    async def test_run_use_case_success(self, fake_service, config, console):
        menu = HarnessMenu(fake_service, config, console=console)
        menu.context.executor.sleep = _no_sleep

        assert await menu.run_use_case(get_use_case("basic")) is True


async def _no_sleep(seconds: float) -> None:
    return None


class TestPromptHelpers:
    """Tests for prompt builders and reply parsing."""

    def test_event_prompt_envelope(self):
        prompt = event_prompt(EVENTS[0], datetime(2026, 1, 2, 3, 4, 5, tzinfo=UTC))

        assert prompt.startswith("[INCOMING EVENT]\nEvent ID: EVT-001\n")
        assert "Timestamp: 2026-01-02 03:04:05 UTC" in prompt
        assert prompt.endswith("Please classify, summarize, and decide on an action for this event.")

    def test_handoff_prompt_includes_research(self):
        prompt = handoff_prompt("Agents", "- point one")

        assert '"Agents"' in prompt
        assert "---\n- point one\n---" in prompt

    @pytest.mark.parametrize(
        "text",
        [
            '{"sentiment": "positive"}',
            '```json\n{"sentiment": "positive"}\n```',
            '  {"sentiment": "positive"}  ',
        ],
    )
    def test_parse_structured_reply(self, text):
        assert parse_structured_reply(text) == {"sentiment": "positive"}

    @pytest.mark.parametrize("text", ["not json", "[1, 2]", ""])
    def test_parse_structured_reply_rejects_non_objects(self, text):
        assert parse_structured_reply(text) is None
