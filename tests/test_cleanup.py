"""Tests for best-effort resource release and scoped agent lifetimes."""

import pytest

from agent_harness.exceptions import AgentServiceError
from agent_harness.models.agents import AgentSpec
from agent_harness.services.cleanup import (
    agent_scope,
    create_agent_with_retry,
    document_store,
    release_agent,
    release_conversation,
)
from agent_harness.utils.retry import RetryPolicy

SPEC = AgentSpec(name="TestAgent", instructions="Be helpful.")

DELETES = ("delete_conversation", "delete_agent", "delete_vector_store", "delete_file")


def release_calls(service) -> list[tuple[str, str]]:
    return [(name, args[0]) for name, args in service.calls if name in DELETES]


class TestReleaseFunctions:
    """Tests for the individual release helpers."""

    @pytest.mark.asyncio
    async def test_release_returns_true_on_success(self, fake_service):
        conversation_id = await fake_service.create_conversation()

        assert await release_conversation(fake_service, conversation_id) is True
        assert conversation_id not in fake_service.messages

    @pytest.mark.asyncio
    async def test_release_swallows_service_errors(self, fake_service):
        """Test that a failing delete is logged and reported, not raised."""
        fake_service.failures["delete_agent"] = 1

        assert await release_agent(fake_service, "agent_1") is False

    @pytest.mark.asyncio
    async def test_release_of_missing_id_is_a_no_op(self, fake_service):
        assert await release_conversation(fake_service, None) is False
        assert fake_service.calls == []


class TestAgentScope:
    """Tests for the agent scope context manager."""

    @pytest.mark.asyncio
    async def test_conversations_released_before_agent(self, fake_service):
        """Test that every conversation is deleted, then the agent."""
        async with agent_scope(fake_service, SPEC) as scope:
            first = await scope.new_conversation()
            second = await scope.new_conversation()

        assert release_calls(fake_service) == [
            ("delete_conversation", first),
            ("delete_conversation", second),
            ("delete_agent", scope.agent.id),
        ]
        assert scope.closed

    @pytest.mark.asyncio
    async def test_resources_released_when_block_raises(self, fake_service):
        """Test that the block's exception propagates after cleanup."""
        with pytest.raises(RuntimeError, match="boom"):
            async with agent_scope(fake_service, SPEC) as scope:
                await scope.new_conversation()
                raise RuntimeError("boom")

        assert [name for name, _ in release_calls(fake_service)] == ["delete_conversation", "delete_agent"]

    @pytest.mark.asyncio
    async def test_release_failure_does_not_stop_cleanup(self, fake_service):
        """Test that a failed conversation delete still deletes the agent."""
        fake_service.failures["delete_conversation"] = 1

        async with agent_scope(fake_service, SPEC) as scope:
            await scope.new_conversation()

        assert fake_service.agents == {}

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self, fake_service):
        """Test that closing early does not delete the agent twice."""
        async with agent_scope(fake_service, SPEC) as scope:
            await scope.close()

        assert len(fake_service.calls_to("delete_agent")) == 1

    @pytest.mark.asyncio
    async def test_adopted_and_released_conversations(self, fake_service):
        """Test conversations created elsewhere and released early."""
        async with agent_scope(fake_service, SPEC) as scope:
            external = await fake_service.create_conversation()
            scope.adopt_conversation(external)
            scope.adopt_conversation(external)
            early = await scope.new_conversation()
            await scope.release_conversation(early)

        deleted = [resource_id for name, resource_id in release_calls(fake_service) if name == "delete_conversation"]
        assert deleted == [early, external]

    @pytest.mark.asyncio
    async def test_kept_conversation_outlives_the_scope(self, fake_service):
        async with agent_scope(fake_service, SPEC) as scope:
            kept = await scope.new_conversation()
            dropped = await scope.new_conversation()
            scope.keep_conversation(kept)

            assert not scope.owns(kept)
            assert scope.owns(dropped)

        assert kept in fake_service.messages
        assert dropped not in fake_service.messages
        assert fake_service.agents == {}

    @pytest.mark.asyncio
    async def test_creation_failure_releases_nothing(self, fake_service):
        """Test that nothing is released when the agent was never created."""
        fake_service.failures["create_agent"] = 5

        with pytest.raises(AgentServiceError):
            async with agent_scope(fake_service, SPEC, retry=RetryPolicy(max_attempts=2, base_delay=0.0)):
                pass

        assert len(fake_service.calls_to("create_agent")) == 2
        assert release_calls(fake_service) == []


class TestCreateAgentWithRetry:
    """Tests for retried agent creation."""

    @pytest.mark.asyncio
    async def test_transient_failures_are_retried(self, fake_service):
        fake_service.failures["create_agent"] = 2
        retries = []

        agent = await create_agent_with_retry(
            fake_service,
            SPEC,
            RetryPolicy(max_attempts=3, base_delay=0.0),
            on_retry=lambda attempt, max_attempts, error, delay: retries.append(attempt),
        )

        assert agent.name == "TestAgent"
        assert retries == [1, 2]

    @pytest.mark.asyncio
    async def test_without_policy_fails_immediately(self, fake_service):
        fake_service.failures["create_agent"] = 1

        with pytest.raises(AgentServiceError):
            await create_agent_with_retry(fake_service, SPEC)


class TestDocumentStore:
    """Tests for uploaded documents indexed into a vector store."""

    @pytest.mark.asyncio
    async def test_vector_store_released_before_files(self, fake_service):
        documents = {"a.md": b"alpha", "b.md": b"beta"}

        async with document_store(fake_service, "Docs", documents) as (vector_store_id, file_ids):
            assert len(file_ids) == 2
            assert fake_service.calls_to("create_vector_store") == [("Docs", file_ids)]

        assert release_calls(fake_service) == [
            ("delete_vector_store", vector_store_id),
            ("delete_file", file_ids[0]),
            ("delete_file", file_ids[1]),
        ]
        assert fake_service.files == set()
        assert fake_service.vector_stores == set()

    @pytest.mark.asyncio
    async def test_uploaded_files_released_when_upload_fails(self, fake_service):
        """Test that a failed upload still deletes the files already uploaded."""
        documents = {"a.md": b"alpha", "b.md": b"beta"}

        original_upload = fake_service.upload_file

        async def fail_second(filename: str, data: bytes) -> str:
            if filename == "b.md":
                raise AgentServiceError("upload rejected")
            return await original_upload(filename, data)

        fake_service.upload_file = fail_second

        with pytest.raises(AgentServiceError, match="upload rejected"):
            async with document_store(fake_service, "Docs", documents):
                pass

        assert [name for name, _ in release_calls(fake_service)] == ["delete_file"]
        assert fake_service.files == set()

    @pytest.mark.asyncio
    async def test_full_release_order_with_agent(self, fake_service):
        """Test conversations, agent, vector store and files are released in that order."""
        async with document_store(fake_service, "Docs", {"a.md": b"alpha"}):
            async with agent_scope(fake_service, SPEC) as scope:
                await scope.new_conversation()

        assert [name for name, _ in release_calls(fake_service)] == [
            "delete_conversation",
            "delete_agent",
            "delete_vector_store",
            "delete_file",
        ]
