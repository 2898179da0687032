"""Tests for retry with exponential backoff."""

import pytest

from agent_harness.exceptions import AgentServiceError
from agent_harness.utils.retry import OnExhausted, RetryPolicy, call_with_retry


class FlakyOperation:
    """Fails a fixed number of times, then returns a value."""

    def __init__(self, failures: int, value: str = "ok"):
        self.failures = failures
        self.value = value
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        if self.calls <= self.failures:
            raise AgentServiceError(f"transient failure {self.calls}")
        return self.value


class TestRetryPolicy:
    """Tests for the backoff schedule."""

    def test_delays_double_from_base(self):
        """Test the exponential delay schedule."""
        policy = RetryPolicy(max_attempts=4, base_delay=1.0)

        assert policy.delay_before(1) == 0.0
        assert policy.delay_before(2) == 1.0
        assert policy.delay_before(3) == 2.0
        assert policy.delay_before(4) == 4.0

    def test_jitter_adds_bounded_noise(self):
        """Test that jitter never exceeds its bound."""
        policy = RetryPolicy(base_delay=1.0, jitter=0.5)

        for _ in range(20):
            assert 2.0 <= policy.delay_before(3) <= 2.5

    def test_rejects_zero_attempts(self):
        """Test that at least one attempt is required."""
        with pytest.raises(ValueError, match="max_attempts"):
            RetryPolicy(max_attempts=0)

    def test_rejects_negative_delay(self):
        """Test that the base delay cannot be negative."""
        with pytest.raises(ValueError, match="base_delay"):
            RetryPolicy(base_delay=-1.0)


class TestCallWithRetry:
    """Tests for running an operation under a retry policy."""

    @pytest.fixture
    def sleeps(self):
        return []

    @pytest.fixture
    def sleep(self, sleeps):
        async def record(seconds: float) -> None:
            sleeps.append(seconds)

        return record

    @pytest.mark.asyncio
    async def test_success_needs_no_wait(self, sleep, sleeps):
        """Test that a first-try success does not sleep."""
        operation = FlakyOperation(failures=0)

        result = await call_with_retry(operation, policy=RetryPolicy(), operation_name="op", sleep=sleep)

        assert result == "ok"
        assert operation.calls == 1
        assert sleeps == []

    @pytest.mark.asyncio
    async def test_recovers_after_transient_failures(self, sleep, sleeps):
        """Test that the operation is retried until it succeeds."""
        operation = FlakyOperation(failures=2)

        result = await call_with_retry(
            operation, policy=RetryPolicy(max_attempts=3, base_delay=1.0), operation_name="op", sleep=sleep
        )

        assert result == "ok"
        assert operation.calls == 3
        assert sleeps == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_raise_policy_reraises_last_error(self, sleep, sleeps):
        """Test that exhausted attempts re-raise under RAISE."""
        operation = FlakyOperation(failures=10)

        with pytest.raises(AgentServiceError, match="transient failure 3"):
            await call_with_retry(
                operation,
                policy=RetryPolicy(max_attempts=3, base_delay=1.0, on_exhausted=OnExhausted.RAISE),
                operation_name="op",
                sleep=sleep,
            )

        assert operation.calls == 3
        assert sleeps == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_fallback_policy_returns_fallback_value(self, sleep):
        """Test that exhausted attempts return the fallback under FALLBACK."""
        operation = FlakyOperation(failures=10)

        result = await call_with_retry(
            operation,
            policy=RetryPolicy(max_attempts=2, base_delay=1.0, on_exhausted=OnExhausted.FALLBACK),
            operation_name="op",
            fallback=lambda error: f"fallback after: {error}",
            sleep=sleep,
        )

        assert result == "fallback after: transient failure 2"
        assert operation.calls == 2

    @pytest.mark.asyncio
    async def test_fallback_policy_requires_factory(self, sleep):
        """Test that FALLBACK without a fallback factory is rejected."""
        with pytest.raises(ValueError, match="fallback factory"):
            await call_with_retry(
                FlakyOperation(failures=0),
                policy=RetryPolicy(on_exhausted=OnExhausted.FALLBACK),
                operation_name="op",
                sleep=sleep,
            )

    @pytest.mark.asyncio
    async def test_retry_listener_reports_each_wait(self, sleep):
        """Test that the listener sees attempt numbers and delays."""
        events = []

        await call_with_retry(
            FlakyOperation(failures=2),
            policy=RetryPolicy(max_attempts=3, base_delay=0.5),
            operation_name="op",
            on_retry=lambda attempt, total, error, delay: events.append((attempt, total, str(error), delay)),
            sleep=sleep,
        )

        assert events == [
            (1, 3, "transient failure 1", 0.5),
            (2, 3, "transient failure 2", 1.0),
        ]

    @pytest.mark.asyncio
    async def test_single_attempt_never_sleeps(self, sleep, sleeps):
        """Test that max_attempts=1 fails without waiting."""
        with pytest.raises(AgentServiceError):
            await call_with_retry(
                FlakyOperation(failures=1), policy=RetryPolicy(max_attempts=1), operation_name="op", sleep=sleep
            )

        assert sleeps == []

    @pytest.mark.asyncio
    async def test_last_failure_falls_back_without_waiting(self, sleep, sleeps):
        """Test that only failures before the last attempt are followed by a wait."""
        events = []
        operation = FlakyOperation(failures=5)

        result = await call_with_retry(
            operation,
            policy=RetryPolicy(max_attempts=2, base_delay=1.0, on_exhausted=OnExhausted.FALLBACK),
            operation_name="op",
            fallback=lambda error: f"fallback after: {error}",
            on_retry=lambda attempt, total, error, delay: events.append(attempt),
            sleep=sleep,
        )

        assert result == "fallback after: transient failure 2"
        assert operation.calls == 2
        assert events == [1]
        assert sleeps == [1.0]

    @pytest.mark.asyncio
    async def test_single_attempt_fallback(self, sleep, sleeps):
        operation = FlakyOperation(failures=1)

        result = await call_with_retry(
            operation,
            policy=RetryPolicy(max_attempts=1, on_exhausted=OnExhausted.FALLBACK),
            operation_name="op",
            fallback=lambda error: "fallback",
            sleep=sleep,
        )

        assert result == "fallback"
        assert operation.calls == 1
        assert sleeps == []
