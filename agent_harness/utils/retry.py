"""Retry with exponential backoff for agent service operations."""

import asyncio
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import TypeVar

from agent_harness.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

RetryListener = Callable[[int, int, BaseException, float], None]


class OnExhausted(StrEnum):
    """What to do once every attempt has failed."""

    RAISE = "raise"
    FALLBACK = "fallback"


@dataclass
class RetryPolicy:
    """Bounded retry configuration.

    The delay before attempt n (n >= 2) is base_delay * 2 ** (n - 2), plus up to
    `jitter` seconds of random noise.
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    jitter: float = 0.0
    on_exhausted: OnExhausted = OnExhausted.RAISE

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay < 0:
            raise ValueError("base_delay cannot be negative")

    def delay_before(self, attempt: int) -> float:
        """Seconds to wait before the given attempt number (1-based)."""
        if attempt < 2:
            return 0.0
        delay = self.base_delay * (2 ** (attempt - 2))
        if self.jitter:
            delay += random.uniform(0, self.jitter)
        return delay


async def call_with_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    policy: RetryPolicy,
    operation_name: str,
    fallback: Callable[[BaseException], T] | None = None,
    on_retry: RetryListener | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Run an async operation with exponential backoff.

    Args:
        operation: Zero-argument coroutine factory, called once per attempt
        policy: Attempt budget, delays and exhaustion behaviour
        operation_name: Human readable name used in log lines
        fallback: Builds the return value when the policy says FALLBACK
        on_retry: Called with (attempt, max_attempts, error, delay) before each wait
        sleep: Awaitable sleep, injectable for tests

    Returns:
        The operation's result, or the fallback value after exhaustion

    Raises:
        Exception: The last error, when the policy says RAISE
    """
    if policy.on_exhausted == OnExhausted.FALLBACK and fallback is None:
        raise ValueError("A fallback factory is required for the FALLBACK policy")

    for attempt in range(1, policy.max_attempts):
        try:
            return await operation()
        except Exception as e:
            delay = policy.delay_before(attempt + 1)
            logger.warning(
                f"[Retry {attempt}/{policy.max_attempts}] {operation_name} failed: {e}. Waiting {delay:.2f}s"
            )
            if on_retry:
                on_retry(attempt, policy.max_attempts, e, delay)
            await sleep(delay)

    # Last attempt
    try:
        return await operation()
    except Exception as e:
        logger.error(f"{operation_name} failed after {policy.max_attempts} attempts: {e}")
        if policy.on_exhausted == OnExhausted.FALLBACK and fallback is not None:
            return fallback(e)
        raise
