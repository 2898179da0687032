"""Harness configuration loaded from the environment."""

import os
from dataclasses import dataclass
from typing import Literal

from agent_harness.exceptions import ConfigurationError
from agent_harness.models.turns import TurnPolicy
from agent_harness.utils.retry import OnExhausted, RetryPolicy

Backend = Literal["foundry", "anthropic"]


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from e


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from e


@dataclass
class HarnessConfig:
    """Configuration for the agent backends, turn loop and retry policies."""

    backend: Backend = "foundry"
    project_endpoint: str | None = None
    model: str = "gpt-4o"
    anthropic_model: str = "claude-3-5-sonnet-20241022"

    # Turn loop
    poll_interval: float = 0.5
    turn_timeout: float = 60.0
    max_tool_rounds: int = 5

    # Retry policies
    agent_retry_attempts: int = 3
    turn_retry_attempts: int = 2
    retry_base_delay: float = 1.0

    # Saved conversations of the memory demo
    history_file: str = "conversation_history.json"

    @classmethod
    def from_env(cls) -> "HarnessConfig":
        """Build configuration from environment variables.

        Raises:
            ConfigurationError: If a value cannot be parsed
        """
        backend = os.getenv("AGENT_BACKEND", "foundry").lower()
        if backend not in ("foundry", "anthropic"):
            raise ConfigurationError(f"AGENT_BACKEND must be 'foundry' or 'anthropic', got {backend!r}")

        return cls(
            backend=backend,  # type: ignore[arg-type]
            project_endpoint=os.getenv("AZURE_AI_PROJECT_ENDPOINT") or None,
            model=os.getenv("AZURE_AI_MODEL_DEPLOYMENT", cls.model),
            anthropic_model=os.getenv("ANTHROPIC_MODEL", cls.anthropic_model),
            poll_interval=_env_float("AGENT_POLL_INTERVAL", cls.poll_interval),
            turn_timeout=_env_float("AGENT_TURN_TIMEOUT", cls.turn_timeout),
            max_tool_rounds=_env_int("AGENT_MAX_TOOL_ROUNDS", cls.max_tool_rounds),
            agent_retry_attempts=_env_int("AGENT_RETRY_ATTEMPTS", cls.agent_retry_attempts),
            turn_retry_attempts=_env_int("AGENT_TURN_RETRY_ATTEMPTS", cls.turn_retry_attempts),
            retry_base_delay=_env_float("AGENT_RETRY_BASE_DELAY", cls.retry_base_delay),
            history_file=os.getenv("AGENT_HISTORY_FILE") or cls.history_file,
        )

    @property
    def model_name(self) -> str:
        """Model identifier for the selected backend."""
        return self.anthropic_model if self.backend == "anthropic" else self.model

    def turn_policy(self) -> TurnPolicy:
        """Polling limits for resilient turns."""
        return TurnPolicy(
            poll_interval=self.poll_interval,
            timeout=self.turn_timeout,
            max_tool_rounds=self.max_tool_rounds,
        )

    def agent_retry_policy(self) -> RetryPolicy:
        """Retry policy for agent creation, which re-raises once exhausted."""
        return RetryPolicy(
            max_attempts=self.agent_retry_attempts,
            base_delay=self.retry_base_delay,
            on_exhausted=OnExhausted.RAISE,
        )

    def turn_retry_policy(self) -> RetryPolicy:
        """Retry policy for turns, which falls back to a canned reply once exhausted."""
        return RetryPolicy(
            max_attempts=self.turn_retry_attempts,
            base_delay=self.retry_base_delay,
            on_exhausted=OnExhausted.FALLBACK,
        )
