"""Exception types raised by the agent harness."""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from agent_harness.models.turns import TurnResult


class HarnessError(Exception):
    """Base class for all harness errors."""


class ConfigurationError(HarnessError):
    """Raised when required settings are missing or invalid."""


class AgentServiceError(HarnessError):
    """A call to the remote agent service failed."""

    def __init__(self, message: str, operation: str | None = None):
        super().__init__(message)
        self.operation = operation


class ProtocolError(AgentServiceError):
    """The service returned something the run state machine does not understand."""


class TurnFailedError(HarnessError):
    """A conversation turn ended without a response.

    Only raised inside the resilient turn wrapper so the failure counts as an attempt.
    """

    def __init__(self, result: "TurnResult"):
        super().__init__(result.error or f"Turn ended with outcome {result.outcome}")
        self.result = result
