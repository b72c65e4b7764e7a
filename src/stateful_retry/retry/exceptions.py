"""
Stateful retry exceptions.

Failures raised by the wrapped operation are never wrapped: the executor
re-raises the original exception object so callers can log, redeliver or
alert on it. The classes here only cover problems with the retry setup
itself, which are reported before any attempt is made.
"""

from typing import Any


class StatefulRetryError(Exception):
    """
    Base exception for all stateful retry errors.

    Attributes:
        message: Human-readable error description
        details: Structured error data for logging
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class RetryConfigurationError(StatefulRetryError, ValueError):
    """
    Raised when the retry setup is unusable.

    Examples:
    - Stateful retry applied to a call without any key-bearing argument
    - Unhashable item key
    - Invalid backoff parameters (multiplier < 1, max < initial interval)
    - Non-positive cache capacity or attempt budget

    Subclasses ValueError so generic argument validation handlers catch it.
    """
    pass
