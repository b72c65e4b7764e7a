"""Shared value types for the stateful retry package."""

from stateful_retry.models.enums import RetryDecision

__all__ = ["RetryDecision"]
