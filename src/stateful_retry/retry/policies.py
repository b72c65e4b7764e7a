"""
Retry policies for stateful retry.

A retry policy looks at an item's context after a failed attempt and decides
whether the item may be tried again (CONTINUE) or has used up its budget
(EXHAUSTED). Policies hold configuration only; all per-item progress lives in
the RetryContext, so one policy instance serves every key.

Policies:
    - NeverRetryPolicy: exhausted on the first failure (executor default)
    - AlwaysRetryPolicy: never exhausted
    - FixedAttemptsRetryPolicy: up to `max_attempts` failed attempts
    - ClassifierRetryPolicy: fixed attempts, but only for listed exception types
    - TimeoutRetryPolicy: retry until the sequence is older than `timeout_ms`
    - CompositeRetryPolicy: combine several policies
"""

from typing import Iterable, Protocol

from stateful_retry.models.enums import RetryDecision
from stateful_retry.retry.context import RetryContext
from stateful_retry.retry.exceptions import RetryConfigurationError


class RetryPolicy(Protocol):
    """
    Protocol for retry policies.

    `should_retry` is called once per failed attempt, after the context's
    attempt_count and last_failure have been updated.
    """

    def should_retry(self, context: RetryContext) -> RetryDecision:
        ...


class NeverRetryPolicy:
    """Give up after the first failure."""

    def should_retry(self, context: RetryContext) -> RetryDecision:
        return RetryDecision.EXHAUSTED


class AlwaysRetryPolicy:
    """Keep retrying until the caller stops redelivering."""

    def should_retry(self, context: RetryContext) -> RetryDecision:
        return RetryDecision.CONTINUE


class FixedAttemptsRetryPolicy:
    """
    Allow a fixed number of attempts per item.

    With max_attempts=3 the first two failures return CONTINUE and the third
    returns EXHAUSTED.
    """

    def __init__(self, max_attempts: int = 3):
        if max_attempts < 1:
            raise RetryConfigurationError(
                "max_attempts must be >= 1", {"max_attempts": max_attempts}
            )
        self.max_attempts = max_attempts

    def should_retry(self, context: RetryContext) -> RetryDecision:
        if context.attempt_count < self.max_attempts:
            return RetryDecision.CONTINUE
        return RetryDecision.EXHAUSTED


class ClassifierRetryPolicy:
    """
    Retry only designated failure kinds.

    A failure that is not an instance of one of `retryable` exhausts the item
    immediately, whatever its attempt count. Retryable failures are bounded by
    `max_attempts` like FixedAttemptsRetryPolicy.
    """

    def __init__(
        self,
        retryable: Iterable[type[BaseException]],
        max_attempts: int = 3,
    ):
        self.retryable = tuple(retryable)
        if not self.retryable:
            raise RetryConfigurationError("retryable must name at least one exception type")
        self._attempts = FixedAttemptsRetryPolicy(max_attempts)
        self.max_attempts = max_attempts

    def is_retryable(self, error: BaseException | None) -> bool:
        return error is not None and isinstance(error, self.retryable)

    def should_retry(self, context: RetryContext) -> RetryDecision:
        if not self.is_retryable(context.last_failure):
            return RetryDecision.EXHAUSTED
        return self._attempts.should_retry(context)


class TimeoutRetryPolicy:
    """Retry while the attempt sequence is younger than `timeout_ms`."""

    def __init__(self, timeout_ms: int = 60000):
        if timeout_ms < 1:
            raise RetryConfigurationError("timeout_ms must be >= 1", {"timeout_ms": timeout_ms})
        self.timeout_ms = timeout_ms

    def should_retry(self, context: RetryContext) -> RetryDecision:
        if context.elapsed_ms < self.timeout_ms:
            return RetryDecision.CONTINUE
        return RetryDecision.EXHAUSTED


class CompositeRetryPolicy:
    """
    Combine several policies into one decision.

    Pessimistic (default): CONTINUE only if every policy says CONTINUE.
    Optimistic: CONTINUE if any policy says CONTINUE.
    """

    def __init__(self, policies: Iterable[RetryPolicy], optimistic: bool = False):
        self.policies = list(policies)
        if not self.policies:
            raise RetryConfigurationError("CompositeRetryPolicy needs at least one policy")
        self.optimistic = optimistic

    def should_retry(self, context: RetryContext) -> RetryDecision:
        decisions = [policy.should_retry(context) for policy in self.policies]
        combine = any if self.optimistic else all
        if combine(decision is RetryDecision.CONTINUE for decision in decisions):
            return RetryDecision.CONTINUE
        return RetryDecision.EXHAUSTED
