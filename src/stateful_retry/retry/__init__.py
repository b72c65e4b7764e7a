"""
Stateful retry engine.

This package retries a failing unit of work across separate invocations:
each call makes one attempt, and the failure history is remembered per item
key until the item succeeds or its retry budget runs out.

Main Components:
    - StatefulRetryExecutor: Runs one attempt and applies the retry protocol
    - RetryPolicy: Protocol deciding CONTINUE/EXHAUSTED after a failure
    - BackoffPolicy: Protocol computing the advisory delay before redelivery
    - LRURetryContextCache: Bounded, thread-safe key to RetryContext store
    - RetryState: Key and refresh flag for one invocation

Usage:
    >>> from stateful_retry.retry import StatefulRetryExecutor, FixedAttemptsRetryPolicy
    >>> executor = StatefulRetryExecutor(retry_policy=FixedAttemptsRetryPolicy(3))
    >>> executor.execute("order-17", lambda: process("order-17"), recoverer=park)
"""

from stateful_retry.retry.backoff import (
    BackoffContext,
    BackoffPolicy,
    ExponentialBackoffPolicy,
    ExponentialRandomBackoffPolicy,
    FixedBackoffPolicy,
    NoBackoffPolicy,
    apply_jitter,
)
from stateful_retry.retry.cache import LRURetryContextCache, RetryContextCache
from stateful_retry.retry.context import RetryContext
from stateful_retry.retry.exceptions import RetryConfigurationError, StatefulRetryError
from stateful_retry.retry.executor import StatefulRetryExecutor, stateful_retry
from stateful_retry.retry.policies import (
    AlwaysRetryPolicy,
    ClassifierRetryPolicy,
    CompositeRetryPolicy,
    FixedAttemptsRetryPolicy,
    NeverRetryPolicy,
    RetryPolicy,
    TimeoutRetryPolicy,
)
from stateful_retry.retry.state import RetryState, content_hash_key

__all__ = [
    "StatefulRetryExecutor",
    "stateful_retry",
    "RetryState",
    "content_hash_key",
    "RetryContext",
    "RetryContextCache",
    "LRURetryContextCache",
    "RetryPolicy",
    "NeverRetryPolicy",
    "AlwaysRetryPolicy",
    "FixedAttemptsRetryPolicy",
    "ClassifierRetryPolicy",
    "TimeoutRetryPolicy",
    "CompositeRetryPolicy",
    "BackoffPolicy",
    "BackoffContext",
    "NoBackoffPolicy",
    "FixedBackoffPolicy",
    "ExponentialBackoffPolicy",
    "ExponentialRandomBackoffPolicy",
    "apply_jitter",
    "StatefulRetryError",
    "RetryConfigurationError",
]
