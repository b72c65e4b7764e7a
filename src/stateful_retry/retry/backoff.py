"""
Backoff policies for stateful retry.

A backoff policy turns an attempt sequence into advisory delays. The executor
never sleeps: the delay computed after a retryable failure is exposed to the
caller, which is expected to wait at least that long before re-invoking the
operation (e.g. by scheduling a broker redelivery).

Policies:
    - NoBackoffPolicy: no delay
    - FixedBackoffPolicy: constant delay
    - ExponentialBackoffPolicy: delay grows by `multiplier`, capped at `max_interval_ms`
    - ExponentialRandomBackoffPolicy: exponential delay spread by random jitter

Example (initial=50, multiplier=2.0, max=3000, five attempts):
    ExponentialBackoffPolicy       -> [50, 100, 200, 400, 800]
    ExponentialRandomBackoffPolicy -> each value within [base, base * 2]
"""

import random
import threading
from dataclasses import dataclass, field
from typing import Protocol

from stateful_retry.retry.exceptions import RetryConfigurationError


@dataclass
class BackoffContext:
    """
    Mutable interval state for one attempt sequence.

    `current_interval_ms` always lies in [initial_interval_ms, max_interval_ms].
    It is kept fractional so small intervals with small multipliers still grow;
    only the value handed out is truncated to whole milliseconds.
    Reads and advances go through ExponentialBackoffPolicy.advance, which holds
    `lock` so two callers never observe the same interval.
    """

    initial_interval_ms: int
    multiplier: float
    max_interval_ms: int
    current_interval_ms: float = 0.0
    rng: random.Random | None = field(default=None, repr=False, compare=False)
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not self.current_interval_ms:
            self.current_interval_ms = float(self.initial_interval_ms)


class BackoffPolicy(Protocol):
    """
    Protocol for backoff policies.

    `start` creates the per-sequence state (or None for stateless policies);
    `next_delay` returns the delay in milliseconds before the next attempt.
    """

    def start(self) -> BackoffContext | None:
        ...

    def next_delay(self, context: BackoffContext | None) -> int:
        ...


class NoBackoffPolicy:
    """Retry as soon as the caller likes."""

    def start(self) -> BackoffContext | None:
        return None

    def next_delay(self, context: BackoffContext | None) -> int:
        return 0


class FixedBackoffPolicy:
    """Same delay before every attempt."""

    def __init__(self, interval_ms: int = 1000):
        if interval_ms < 0:
            raise RetryConfigurationError(
                "interval_ms must be >= 0", {"interval_ms": interval_ms}
            )
        self.interval_ms = interval_ms

    def start(self) -> BackoffContext | None:
        return None

    def next_delay(self, context: BackoffContext | None) -> int:
        return self.interval_ms


class ExponentialBackoffPolicy:
    """
    Exponential backoff capped at a maximum interval.

    Each call returns the current interval and then multiplies it by
    `multiplier`, never exceeding `max_interval_ms`. A multiplier of 1.0
    gives a constant interval.
    """

    def __init__(
        self,
        initial_interval_ms: int = 100,
        multiplier: float = 2.0,
        max_interval_ms: int = 30000,
    ):
        """
        Initialize exponential backoff policy.

        Args:
            initial_interval_ms: First delay returned (>= 1)
            multiplier: Growth factor between delays (>= 1.0)
            max_interval_ms: Upper bound for the un-jittered delay (>= initial)

        Raises:
            RetryConfigurationError: If any parameter is out of range
        """
        details = {
            "initial_interval_ms": initial_interval_ms,
            "multiplier": multiplier,
            "max_interval_ms": max_interval_ms,
        }
        if initial_interval_ms < 1:
            raise RetryConfigurationError("initial_interval_ms must be >= 1", details)
        if multiplier < 1.0:
            raise RetryConfigurationError("multiplier must be >= 1.0", details)
        if max_interval_ms < initial_interval_ms:
            raise RetryConfigurationError(
                "max_interval_ms must be >= initial_interval_ms", details
            )

        self.initial_interval_ms = initial_interval_ms
        self.multiplier = multiplier
        self.max_interval_ms = max_interval_ms

    def start(self) -> BackoffContext:
        return BackoffContext(
            initial_interval_ms=self.initial_interval_ms,
            multiplier=self.multiplier,
            max_interval_ms=self.max_interval_ms,
        )

    @staticmethod
    def advance(context: BackoffContext) -> int:
        """
        Return the current interval and step the context to the next one.

        Atomic per context.
        """
        with context.lock:
            interval = context.current_interval_ms
            context.current_interval_ms = min(
                interval * context.multiplier, float(context.max_interval_ms)
            )
            return int(interval)

    def next_delay(self, context: BackoffContext | None) -> int:
        if context is None:
            raise RetryConfigurationError("ExponentialBackoffPolicy requires a context from start()")
        return self.advance(context)


def apply_jitter(delay_ms: int, multiplier: float, sample: float, max_interval_ms: int | None = None) -> int:
    """
    Spread a delay across [delay_ms, delay_ms * multiplier].

    Args:
        delay_ms: Un-jittered delay
        multiplier: Backoff multiplier; 1.0 disables jitter
        sample: Uniform random draw from [0, 1)
        max_interval_ms: When given, the result never exceeds max_interval_ms * multiplier

    Returns:
        Jittered delay in milliseconds
    """
    jittered = int(delay_ms * (1 + sample * (multiplier - 1)))
    if max_interval_ms is not None:
        jittered = min(jittered, int(max_interval_ms * multiplier))
    return max(jittered, 0)


class ExponentialRandomBackoffPolicy:
    """
    Exponential backoff with random jitter.

    Wraps an ExponentialBackoffPolicy: the base policy advances the interval,
    then apply_jitter picks a random point between that interval and
    interval * multiplier. Callers that fail at the same moment therefore do
    not all come back at the same moment.
    """

    def __init__(
        self,
        base: ExponentialBackoffPolicy | None = None,
        rng: random.Random | None = None,
    ):
        self.base = base or ExponentialBackoffPolicy()
        self.rng = rng

    @property
    def initial_interval_ms(self) -> int:
        return self.base.initial_interval_ms

    @property
    def multiplier(self) -> float:
        return self.base.multiplier

    @property
    def max_interval_ms(self) -> int:
        return self.base.max_interval_ms

    def start(self) -> BackoffContext:
        context = self.base.start()
        context.rng = self.rng or random.Random()
        return context

    def next_delay(self, context: BackoffContext | None) -> int:
        if context is None:
            raise RetryConfigurationError("ExponentialRandomBackoffPolicy requires a context from start()")
        delay = self.base.advance(context)
        rng = context.rng or self.rng or random
        return apply_jitter(delay, context.multiplier, rng.random(), context.max_interval_ms)
