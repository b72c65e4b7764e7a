"""
Per-item retry progress.

A RetryContext exists for a key from the first failed attempt until the item
succeeds, is recovered, exhausts its budget or is evicted. Contexts are owned
by the context cache; the executor mutates them while holding the key's lock.
"""

import time
from collections.abc import Hashable
from dataclasses import dataclass, field
from datetime import datetime, timezone

from stateful_retry.retry.backoff import BackoffContext


@dataclass
class RetryContext:
    """
    Mutable retry record for one key.

    Attributes:
        key: Identity of the failing item
        attempt_count: Failed attempts so far (>= 0)
        last_failure: Most recent exception raised for this key
        exhausted: True once the retry policy reported EXHAUSTED
        created_at: UTC creation time, for diagnostics
        started_monotonic: Monotonic creation time, used for elapsed-time checks
        backoff: Backoff state for this attempt sequence
        next_delay_ms: Advisory delay computed after the latest retryable failure
    """

    key: Hashable
    attempt_count: int = 0
    last_failure: BaseException | None = None
    exhausted: bool = False
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    started_monotonic: float = field(default_factory=time.monotonic)
    backoff: BackoffContext | None = None
    next_delay_ms: int | None = None

    def register_failure(self, error: BaseException) -> int:
        """Record a failed attempt and return the new attempt count."""
        self.attempt_count += 1
        self.last_failure = error
        return self.attempt_count

    @property
    def elapsed_ms(self) -> int:
        return int((time.monotonic() - self.started_monotonic) * 1000)
