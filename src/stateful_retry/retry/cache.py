"""
Bounded storage for retry contexts.

The protocol-based design allows other backends to be plugged into the
executor. The in-memory implementation keeps at most `capacity` contexts and
evicts the least-recently-used one when a new key arrives at capacity.
"""

import threading
from collections import OrderedDict
from collections.abc import Hashable
from typing import Protocol

import structlog

from stateful_retry.retry.context import RetryContext
from stateful_retry.retry.exceptions import RetryConfigurationError

logger = structlog.get_logger(__name__)


class RetryContextCache(Protocol):
    """Storage interface for retry contexts.

    Methods:
        get: Return the context for a key, or None
        put: Store a context, returning the context evicted to make room (if any)
        remove: Drop the context for a key, returning it (or None)
        clear: Drop every context
    """

    capacity: int

    def get(self, key: Hashable) -> RetryContext | None:
        ...

    def put(self, key: Hashable, context: RetryContext) -> RetryContext | None:
        ...

    def remove(self, key: Hashable) -> RetryContext | None:
        ...

    def clear(self) -> None:
        ...

    def __contains__(self, key: object) -> bool:
        ...

    def __len__(self) -> int:
        ...


class LRURetryContextCache:
    """In-memory context cache with least-recently-used eviction.

    Thread-safe: every operation holds a single lock, so lookups, inserts and
    eviction bookkeeping never interleave. Both `get` and `put` mark an entry
    as recently used; at capacity, inserting an unknown key evicts the entry
    that was used longest ago.

    Attributes:
        capacity: Maximum number of live contexts
    """

    def __init__(self, capacity: int = 4096) -> None:
        """Initialize the cache.

        Args:
            capacity: Maximum number of contexts kept (must be >= 1)

        Raises:
            RetryConfigurationError: If capacity < 1
        """
        if capacity < 1:
            raise RetryConfigurationError("capacity must be >= 1", {"capacity": capacity})
        self.capacity = capacity
        self._contexts: OrderedDict[Hashable, RetryContext] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: Hashable) -> RetryContext | None:
        with self._lock:
            context = self._contexts.get(key)
            if context is not None:
                self._contexts.move_to_end(key)
            return context

    def put(self, key: Hashable, context: RetryContext) -> RetryContext | None:
        """Store a context, evicting the least-recently-used entry if full."""
        with self._lock:
            evicted = None
            if key in self._contexts:
                self._contexts.move_to_end(key)
            elif len(self._contexts) >= self.capacity:
                evicted_key, evicted = self._contexts.popitem(last=False)
                logger.info(
                    "Retry context evicted at capacity",
                    evicted_key=repr(evicted_key),
                    evicted_attempts=evicted.attempt_count,
                    capacity=self.capacity,
                )
            self._contexts[key] = context
            return evicted

    def remove(self, key: Hashable) -> RetryContext | None:
        with self._lock:
            return self._contexts.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._contexts.clear()

    def keys(self) -> list[Hashable]:
        """Snapshot of cached keys, least recently used first."""
        with self._lock:
            return list(self._contexts)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._contexts

    def __len__(self) -> int:
        with self._lock:
            return len(self._contexts)
