"""
Per-key locks for the stateful retry executor.

Invocations for the same key are linearized; invocations for different keys
never share a lock. Locks exist only while someone holds or waits for them,
so the table stays as small as the number of keys currently in flight.
"""

import threading
from collections.abc import Hashable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field


@dataclass
class _KeyLock:
    lock: threading.RLock = field(default_factory=threading.RLock)
    holders: int = 0  # Threads holding or waiting on `lock`


class KeyLocks:
    """Reference-counted table of re-entrant locks, one per key.

    The table mutex is held only to look up, create or drop an entry, never
    while a caller's work runs.
    """

    def __init__(self) -> None:
        self._mutex = threading.Lock()
        self._entries: dict[Hashable, _KeyLock] = {}

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        """Hold the lock for `key` for the duration of the block."""
        with self._mutex:
            entry = self._entries.get(key)
            if entry is None:
                entry = self._entries[key] = _KeyLock()
            entry.holders += 1

        try:
            with entry.lock:
                yield
        finally:
            with self._mutex:
                entry.holders -= 1
                if entry.holders == 0:
                    del self._entries[key]

    def __len__(self) -> int:
        with self._mutex:
            return len(self._entries)
