"""
Thread-safe TTL cache with an explicit get/put interface.

Instances are passed to the components that need them rather than living
as module globals, so tests and separate locations never share state by
accident.
"""

import threading
import time
from typing import Callable, Generic, Hashable, Optional, TypeVar

V = TypeVar("V")


class TTLCache(Generic[V]):
    """Read-mostly map whose entries expire ``ttl_seconds`` after insertion.

    ``put`` replaces atomically. A read that races a replace may return the
    previous value; within the TTL that staleness is acceptable.
    """

    def __init__(self, ttl_seconds: float, clock: Optional[Callable[[], float]] = None) -> None:
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be > 0, got {ttl_seconds}")
        self.ttl_seconds = ttl_seconds
        self._clock = clock or time.monotonic
        self._entries: dict[Hashable, tuple[float, V]] = {}
        self._lock = threading.Lock()

    def get(self, key: Hashable) -> tuple[Optional[V], bool]:
        """Return ``(value, True)`` on a fresh hit, ``(None, False)`` otherwise."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None, False
            stored_at, value = entry
            if self._clock() - stored_at >= self.ttl_seconds:
                del self._entries[key]
                return None, False
            return value, True

    def put(self, key: Hashable, value: V) -> None:
        with self._lock:
            self._entries[key] = (self._clock(), value)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
