"""Small thread-safe key/value cache whose entries expire after a fixed TTL."""

from __future__ import annotations

import time
from threading import Lock
from typing import Callable, Generic, TypeVar

K = TypeVar("K")
V = TypeVar("V")


class ExpiringCache(Generic[K, V]):
    """Last write wins; there is no invalidation beyond expiry."""

    def __init__(
        self,
        *,
        ttl_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self._ttl = ttl_seconds
        self._clock = clock
        self._lock = Lock()
        self._entries: dict[K, tuple[float, V]] = {}

    def get(self, key: K) -> V | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            stored_at, value = entry
            if self._clock() - stored_at >= self._ttl:
                del self._entries[key]
                return None
            return value

    def put(self, key: K, value: V) -> None:
        """Store ``value`` and drop every entry that has already expired."""
        with self._lock:
            now = self._clock()
            expired = [
                stale
                for stale, (stored_at, _) in self._entries.items()
                if now - stored_at >= self._ttl
            ]
            for stale in expired:
                del self._entries[stale]
            self._entries[key] = (now, value)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
