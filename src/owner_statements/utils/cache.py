"""Time-bounded cache for configuration lookups.

Each cache instance is owned by whoever creates it; there is no module-level
cache. The statement calculation never reads from a cache, so it returns the
same result whatever the cache state.
"""

import time
from dataclasses import dataclass
from typing import Callable, Generic, Hashable, Optional, TypeVar

V = TypeVar("V")


@dataclass
class _Entry(Generic[V]):
    value: V
    expires_at: float


class TTLCache(Generic[V]):
    """Key/value cache whose entries expire after a fixed time-to-live.

    Args:
        ttl_seconds: Lifetime of an entry.
        clock: Monotonic clock returning seconds; injectable for tests.
    """

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive, got {ttl_seconds}")
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[Hashable, _Entry[V]] = {}

    def get(self, key: Hashable) -> Optional[V]:
        """Return the cached value, or None if missing or expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() >= entry.expires_at:
            del self._entries[key]
            return None
        return entry.value

    def set(self, key: Hashable, value: V) -> None:
        """Store a value, replacing any existing entry."""
        self._entries[key] = _Entry(value=value, expires_at=self._clock() + self.ttl_seconds)

    def get_or_load(self, key: Hashable, loader: Callable[[], V]) -> V:
        """Return the cached value, calling ``loader`` on a miss."""
        value = self.get(key)
        if value is None:
            value = loader()
            self.set(key, value)
        return value

    def invalidate(self, key: Hashable) -> None:
        """Drop a single entry (no-op if absent)."""
        self._entries.pop(key, None)

    def clear(self) -> None:
        """Drop every entry."""
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
