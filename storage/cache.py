"""In-process response cache with a per-entry time-to-live."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar

T = TypeVar("T")

Clock = Callable[[], float]


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    value: T
    stored_at: float
    ttl_seconds: float

    def is_fresh(self, now: float) -> bool:
        return now - self.stored_at < self.ttl_seconds


class TTLCache:
    """Keyed cache whose entries expire after a time-to-live.

    The cache only saves latency: a miss (cold start, expiry, ``clear``) simply means
    the caller rebuilds the value. Writes are last-writer-wins, so no locking is needed
    within one event loop.
    """

    def __init__(self, ttl_seconds: float = 600.0, *, clock: Clock = time.monotonic) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, CacheEntry[Any]] = {}

    def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if not entry.is_fresh(self._clock()):
            del self._entries[key]
            return None
        return entry.value

    def set(self, key: str, value: Any, *, ttl_seconds: float | None = None) -> None:
        self._entries[key] = CacheEntry(
            value=value,
            stored_at=self._clock(),
            ttl_seconds=self.ttl_seconds if ttl_seconds is None else ttl_seconds,
        )

    def invalidate(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


__all__ = ["CacheEntry", "TTLCache"]
