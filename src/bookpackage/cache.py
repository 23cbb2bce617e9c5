"""Key/value cache with optional per-entry expiry.

Each component owns the cache it is handed, so tests and concurrent
(language, organization) configurations never share state by accident.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Generic, Hashable, Iterator, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


@dataclass
class CacheEntry(Generic[V]):
    """A cached value and the clock reading at which it expires."""

    value: V
    expires_at: float | None = None

    def is_expired(self, now: float) -> bool:
        return self.expires_at is not None and now >= self.expires_at


class TTLCache(Generic[K, V]):
    """Mapping whose entries expire ``ttl`` seconds after being set.

    A ``ttl`` of None keeps entries for the life of the process.
    """

    def __init__(
        self,
        ttl: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[K, CacheEntry[V]] = {}

    def get(self, key: K) -> V | None:
        """Return the live value for key, dropping it if expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            del self._entries[key]
            return None
        return entry.value

    def set(self, key: K, value: V, ttl: float | None = None) -> None:
        """Store value; ``ttl`` overrides the cache default for this entry."""
        lifetime = ttl if ttl is not None else self.ttl
        expires_at = self._clock() + lifetime if lifetime is not None else None
        self._entries[key] = CacheEntry(value=value, expires_at=expires_at)

    def invalidate(self, key: K) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def purge_expired(self) -> int:
        """Drop expired entries and return how many were removed."""
        now = self._clock()
        expired = [k for k, e in self._entries.items() if e.is_expired(now)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def keys(self) -> Iterator[K]:
        now = self._clock()
        return iter([k for k, e in self._entries.items() if not e.is_expired(now)])

    def __contains__(self, key: object) -> bool:
        return self.get(key) is not None  # type: ignore[arg-type]

    def __len__(self) -> int:
        now = self._clock()
        return sum(1 for e in self._entries.values() if not e.is_expired(now))
