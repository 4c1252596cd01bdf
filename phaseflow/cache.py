"""In-process TTL cache for transition results."""

from __future__ import annotations

import time
from typing import Callable, Optional

from .models import CacheEntry, TransitionResult

Clock = Callable[[], float]

DEFAULT_TTL = 30 * 60.0
DEFAULT_MAX_ENTRIES = 100


def cache_key(from_phase: str, to_phase: str, project_type: Optional[str]) -> str:
    """Key for one phase pair under one project type."""
    return f"{from_phase}_to_{to_phase}_{project_type or 'default'}"


class TransformationCache:
    """Key -> ``TransitionResult`` store with a fixed time-to-live.

    Expired entries are evicted lazily on lookup, and swept in bulk once
    the cache grows past *max_entries*.  Not thread-safe; the cache
    belongs to a single engine instance.

    Args:
        ttl: Entry lifetime in seconds.
        max_entries: Size above which ``set`` sweeps expired entries.
        clock: Monotonic time source in seconds.
    """

    def __init__(
        self,
        ttl: float = DEFAULT_TTL,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Clock = time.monotonic,
    ) -> None:
        self.ttl = ttl
        self.max_entries = max_entries
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def get(self, key: str) -> Optional[TransitionResult]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() > entry.expires_at:
            del self._entries[key]
            return None
        return entry.result

    def set(self, key: str, result: TransitionResult) -> CacheEntry:
        now = self._clock()
        entry = CacheEntry(key=key, result=result, created_at=now, expires_at=now + self.ttl)
        self._entries[key] = entry
        if len(self._entries) > self.max_entries:
            self.sweep()
        return entry

    def sweep(self) -> int:
        """Remove every expired entry; returns how many were removed."""
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if now > entry.expires_at]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()
