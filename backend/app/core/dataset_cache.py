"""
In-memory cache for the assembled producer dataset.
TTL in seconds; one entry per key (the API only uses ALL_DATA_KEY) to avoid refetching
and recomputing analytics on every request. Built once per application and injected.
"""
from __future__ import annotations

import time
from threading import Lock
from typing import Any, Callable

ALL_DATA_KEY = 'allData'
DEFAULT_TTL_SECONDS = 5 * 60


class DatasetCache:
    def __init__(self, ttl_seconds: int = DEFAULT_TTL_SECONDS, clock: Callable[[], float] = time.time) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        # key -> (payload, stored_at)
        self._entries: dict[str, tuple[Any, float]] = {}
        self._lock = Lock()
        self._hits = 0
        self._misses = 0

    def get(self, key: str = ALL_DATA_KEY) -> Any | None:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if not entry:
                self._misses += 1
                return None
            payload, stored_at = entry
            if now - stored_at > self.ttl_seconds:
                self._entries.pop(key, None)
                self._misses += 1
                return None
            self._hits += 1
            return payload

    def set(self, key: str, payload: Any) -> None:
        with self._lock:
            self._entries[key] = (payload, self._clock())

    def clear(self) -> int:
        with self._lock:
            removed = len(self._entries)
            self._entries.clear()
            return removed

    def age_seconds(self, key: str = ALL_DATA_KEY) -> float | None:
        with self._lock:
            entry = self._entries.get(key)
        if not entry:
            return None
        return round(self._clock() - entry[1], 2)

    def metrics(self) -> dict[str, int | float]:
        with self._lock:
            total = self._hits + self._misses
            return {
                'hits': self._hits,
                'misses': self._misses,
                'hit_rate_pct': round((self._hits * 100.0 / total), 2) if total > 0 else 0.0,
                'entries': len(self._entries),
                'ttl_seconds': self.ttl_seconds,
            }
