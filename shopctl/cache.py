"""In-process cache for successful GET responses.

Entries live for the lifetime of the owning client. Freshness is judged
per lookup against a caller-supplied TTL, so the same entry can be fresh
for one caller and stale for another.
"""

import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

# Seconds a stale entry keeps being served while one caller refreshes it.
STALE_GRACE_SECONDS = 3.0

MISS = object()


@dataclass
class CacheEntry:
    """A decoded response body and the time it was stored."""

    body: Any
    stored_at: float


class ResponseCache:
    """Response cache keyed by ``method + path``."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._clock = clock
        self._stats = {"hits": 0, "misses": 0, "stale": 0}

    @staticmethod
    def make_key(method: str, path: str) -> str:
        return method.upper() + path

    def get(self, method: str, path: str, max_ttl: Optional[float]) -> Any:
        """Return the cached body, or ``MISS`` when absent or expired.

        An expired entry has its timestamp nudged forward so that callers
        arriving in the next few seconds keep using it while the current
        caller refreshes. This dampens duplicate refreshes; it is not a lock.
        """
        if not max_ttl or max_ttl <= 0:
            return MISS

        key = self.make_key(method, path)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._stats["misses"] += 1
                return MISS

            now = self._clock()
            if now - entry.stored_at < max_ttl:
                self._stats["hits"] += 1
                return entry.body

            entry.stored_at = now - max_ttl + STALE_GRACE_SECONDS
            self._stats["stale"] += 1
            return MISS

    def set(self, method: str, path: str, body: Any) -> None:
        with self._lock:
            self._entries[self.make_key(method, path)] = CacheEntry(body=body, stored_at=self._clock())

    def invalidate(self, path: str) -> None:
        """Drop the cached GET for ``path``."""
        with self._lock:
            self._entries.pop(self.make_key("GET", path), None)

    def invalidate_prefix(self, prefix: str) -> int:
        """Drop every cached GET whose path starts with ``prefix``.

        Returns:
            Number of entries dropped
        """
        key_prefix = self.make_key("GET", prefix)
        with self._lock:
            stale = [key for key in self._entries if key.startswith(key_prefix)]
            for key in stale:
                del self._entries[key]
        return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: Tuple[str, str]) -> bool:
        method, path = key
        return self.make_key(method, path) in self._entries

    def get_stats(self) -> Dict[str, int]:
        return dict(self._stats, entries=len(self._entries))
