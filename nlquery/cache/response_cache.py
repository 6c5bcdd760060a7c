"""In-process TTL cache for SQL generated from prompts."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from datetime import timedelta

from nlquery.models import CachedGeneration

logger = logging.getLogger(__name__)

DEFAULT_TTL = timedelta(minutes=5)


def normalize_prompt(prompt: str) -> str:
    """Build the cache key for a prompt (lower-cased, trimmed)."""
    return prompt.lower().strip()


class ResponseCache:
    """
    Prompt -> SQL cache shared by all in-flight requests.

    Entries expire once their age reaches the TTL and are dropped lazily
    when a lookup notices. ``put`` never replaces a live entry, so the
    first writer for a prompt wins until that entry expires.

    All access goes through one lock; callers need no coordination of
    their own, whether they run on threads or asyncio tasks.
    """

    def __init__(
        self,
        ttl: timedelta = DEFAULT_TTL,
        clock: Callable[[], float] = time.monotonic,
    ):
        if ttl.total_seconds() <= 0:
            raise ValueError("Cache TTL must be positive")
        self._ttl_seconds = ttl.total_seconds()
        self._ttl = ttl
        self._clock = clock
        self._entries: dict[str, tuple[CachedGeneration, float]] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_minutes(cls, minutes: float, **kwargs) -> ResponseCache:
        return cls(ttl=timedelta(minutes=minutes), **kwargs)

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def _is_expired(self, stored_at: float, now: float) -> bool:
        return now - stored_at >= self._ttl_seconds

    def get(self, key: str) -> CachedGeneration | None:
        """Return the live entry for ``key`` or None."""
        now = self._clock()
        with self._lock:
            item = self._entries.get(key)
            if item is None:
                return None
            entry, stored_at = item
            if self._is_expired(stored_at, now):
                del self._entries[key]
                logger.debug("Cache entry expired", extra={"cache_key": key})
                return None
            return entry

    def put(self, key: str, value: CachedGeneration) -> bool:
        """Insert ``value`` unless a live entry exists. Returns True on insert."""
        now = self._clock()
        with self._lock:
            item = self._entries.get(key)
            if item is not None and not self._is_expired(item[1], now):
                return False
            self._entries[key] = (value, now)
            return True

    def clear(self) -> None:
        with self._lock:
            removed = len(self._entries)
            self._entries.clear()
        logger.info(f"Cleared response cache ({removed} entries)")

    def cleanup_expired(self) -> int:
        """Drop every expired entry; returns how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [
                key
                for key, (_, stored_at) in self._entries.items()
                if self._is_expired(stored_at, now)
            ]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.debug(f"Removed {len(expired)} expired cache entries")
        return len(expired)

    @property
    def count(self) -> int:
        with self._lock:
            return len(self._entries)

    def __len__(self) -> int:
        return self.count

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None
