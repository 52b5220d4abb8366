"""
In-memory response cache with TTL support.

Caches catalog responses to reduce EPREL API calls.
One instance is created at startup and lives for the whole process;
no persistence, no capacity bound, no eviction beyond TTL.

Not safe across threads. Under asyncio, ``get_or_set`` is not atomic:
two tasks missing the same key concurrently will both call ``produce``
and the last write wins. Results converge because fetches are idempotent.
"""

import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional, TypeVar

import structlog

from eprel_proxy.domain.catalog.models import CacheStats

logger = structlog.get_logger(__name__)

T = TypeVar("T")

_MISSING = object()


@dataclass(slots=True)
class CacheEntry:
    data: Any
    timestamp: float  # seconds, from the cache clock


class TTLCache:
    """In-memory key/value cache with a single TTL."""

    def __init__(
        self,
        ttl_ms: int = 300_000,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize cache.

        Args:
            ttl_ms: Entry lifetime in milliseconds (default 5 minutes)
            clock: Time source in seconds (injectable for tests)
        """
        if ttl_ms <= 0:
            raise ValueError(f"ttl_ms must be positive: {ttl_ms}")
        self._ttl_ms = ttl_ms
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    @property
    def ttl_ms(self) -> int:
        return self._ttl_ms

    def _is_expired(self, entry: CacheEntry, now: float) -> bool:
        # Valid while age <= ttl, expired strictly after
        return (now - entry.timestamp) * 1000 > self._ttl_ms

    def _lookup(self, key: str) -> Any:
        entry = self._entries.get(key)

        if entry is None:
            logger.debug("Cache miss", key=key)
            return _MISSING

        if self._is_expired(entry, self._clock()):
            logger.debug("Cache expired", key=key)
            del self._entries[key]
            return _MISSING

        logger.debug("Cache hit", key=key)
        return entry.data

    def get(self, key: str, default: Optional[Any] = None) -> Any:
        """Get a live cached value.

        Args:
            key: Cache key
            default: Returned on miss or expiry

        Returns:
            Cached value or ``default``

        Example:
            >>> cache = TTLCache(ttl_ms=1000)
            >>> cache.set("brands", ["MEIZU"])
            >>> assert cache.get("brands") == ["MEIZU"]
            >>> assert cache.get("unknown") is None
        """
        value = self._lookup(key)
        return default if value is _MISSING else value

    def set(self, key: str, value: Any) -> None:
        """Store value under key, overwriting any prior entry."""
        self._entries[key] = CacheEntry(data=value, timestamp=self._clock())
        logger.debug("Cached item", key=key, ttl_ms=self._ttl_ms)

    def has(self, key: str) -> bool:
        """Check if key holds a live entry (expired entries are dropped)."""
        return self._lookup(key) is not _MISSING

    def delete(self, key: str) -> bool:
        """Remove entry.

        Returns:
            True if the key held a live entry (expired entries are
            dropped but not reported)
        """
        entry = self._entries.pop(key, None)
        return entry is not None and not self._is_expired(entry, self._clock())

    def clear(self) -> None:
        """Clear all cache entries."""
        self._entries.clear()
        logger.info("Cache cleared")

    def remove_expired(self) -> int:
        """Remove expired entries.

        Returns:
            Number of entries removed
        """
        now = self._clock()
        expired_keys = [key for key, entry in self._entries.items() if self._is_expired(entry, now)]

        for key in expired_keys:
            del self._entries[key]

        if expired_keys:
            logger.info("Removed expired entries", count=len(expired_keys))

        return len(expired_keys)

    def size(self) -> int:
        """Get number of live entries."""
        self.remove_expired()
        return len(self._entries)

    def stats(self) -> CacheStats:
        """Purge expired entries, then describe what is left."""
        self.remove_expired()
        return CacheStats(
            entry_count=len(self._entries),
            keys=list(self._entries.keys()),
            generated_at=datetime.now(timezone.utc),
        )

    async def get_or_set(self, key: str, produce: Callable[[], Awaitable[T]]) -> T:
        """Return the cached value or compute, store and return a fresh one.

        ``produce`` is awaited at most once per call. If it raises, the
        exception propagates and nothing is written, so the next call
        starts from scratch.

        Args:
            key: Cache key
            produce: Coroutine factory computing the value on miss

        Returns:
            Cached or freshly produced value
        """
        cached = self._lookup(key)
        if cached is not _MISSING:
            return cached  # type: ignore[no-any-return]

        fresh = await produce()
        self.set(key, fresh)
        return fresh
