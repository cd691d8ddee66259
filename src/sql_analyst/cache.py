"""
Result Cache
============

Bounded, time-expiring store of query results keyed by the exact SQL text.

The cache is shared by every conversation in the process. All access goes
through the cache's own methods, which hold an internal lock, so callers
never need to synchronize.
"""

import threading
import time
from typing import Callable

from sql_analyst.models import CacheEntry, Column
from sql_analyst.observability.logging_config import get_logger
from sql_analyst.observability.metrics import CACHE_LOOKUPS_TOTAL

logger = get_logger(__name__)

DEFAULT_TTL_SECONDS = 5 * 60
DEFAULT_CAPACITY = 100


class ResultCache:
    """
    Map of SQL text to cached rows and columns.

    Keys are verbatim SQL strings: two queries that differ only in whitespace
    are separate entries. Before every operation the cache drops entries older
    than the TTL and then, if still over capacity, the oldest entries by
    insertion time.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        capacity: int = DEFAULT_CAPACITY,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize the cache.

        Args:
            ttl_seconds: Maximum age of an entry before it is considered stale
            capacity: Maximum number of entries kept after housekeeping
            clock: Time source in seconds (injectable for tests)
        """
        self.ttl_seconds = ttl_seconds
        self.capacity = capacity
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def _housekeep(self) -> None:
        """Expiry sweep followed by the capacity cap. Caller holds the lock."""
        now = self._clock()
        expired = [
            sql for sql, entry in self._entries.items()
            if now - entry.cached_at > self.ttl_seconds
        ]
        for sql in expired:
            del self._entries[sql]
        if expired:
            logger.debug("cache_expired", removed=len(expired))

        overflow = len(self._entries) - self.capacity
        if overflow > 0:
            oldest = sorted(self._entries.items(), key=lambda item: item[1].cached_at)
            for sql, _ in oldest[:overflow]:
                del self._entries[sql]
            logger.debug("cache_evicted", removed=overflow)

    def get(self, sql: str) -> CacheEntry | None:
        """
        Look up a cached result.

        Args:
            sql: Exact SQL text

        Returns:
            The entry, or None when absent or older than the TTL
        """
        with self._lock:
            self._housekeep()
            entry = self._entries.get(sql)
            if entry is not None and self._clock() - entry.cached_at > self.ttl_seconds:
                entry = None

        CACHE_LOOKUPS_TOTAL.labels(result="hit" if entry else "miss").inc()
        return entry

    def put(self, sql: str, rows: list[dict], columns: list[Column]) -> CacheEntry:
        """Insert or overwrite the entry for ``sql``, stamped with the current time."""
        with self._lock:
            self._housekeep()
            entry = CacheEntry(rows=rows, columns=columns, cached_at=self._clock())
            self._entries[sql] = entry
            self._housekeep()
        return entry

    def clear(self) -> None:
        """Remove every entry."""
        with self._lock:
            self._entries.clear()
        logger.info("cache_cleared")

    def size(self) -> int:
        with self._lock:
            self._housekeep()
            return len(self._entries)

    def age_of(self, entry: CacheEntry) -> float:
        """Seconds since ``entry`` was stored."""
        return self._clock() - entry.cached_at


_shared_cache: ResultCache | None = None
_shared_lock = threading.Lock()


def init_result_cache(
    ttl_seconds: float = DEFAULT_TTL_SECONDS,
    capacity: int = DEFAULT_CAPACITY,
) -> ResultCache:
    """
    Create (or replace) the process-wide cache.

    Args:
        ttl_seconds: Entry time-to-live
        capacity: Maximum number of entries

    Returns:
        The new shared cache
    """
    global _shared_cache
    with _shared_lock:
        _shared_cache = ResultCache(ttl_seconds=ttl_seconds, capacity=capacity)
        return _shared_cache


def get_result_cache() -> ResultCache:
    """Return the process-wide cache, creating it from settings on first use."""
    global _shared_cache
    with _shared_lock:
        if _shared_cache is None:
            from sql_analyst.config import get_settings

            settings = get_settings()
            _shared_cache = ResultCache(
                ttl_seconds=settings.cache_ttl_seconds,
                capacity=settings.cache_capacity,
            )
        return _shared_cache
