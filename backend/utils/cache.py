# backend/utils/cache.py
"""
Time-to-live cache used for every upstream concern (games, articles, rosters, odds).

Each concern gets its own SourceCache instance with its own TTL. Entries are never
actively evicted: a stale entry reads as a miss and is overwritten by the next
successful fetch, or dropped by cleanup().
"""
import asyncio
import logging
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    key: str
    value: Any
    stored_at: float
    ttl: float

    def is_fresh(self, now: float) -> bool:
        return now - self.stored_at < self.ttl


def make_key(*parts: Any) -> str:
    """Composite cache key from an entity and its parameters"""
    return ":".join(str(part) for part in parts)


def _timestamp(value: Optional[float]) -> Optional[str]:
    if value is None:
        return None
    return datetime.fromtimestamp(value, tz=timezone.utc).isoformat()


class SourceCache:
    def __init__(self, name: str, ttl: float, clock: Callable[[], float] = time.time):
        self.name = name
        self.ttl = ttl
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        # Single-flight registry: one in-flight fetch per key
        self._inflight: Dict[str, asyncio.Future] = {}
        logger.info(f"Initialized {name} cache with TTL {ttl}s")

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None when absent or stale"""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if not entry.is_fresh(self._clock()):
                logger.debug(f"[{self.name}] stale entry for {key}")
                return None
            return entry.value

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        with self._lock:
            self._entries[key] = CacheEntry(
                key=key,
                value=value,
                stored_at=self._clock(),
                ttl=self.ttl if ttl is None else ttl,
            )

    def remove(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
        logger.info(f"[{self.name}] cache cleared")

    def cleanup(self) -> int:
        """Drop stale entries; returns how many were removed"""
        with self._lock:
            now = self._clock()
            stale = [key for key, entry in self._entries.items() if not entry.is_fresh(now)]
            for key in stale:
                del self._entries[key]
        if stale:
            logger.info(f"[{self.name}] removed {len(stale)} expired entries")
        return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            stamps = [entry.stored_at for entry in self._entries.values()]
            return {
                'name': self.name,
                'entries': len(self._entries),
                'ttl_seconds': self.ttl,
                'oldest_entry': _timestamp(min(stamps)) if stamps else None,
                'newest_entry': _timestamp(max(stamps)) if stamps else None,
            }

    async def get_or_fetch(self, key: str, fetch: Callable[[], Awaitable[Any]]) -> Any:
        """Return a fresh cached value or fetch it, sharing one fetch per key.

        Concurrent callers for the same missing key await the same task. The
        task is shielded, so a caller that goes away does not cancel the fetch
        and the result still lands in the cache. Failures are not cached.
        """
        cached = self.get(key)
        if cached is not None:
            logger.debug(f"[{self.name}] cache hit for {key}")
            return cached

        with self._lock:
            task = self._inflight.get(key)
            if task is None:
                logger.debug(f"[{self.name}] cache miss for {key}")
                task = asyncio.ensure_future(self._fetch_and_store(key, fetch))
                task.add_done_callback(self._consume_failure)
                self._inflight[key] = task
            else:
                logger.debug(f"[{self.name}] joining in-flight fetch for {key}")
        return await asyncio.shield(task)

    def _consume_failure(self, task: asyncio.Future) -> None:
        # Every caller may have gone away; retrieve the error so it is not reported as unhandled
        if not task.cancelled() and task.exception() is not None:
            logger.debug(f"[{self.name}] fetch failed: {task.exception()}")

    async def _fetch_and_store(self, key: str, fetch: Callable[[], Awaitable[Any]]) -> Any:
        try:
            value = await fetch()
            self.set(key, value)
            return value
        finally:
            with self._lock:
                self._inflight.pop(key, None)
