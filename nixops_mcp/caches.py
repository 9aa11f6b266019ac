"""Cache classes for NixOps-MCP server."""

import logging
import threading
import time
from collections.abc import Awaitable, Callable, Iterable
from typing import Any, Generic, Hashable, TypeVar

from .config import CACHE_TTLS, DEFAULT_CACHE_CAPACITY

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

# Give up on the cache rather than stall a tool call behind a stuck lock
_LOCK_TIMEOUT = 1.0


class TtlCache(Generic[K, V]):
    """Thread-safe map whose entries expire ``ttl`` seconds after insertion.

    When ``capacity`` entries are stored and a new key arrives, the entry
    inserted earliest is evicted first. A capacity of 0 means unlimited.
    """

    def __init__(
        self,
        ttl: float,
        capacity: int = DEFAULT_CACHE_CAPACITY,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl = ttl
        self.capacity = capacity
        self._clock = clock
        self._lock = threading.Lock()
        # key -> (value, expires_at, inserted_at)
        self._entries: dict[K, tuple[V, float, float]] = {}

    def _acquire(self) -> bool:
        if self._lock.acquire(timeout=_LOCK_TIMEOUT):
            return True
        logger.warning("Cache lock unavailable, bypassing cache")
        return False

    def get(self, key: K) -> V | None:
        if not self._acquire():
            return None
        try:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at, _inserted_at = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                return None
            return value
        finally:
            self._lock.release()

    def insert(self, key: K, value: V) -> None:
        if not self._acquire():
            return
        try:
            if self.capacity > 0 and len(self._entries) >= self.capacity and key not in self._entries:
                oldest = min(self._entries, key=lambda k: self._entries[k][2])
                del self._entries[oldest]
            now = self._clock()
            self._entries[key] = (value, now + self.ttl, now)
        finally:
            self._lock.release()

    def cleanup(self) -> int:
        """Drop every expired entry and return how many were removed."""
        if not self._acquire():
            return 0
        try:
            now = self._clock()
            expired = [key for key, (_value, expires_at, _) in self._entries.items() if now >= expires_at]
            for key in expired:
                del self._entries[key]
            return len(expired)
        finally:
            self._lock.release()

    def clear(self) -> None:
        if not self._acquire():
            return
        try:
            self._entries.clear()
        finally:
            self._lock.release()

    def __len__(self) -> int:
        if not self._acquire():
            return 0
        try:
            return len(self._entries)
        finally:
            self._lock.release()

    def is_empty(self) -> bool:
        return len(self) == 0


class CacheRegistry:
    """The fixed set of named caches shared by all tools."""

    NAMES = tuple(CACHE_TTLS)

    def __init__(self, capacity: int = DEFAULT_CACHE_CAPACITY, clock: Callable[[], float] = time.monotonic) -> None:
        self.locate: TtlCache[str, str] = TtlCache(CACHE_TTLS["locate"], capacity, clock)
        self.search: TtlCache[str, str] = TtlCache(CACHE_TTLS["search"], capacity, clock)
        self.package_info: TtlCache[str, str] = TtlCache(CACHE_TTLS["package_info"], capacity, clock)
        self.eval: TtlCache[str, str] = TtlCache(CACHE_TTLS["eval"], capacity, clock)
        self.prefetch: TtlCache[str, str] = TtlCache(CACHE_TTLS["prefetch"], capacity, clock)
        self.closure_size: TtlCache[str, str] = TtlCache(CACHE_TTLS["closure_size"], capacity, clock)
        self.derivation: TtlCache[str, str] = TtlCache(CACHE_TTLS["derivation"], capacity, clock)

    def get(self, name: str) -> TtlCache[str, str]:
        if name not in self.NAMES:
            raise KeyError(f"Unknown cache: {name}")
        cache: TtlCache[str, str] = getattr(self, name)
        return cache

    def clear_all(self) -> None:
        for name in self.NAMES:
            self.get(name).clear()


def cache_key(*parts: Any) -> str:
    """Compose a cache key by joining the stringified parts with ':'."""
    return ":".join(str(part) for part in parts)


async def cached(cache: TtlCache[str, str], key_parts: Iterable[Any], produce: Callable[[], Awaitable[str]]) -> str:
    """Return the cached text for ``key_parts`` or produce, store and return it.

    Concurrent misses on the same key both run ``produce``; the last insert wins.
    """
    key = cache_key(*key_parts)
    hit = cache.get(key)
    if hit is not None:
        logger.debug("Cache hit for %s", key)
        return hit
    result = await produce()
    cache.insert(key, result)
    return result
