"""
Spotlight Cache

Short-lived read-through cache for randomized spotlight selections.

The cache is an explicit component with a small interface (get / set /
evict / sweep) so the in-process implementation can be replaced with a
shared one without touching call sites. Two implementations:

- InMemorySpotlightCache: per-process dict with TTL expiry, swept on a timer
- RedisSpotlightCache: Redis keys with native expiry
"""

import copy
import json
import logging
import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import redis.asyncio as redis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300


@dataclass
class CacheStats:
    """Cache statistics."""

    hits: int = 0
    misses: int = 0
    sets: int = 0
    evictions: int = 0
    errors: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return self.hits / total * 100


class SpotlightCache(ABC):
    """Interface every spotlight cache backend implements."""

    backend: str = "abstract"

    def __init__(self):
        self._stats = CacheStats()

    @abstractmethod
    async def get(self, key: str) -> Any | None:
        """Return the cached value, or None if absent or expired."""

    @abstractmethod
    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        """Store ``value`` under ``key`` for ``ttl`` seconds."""

    @abstractmethod
    async def evict(self, key: str) -> bool:
        """Remove ``key``. Returns True if something was removed."""

    async def sweep(self) -> int:
        """Evict expired entries. Returns how many were removed."""
        return 0

    async def clear(self) -> None:
        """Remove every entry."""

    def get_stats(self) -> dict:
        return {
            "backend": self.backend,
            "hits": self._stats.hits,
            "misses": self._stats.misses,
            "sets": self._stats.sets,
            "evictions": self._stats.evictions,
            "errors": self._stats.errors,
            "hit_rate": f"{self._stats.hit_rate:.2f}%",
        }


class InMemorySpotlightCache(SpotlightCache):
    """
    In-process TTL cache.

    Entries are checked for expiry on read, and a periodic ``sweep`` drops
    expired entries nobody reads so memory stays bounded independent of
    traffic. A lock guards the map because the sweep may run outside the
    request path. Values are copied in and out, so callers may mutate what
    they get back.
    """

    backend = "memory"

    def __init__(self, default_ttl: int = DEFAULT_TTL_SECONDS, clock: Callable[[], float] = time.monotonic):
        super().__init__()
        self._entries: dict[str, tuple[Any, float]] = {}
        self._default_ttl = default_ttl
        self._clock = clock
        self._lock = threading.Lock()

    async def get(self, key: str) -> Any | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._stats.misses += 1
                return None
            value, expires_at = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                self._stats.evictions += 1
                self._stats.misses += 1
                return None
            self._stats.hits += 1
            # Callers get their own copy, as they would from Redis
            return copy.deepcopy(value)

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        ttl = self._default_ttl if ttl is None else ttl
        with self._lock:
            self._entries[key] = (copy.deepcopy(value), self._clock() + ttl)
            self._stats.sets += 1

    async def evict(self, key: str) -> bool:
        with self._lock:
            if self._entries.pop(key, None) is None:
                return False
            self._stats.evictions += 1
            return True

    async def sweep(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [key for key, (_, expires_at) in self._entries.items() if now >= expires_at]
            for key in expired:
                del self._entries[key]
            self._stats.evictions += len(expired)
        if expired:
            logger.debug(f"Spotlight cache sweep evicted {len(expired)} entries")
        return len(expired)

    async def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def get_stats(self) -> dict:
        stats = super().get_stats()
        stats["size"] = len(self._entries)
        return stats


class RedisSpotlightCache(SpotlightCache):
    """
    Redis-backed cache shared by every server process.

    Values are stored as JSON with a Redis TTL, so there is nothing to sweep.
    Redis being unreachable degrades to a cache miss rather than an error.
    """

    backend = "redis"
    PREFIX = "engagement:"

    def __init__(self, client: redis.Redis, default_ttl: int = DEFAULT_TTL_SECONDS):
        super().__init__()
        self._redis = client
        self._default_ttl = default_ttl

    @classmethod
    def from_url(cls, url: str, default_ttl: int = DEFAULT_TTL_SECONDS) -> "RedisSpotlightCache":
        return cls(redis.Redis.from_url(url, decode_responses=True), default_ttl=default_ttl)

    async def get(self, key: str) -> Any | None:
        try:
            raw = await self._redis.get(self.PREFIX + key)
        except RedisError as e:
            self._stats.errors += 1
            logger.warning(f"Spotlight cache: Redis get failed for {key}: {e}")
            raw = None
        if raw is None:
            self._stats.misses += 1
            return None
        self._stats.hits += 1
        return json.loads(raw)

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        ttl = self._default_ttl if ttl is None else ttl
        try:
            await self._redis.setex(self.PREFIX + key, ttl, json.dumps(value, default=str))
            self._stats.sets += 1
        except RedisError as e:
            self._stats.errors += 1
            logger.warning(f"Spotlight cache: Redis set failed for {key}: {e}")

    async def evict(self, key: str) -> bool:
        try:
            removed = await self._redis.delete(self.PREFIX + key)
        except RedisError as e:
            self._stats.errors += 1
            logger.warning(f"Spotlight cache: Redis delete failed for {key}: {e}")
            return False
        if removed:
            self._stats.evictions += 1
        return bool(removed)

    async def clear(self) -> None:
        try:
            async for key in self._redis.scan_iter(match=f"{self.PREFIX}spotlight:*"):
                await self._redis.delete(key)
        except RedisError as e:
            self._stats.errors += 1
            logger.warning(f"Spotlight cache: Redis clear failed: {e}")

    async def close(self) -> None:
        await self._redis.aclose()


def build_spotlight_cache(backend: str, ttl_seconds: int, redis_url: str | None = None) -> SpotlightCache:
    """Create the spotlight cache configured for this deployment."""
    if backend == "redis":
        if not redis_url:
            raise ValueError("redis_url is required for the redis spotlight cache")
        logger.info("Spotlight cache: using Redis backend")
        return RedisSpotlightCache.from_url(redis_url, default_ttl=ttl_seconds)
    if backend != "memory":
        raise ValueError(f"Unknown spotlight cache backend: {backend}")
    logger.info("Spotlight cache: using in-memory backend")
    return InMemorySpotlightCache(default_ttl=ttl_seconds)
