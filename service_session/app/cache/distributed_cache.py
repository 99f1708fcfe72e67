"""
Distributed cache backends for session payloads.

A session only needs three calls from its cache: fetch the bytes stored
under a key, store bytes with a sliding expiration, and delete a key.
Every backend raises ``CacheUnavailableError`` when the underlying
service fails, so callers can apply a single failure policy per call site.
"""

import time
from datetime import timedelta
from typing import Dict, Optional, Protocol, Tuple, runtime_checkable

import redis.asyncio as redis
from redis.exceptions import RedisError

from shared.logging import get_logger
from shared.errors import CacheUnavailableError, SessionLayerException


@runtime_checkable
class DistributedCache(Protocol):
    """Byte-oriented cache shared by every instance of the service."""

    async def fetch(self, key: str) -> Optional[bytes]:
        """Return the bytes stored under ``key`` or ``None`` when absent."""
        ...

    async def store(self, key: str, value: bytes, sliding_expiration: timedelta) -> None:
        """Store ``value`` under ``key``; the entry expires after ``sliding_expiration`` of inactivity."""
        ...

    async def delete(self, key: str) -> None:
        """Remove ``key``; deleting a missing key is not an error."""
        ...


class RedisDistributedCache:
    """Redis-backed distributed cache.

    Entries are hashes with a ``data`` field holding the payload and a
    ``sldexp`` field holding the sliding window in seconds. Reading an
    entry pushes its TTL back out to the full window.
    """

    DATA_FIELD = "data"
    SLIDING_FIELD = "sldexp"

    def __init__(self, redis_url: str, client: Optional[redis.Redis] = None):
        self.redis_url = redis_url
        self.logger = get_logger("session.cache.redis")
        self.redis: Optional[redis.Redis] = client

    async def start(self):
        """Start the Redis cache."""
        try:
            if self.redis is None:
                self.redis = redis.from_url(
                    self.redis_url,
                    socket_connect_timeout=5,
                    socket_timeout=5,
                    retry_on_timeout=True,
                    health_check_interval=30
                )

            await self.redis.ping()

            self.logger.info("Redis cache started")

        except RedisError as e:
            self.logger.error("Failed to start Redis cache", error=str(e))
            raise SessionLayerException("REDIS_START_FAILED", str(e))

    async def stop(self):
        """Stop the Redis cache."""
        if self.redis:
            await self.redis.aclose()
            self.redis = None
            self.logger.info("Redis cache stopped")

    def _client(self) -> redis.Redis:
        if self.redis is None:
            self.redis = redis.from_url(self.redis_url)
        return self.redis

    async def fetch(self, key: str) -> Optional[bytes]:
        try:
            client = self._client()
            data, sliding = await client.hmget(key, [self.DATA_FIELD, self.SLIDING_FIELD])
            if data is None:
                return None

            if sliding is not None:
                seconds = int(sliding)
                if seconds > 0:
                    await client.expire(key, seconds)

            return bytes(data)

        except (RedisError, OSError, ValueError) as e:
            raise CacheUnavailableError("fetch", key, str(e)) from e

    async def store(self, key: str, value: bytes, sliding_expiration: timedelta) -> None:
        seconds = max(1, int(sliding_expiration.total_seconds()))
        try:
            async with self._client().pipeline(transaction=True) as pipe:
                pipe.delete(key)
                pipe.hset(key, mapping={self.DATA_FIELD: value, self.SLIDING_FIELD: seconds})
                pipe.expire(key, seconds)
                await pipe.execute()

            self.logger.debug("Stored session entry", cache_key=key, ttl=seconds)

        except (RedisError, OSError) as e:
            raise CacheUnavailableError("store", key, str(e)) from e

    async def delete(self, key: str) -> None:
        try:
            await self._client().delete(key)
        except (RedisError, OSError) as e:
            raise CacheUnavailableError("delete", key, str(e)) from e

    async def health_check(self) -> bool:
        """Check Redis health."""
        try:
            await self._client().ping()
            return True
        except (RedisError, OSError):
            return False


class MemoryDistributedCache:
    """In-process cache with sliding expiration, for local runs and tests."""

    def __init__(self, clock=time.monotonic):
        self._clock = clock
        self._entries: Dict[str, Tuple[bytes, float, float]] = {}  # key -> (value, window, expires_at)
        self.logger = get_logger("session.cache.memory")

    async def fetch(self, key: str) -> Optional[bytes]:
        entry = self._entries.get(key)
        if entry is None:
            return None

        value, window, expires_at = entry
        now = self._clock()
        if expires_at <= now:
            del self._entries[key]
            return None

        self._entries[key] = (value, window, now + window)
        return value

    async def store(self, key: str, value: bytes, sliding_expiration: timedelta) -> None:
        window = sliding_expiration.total_seconds()
        self._entries[key] = (bytes(value), window, self._clock() + window)

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    async def health_check(self) -> bool:
        return True

    def __len__(self) -> int:
        now = self._clock()
        return sum(1 for _, _, expires_at in self._entries.values() if expires_at > now)


def create_distributed_cache(backend: str, redis_url: str):
    """Build the cache backend named by configuration."""
    if backend == "redis":
        return RedisDistributedCache(redis_url)
    if backend == "memory":
        return MemoryDistributedCache()
    raise SessionLayerException(
        "UNKNOWN_CACHE_BACKEND",
        f"Unknown session cache backend: {backend}",
        {"backend": backend}
    )
