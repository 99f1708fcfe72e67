"""
Unit tests for distributed cache backends.
"""

import pytest
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

from redis.exceptions import ConnectionError as RedisConnectionError

from service_session.app.cache.distributed_cache import (
    DistributedCache,
    MemoryDistributedCache,
    RedisDistributedCache,
    create_distributed_cache,
)
from shared.errors import CacheUnavailableError, SessionLayerException


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class TestMemoryDistributedCache:
    """Test cases for MemoryDistributedCache."""

    @pytest.fixture
    def clock(self):
        return FakeClock()

    @pytest.fixture
    def cache(self, clock):
        return MemoryDistributedCache(clock=clock)

    def test_satisfies_protocol(self, cache):
        assert isinstance(cache, DistributedCache)

    @pytest.mark.asyncio
    async def test_store_fetch_delete(self, cache):
        """Test basic storage operations."""
        await cache.store("Session:a", b"payload", timedelta(minutes=20))

        assert await cache.fetch("Session:a") == b"payload"
        assert len(cache) == 1

        await cache.delete("Session:a")
        await cache.delete("Session:a")

        assert await cache.fetch("Session:a") is None

    @pytest.mark.asyncio
    async def test_entry_expires_after_idle_window(self, cache, clock):
        """Test an untouched entry disappears after its sliding window."""
        await cache.store("Session:a", b"payload", timedelta(seconds=60))

        clock.now += 61

        assert await cache.fetch("Session:a") is None
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_fetch_slides_expiration(self, cache, clock):
        """Test reading an entry pushes its expiry forward."""
        await cache.store("Session:a", b"payload", timedelta(seconds=60))

        clock.now += 45
        assert await cache.fetch("Session:a") == b"payload"

        clock.now += 45
        assert await cache.fetch("Session:a") == b"payload"


class TestRedisDistributedCache:
    """Test cases for RedisDistributedCache."""

    @pytest.fixture
    def pipe(self):
        """Mock transaction pipeline."""
        pipe = MagicMock()
        pipe.execute = AsyncMock(return_value=[0, 2, True])
        pipe.__aenter__ = AsyncMock(return_value=pipe)
        pipe.__aexit__ = AsyncMock(return_value=False)
        return pipe

    @pytest.fixture
    def client(self, pipe):
        """Mock redis.asyncio client."""
        client = MagicMock()
        client.hmget = AsyncMock(return_value=[b"payload", b"1200"])
        client.expire = AsyncMock(return_value=True)
        client.delete = AsyncMock(return_value=1)
        client.ping = AsyncMock(return_value=True)
        client.aclose = AsyncMock()
        client.pipeline.return_value = pipe
        return client

    @pytest.fixture
    def cache(self, client):
        return RedisDistributedCache("redis://localhost:6379/0", client=client)

    @pytest.mark.asyncio
    async def test_fetch_refreshes_ttl(self, cache, client):
        """Test a hit returns the payload and re-arms the sliding TTL."""
        result = await cache.fetch("Session:a")

        assert result == b"payload"
        client.hmget.assert_awaited_once_with("Session:a", ["data", "sldexp"])
        client.expire.assert_awaited_once_with("Session:a", 1200)

    @pytest.mark.asyncio
    async def test_fetch_miss(self, cache, client):
        """Test a miss returns None without touching the TTL."""
        client.hmget.return_value = [None, None]

        assert await cache.fetch("Session:a") is None
        client.expire.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_store_uses_transaction(self, cache, client, pipe):
        """Test a store writes payload and window atomically."""
        await cache.store("Session:a", b"payload", timedelta(minutes=20))

        client.pipeline.assert_called_once_with(transaction=True)
        pipe.delete.assert_called_once_with("Session:a")
        pipe.hset.assert_called_once_with("Session:a", mapping={"data": b"payload", "sldexp": 1200})
        pipe.expire.assert_called_once_with("Session:a", 1200)
        pipe.execute.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_delete(self, cache, client):
        await cache.delete("Session:a")

        client.delete.assert_awaited_once_with("Session:a")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("operation", ["fetch", "store", "delete"])
    async def test_redis_errors_are_wrapped(self, cache, client, pipe, operation):
        """Test Redis failures surface as CacheUnavailableError."""
        error = RedisConnectionError("connection refused")
        client.hmget.side_effect = error
        client.delete.side_effect = error
        pipe.execute.side_effect = error

        with pytest.raises(CacheUnavailableError) as exc_info:
            if operation == "store":
                await cache.store("Session:a", b"payload", timedelta(minutes=1))
            else:
                await getattr(cache, operation)("Session:a")

        assert exc_info.value.code == "CACHE_UNAVAILABLE"
        assert exc_info.value.operation == operation
        assert exc_info.value.key == "Session:a"

    @pytest.mark.asyncio
    async def test_health_check(self, cache, client):
        assert await cache.health_check() is True

        client.ping.side_effect = RedisConnectionError("down")
        assert await cache.health_check() is False

    @pytest.mark.asyncio
    async def test_stop_closes_client(self, cache, client):
        await cache.stop()

        client.aclose.assert_awaited_once()
        assert cache.redis is None


class TestCreateDistributedCache:
    """Test cases for create_distributed_cache."""

    def test_backends(self):
        assert isinstance(create_distributed_cache("memory", "redis://x"), MemoryDistributedCache)
        assert isinstance(create_distributed_cache("redis", "redis://localhost:6379/0"), RedisDistributedCache)

    def test_unknown_backend(self):
        with pytest.raises(SessionLayerException) as exc_info:
            create_distributed_cache("memcached", "redis://x")

        assert exc_info.value.code == "UNKNOWN_CACHE_BACKEND"
