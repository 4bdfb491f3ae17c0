# tests/test_cache.py
"""Tests for server-side caches."""
from unittest.mock import AsyncMock, patch

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from smartlink.config import Config, ExtractionConfig, OpenAIConfig
from smartlink.services.cache import (
    MemoryCache,
    NullCache,
    RedisCache,
    create_cache,
)


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestMemoryCache:
    """Tests for MemoryCache."""

    @pytest.mark.asyncio
    async def test_set_and_get(self):
        """Test stored value is returned."""
        cache = MemoryCache()
        await cache.set("k", "v", 60)
        assert await cache.get("k") == "v"

    @pytest.mark.asyncio
    async def test_miss(self):
        """Test unknown key is None."""
        assert await MemoryCache().get("missing") is None

    @pytest.mark.asyncio
    async def test_ttl_expiry(self):
        """Test entry disappears after its TTL."""
        clock = FakeClock()
        cache = MemoryCache(timer=clock)
        await cache.set("k", "v", 60)

        clock.now += 59
        assert await cache.get("k") == "v"
        clock.now += 2
        assert await cache.get("k") is None

    @pytest.mark.asyncio
    async def test_per_entry_ttl(self):
        """Test entries with different TTLs expire independently."""
        clock = FakeClock()
        cache = MemoryCache(timer=clock)
        await cache.set("short", "1", 10)
        await cache.set("long", "2", 100)

        clock.now += 50
        assert await cache.get("short") is None
        assert await cache.get("long") == "2"

    @pytest.mark.asyncio
    async def test_default_ttl(self):
        """Test storage default applies when no TTL is given."""
        clock = FakeClock()
        cache = MemoryCache(default_ttl=30, timer=clock)
        await cache.set("k", "v")
        clock.now += 31
        assert await cache.get("k") is None

    @pytest.mark.asyncio
    async def test_delete(self):
        """Test delete removes the key, twice is fine."""
        cache = MemoryCache()
        await cache.set("k", "v", 60)
        await cache.delete("k")
        await cache.delete("k")
        assert await cache.get("k") is None

    @pytest.mark.asyncio
    async def test_bounded(self):
        """Test maxsize is respected."""
        cache = MemoryCache(maxsize=2)
        for i in range(3):
            await cache.set(f"k{i}", "v", 60)
        assert len(cache._store) == 2


class TestNullCache:
    """Tests for NullCache."""

    @pytest.mark.asyncio
    async def test_always_miss(self):
        """Test nothing is ever stored."""
        cache = NullCache()
        await cache.set("k", "v", 60)
        assert await cache.get("k") is None


class TestRedisCache:
    """Tests for RedisCache with a mocked client."""

    @pytest.fixture
    def redis_client(self):
        return AsyncMock()

    @pytest.mark.asyncio
    async def test_get_hit(self, redis_client):
        """Test value is passed through."""
        redis_client.get.return_value = '{"title": "x"}'
        cache = RedisCache(client=redis_client)
        assert await cache.get("k") == '{"title": "x"}'

    @pytest.mark.asyncio
    async def test_set_uses_setex(self, redis_client):
        """Test TTL is given to SETEX."""
        cache = RedisCache(client=redis_client)
        await cache.set("k", "v", 3600)
        redis_client.setex.assert_awaited_once_with("k", 3600, "v")

    @pytest.mark.asyncio
    async def test_set_default_ttl(self, redis_client):
        """Test 7-day default when no TTL is given."""
        cache = RedisCache(client=redis_client)
        await cache.set("k", "v")
        redis_client.setex.assert_awaited_once_with("k", 604800, "v")

    @pytest.mark.asyncio
    async def test_get_error_is_miss(self, redis_client):
        """Test Redis failure on read degrades to a miss."""
        redis_client.get.side_effect = RedisConnectionError("down")
        cache = RedisCache(client=redis_client)
        assert await cache.get("k") is None

    @pytest.mark.asyncio
    async def test_set_error_swallowed(self, redis_client):
        """Test Redis failure on write does not raise."""
        redis_client.setex.side_effect = RedisConnectionError("down")
        cache = RedisCache(client=redis_client)
        await cache.set("k", "v", 60)

    @pytest.mark.asyncio
    async def test_delete_error_swallowed(self, redis_client):
        """Test Redis failure on delete does not raise."""
        redis_client.delete.side_effect = OSError("socket closed")
        cache = RedisCache(client=redis_client)
        await cache.delete("k")

    @pytest.mark.asyncio
    async def test_close(self, redis_client):
        """Test client is closed."""
        cache = RedisCache(client=redis_client)
        await cache.close()
        redis_client.aclose.assert_awaited_once()


class TestCreateCache:
    """Tests for create_cache factory."""

    def _config(self, backend: str) -> Config:
        return Config(
            openai=OpenAIConfig(api_key="sk-test"),
            extraction=ExtractionConfig(cache_backend=backend),
        )

    def test_memory(self):
        """Test memory backend."""
        assert isinstance(create_cache(self._config("memory")), MemoryCache)

    def test_none(self):
        """Test disabled cache."""
        assert isinstance(create_cache(self._config("none")), NullCache)

    def test_unknown_falls_back(self):
        """Test unknown backend disables caching."""
        assert isinstance(create_cache(self._config("memcached")), NullCache)

    def test_redis(self):
        """Test redis backend builds a RedisCache."""
        with patch("smartlink.services.cache.redis.from_url") as redis_cls:
            cache = create_cache(self._config("redis"))
        assert isinstance(cache, RedisCache)
        assert redis_cls.call_args.args[0] == "redis://localhost:6379/0"
        assert redis_cls.call_args.kwargs["decode_responses"] is True
