"""
Server-side key/value cache with TTL.

The cache is an optimization: every implementation logs and swallows its own
transport errors, so an outage means "always call the LLM", never a failed
request.
"""
import logging
from abc import ABC, abstractmethod
from typing import Optional

import redis.asyncio as redis
from cachetools import TLRUCache
from redis.exceptions import RedisError

from smartlink.config import (
    Config,
    MEMORY_CACHE_MAX_ITEMS,
    REDIS_DEFAULT_TTL,
    RedisConfig,
)

logger = logging.getLogger(__name__)


class Cache(ABC):
    """get / set / delete with TTL in seconds."""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Return the cached value or None on miss (or on backend failure)."""

    @abstractmethod
    async def set(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        """Store value for ttl seconds (backend default if None)."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove a key if present."""

    async def close(self) -> None:
        """Release backend resources."""

    @property
    def backend(self) -> str:
        return type(self).__name__


class NullCache(Cache):
    """Caching disabled: every lookup is a miss."""

    async def get(self, key: str) -> Optional[str]:
        return None

    async def set(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        return None

    async def delete(self, key: str) -> None:
        return None


class MemoryCache(Cache):
    """In-process cache; per-entry TTL via cachetools.TLRUCache."""

    def __init__(
        self,
        default_ttl: int = REDIS_DEFAULT_TTL,
        maxsize: int = MEMORY_CACHE_MAX_ITEMS,
        timer=None
    ):
        self.default_ttl = default_ttl
        kwargs = {"timer": timer} if timer is not None else {}
        # values are (payload, ttl); ttu turns that into an expiry time
        self._store = TLRUCache(
            maxsize=maxsize,
            ttu=lambda _key, value, now: now + value[1],
            **kwargs
        )

    async def get(self, key: str) -> Optional[str]:
        entry = self._store.get(key)
        if entry is None:
            logger.debug(f"Cache miss for key: {key}")
            return None
        logger.debug(f"Cache hit for key: {key}")
        return entry[0]

    async def set(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        ttl_seconds = ttl or self.default_ttl
        self._store[key] = (value, ttl_seconds)
        logger.debug(f"Cache set for key: {key} with TTL: {ttl_seconds}s")

    async def delete(self, key: str) -> None:
        self._store.pop(key, None)

    async def close(self) -> None:
        self._store.clear()


class RedisCache(Cache):
    """Redis-backed cache (SETEX semantics)."""

    def __init__(
        self,
        redis_config: Optional[RedisConfig] = None,
        client: Optional[redis.Redis] = None,
        default_ttl: int = REDIS_DEFAULT_TTL
    ):
        self.default_ttl = default_ttl
        if client is None:
            redis_config = redis_config or RedisConfig()
            client = redis.from_url(
                redis_config.url,
                decode_responses=True,
                socket_connect_timeout=3,
                socket_timeout=3,
            )
        self.client = client

    async def get(self, key: str) -> Optional[str]:
        try:
            value = await self.client.get(key)
        except (RedisError, OSError) as e:
            logger.error(f"Redis get error for key {key}: {e}")
            return None
        if value:
            logger.debug(f"Cache hit for key: {key}")
        else:
            logger.debug(f"Cache miss for key: {key}")
        return value or None

    async def set(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        ttl_seconds = ttl or self.default_ttl
        try:
            await self.client.setex(key, ttl_seconds, value)
            logger.debug(f"Cache set for key: {key} with TTL: {ttl_seconds}s")
        except (RedisError, OSError) as e:
            logger.error(f"Redis set error for key {key}: {e}")

    async def delete(self, key: str) -> None:
        try:
            await self.client.delete(key)
            logger.debug(f"Cache deleted for key: {key}")
        except (RedisError, OSError) as e:
            logger.error(f"Redis delete error for key {key}: {e}")

    async def close(self) -> None:
        try:
            await self.client.aclose()
            logger.info("Redis client disconnected")
        except (RedisError, OSError) as e:
            logger.warning(f"Redis disconnect failed: {e}")


def create_cache(app_config: Config) -> Cache:
    """Pick the cache implementation named by CACHE_BACKEND."""
    backend = app_config.extraction.cache_backend
    if backend == "redis":
        logger.info(f"Using Redis cache at {app_config.redis.host}:{app_config.redis.port}")
        return RedisCache(app_config.redis)
    if backend == "memory":
        return MemoryCache()
    if backend == "none":
        return NullCache()
    logger.warning(f"Unknown CACHE_BACKEND '{backend}', caching disabled")
    return NullCache()
