"""
Per-caller fixed-window rate limiting for the extraction endpoint.
"""
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, Optional

import redis.asyncio as redis
from cachetools import TTLCache
from fastapi import Request, Response
from redis.exceptions import RedisError

from smartlink.config import Config, RedisConfig

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = "Too many extraction requests. Please try again later."
KEY_PREFIX = "ratelimit:extract:"


class RateLimitExceededError(Exception):
    """Caller is over the limit for the current window."""

    def __init__(self, result: "RateLimitResult"):
        super().__init__(RATE_LIMIT_MESSAGE)
        self.result = result
        self.retry_after = result.retry_after


@dataclass
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    reset_after: int  # seconds until the window closes
    retry_after: Optional[int] = None

    def headers(self) -> Dict[str, str]:
        headers = {
            "RateLimit-Limit": str(self.limit),
            "RateLimit-Remaining": str(self.remaining),
            "RateLimit-Reset": str(self.reset_after),
        }
        if self.retry_after is not None:
            headers["Retry-After"] = str(self.retry_after)
        return headers


class RateLimitStore(ABC):
    """Per-window counters. Keys already carry the window index."""

    @abstractmethod
    async def incr(self, key: str, ttl: int) -> int:
        """Atomically count one request and return the new count. The key expires after ttl."""

    @abstractmethod
    async def decr(self, key: str) -> None:
        """Take back one request (used for rejected requests)."""

    async def close(self) -> None:
        pass


class MemoryRateLimitStore(RateLimitStore):
    """Process-local counters. Old windows fall out of the TTLCache."""

    def __init__(
        self,
        window_seconds: int = 15 * 60,
        maxsize: int = 100_000,
        timer: Callable[[], float] = time.monotonic
    ):
        self._counts: TTLCache = TTLCache(maxsize=maxsize, ttl=window_seconds, timer=timer)

    def __len__(self) -> int:
        return len(self._counts)

    async def incr(self, key: str, ttl: int) -> int:
        # no await between read and write, so this is atomic on the event loop
        count = self._counts.get(key, 0) + 1
        self._counts[key] = count
        return count

    async def decr(self, key: str) -> None:
        count = self._counts.get(key)
        if count:
            self._counts[key] = count - 1


class RedisRateLimitStore(RateLimitStore):
    """INCR on a per-window key, expired with the window."""

    def __init__(self, redis_config: Optional[RedisConfig] = None, client: Optional[redis.Redis] = None):
        if client is None:
            redis_config = redis_config or RedisConfig()
            client = redis.from_url(
                redis_config.url,
                decode_responses=True,
                socket_connect_timeout=3,
                socket_timeout=3,
            )
        self.client = client

    async def incr(self, key: str, ttl: int) -> int:
        redis_key = KEY_PREFIX + key
        async with self.client.pipeline(transaction=True) as pipe:
            pipe.incr(redis_key)
            pipe.expire(redis_key, ttl, nx=True)
            count, _ = await pipe.execute()
        return int(count)

    async def decr(self, key: str) -> None:
        await self.client.decr(KEY_PREFIX + key)

    async def close(self) -> None:
        await self.client.aclose()


class RateLimiter:
    """
    Fixed window: `limit` requests per `window_seconds` per key.
    Windows are aligned to multiples of `window_seconds`.
    Rejected requests are not counted.
    """

    def __init__(
        self,
        limit: int = 10,
        window_seconds: int = 15 * 60,
        store: Optional[RateLimitStore] = None,
        clock: Callable[[], float] = time.time
    ):
        self.limit = limit
        self.window_seconds = window_seconds
        self.store = store or MemoryRateLimitStore(window_seconds)
        self.clock = clock

    def window_key(self, key: str, now: float) -> str:
        return f"{key}:{int(now // self.window_seconds)}"

    async def hit(self, key: str) -> RateLimitResult:
        """Check and count one request for key."""
        now = self.clock()
        window_key = self.window_key(key, now)
        reset_after = self._reset_after(now)
        try:
            count = await self.store.incr(window_key, self.window_seconds)
            if count > self.limit:
                await self.store.decr(window_key)
                logger.warning(f"Rate limit exceeded for {key}: {self.limit} per {self.window_seconds}s")
                return RateLimitResult(
                    allowed=False,
                    limit=self.limit,
                    remaining=0,
                    reset_after=reset_after,
                    retry_after=reset_after,
                )
        except (RedisError, OSError) as e:
            logger.error(f"Rate limit store error for {key}, letting request through: {e}")
            return RateLimitResult(
                allowed=True,
                limit=self.limit,
                remaining=self.limit,
                reset_after=self.window_seconds,
            )

        return RateLimitResult(
            allowed=True,
            limit=self.limit,
            remaining=max(self.limit - count, 0),
            reset_after=reset_after,
        )

    def _reset_after(self, now: float) -> int:
        window_end = (now // self.window_seconds + 1) * self.window_seconds
        return max(int(window_end - now) + 1, 1)

    async def close(self) -> None:
        await self.store.close()

    @classmethod
    def from_config(cls, app_config: Config) -> "RateLimiter":
        window_seconds = app_config.extraction.rate_limit_window
        if app_config.extraction.cache_backend == "redis":
            store = RedisRateLimitStore(app_config.redis)
        else:
            store = MemoryRateLimitStore(window_seconds)
        return cls(
            limit=app_config.extraction.rate_limit,
            window_seconds=window_seconds,
            store=store,
        )


def client_key(request: Request) -> str:
    """Caller identity: first X-Forwarded-For hop, else the socket peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


async def enforce_extraction_rate_limit(request: Request, response: Response) -> None:
    """FastAPI dependency: count the call or raise RateLimitExceededError."""
    limiter: Optional[RateLimiter] = getattr(request.app.state, "rate_limiter", None)
    if limiter is None:
        return

    result = await limiter.hit(client_key(request))
    if not result.allowed:
        raise RateLimitExceededError(result)

    for name, value in result.headers().items():
        response.headers[name] = value
