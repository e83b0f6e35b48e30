"""
Rate limiting for inbound webhook traffic.

Webhook routes depend on a ``RateLimiter`` rather than a module-level map, so
the per-process limiter can be swapped for the Redis-backed one when the
service runs as several instances.
"""

import time
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple
import redis.asyncio as aioredis
from redis.asyncio import Redis

from .config import settings

logger = logging.getLogger(__name__)


class RateLimiter(ABC):
    """Interface shared by all rate limiter backends"""

    @abstractmethod
    async def is_rate_limited(
        self,
        identifier: str,
        max_requests: int,
        window_seconds: int
    ) -> Tuple[bool, int, int]:
        """
        Record a request for ``identifier`` and report whether it is over the limit.

        Returns:
            Tuple of (is_limited, requests_made, requests_remaining)
        """

    async def reset(self, identifier: Optional[str] = None) -> None:
        """Forget recorded requests for one identifier, or all of them"""

    async def close(self) -> None:
        """Release backend resources"""


@dataclass
class _Window:
    count: int
    reset_at: float


class InMemoryRateLimiter(RateLimiter):
    """Per-process fixed window limiter; windows reset lazily once expired"""

    def __init__(self, clock: Callable[[], float] = time.monotonic, max_windows: int = 10000):
        self._clock = clock
        self.max_windows = max_windows
        self._windows: Dict[str, _Window] = {}

    async def is_rate_limited(
        self,
        identifier: str,
        max_requests: int,
        window_seconds: int
    ) -> Tuple[bool, int, int]:
        now = self._clock()
        window = self._windows.get(identifier)

        if window is None or now > window.reset_at:
            # Re-inserted so dict order tracks window age
            self._windows.pop(identifier, None)
            self._windows[identifier] = _Window(count=1, reset_at=now + window_seconds)
            if len(self._windows) > self.max_windows:
                self.sweep()
                # Still over the bound: forget the oldest windows first
                while len(self._windows) > self.max_windows:
                    del self._windows[next(iter(self._windows))]
            return False, 1, max(0, max_requests - 1)

        if window.count >= max_requests:
            return True, window.count, 0

        window.count += 1
        return False, window.count, max(0, max_requests - window.count)

    def sweep(self) -> int:
        """Drop expired windows; returns how many were removed"""
        now = self._clock()
        expired = [key for key, window in self._windows.items() if now > window.reset_at]
        for key in expired:
            del self._windows[key]
        if expired:
            logger.debug(f"Swept {len(expired)} expired rate limit windows")
        return len(expired)

    async def reset(self, identifier: Optional[str] = None) -> None:
        if identifier is None:
            self._windows.clear()
        else:
            self._windows.pop(identifier, None)

    def __len__(self) -> int:
        return len(self._windows)


class RedisRateLimiter(RateLimiter):
    """Redis-based rate limiter with sliding window algorithm"""

    def __init__(self, redis_url: Optional[str] = None):
        self.redis_url = redis_url or settings.REDIS_URL
        self.redis_client: Optional[Redis] = None

    async def initialize(self) -> bool:
        """Initialize Redis connection"""
        try:
            self.redis_client = aioredis.from_url(
                self.redis_url,
                encoding="utf8",
                decode_responses=True
            )

            await self.redis_client.ping()
            logger.info("Redis rate limiter initialized successfully")
            return True

        except Exception as e:
            logger.warning(f"Failed to connect to Redis for rate limiting: {e}")
            self.redis_client = None
            return False

    async def close(self) -> None:
        """Close Redis connection"""
        if self.redis_client:
            await self.redis_client.close()
            self.redis_client = None

    async def is_rate_limited(
        self,
        identifier: str,
        max_requests: int,
        window_seconds: int
    ) -> Tuple[bool, int, int]:
        if not self.redis_client:
            # Fail open while Redis is unavailable
            return False, 0, max_requests

        try:
            return await self._sliding_window(identifier, max_requests, window_seconds)
        except Exception as e:
            logger.error(f"Redis rate limiting error: {e}")
            return False, 0, max_requests

    async def _sliding_window(
        self,
        identifier: str,
        max_requests: int,
        window_seconds: int
    ) -> Tuple[bool, int, int]:
        current_time = time.time()
        key = f"rate_limit:{identifier}"

        pipe = self.redis_client.pipeline()
        pipe.zremrangebyscore(key, 0, current_time - window_seconds)
        pipe.zcard(key)
        pipe.zadd(key, {str(current_time): current_time})
        pipe.expire(key, window_seconds + 60)
        results = await pipe.execute()

        # Count after cleanup, before this request
        current_requests = results[1]
        is_limited = current_requests >= max_requests
        requests_remaining = max(0, max_requests - current_requests - (0 if is_limited else 1))

        if is_limited:
            await self.redis_client.zrem(key, str(current_time))

        return is_limited, current_requests, requests_remaining

    async def reset(self, identifier: Optional[str] = None) -> None:
        if not self.redis_client or identifier is None:
            return
        await self.redis_client.delete(f"rate_limit:{identifier}")


def build_rate_limiter(backend: Optional[str] = None) -> RateLimiter:
    """Create the limiter configured by ``RATE_LIMIT_BACKEND``"""
    backend = backend or settings.RATE_LIMIT_BACKEND
    if backend == "redis":
        return RedisRateLimiter()
    return InMemoryRateLimiter()


# Process-wide limiter used by the webhook routes
webhook_rate_limiter: RateLimiter = build_rate_limiter()


def get_webhook_rate_limiter() -> RateLimiter:
    """FastAPI dependency returning the webhook rate limiter"""
    return webhook_rate_limiter


async def initialize_rate_limiter() -> None:
    """Connect the configured limiter backend, if it needs a connection"""
    if isinstance(webhook_rate_limiter, RedisRateLimiter):
        await webhook_rate_limiter.initialize()


async def cleanup_rate_limiter() -> None:
    """Cleanup the global rate limiter"""
    await webhook_rate_limiter.close()
