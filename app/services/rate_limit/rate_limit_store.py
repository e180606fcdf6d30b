# app/services/rate_limit/rate_limit_store.py
"""
Rate limit stores for the public booking endpoints.

A store is created once per application and injected into the middleware;
nothing here is module-global.
"""
import asyncio
import time
from abc import ABC, abstractmethod
from typing import Dict, List

import redis.asyncio as redis

from app.config.redis import RedisKeys


class RateLimitStore(ABC):

    @abstractmethod
    async def hit(self, key: str, limit: int, window_seconds: int) -> bool:
        """Record one request for key. False when the limit is already used up."""


class InMemoryRateLimitStore(RateLimitStore):
    """Sliding window per key, local to one app instance"""

    def __init__(self):
        self.request_times: Dict[str, List[float]] = {}
        self._lock = asyncio.Lock()
        self._last_sweep = 0.0

    def _sweep(self, current_time: float, window_seconds: int) -> None:
        """Drop every key whose newest request has left the window"""
        stale = [
            key for key, times in self.request_times.items()
            if not times or current_time - times[-1] >= window_seconds
        ]
        for key in stale:
            del self.request_times[key]
        self._last_sweep = current_time

    async def hit(self, key: str, limit: int, window_seconds: int) -> bool:
        async with self._lock:
            current_time = time.time()
            if current_time - self._last_sweep >= window_seconds:
                self._sweep(current_time, window_seconds)

            # Remove timestamps that fell out of the window
            recent = [
                t for t in self.request_times.get(key, [])
                if current_time - t < window_seconds
            ]

            if len(recent) >= limit:
                self.request_times[key] = recent
                return False

            recent.append(current_time)
            self.request_times[key] = recent
            return True

    def reset(self) -> None:
        self.request_times.clear()


class RedisRateLimitStore(RateLimitStore):
    """Fixed window counter shared by every app instance"""

    def __init__(self, client: redis.Redis):
        self.client = client

    async def hit(self, key: str, limit: int, window_seconds: int) -> bool:
        window = int(time.time() // window_seconds)
        redis_key = RedisKeys.RATE_LIMIT_PUBLIC.format(client=key, window=window)

        async with self.client.pipeline(transaction=True) as pipe:
            pipe.incr(redis_key)
            pipe.expire(redis_key, window_seconds)
            count, _ = await pipe.execute()

        return count <= limit
