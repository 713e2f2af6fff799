# ABOUTME: Redis-backed TTL cache for normalized provider responses.
# ABOUTME: Stores JSON with SET EX and reports entry age as the original TTL minus the remaining TTL.

import json
import logging
from typing import Any, Awaitable, Callable

from forecaster.models import Outcome

logger = logging.getLogger(__name__)


class RedisCache:
    """
    Cache-aside helper over an async Redis client.

    Usage:
        cache = RedisCache(redis_client)
        outcome = await cache.fetch_or_compute("forecast:canada:l5m-1a1", 1800, compute)
        age = await cache.age_seconds("forecast:canada:l5m-1a1", 1800)

    Redis errors are not swallowed here; the services turn them into
    cache failures. There is no single-flight: two concurrent misses on the
    same key both call upstream and the last SET wins.
    """

    def __init__(self, redis) -> None:
        """
        Args:
            redis: An async Redis client (redis.asyncio compatible) created
                   with ``decode_responses=True``.
        """
        self._redis = redis

    async def get(self, key: str) -> str | None:
        """Return the stored string for key, or None on miss / expiry."""
        raw = await self._redis.get(key)
        if isinstance(raw, bytes):
            raw = raw.decode()
        return raw

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        """Serialize value to JSON and store it, replacing any existing entry."""
        await self._redis.set(key, json.dumps(value), ex=ttl_seconds)
        logger.debug("Cached: key=%s ttl=%ds", key, ttl_seconds)

    async def age_seconds(self, key: str, original_ttl_seconds: int) -> int | None:
        """Seconds since key was cached, or None if it has no TTL or does not exist."""
        remaining = await self._redis.ttl(key)
        if remaining is None or remaining <= 0:
            return None
        return original_ttl_seconds - remaining

    async def fetch_or_compute(
        self,
        key: str,
        ttl_seconds: int,
        compute: Callable[[], Awaitable[Outcome]],
    ) -> Outcome:
        """Return the cached value for key, or compute, cache, and return it.

        Only successful outcomes are written. A stored value that is not valid
        JSON is returned as the raw string.
        """
        cached = await self.get(key)
        if cached is not None:
            logger.debug("Cache hit: %s", key)
            try:
                return Outcome(result=json.loads(cached))
            except ValueError:
                return Outcome(result=cached)

        logger.debug("Cache miss: %s", key)
        outcome = await compute()
        if outcome.ok:
            await self.set(key, outcome.result, ttl_seconds)
        return outcome
