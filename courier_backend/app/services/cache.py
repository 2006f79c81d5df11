"""
Read cache for derived statistics.

Wraps Redis with JSON values and a TTL. The cache is an optimisation only:
every failure is logged and treated as a miss, and writers invalidate the
keys they make stale.
"""

import json
import logging
from typing import Any, Optional
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

STATS_CACHE_KEY = "courier:stats:global"


class StatsCache:

    def __init__(self, client):
        self.client = client

    async def get(self, key: str) -> Optional[Any]:
        try:
            raw = await self.client.get(key)
        except (RedisError, OSError) as exc:
            logger.warning("Cache read failed for %s: %s", key, exc)
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (TypeError, ValueError):
            logger.warning("Discarding undecodable cache entry %s", key)
            return None

    async def set(self, key: str, data: Any, ttl_seconds: int) -> None:
        try:
            await self.client.set(key, json.dumps(data), ex=ttl_seconds)
        except (RedisError, OSError) as exc:
            logger.warning("Cache write failed for %s: %s", key, exc)

    async def invalidate(self, *keys: str) -> None:
        keys = keys or (STATS_CACHE_KEY,)
        for key in keys:
            try:
                await self.client.delete(key)
            except (RedisError, OSError) as exc:
                logger.warning("Cache invalidation failed for %s: %s", key, exc)
