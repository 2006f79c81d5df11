"""
Redis connection for the statistics read cache.

The cache is optional at runtime: an unreachable Redis degrades /health to
"degraded" and every cache call falls back to the database.
"""

import logging
import redis.asyncio as redis
from redis.exceptions import RedisError
from courier_backend.app.core.config import settings

logger = logging.getLogger(__name__)

redis_client = redis.from_url(
    settings.redis_url,
    decode_responses=settings.redis_decode_responses,
)


async def get_redis():
    """FastAPI dependency returning the shared client."""
    return redis_client


async def ping_redis() -> bool:
    try:
        return bool(await redis_client.ping())
    except (RedisError, OSError) as exc:
        logger.warning("Redis ping failed: %s", exc)
        return False


async def close_redis() -> None:
    try:
        await redis_client.aclose()
    except (RedisError, OSError) as exc:
        logger.warning("Redis close failed: %s", exc)
