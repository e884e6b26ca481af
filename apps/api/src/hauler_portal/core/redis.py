"""
Redis Connection

Holds the shared async Redis client. Onboarding draft snapshots live here
under a single key (see modules/onboarding/drafts.py).
"""

import logging

from redis.asyncio import Redis, from_url

from hauler_portal.core.config import settings

logger = logging.getLogger(__name__)

redis_client: Redis | None = None


async def init_redis() -> Redis:
    """Connect on startup and verify the server answers PING."""
    global redis_client
    client = from_url(settings.redis_url, encoding="utf-8", decode_responses=True)
    await client.ping()
    redis_client = client
    logger.info("Redis client initialized")
    return redis_client


async def get_redis() -> Redis | None:
    """
    FastAPI dependency returning the client, or None when Redis never came up.

    Callers that persist drafts must treat None as "no draft store".
    """
    return redis_client


async def redis_status() -> str:
    """Short health string for the /health/redis endpoint."""
    if redis_client is None:
        return "not initialized"
    try:
        await redis_client.ping()
    except Exception as e:
        logger.warning(f"Redis ping failed: {e}")
        return "error"
    return "connected"


async def close_redis() -> None:
    global redis_client
    if redis_client is not None:
        await redis_client.close()
        redis_client = None
