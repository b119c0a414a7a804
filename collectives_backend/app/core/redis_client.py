"""
Redis client initialization and connection management.

Redis backs the token revocation list.
"""

import logging
import redis.asyncio as redis
from collectives_backend.app.core.config import settings

logger = logging.getLogger("collectives")


# Create async Redis client
redis_client = redis.from_url(
    settings.redis_url,
    decode_responses=settings.redis_decode_responses,
)


async def get_redis():
    """
    Get Redis client instance.
    
    Resolved at call time so tests can swap the module-level client.
    """
    return redis_client


async def ping_redis() -> bool:
    """
    Test Redis connection.
    
    Returns:
        True if connection successful, False otherwise
    """
    try:
        return await redis_client.ping()
    except redis.RedisError as e:
        logger.warning("Redis ping failed: %s", e)
        return False
