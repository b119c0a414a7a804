"""
Token Revocation System using Redis.

Implements token blacklisting to immediately invalidate JWT tokens
on logout or when a user is deactivated.
"""

import logging
from datetime import datetime, timezone
from typing import Optional
from redis.exceptions import RedisError
from collectives_backend.app.core.redis_client import get_redis
from collectives_backend.app.core.config import settings

logger = logging.getLogger("collectives")

# Redis key prefix for blacklisted tokens
TOKEN_BLACKLIST_PREFIX = "blacklist:token:"
USER_TOKENS_PREFIX = "user:tokens:"


async def revoke_token(token: str, user_id: int) -> bool:
    """
    Revoke a specific JWT token by adding it to the blacklist.
    
    Args:
        token: The JWT token string to revoke
        user_id: User ID who owns the token
        
    Returns:
        True if successfully revoked, False otherwise
    """
    client = await get_redis()
    try:
        # Tokens expire on their own, the blacklist entry only has to outlive them
        ttl_seconds = settings.access_token_expire_minutes * 60
        await client.setex(f"{TOKEN_BLACKLIST_PREFIX}{token}", ttl_seconds, str(user_id))
        return True
    except RedisError as e:
        logger.error("Error revoking token for user %s: %s", user_id, e)
        return False


async def is_token_revoked(token: str) -> bool:
    """
    Check if a token has been revoked.
    
    Fails open when Redis is unreachable.
    """
    client = await get_redis()
    try:
        exists = await client.exists(f"{TOKEN_BLACKLIST_PREFIX}{token}")
        return exists > 0
    except RedisError as e:
        logger.error("Error checking token revocation: %s", e)
        return False


async def revoke_all_user_tokens(user_id: int) -> bool:
    """
    Revoke all active tokens for a specific user.
    
    Stores the revocation time; tokens issued at or before it are rejected,
    tokens issued later are not.
    """
    client = await get_redis()
    try:
        ttl_seconds = settings.access_token_expire_minutes * 60
        revoked_at = int(datetime.now(timezone.utc).timestamp())
        await client.setex(f"{USER_TOKENS_PREFIX}{user_id}:revoked", ttl_seconds, str(revoked_at))
        return True
    except RedisError as e:
        logger.error("Error revoking all tokens for user %s: %s", user_id, e)
        return False


async def are_user_tokens_revoked(user_id: int, issued_at: Optional[int] = None) -> bool:
    """
    Check if a token of the user issued at `issued_at` falls under a
    revoke-all. Tokens without an issue time count as revoked.
    """
    client = await get_redis()
    try:
        revoked_at = await client.get(f"{USER_TOKENS_PREFIX}{user_id}:revoked")
        if revoked_at is None:
            return False
        if issued_at is None:
            return True
        return int(issued_at) <= int(revoked_at)
    except RedisError as e:
        logger.error("Error checking user token revocation: %s", e)
        return False
