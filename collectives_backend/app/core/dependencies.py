"""
Authentication dependencies for FastAPI.

Every request gets its own RequestContext. Authentication is optional:
without a bearer token the context is anonymous and the expense engine
denies every action. A token that is present but invalid is rejected.
"""

from typing import Optional
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from collectives_backend.app.core.context import RequestContext
from collectives_backend.app.core.exceptions import AuthenticationError, TokenRevokedError, Forbidden
from collectives_backend.app.core.jwt import decode_access_token
from collectives_backend.app.core.token_revocation import is_token_revoked, are_user_tokens_revoked
from collectives_backend.app.db.session import get_db
from collectives_backend.app.services.loaders import load_user

# HTTP Bearer security scheme (optional credentials)
security = HTTPBearer(auto_error=False)


async def get_request_context(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> RequestContext:
    """
    FastAPI dependency building the per-request context.
    
    Security checks when a token is sent:
    1. Validates JWT token signature and expiry
    2. Checks if token has been explicitly revoked
    3. Checks if the token predates a revoke-all of the user's tokens
    4. Loads the user and their role assignments (real-time check)
    
    Raises:
        AuthenticationError / TokenRevokedError: 401 for a bad token
        Forbidden: 403 for an inactive user
    """
    if credentials is None:
        return RequestContext(db=db)
    
    token = credentials.credentials
    
    payload = decode_access_token(token)
    if payload is None:
        raise AuthenticationError("Could not validate credentials")
    
    user_id = payload.get("user_id")
    if not user_id:
        raise AuthenticationError("Invalid token payload")
    
    if await is_token_revoked(token):
        raise TokenRevokedError()
    
    if await are_user_tokens_revoked(user_id, payload.get("iat")):
        raise AuthenticationError("User access has been revoked")
    
    user = await load_user(db, user_id)
    if not user:
        raise AuthenticationError("User not found")
    
    if not user.is_active:
        raise Forbidden("User account is inactive")
    
    return RequestContext(db=db, remote_user=user, token=token)


async def require_authenticated_context(
    ctx: RequestContext = Depends(get_request_context)
) -> RequestContext:
    """Dependency for routes that make no sense anonymously (401 otherwise)."""
    if not ctx.is_authenticated:
        raise AuthenticationError("Not authenticated")
    return ctx
