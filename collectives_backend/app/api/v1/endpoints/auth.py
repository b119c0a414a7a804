"""
Authentication API Endpoints.

Tokens are issued by the identity provider; this service only inspects
and revokes them.
"""

import logging
from fastapi import APIRouter, Depends, Query

from collectives_backend.app.core.context import RequestContext
from collectives_backend.app.core.dependencies import require_authenticated_context
from collectives_backend.app.core.token_revocation import revoke_token, revoke_all_user_tokens
from collectives_backend.app.schemas.auth import CurrentUserResponse, MembershipResponse, LogoutResponse

logger = logging.getLogger("collectives")

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.get("/me", response_model=CurrentUserResponse)
async def get_me(ctx: RequestContext = Depends(require_authenticated_context)):
    """Return the authenticated user and their role assignments."""
    user = ctx.remote_user
    return CurrentUserResponse(
        id=user.id,
        username=user.username,
        email=user.email,
        collective_id=user.collective_id,
        memberships=[
            MembershipResponse(collective_id=m.collective_id, role=m.role.value)
            for m in user.memberships
        ],
    )


@router.post("/logout", response_model=LogoutResponse)
async def logout(
    all_sessions: bool = Query(False, description="Revoke every token of the user"),
    ctx: RequestContext = Depends(require_authenticated_context)
):
    """Revoke the current token, or every token of the user."""
    user_id = ctx.remote_user.id
    if all_sessions:
        await revoke_all_user_tokens(user_id)
    else:
        await revoke_token(ctx.token, user_id)
    
    logger.info("User %s logged out (all_sessions=%s)", user_id, all_sessions)
    return LogoutResponse(message="Logged out", all_sessions=all_sessions)
