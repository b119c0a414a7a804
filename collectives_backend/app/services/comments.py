"""
Expense comments.

Reading and posting are both gated by can_comment. Editing is limited to
the author and collective admins; host admins may also delete.
"""

import logging
from typing import List
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from collectives_backend.app.core.context import RequestContext
from collectives_backend.app.core.exceptions import AuthenticationError, Forbidden, ResourceNotFoundError
from collectives_backend.app.models.comment import Comment
from collectives_backend.app.models.expense import Expense
from collectives_backend.app.services.activities import ActivityType, create_expense_activity
from collectives_backend.app.services.expense_permissions import can_comment, is_collective_admin, is_host_admin

logger = logging.getLogger("collectives.expenses")


async def list_expense_comments(ctx: RequestContext, expense: Expense, limit: int = 50, offset: int = 0) -> List[Comment]:
    if not await can_comment(ctx, expense):
        raise Forbidden("You don't have the permission to see comments on this expense")
    
    result = await ctx.db.execute(
        select(Comment)
        .where(Comment.expense_id == expense.id)
        .order_by(Comment.created_at, Comment.id)
        .offset(offset)
        .limit(limit)
    )
    return list(result.scalars().all())


async def create_expense_comment(ctx: RequestContext, expense: Expense, html: str) -> Comment:
    if not await can_comment(ctx, expense):
        raise Forbidden("You don't have the permission to comment on this expense")
    
    db = ctx.db
    comment = Comment(
        expense_id=expense.id,
        from_collective_id=ctx.remote_user.collective_id,
        created_by_user_id=ctx.remote_user.id,
        html=html,
    )
    try:
        db.add(comment)
        await db.flush()
        create_expense_activity(
            db,
            ActivityType.EXPENSE_COMMENT_CREATED,
            expense,
            ctx.remote_user,
            data={"comment": {"id": comment.id, "html": html}},
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    
    await db.refresh(comment)
    return comment


async def get_comment_or_404(db: AsyncSession, expense: Expense, comment_id: int) -> Comment:
    comment = await db.get(Comment, comment_id)
    if not comment or comment.expense_id != expense.id:
        raise ResourceNotFoundError("Comment", comment_id)
    return comment


async def _is_comment_author_or_admin(ctx: RequestContext, expense: Expense, comment: Comment) -> bool:
    if ctx.remote_user.id == comment.created_by_user_id:
        return True
    return await is_collective_admin(ctx, expense)


async def edit_expense_comment(ctx: RequestContext, expense: Expense, comment: Comment, html: str) -> Comment:
    """Only the author or an admin of the expense's collective can edit a comment."""
    if not ctx.remote_user:
        raise AuthenticationError("You must be logged in to edit this comment")
    if not await _is_comment_author_or_admin(ctx, expense, comment):
        raise Forbidden("You must be the author or an admin of this collective to edit this comment")
    
    db = ctx.db
    comment.html = html
    try:
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    
    await db.refresh(comment)
    logger.info("Comment %s on expense %s edited by user %s", comment.id, expense.id, ctx.remote_user.id)
    return comment


async def delete_expense_comment(ctx: RequestContext, expense: Expense, comment: Comment) -> None:
    """The author, an admin of the expense's collective or a host admin can delete a comment."""
    if not ctx.remote_user:
        raise AuthenticationError("You must be logged in to delete this comment")
    if not (
        await _is_comment_author_or_admin(ctx, expense, comment)
        or await is_host_admin(ctx, expense)
    ):
        raise Forbidden("You need to be logged in as a core contributor or as a host to delete this comment")
    
    db = ctx.db
    comment_id = comment.id
    try:
        await db.delete(comment)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    
    logger.info("Comment %s on expense %s deleted by user %s", comment_id, expense.id, ctx.remote_user.id)
