"""
Expense Comment API Endpoints.
"""

from fastapi import APIRouter, Depends, Path, Query, Response, status
from sqlalchemy import select, func

from collectives_backend.app.core.context import RequestContext
from collectives_backend.app.core.dependencies import get_request_context, require_authenticated_context
from collectives_backend.app.models.comment import Comment
from collectives_backend.app.schemas.comment import CommentCreate, CommentUpdate, CommentResponse, CommentListResponse
from collectives_backend.app.services.comments import (
    list_expense_comments, create_expense_comment, edit_expense_comment, delete_expense_comment, get_comment_or_404
)
from collectives_backend.app.services.expenses import get_expense_or_404

router = APIRouter(prefix="/expenses", tags=["Expense Comments"])


@router.get("/{expense_id}/comments", response_model=CommentListResponse)
async def list_comments(
    expense_id: int = Path(..., description="Expense ID"),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=100),
    ctx: RequestContext = Depends(get_request_context)
):
    """
    List comments of an expense, oldest first.
    
    Only the owner, collective admins and host admins can read them.
    """
    expense = await get_expense_or_404(ctx.db, expense_id)
    offset = (page - 1) * page_size
    comments = await list_expense_comments(ctx, expense, limit=page_size, offset=offset)
    
    total_result = await ctx.db.execute(
        select(func.count(Comment.id)).where(Comment.expense_id == expense.id)
    )
    
    return CommentListResponse(
        comments=[CommentResponse.model_validate(c) for c in comments],
        total=total_result.scalar()
    )


@router.post("/{expense_id}/comments", response_model=CommentResponse, status_code=status.HTTP_201_CREATED)
async def post_comment(
    comment_data: CommentCreate,
    expense_id: int = Path(..., description="Expense ID"),
    ctx: RequestContext = Depends(require_authenticated_context)
):
    """Comment on an expense."""
    expense = await get_expense_or_404(ctx.db, expense_id)
    comment = await create_expense_comment(ctx, expense, comment_data.html)
    return comment


@router.put("/{expense_id}/comments/{comment_id}", response_model=CommentResponse)
async def edit_comment(
    comment_data: CommentUpdate,
    expense_id: int = Path(..., description="Expense ID"),
    comment_id: int = Path(..., description="Comment ID"),
    ctx: RequestContext = Depends(get_request_context)
):
    """Edit a comment (author or collective admin)."""
    expense = await get_expense_or_404(ctx.db, expense_id)
    comment = await get_comment_or_404(ctx.db, expense, comment_id)
    return await edit_expense_comment(ctx, expense, comment, comment_data.html)


@router.delete("/{expense_id}/comments/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_comment(
    expense_id: int = Path(..., description="Expense ID"),
    comment_id: int = Path(..., description="Comment ID"),
    ctx: RequestContext = Depends(get_request_context)
):
    """Delete a comment (author, collective admin or host admin)."""
    expense = await get_expense_or_404(ctx.db, expense_id)
    comment = await get_comment_or_404(ctx.db, expense, comment_id)
    await delete_expense_comment(ctx, expense, comment)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
