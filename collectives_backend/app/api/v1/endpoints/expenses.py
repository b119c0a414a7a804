"""
Expense API Endpoints.

Submission, permission-aware reads and status transitions. All decisions
are delegated to services/expense_permissions.py.
"""

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy import select, func

from collectives_backend.app.core.context import RequestContext
from collectives_backend.app.core.dependencies import get_request_context, require_authenticated_context
from collectives_backend.app.core.exceptions import Forbidden
from collectives_backend.app.models.activity import Activity
from collectives_backend.app.models.expense import Expense
from collectives_backend.app.schemas.activity import ActivityListResponse, ActivityResponse
from collectives_backend.app.schemas.expense import (
    ExpenseCreate, ExpenseResponse, ExpenseItemResponse, ExpensePermissions
)
from collectives_backend.app.services import expense_permissions as permissions
from collectives_backend.app.services.activities import get_expense_activities
from collectives_backend.app.services.expenses import create_expense, get_expense_or_404

router = APIRouter(prefix="/expenses", tags=["Expenses"])


async def serialize_expense(ctx: RequestContext, expense: Expense) -> ExpenseResponse:
    """Build the response, hiding sensitive fields the requester can't see."""
    can_see_attachments = await permissions.can_see_expense_attachments(ctx, expense)
    can_see_payout_method = await permissions.can_see_expense_payout_method(ctx, expense)
    can_see_invoice_info = await permissions.can_see_expense_invoice_info(ctx, expense)
    can_see_payee_location = await permissions.can_see_expense_payee_location(ctx, expense)
    can_see_legal_documents = await permissions.can_view_required_legal_documents(ctx, expense)
    
    items = await permissions.get_expense_items(ctx, expense.id)
    
    return ExpenseResponse(
        id=expense.id,
        status=expense.status.value,
        amount=expense.amount,
        currency=expense.currency,
        description=expense.description,
        collective_id=expense.collective_id,
        from_collective_id=expense.from_collective_id,
        user_id=expense.user_id,
        last_edited_by_id=expense.last_edited_by_id,
        incurred_at=expense.incurred_at,
        created_at=expense.created_at,
        updated_at=expense.updated_at,
        items=[
            ExpenseItemResponse(
                id=item.id,
                amount=item.amount,
                description=item.description,
                url=item.url if can_see_attachments else None,
                incurred_at=item.incurred_at,
            )
            for item in items
        ],
        payout_method=expense.payout_method if can_see_payout_method else None,
        invoice_info=expense.invoice_info if can_see_invoice_info else None,
        payee_location=expense.payee_location if can_see_payee_location else None,
        legal_documents_required=expense.legal_documents_required if can_see_legal_documents else None,
        permissions=ExpensePermissions(**await permissions.get_expense_permissions(ctx, expense)),
    )


@router.post("", response_model=ExpenseResponse, status_code=status.HTTP_201_CREATED)
async def submit_expense(
    expense_data: ExpenseCreate,
    ctx: RequestContext = Depends(require_authenticated_context)
):
    """
    Submit an expense to a collective.
    
    The expense starts as PENDING and is billed in the collective's currency.
    """
    expense = await create_expense(ctx, expense_data)
    return await serialize_expense(ctx, expense)


@router.get("/{expense_id}", response_model=ExpenseResponse)
async def get_expense(
    expense_id: int = Path(..., description="Expense ID"),
    ctx: RequestContext = Depends(get_request_context)
):
    """
    Get an expense.
    
    Attachments, payout method, invoice info and payee location are only
    returned to the owner, collective admins, accountants and host admins.
    """
    expense = await get_expense_or_404(ctx.db, expense_id)
    return await serialize_expense(ctx, expense)


@router.post("/{expense_id}/approve", response_model=ExpenseResponse)
async def approve_expense(
    expense_id: int = Path(..., description="Expense ID"),
    ctx: RequestContext = Depends(get_request_context)
):
    """Approve a PENDING or REJECTED expense (collective or host admin)."""
    expense = await get_expense_or_404(ctx.db, expense_id)
    expense = await permissions.approve_expense(ctx, expense)
    return await serialize_expense(ctx, expense)


@router.post("/{expense_id}/unapprove", response_model=ExpenseResponse)
async def unapprove_expense(
    expense_id: int = Path(..., description="Expense ID"),
    ctx: RequestContext = Depends(get_request_context)
):
    """Move an APPROVED expense back to PENDING (collective or host admin)."""
    expense = await get_expense_or_404(ctx.db, expense_id)
    expense = await permissions.unapprove_expense(ctx, expense)
    return await serialize_expense(ctx, expense)


@router.post("/{expense_id}/reject", response_model=ExpenseResponse)
async def reject_expense(
    expense_id: int = Path(..., description="Expense ID"),
    ctx: RequestContext = Depends(get_request_context)
):
    """Reject a PENDING or UNVERIFIED expense (collective or host admin)."""
    expense = await get_expense_or_404(ctx.db, expense_id)
    expense = await permissions.reject_expense(ctx, expense)
    return await serialize_expense(ctx, expense)


@router.post("/{expense_id}/schedule-for-payment", response_model=ExpenseResponse)
async def schedule_expense_for_payment(
    expense_id: int = Path(..., description="Expense ID"),
    ctx: RequestContext = Depends(get_request_context)
):
    """
    Schedule an APPROVED (or ERROR) expense for payment (host admin only).
    
    Returns 401 when the collective balance does not cover the expense.
    """
    expense = await get_expense_or_404(ctx.db, expense_id)
    expense = await permissions.schedule_expense_for_payment(ctx, expense)
    return await serialize_expense(ctx, expense)


@router.post("/{expense_id}/mark-as-unpaid", response_model=ExpenseResponse)
async def mark_expense_as_unpaid(
    expense_id: int = Path(..., description="Expense ID"),
    ctx: RequestContext = Depends(get_request_context)
):
    """Revert a PAID expense to APPROVED and refund the collective (host admin only)."""
    expense = await get_expense_or_404(ctx.db, expense_id)
    expense = await permissions.mark_expense_as_unpaid(ctx, expense)
    return await serialize_expense(ctx, expense)


@router.get("/{expense_id}/activities", response_model=ActivityListResponse)
async def list_expense_activities(
    expense_id: int = Path(..., description="Expense ID"),
    limit: int = Query(100, ge=1, le=500),
    ctx: RequestContext = Depends(get_request_context)
):
    """Activity trail of an expense, most recent first."""
    expense = await get_expense_or_404(ctx.db, expense_id)
    if not await permissions.can_see_expense_activities(ctx, expense):
        raise Forbidden("You don't have the permission to see the activities of this expense")
    
    activities = await get_expense_activities(ctx.db, expense.id, limit=limit)
    total_result = await ctx.db.execute(
        select(func.count(Activity.id)).where(Activity.expense_id == expense.id)
    )
    
    return ActivityListResponse(
        activities=[ActivityResponse.model_validate(a) for a in activities],
        total=total_result.scalar()
    )
