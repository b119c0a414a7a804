"""
Expense submission.

Creates a PENDING expense with its items for the authenticated user.
"""

import logging
from sqlalchemy.ext.asyncio import AsyncSession

from collectives_backend.app.core.context import RequestContext
from collectives_backend.app.core.exceptions import Forbidden, ResourceNotFoundError, BadRequest
from collectives_backend.app.models.enums import ExpenseStatus
from collectives_backend.app.models.expense import Expense
from collectives_backend.app.models.expense_item import ExpenseItem
from collectives_backend.app.schemas.expense import ExpenseCreate
from collectives_backend.app.services.activities import ActivityType, create_expense_activity
from collectives_backend.app.services.feature_flags import Feature, can_use_feature

logger = logging.getLogger("collectives.expenses")


async def get_expense_or_404(db: AsyncSession, expense_id: int) -> Expense:
    expense = await db.get(Expense, expense_id)
    if not expense:
        raise ResourceNotFoundError("Expense", expense_id)
    return expense


async def create_expense(ctx: RequestContext, expense_data: ExpenseCreate) -> Expense:
    """
    Submit an expense.
    
    Flow:
    1. Feature gate (USE_EXPENSES)
    2. Resolve billed collective and payee (defaults to the user's profile)
    3. Persist expense + items + activity in one transaction
    
    Raises:
        Forbidden: expenses disabled for the user, or payee not administered by the user
        ResourceNotFoundError: unknown collective or payee
        BadRequest: expense billed to an inactive collective
    """
    user = ctx.remote_user
    if not can_use_feature(user, Feature.USE_EXPENSES):
        raise Forbidden("You are not allowed to submit expenses")
    
    collective = await ctx.loaders.collective_by_id.load(expense_data.collective_id)
    if not collective:
        raise ResourceNotFoundError("Collective", expense_data.collective_id)
    if not collective.is_active:
        raise BadRequest("This collective is not accepting expenses")
    
    from_collective_id = expense_data.from_collective_id or user.collective_id
    from_collective = await ctx.loaders.collective_by_id.load(from_collective_id)
    if not from_collective:
        raise ResourceNotFoundError("Payee collective", from_collective_id)
    if not user.is_admin_of_collective(from_collective):
        raise Forbidden("You must be an admin of the payee account to submit an expense on its behalf")
    
    db = ctx.db
    try:
        expense = Expense(
            collective_id=collective.id,
            from_collective_id=from_collective.id,
            user_id=user.id,
            last_edited_by_id=user.id,
            amount=sum(item.amount for item in expense_data.items),
            currency=collective.currency,
            description=expense_data.description,
            status=ExpenseStatus.PENDING,
            payout_method=expense_data.payout_method,
            invoice_info=expense_data.invoice_info,
            payee_location=expense_data.payee_location,
        )
        db.add(expense)
        await db.flush()  # To get expense.id
        
        for item in expense_data.items:
            db.add(ExpenseItem(
                expense_id=expense.id,
                amount=item.amount,
                description=item.description,
                url=item.url,
            ))
        
        create_expense_activity(db, ActivityType.COLLECTIVE_EXPENSE_CREATED, expense, user)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    
    await db.refresh(expense)
    logger.info("Expense %s submitted by user %s to collective %s", expense.id, user.id, collective.id)
    return expense
