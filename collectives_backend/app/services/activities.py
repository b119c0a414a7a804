"""
Activity service for the expense audit trail.

Activities are staged in the caller's transaction so that a status change
and its activity are committed (or rolled back) together.
"""

from typing import Optional, Dict, Any, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc
from collectives_backend.app.models.activity import Activity
from collectives_backend.app.models.expense import Expense
from collectives_backend.app.models.user import User


class ActivityType:
    """Standardized activity type constants."""
    COLLECTIVE_EXPENSE_CREATED = "collective.expense.created"
    COLLECTIVE_EXPENSE_APPROVED = "collective.expense.approved"
    COLLECTIVE_EXPENSE_UNAPPROVED = "collective.expense.unapproved"
    COLLECTIVE_EXPENSE_REJECTED = "collective.expense.rejected"
    COLLECTIVE_EXPENSE_SCHEDULED_FOR_PAYMENT = "collective.expense.scheduledForPayment"
    COLLECTIVE_EXPENSE_MARKED_AS_UNPAID = "collective.expense.markedAsUnpaid"
    EXPENSE_COMMENT_CREATED = "expense.comment.created"


def create_expense_activity(
    db: AsyncSession,
    activity_type: str,
    expense: Expense,
    user: Optional[User],
    data: Optional[Dict[str, Any]] = None
) -> Activity:
    """
    Stage an activity for an expense event.
    
    Args:
        db: Database session (commit is the caller's job)
        activity_type: One of the ActivityType constants
        expense: Expense the event is about
        user: Acting user, None for system events
        data: Extra context merged into the snapshot
        
    Returns:
        The pending Activity instance
    """
    snapshot = {
        "expense": {
            "id": expense.id,
            "status": expense.status.value,
            "amount": expense.amount,
            "currency": expense.currency,
            "description": expense.description,
            "collective_id": expense.collective_id,
            "from_collective_id": expense.from_collective_id,
            "user_id": expense.user_id,
        },
        "user": {"id": user.id, "username": user.username} if user else None,
    }
    if data:
        snapshot.update(data)
    
    activity = Activity(
        type=activity_type,
        collective_id=expense.collective_id,
        expense_id=expense.id,
        user_id=user.id if user else None,
        data=snapshot,
    )
    db.add(activity)
    return activity


async def get_expense_activities(
    db: AsyncSession,
    expense_id: int,
    activity_type: Optional[str] = None,
    limit: int = 100
) -> List[Activity]:
    """
    Activities of an expense, most recent first.
    """
    query = select(Activity).where(Activity.expense_id == expense_id)
    
    if activity_type:
        query = query.where(Activity.type == activity_type)
    
    query = query.order_by(desc(Activity.created_at), desc(Activity.id)).limit(limit)
    
    result = await db.execute(query)
    return list(result.scalars().all())
