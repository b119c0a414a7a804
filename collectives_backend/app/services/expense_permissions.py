"""
Expense permissions and status transitions.

Capability predicates answer "who is the requester to this expense"
(owner, collective admin, collective accountant, host admin). Permission
checks combine them with status and feature-flag gates. Actions apply a
status transition and record its activity in a single transaction.

Predicates and checks never raise; actions raise Forbidden, Unauthorized
or BadRequest.
"""

import logging
from typing import Awaitable, Callable, Dict, List, Sequence

from collectives_backend.app.core.context import RequestContext
from collectives_backend.app.core.exceptions import BadRequest, Forbidden, Unauthorized
from collectives_backend.app.models.enums import ExpenseStatus, MemberRole
from collectives_backend.app.models.expense import Expense
from collectives_backend.app.models.expense_item import ExpenseItem
from collectives_backend.app.services.activities import ActivityType, create_expense_activity
from collectives_backend.app.services.feature_flags import Feature, can_use_feature
from collectives_backend.app.services.ledger import format_currency, get_balance, record_expense_refund

logger = logging.getLogger("collectives.expenses")

ExpenseCondition = Callable[[RequestContext, Expense], Awaitable[bool]]


# =============================================================================
# CAPABILITY PREDICATES
# =============================================================================

async def is_owner(ctx: RequestContext, expense: Expense) -> bool:
    """Author of the expense, or admin of the payee collective."""
    if not ctx.remote_user:
        return False
    if ctx.remote_user.id == expense.user_id:
        return True

    from_collective = await ctx.loaders.collective_by_id.load(expense.from_collective_id)
    return ctx.remote_user.is_admin_of_collective(from_collective)


async def is_collective_accountant(ctx: RequestContext, expense: Expense) -> bool:
    """
    Accountant of the billed collective, of its host, or for events and
    projects of the parent collective and then the parent's host.
    """
    user = ctx.remote_user
    if not user:
        return False
    if user.has_role(MemberRole.ACCOUNTANT, expense.collective_id):
        return True

    collective = await ctx.loaders.collective_by_id.load(expense.collective_id)
    if not collective:
        return False
    if user.has_role(MemberRole.ACCOUNTANT, collective.host_collective_id):
        return True
    if not collective.parent_collective_id:
        return False
    if user.has_role(MemberRole.ACCOUNTANT, collective.parent_collective_id):
        return True

    parent = await ctx.loaders.collective_by_id.load(collective.parent_collective_id)
    return parent is not None and user.has_role(MemberRole.ACCOUNTANT, parent.host_collective_id)


async def is_collective_admin(ctx: RequestContext, expense: Expense) -> bool:
    if not ctx.remote_user:
        return False

    collective = await ctx.loaders.collective_by_id.load(expense.collective_id)
    return ctx.remote_user.is_admin_of_collective(collective)


async def is_host_admin(ctx: RequestContext, expense: Expense) -> bool:
    """Admin of the billed collective's host. Only holds while the collective is active."""
    if not ctx.remote_user:
        return False

    collective = await ctx.loaders.collective_by_id.load(expense.collective_id)
    if not collective:
        return False

    return bool(collective.is_active) and ctx.remote_user.is_admin(collective.host_collective_id)


async def remote_user_meets_one_condition(
    ctx: RequestContext,
    expense: Expense,
    conditions: Sequence[ExpenseCondition]
) -> bool:
    """
    Returns True if the requester meets at least one condition.
    Always returns False for unauthenticated requests.
    """
    if not ctx.remote_user:
        return False

    for condition in conditions:
        if await condition(ctx, expense):
            return True

    return False


# Who may look at sensitive expense data
SENSITIVE_DATA_VIEWERS: List[ExpenseCondition] = [
    is_owner,
    is_collective_admin,
    is_collective_accountant,
    is_host_admin,
]


# =============================================================================
# VISIBILITY CHECKS
# =============================================================================

async def can_see_expense_attachments(ctx: RequestContext, expense: Expense) -> bool:
    """Checks if the user can see expense's attachments (items URLs, attached files)"""
    return await remote_user_meets_one_condition(ctx, expense, SENSITIVE_DATA_VIEWERS)


async def can_see_expense_payout_method(ctx: RequestContext, expense: Expense) -> bool:
    return await remote_user_meets_one_condition(ctx, expense, SENSITIVE_DATA_VIEWERS)


async def can_see_expense_invoice_info(ctx: RequestContext, expense: Expense) -> bool:
    return await remote_user_meets_one_condition(ctx, expense, SENSITIVE_DATA_VIEWERS)


async def can_see_expense_payee_location(ctx: RequestContext, expense: Expense) -> bool:
    return await remote_user_meets_one_condition(ctx, expense, SENSITIVE_DATA_VIEWERS)


async def can_see_expense_activities(ctx: RequestContext, expense: Expense) -> bool:
    return await remote_user_meets_one_condition(ctx, expense, SENSITIVE_DATA_VIEWERS)


async def can_verify_draft_expense(ctx: RequestContext, expense: Expense) -> bool:
    """Checks if the user can verify or resend a draft"""
    return await remote_user_meets_one_condition(ctx, expense, [is_owner, is_collective_admin, is_host_admin])


async def can_view_required_legal_documents(ctx: RequestContext, expense: Expense) -> bool:
    return await remote_user_meets_one_condition(ctx, expense, [is_host_admin, is_collective_accountant, is_owner])


async def get_expense_items(ctx: RequestContext, expense_id: int) -> List[ExpenseItem]:
    return await ctx.loaders.expense_items.load(expense_id)


# =============================================================================
# PERMISSION CHECKS
# =============================================================================

def _can_use_expenses(ctx: RequestContext) -> bool:
    return can_use_feature(ctx.remote_user, Feature.USE_EXPENSES)


async def can_edit_expense(ctx: RequestContext, expense: Expense) -> bool:
    """
    Only the author or an admin of the collective or collective.host can edit
    an expense when it hasn't been paid yet.
    """
    if not _can_use_expenses(ctx):
        return False
    if expense.status in (ExpenseStatus.PAID, ExpenseStatus.PROCESSING, ExpenseStatus.DRAFT):
        return False
    return await remote_user_meets_one_condition(ctx, expense, [is_owner, is_host_admin, is_collective_admin])


async def can_delete_expense(ctx: RequestContext, expense: Expense) -> bool:
    """Only rejected expenses can be deleted, by their owner or an admin."""
    if not _can_use_expenses(ctx):
        return False
    if expense.status != ExpenseStatus.REJECTED:
        return False
    return await remote_user_meets_one_condition(ctx, expense, [is_owner, is_collective_admin, is_host_admin])


async def can_pay_expense(ctx: RequestContext, expense: Expense) -> bool:
    if not _can_use_expenses(ctx):
        return False
    if expense.status not in (ExpenseStatus.APPROVED, ExpenseStatus.ERROR):
        return False
    return await is_host_admin(ctx, expense)


async def can_approve(ctx: RequestContext, expense: Expense) -> bool:
    if not _can_use_expenses(ctx):
        return False
    if expense.status not in (ExpenseStatus.PENDING, ExpenseStatus.REJECTED):
        return False
    return await remote_user_meets_one_condition(ctx, expense, [is_collective_admin, is_host_admin])


async def can_reject(ctx: RequestContext, expense: Expense) -> bool:
    if not _can_use_expenses(ctx):
        return False
    if expense.status not in (ExpenseStatus.PENDING, ExpenseStatus.UNVERIFIED):
        return False
    return await remote_user_meets_one_condition(ctx, expense, [is_collective_admin, is_host_admin])


async def can_unapprove(ctx: RequestContext, expense: Expense) -> bool:
    if not _can_use_expenses(ctx):
        return False
    if expense.status != ExpenseStatus.APPROVED:
        return False
    return await remote_user_meets_one_condition(ctx, expense, [is_collective_admin, is_host_admin])


async def can_mark_as_unpaid(ctx: RequestContext, expense: Expense) -> bool:
    if not _can_use_expenses(ctx):
        return False
    if expense.status != ExpenseStatus.PAID:
        return False
    return await is_host_admin(ctx, expense)


async def can_comment(ctx: RequestContext, expense: Expense) -> bool:
    """Returns True if user can comment and see others comments for this expense"""
    if not _can_use_expenses(ctx):
        return False
    return await remote_user_meets_one_condition(ctx, expense, [is_collective_admin, is_host_admin, is_owner])


PERMISSION_CHECKS: Dict[str, ExpenseCondition] = {
    "can_edit": can_edit_expense,
    "can_delete": can_delete_expense,
    "can_see_invoice_info": can_see_expense_invoice_info,
    "can_pay": can_pay_expense,
    "can_approve": can_approve,
    "can_unapprove": can_unapprove,
    "can_reject": can_reject,
    "can_mark_as_unpaid": can_mark_as_unpaid,
    "can_comment": can_comment,
    "can_verify_draft": can_verify_draft_expense,
    "can_view_required_legal_documents": can_view_required_legal_documents,
}


async def get_expense_permissions(ctx: RequestContext, expense: Expense) -> Dict[str, bool]:
    """Evaluate every permission check for the requester."""
    return {name: await check(ctx, expense) for name, check in PERMISSION_CHECKS.items()}


# =============================================================================
# ACTIONS
# =============================================================================

def _ensure_authenticated(ctx: RequestContext, action: str) -> None:
    if not ctx.remote_user:
        logger.warning("Unauthenticated attempt to %s an expense", action)
        raise Forbidden(f"You need to be logged in to {action} an expense")


async def _apply_transition(
    ctx: RequestContext,
    expense: Expense,
    status: ExpenseStatus,
    activity_type: str
) -> Expense:
    """
    Set the new status and record its activity, committed as one transaction.
    Anything already staged on the session (e.g. ledger entries) is committed
    with it.
    """
    db = ctx.db
    expense_id = expense.id
    previous_status = expense.status

    try:
        expense.status = status
        expense.last_edited_by_id = ctx.remote_user.id
        create_expense_activity(
            db,
            activity_type,
            expense,
            ctx.remote_user,
            data={"previous_status": previous_status.value},
        )
        await db.commit()
    except Exception:
        await db.rollback()
        logger.exception(
            "Failed to move expense %s from %s to %s", expense_id, previous_status.value, status.value
        )
        raise

    await db.refresh(expense)
    logger.info(
        "Expense %s moved from %s to %s by user %s",
        expense_id, previous_status.value, status.value, ctx.remote_user.id
    )
    return expense


def _deny(expense: Expense, action: str, message: str = None) -> Forbidden:
    logger.warning("Denied %s on expense %s (status %s)", action, expense.id, expense.status.value)
    return Forbidden(message or f"You are not allowed to {action} this expense")


async def approve_expense(ctx: RequestContext, expense: Expense) -> Expense:
    _ensure_authenticated(ctx, "approve")
    if expense.status == ExpenseStatus.APPROVED:
        return expense
    if not await can_approve(ctx, expense):
        raise _deny(expense, "approve")

    return await _apply_transition(ctx, expense, ExpenseStatus.APPROVED, ActivityType.COLLECTIVE_EXPENSE_APPROVED)


async def unapprove_expense(ctx: RequestContext, expense: Expense) -> Expense:
    _ensure_authenticated(ctx, "unapprove")
    if expense.status == ExpenseStatus.PENDING:
        return expense
    if not await can_unapprove(ctx, expense):
        raise _deny(expense, "unapprove")

    return await _apply_transition(ctx, expense, ExpenseStatus.PENDING, ActivityType.COLLECTIVE_EXPENSE_UNAPPROVED)


async def reject_expense(ctx: RequestContext, expense: Expense) -> Expense:
    _ensure_authenticated(ctx, "reject")
    if expense.status == ExpenseStatus.REJECTED:
        return expense
    if not await can_reject(ctx, expense):
        raise _deny(expense, "reject")

    return await _apply_transition(ctx, expense, ExpenseStatus.REJECTED, ActivityType.COLLECTIVE_EXPENSE_REJECTED)


async def schedule_expense_for_payment(ctx: RequestContext, expense: Expense) -> Expense:
    _ensure_authenticated(ctx, "schedule")
    if expense.status == ExpenseStatus.SCHEDULED_FOR_PAYMENT:
        raise BadRequest("Expense is already scheduled for payment")
    if not await can_pay_expense(ctx, expense):
        raise _deny(expense, "schedule", "You're authenticated but you can't schedule this expense for payment")

    collective = await ctx.loaders.collective_by_id.load(expense.collective_id)
    balance = await get_balance(ctx.db, collective)
    if expense.amount > balance:
        logger.warning(
            "Not enough funds to schedule expense %s: balance %s, amount %s",
            expense.id, balance, expense.amount
        )
        raise Unauthorized(
            "You don't have enough funds to pay this expense. "
            f"Current balance: {format_currency(balance, collective.currency)}, "
            f"Expense amount: {format_currency(expense.amount, collective.currency)}",
            details={"balance": balance, "amount": expense.amount, "currency": collective.currency},
        )

    return await _apply_transition(
        ctx, expense, ExpenseStatus.SCHEDULED_FOR_PAYMENT, ActivityType.COLLECTIVE_EXPENSE_SCHEDULED_FOR_PAYMENT
    )


async def mark_expense_as_unpaid(ctx: RequestContext, expense: Expense) -> Expense:
    """
    Revert a paid expense to APPROVED and credit its amount back to the
    billed collective.
    """
    _ensure_authenticated(ctx, "mark as unpaid")
    if not await can_mark_as_unpaid(ctx, expense):
        raise _deny(expense, "mark as unpaid")

    record_expense_refund(ctx.db, expense)
    return await _apply_transition(
        ctx, expense, ExpenseStatus.APPROVED, ActivityType.COLLECTIVE_EXPENSE_MARKED_AS_UNPAID
    )
