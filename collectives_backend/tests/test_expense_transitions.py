"""
Tests for expense status transitions.

Covers the transition table, idempotent no-ops, the funds check on
scheduling and the status + activity atomicity.
"""

import pytest
from sqlalchemy import select, func

from collectives_backend.app.core.exceptions import BadRequest, Forbidden, Unauthorized
from collectives_backend.app.models.activity import Activity
from collectives_backend.app.models.ledger_entry import LedgerEntry
from collectives_backend.app.models.enums import ExpenseStatus, LedgerEntryType
from collectives_backend.app.services import expense_permissions as permissions
from collectives_backend.app.services.activities import ActivityType
from collectives_backend.app.services.ledger import get_balance
from collectives_backend.tests.factories import credit_collective


async def count_activities(db, expense, activity_type=None):
    query = select(func.count(Activity.id)).where(Activity.expense_id == expense.id)
    if activity_type:
        query = query.where(Activity.type == activity_type)
    result = await db.execute(query)
    return result.scalar()


async def set_status(db, expense, status):
    expense.status = status
    await db.commit()
    await db.refresh(expense)


# TEST 1: Approve
@pytest.mark.asyncio
async def test_collective_admin_approves_pending_expense(world, make_context, db_session):
    ctx = make_context(world.collective_admin)

    expense = await permissions.approve_expense(ctx, world.expense)

    assert expense.status == ExpenseStatus.APPROVED
    assert expense.last_edited_by_id == world.collective_admin.id
    assert await count_activities(db_session, expense) == 1

    activity = (await db_session.execute(select(Activity))).scalar_one()
    assert activity.type == ActivityType.COLLECTIVE_EXPENSE_APPROVED
    assert activity.user_id == world.collective_admin.id
    assert activity.collective_id == world.collective.id
    assert activity.data["expense"]["status"] == "APPROVED"
    assert activity.data["previous_status"] == "PENDING"


@pytest.mark.asyncio
async def test_host_admin_approves_rejected_expense(world, make_context, db_session):
    await set_status(db_session, world.expense, ExpenseStatus.REJECTED)

    expense = await permissions.approve_expense(make_context(world.host_admin), world.expense)
    assert expense.status == ExpenseStatus.APPROVED


@pytest.mark.asyncio
async def test_approve_already_approved_is_noop(world, make_context, db_session):
    await set_status(db_session, world.expense, ExpenseStatus.APPROVED)

    expense = await permissions.approve_expense(make_context(world.collective_admin), world.expense)

    assert expense is world.expense
    assert expense.status == ExpenseStatus.APPROVED
    assert await count_activities(db_session, expense) == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("user", ["author", "collective_accountant", "host_accountant", "stranger"])
async def test_non_admins_cannot_approve(world, make_context, db_session, user):
    with pytest.raises(Forbidden):
        await permissions.approve_expense(make_context(getattr(world, user)), world.expense)

    assert world.expense.status == ExpenseStatus.PENDING
    assert await count_activities(db_session, world.expense) == 0


@pytest.mark.asyncio
async def test_host_admin_cannot_approve_for_inactive_collective(world, make_context, db_session):
    world.collective.is_active = False
    await db_session.commit()

    with pytest.raises(Forbidden):
        await permissions.approve_expense(make_context(world.host_admin), world.expense)


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [ExpenseStatus.PAID, ExpenseStatus.SCHEDULED_FOR_PAYMENT, ExpenseStatus.DRAFT])
async def test_cannot_approve_from_invalid_status(world, make_context, db_session, status):
    await set_status(db_session, world.expense, status)

    with pytest.raises(Forbidden):
        await permissions.approve_expense(make_context(world.host_admin), world.expense)
    assert world.expense.status == status


# TEST 2: Unapprove
@pytest.mark.asyncio
async def test_unapprove_approved_expense(world, make_context, db_session):
    await set_status(db_session, world.expense, ExpenseStatus.APPROVED)

    expense = await permissions.unapprove_expense(make_context(world.host_admin), world.expense)

    assert expense.status == ExpenseStatus.PENDING
    assert await count_activities(db_session, expense, ActivityType.COLLECTIVE_EXPENSE_UNAPPROVED) == 1


@pytest.mark.asyncio
async def test_unapprove_pending_is_noop(world, make_context, db_session):
    expense = await permissions.unapprove_expense(make_context(world.stranger), world.expense)

    assert expense.status == ExpenseStatus.PENDING
    assert await count_activities(db_session, expense) == 0


@pytest.mark.asyncio
async def test_cannot_unapprove_rejected(world, make_context, db_session):
    await set_status(db_session, world.expense, ExpenseStatus.REJECTED)

    with pytest.raises(Forbidden):
        await permissions.unapprove_expense(make_context(world.collective_admin), world.expense)


# TEST 3: Reject
@pytest.mark.asyncio
@pytest.mark.parametrize("status", [ExpenseStatus.PENDING, ExpenseStatus.UNVERIFIED])
async def test_reject(world, make_context, db_session, status):
    await set_status(db_session, world.expense, status)

    expense = await permissions.reject_expense(make_context(world.collective_admin), world.expense)

    assert expense.status == ExpenseStatus.REJECTED
    assert await count_activities(db_session, expense, ActivityType.COLLECTIVE_EXPENSE_REJECTED) == 1


@pytest.mark.asyncio
async def test_reject_already_rejected_is_noop(world, make_context, db_session):
    await set_status(db_session, world.expense, ExpenseStatus.REJECTED)

    expense = await permissions.reject_expense(make_context(world.collective_admin), world.expense)

    assert expense.status == ExpenseStatus.REJECTED
    assert await count_activities(db_session, expense) == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("user", [
    "author", "payee_admin", "collective_admin", "collective_accountant", "host_admin", "host_accountant", "stranger",
])
async def test_nobody_can_reject_paid_expense(world, make_context, db_session, user):
    await set_status(db_session, world.expense, ExpenseStatus.PAID)

    with pytest.raises(Forbidden):
        await permissions.reject_expense(make_context(getattr(world, user)), world.expense)
    assert world.expense.status == ExpenseStatus.PAID


# TEST 4: Schedule for payment
@pytest.mark.asyncio
async def test_schedule_for_payment_with_enough_funds(world, make_context, db_session):
    await set_status(db_session, world.expense, ExpenseStatus.APPROVED)
    await credit_collective(db_session, world.collective, 150000)

    expense = await permissions.schedule_expense_for_payment(make_context(world.host_admin), world.expense)

    assert expense.status == ExpenseStatus.SCHEDULED_FOR_PAYMENT
    assert await count_activities(db_session, expense, ActivityType.COLLECTIVE_EXPENSE_SCHEDULED_FOR_PAYMENT) == 1


@pytest.mark.asyncio
async def test_schedule_from_error_status(world, make_context, db_session):
    await set_status(db_session, world.expense, ExpenseStatus.ERROR)
    await credit_collective(db_session, world.collective, 100000)

    expense = await permissions.schedule_expense_for_payment(make_context(world.host_admin), world.expense)
    assert expense.status == ExpenseStatus.SCHEDULED_FOR_PAYMENT


@pytest.mark.asyncio
async def test_schedule_without_enough_funds(world, make_context, db_session):
    await set_status(db_session, world.expense, ExpenseStatus.APPROVED)
    await credit_collective(db_session, world.collective, 50000)

    with pytest.raises(Unauthorized) as exc_info:
        await permissions.schedule_expense_for_payment(make_context(world.host_admin), world.expense)

    assert exc_info.value.message == (
        "You don't have enough funds to pay this expense. "
        "Current balance: $500.00, Expense amount: $1,000.00"
    )
    assert exc_info.value.details == {"balance": 50000, "amount": 100000, "currency": "USD"}
    assert world.expense.status == ExpenseStatus.APPROVED
    assert await count_activities(db_session, world.expense) == 0


@pytest.mark.asyncio
async def test_schedule_twice_is_bad_request(world, make_context, db_session):
    await set_status(db_session, world.expense, ExpenseStatus.SCHEDULED_FOR_PAYMENT)

    with pytest.raises(BadRequest):
        await permissions.schedule_expense_for_payment(make_context(world.host_admin), world.expense)


@pytest.mark.asyncio
async def test_collective_admin_cannot_schedule(world, make_context, db_session):
    await set_status(db_session, world.expense, ExpenseStatus.APPROVED)
    await credit_collective(db_session, world.collective, 500000)

    with pytest.raises(Forbidden) as exc_info:
        await permissions.schedule_expense_for_payment(make_context(world.collective_admin), world.expense)
    assert "can't schedule this expense for payment" in exc_info.value.message


@pytest.mark.asyncio
async def test_cannot_schedule_pending_expense(world, make_context, db_session):
    await credit_collective(db_session, world.collective, 500000)

    with pytest.raises(Forbidden):
        await permissions.schedule_expense_for_payment(make_context(world.host_admin), world.expense)


# TEST 5: Mark as unpaid
@pytest.mark.asyncio
async def test_mark_as_unpaid_refunds_collective(world, make_context, db_session):
    await set_status(db_session, world.expense, ExpenseStatus.PAID)
    assert await get_balance(db_session, world.collective) == 0

    expense = await permissions.mark_expense_as_unpaid(make_context(world.host_admin), world.expense)

    assert expense.status == ExpenseStatus.APPROVED
    assert await get_balance(db_session, world.collective) == 100000
    assert await count_activities(db_session, expense, ActivityType.COLLECTIVE_EXPENSE_MARKED_AS_UNPAID) == 1

    entry = (await db_session.execute(select(LedgerEntry))).scalar_one()
    assert entry.entry_type == LedgerEntryType.CREDIT
    assert entry.expense_id == expense.id


@pytest.mark.asyncio
async def test_only_host_admin_marks_as_unpaid(world, make_context, db_session):
    await set_status(db_session, world.expense, ExpenseStatus.PAID)

    with pytest.raises(Forbidden):
        await permissions.mark_expense_as_unpaid(make_context(world.collective_admin), world.expense)
    assert await get_balance(db_session, world.collective) == 0


@pytest.mark.asyncio
async def test_cannot_mark_approved_as_unpaid(world, make_context, db_session):
    await set_status(db_session, world.expense, ExpenseStatus.APPROVED)

    with pytest.raises(Forbidden):
        await permissions.mark_expense_as_unpaid(make_context(world.host_admin), world.expense)


# TEST 6: Gates common to every action
ACTIONS = [
    permissions.approve_expense,
    permissions.unapprove_expense,
    permissions.reject_expense,
    permissions.schedule_expense_for_payment,
    permissions.mark_expense_as_unpaid,
]


@pytest.mark.asyncio
@pytest.mark.parametrize("action", ACTIONS)
async def test_unauthenticated_is_denied_every_action(world, make_context, action):
    with pytest.raises(Forbidden):
        await action(make_context(None), world.expense)


@pytest.mark.asyncio
async def test_unauthenticated_denied_before_noop(world, make_context, db_session):
    await set_status(db_session, world.expense, ExpenseStatus.APPROVED)

    with pytest.raises(Forbidden):
        await permissions.approve_expense(make_context(None), world.expense)


@pytest.mark.asyncio
async def test_feature_flag_blocks_admin(world, make_context, db_session):
    world.host_admin.data = {"features": {"ALL": False}}
    await db_session.commit()

    with pytest.raises(Forbidden):
        await permissions.approve_expense(make_context(world.host_admin), world.expense)
    assert world.expense.status == ExpenseStatus.PENDING


# TEST 7: Atomicity
@pytest.mark.asyncio
async def test_status_rolled_back_when_activity_fails(world, make_context, db_session, mocker):
    mocker.patch(
        "collectives_backend.app.services.expense_permissions.create_expense_activity",
        side_effect=RuntimeError("activity store unavailable"),
    )

    with pytest.raises(RuntimeError):
        await permissions.approve_expense(make_context(world.collective_admin), world.expense)

    await db_session.refresh(world.expense)
    assert world.expense.status == ExpenseStatus.PENDING
    assert await count_activities(db_session, world.expense) == 0


@pytest.mark.asyncio
async def test_refund_rolled_back_when_activity_fails(world, make_context, db_session, mocker):
    await set_status(db_session, world.expense, ExpenseStatus.PAID)
    mocker.patch(
        "collectives_backend.app.services.expense_permissions.create_expense_activity",
        side_effect=RuntimeError("activity store unavailable"),
    )

    with pytest.raises(RuntimeError):
        await permissions.mark_expense_as_unpaid(make_context(world.host_admin), world.expense)

    await db_session.refresh(world.expense)
    assert world.expense.status == ExpenseStatus.PAID
    await db_session.refresh(world.collective)
    assert await get_balance(db_session, world.collective) == 0
