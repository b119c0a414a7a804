"""
Ledger service.

Derives collective balances from ledger entries and records
compensating entries.
"""

from decimal import Decimal
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, case
from collectives_backend.app.models.collective import Collective
from collectives_backend.app.models.expense import Expense
from collectives_backend.app.models.ledger_entry import LedgerEntry
from collectives_backend.app.models.enums import LedgerEntryType


CURRENCY_SYMBOLS = {
    "USD": "$",
    "CAD": "CA$",
    "AUD": "A$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
    "INR": "₹",
}


def format_currency(amount: int, currency: str) -> str:
    """
    Format an amount in minor units, e.g. format_currency(150000, "USD") -> "$1,500.00".
    """
    value = Decimal(amount) / 100
    symbol = CURRENCY_SYMBOLS.get(currency)
    if symbol:
        return f"{'-' if value < 0 else ''}{symbol}{abs(value):,.2f}"
    return f"{value:,.2f} {currency}"


async def get_balance(db: AsyncSession, collective: Collective) -> int:
    """
    Current balance of a collective in minor units (credits minus debits).
    """
    signed_amount = case(
        (LedgerEntry.entry_type == LedgerEntryType.CREDIT, LedgerEntry.amount),
        else_=-LedgerEntry.amount,
    )
    result = await db.execute(
        select(func.coalesce(func.sum(signed_amount), 0)).where(
            LedgerEntry.collective_id == collective.id
        )
    )
    return int(result.scalar_one())


def add_entry(
    db: AsyncSession,
    collective_id: int,
    entry_type: LedgerEntryType,
    amount: int,
    currency: str,
    description: Optional[str] = None,
    expense_id: Optional[int] = None,
) -> LedgerEntry:
    """
    Stage a ledger entry in the current transaction. The caller commits.
    """
    entry = LedgerEntry(
        collective_id=collective_id,
        expense_id=expense_id,
        entry_type=entry_type,
        amount=amount,
        currency=currency,
        description=description,
    )
    db.add(entry)
    return entry


def record_expense_refund(db: AsyncSession, expense: Expense) -> LedgerEntry:
    """Credit the billed collective back with the amount of a paid expense."""
    return add_entry(
        db,
        collective_id=expense.collective_id,
        entry_type=LedgerEntryType.CREDIT,
        amount=expense.amount,
        currency=expense.currency,
        description=f"Refund of expense #{expense.id} (marked as unpaid)",
        expense_id=expense.id,
    )
