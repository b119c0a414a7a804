"""
Ledger Entry database model.

Immutable credit/debit records; a collective's balance is their sum.
"""

from sqlalchemy import Column, Integer, ForeignKey, DateTime, Enum, String
from sqlalchemy.sql import func
from collectives_backend.app.db.session import Base
from collectives_backend.app.models.enums import LedgerEntryType


class LedgerEntry(Base):
    """
    Ledger Entry model.
    
    Immutable record of financial movement on a collective.
    NO updates or deletions allowed; corrections are new entries.
    """
    __tablename__ = "ledger_entries"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    
    # Linkage
    collective_id = Column(Integer, ForeignKey('collectives.id'), nullable=False, index=True)
    expense_id = Column(Integer, ForeignKey('expenses.id'), nullable=True, index=True)
    
    # Entry details
    entry_type = Column(Enum(LedgerEntryType), nullable=False)  # DEBIT or CREDIT
    
    # Financials (minor currency units, always positive)
    amount = Column(Integer, nullable=False)
    currency = Column(String(3), nullable=False)
    description = Column(String(255), nullable=True)
    
    # Timestamps (Immutable - no updated_at)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    
    def __repr__(self):
        return f"<LedgerEntry(id={self.id}, type='{self.entry_type.value}', amount={self.amount})>"
