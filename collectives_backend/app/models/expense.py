"""
Expense database model.

An expense is billed to a collective (collective_id) and paid out to a
payee (from_collective_id). Its status only changes through the expense
engine in services/expense_permissions.py.
"""

from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, Enum, ForeignKey, JSON
from sqlalchemy.sql import func
from collectives_backend.app.db.session import Base
from collectives_backend.app.models.enums import ExpenseStatus


class Expense(Base):
    """Expense model."""
    __tablename__ = "expenses"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    
    # Parties
    collective_id = Column(Integer, ForeignKey('collectives.id'), nullable=False, index=True)  # Billed to
    from_collective_id = Column(Integer, ForeignKey('collectives.id'), nullable=False, index=True)  # Payee
    user_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)  # Author
    last_edited_by_id = Column(Integer, ForeignKey('users.id'), nullable=True)
    
    # Financials (minor currency units)
    amount = Column(Integer, nullable=False)
    currency = Column(String(3), nullable=False)
    description = Column(String(255), nullable=False)
    
    status = Column(Enum(ExpenseStatus), default=ExpenseStatus.PENDING, nullable=False, index=True)
    
    # Sensitive data, only exposed to owner / admins / accountants
    payout_method = Column(JSON, nullable=True)
    invoice_info = Column(Text, nullable=True)
    payee_location = Column(JSON, nullable=True)
    
    legal_documents_required = Column(Boolean, default=False, nullable=False)
    
    incurred_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    
    def __repr__(self):
        return f"<Expense(id={self.id}, status='{self.status.value}', amount={self.amount})>"
