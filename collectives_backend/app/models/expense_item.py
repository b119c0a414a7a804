"""
Expense item database model.

Line items of an expense; `url` points to the attached receipt.
"""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.sql import func
from collectives_backend.app.db.session import Base


class ExpenseItem(Base):
    __tablename__ = "expense_items"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    expense_id = Column(Integer, ForeignKey('expenses.id'), nullable=False, index=True)
    amount = Column(Integer, nullable=False)
    description = Column(String(255), nullable=True)
    url = Column(String(2048), nullable=True)
    incurred_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    
    def __repr__(self):
        return f"<ExpenseItem(id={self.id}, expense={self.expense_id}, amount={self.amount})>"
