"""
Activity database model.

Immutable audit trail of expense events, attributed to the acting user.
"""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON
from sqlalchemy.sql import func
from collectives_backend.app.db.session import Base


class Activity(Base):
    """
    Activity model.
    
    Events logged:
    - collective.expense.created / approved / unapproved / rejected
    - collective.expense.scheduledForPayment / markedAsUnpaid
    - expense.comment.created
    """
    __tablename__ = "activities"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    
    # What happened
    type = Column(String(100), nullable=False, index=True)
    
    # Where it happened
    collective_id = Column(Integer, ForeignKey('collectives.id'), nullable=True, index=True)
    expense_id = Column(Integer, ForeignKey('expenses.id'), nullable=True, index=True)
    
    # Who did it (None for system actions)
    user_id = Column(Integer, ForeignKey('users.id'), nullable=True, index=True)
    
    # Snapshot of the expense and actor at the time of the event
    data = Column(JSON, nullable=True)
    
    # Timestamps (Immutable - no updated_at)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    
    def __repr__(self):
        return f"<Activity(id={self.id}, type='{self.type}', expense={self.expense_id}, user={self.user_id})>"
