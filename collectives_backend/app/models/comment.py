"""
Comment database model.

Comments posted on an expense by its owner and the admins reviewing it.
"""

from sqlalchemy import Column, Integer, Text, DateTime, ForeignKey
from sqlalchemy.sql import func
from collectives_backend.app.db.session import Base


class Comment(Base):
    __tablename__ = "comments"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    expense_id = Column(Integer, ForeignKey('expenses.id'), nullable=False, index=True)
    from_collective_id = Column(Integer, ForeignKey('collectives.id'), nullable=True, index=True)
    created_by_user_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    html = Column(Text, nullable=False)
    
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    
    def __repr__(self):
        return f"<Comment(id={self.id}, expense={self.expense_id}, author={self.created_by_user_id})>"
