"""
Member database model.

Role assignments of users on collectives.
"""

from sqlalchemy import Column, Integer, DateTime, Enum, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from collectives_backend.app.db.session import Base
from collectives_backend.app.models.enums import MemberRole


class Member(Base):
    """A (user, collective, role) assignment."""
    __tablename__ = "members"
    __table_args__ = (
        UniqueConstraint("user_id", "collective_id", "role", name="uq_member_user_collective_role"),
    )
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    collective_id = Column(Integer, ForeignKey('collectives.id'), nullable=False, index=True)
    role = Column(Enum(MemberRole), nullable=False)
    
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    
    def __repr__(self):
        return f"<Member(user={self.user_id}, collective={self.collective_id}, role='{self.role.value}')>"
