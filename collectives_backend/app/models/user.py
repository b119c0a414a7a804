"""
User database model.

Users act on collectives through their role assignments (members).
"""

from typing import Iterable, Optional, Union
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from collectives_backend.app.db.session import Base
from collectives_backend.app.models.enums import MemberRole


class User(Base):
    """
    User model.
    
    Role checks are evaluated over `memberships`, which are loaded together
    with the user (selectin) so they can be called synchronously.
    """
    __tablename__ = "users"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    username = Column(String(100), unique=True, index=True, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    
    # The user's own profile collective (payee of their expenses)
    collective_id = Column(Integer, ForeignKey('collectives.id'), index=True, nullable=True)
    
    # Free-form settings, e.g. {"features": {"USE_EXPENSES": false}}
    data = Column(JSON, nullable=True)
    
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    
    memberships = relationship("Member", lazy="selectin", cascade="all, delete-orphan")
    
    def has_role(self, roles: Union[MemberRole, Iterable[MemberRole]], collective_id: Optional[int]) -> bool:
        """True if the user holds one of `roles` on `collective_id`."""
        if collective_id is None:
            return False
        if isinstance(roles, MemberRole):
            roles = [roles]
        roles = set(roles)
        return any(
            m.collective_id == collective_id and m.role in roles
            for m in self.memberships
        )
    
    def is_admin(self, collective_id: Optional[int]) -> bool:
        return collective_id is not None and (
            collective_id == self.collective_id or self.has_role(MemberRole.ADMIN, collective_id)
        )
    
    def is_admin_of_collective(self, collective) -> bool:
        """Admin of the collective itself, or of its parent for events and projects."""
        if collective is None:
            return False
        if self.is_admin(collective.id):
            return True
        return self.is_admin(collective.parent_collective_id)
    
    def __repr__(self):
        return f"<User(id={self.id}, username='{self.username}', email='{self.email}')>"
