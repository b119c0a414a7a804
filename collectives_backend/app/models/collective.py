"""
Collective database model.

A collective receives funds and incurs expenses. Hosts are collectives too.
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey
from sqlalchemy.sql import func
from collectives_backend.app.db.session import Base


class Collective(Base):
    """
    Collective model.
    
    - host_collective_id: fiscal host holding the funds (nullable)
    - parent_collective_id: parent of an event or project (nullable)
    
    The balance is derived from ledger entries and never stored here.
    """
    __tablename__ = "collectives"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, index=True, nullable=False)
    currency = Column(String(3), default="USD", nullable=False)
    is_active = Column(Boolean, default=False, nullable=False)
    
    host_collective_id = Column(Integer, ForeignKey('collectives.id'), index=True, nullable=True)
    parent_collective_id = Column(Integer, ForeignKey('collectives.id'), index=True, nullable=True)
    
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    
    def __repr__(self):
        return f"<Collective(id={self.id}, slug='{self.slug}', host={self.host_collective_id})>"
