"""
Request context.

Carries the authenticated user (or None), the database session and the
request-scoped loaders through every permission check.
"""

from dataclasses import dataclass, field
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from collectives_backend.app.models.user import User
from collectives_backend.app.services.loaders import Loaders


@dataclass
class RequestContext:
    db: AsyncSession
    remote_user: Optional[User] = None
    token: Optional[str] = None
    loaders: Loaders = field(init=False)
    
    def __post_init__(self):
        self.loaders = Loaders(self.db)
    
    @property
    def is_authenticated(self) -> bool:
        return self.remote_user is not None
