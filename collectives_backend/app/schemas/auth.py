"""
Authentication schemas.
"""

from pydantic import BaseModel
from typing import List, Optional


class MembershipResponse(BaseModel):
    collective_id: int
    role: str


class CurrentUserResponse(BaseModel):
    """The authenticated user and their role assignments."""
    id: int
    username: str
    email: str
    collective_id: Optional[int]
    memberships: List[MembershipResponse]


class LogoutResponse(BaseModel):
    message: str
    all_sessions: bool
