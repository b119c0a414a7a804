"""
Comment schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List


class CommentCreate(BaseModel):
    """Schema for posting a comment on an expense."""
    html: str = Field(..., min_length=1, max_length=10000)


class CommentUpdate(BaseModel):
    """Schema for editing a comment."""
    html: str = Field(..., min_length=1, max_length=10000)


class CommentResponse(BaseModel):
    id: int
    expense_id: int
    from_collective_id: Optional[int]
    created_by_user_id: int
    html: str
    created_at: datetime
    updated_at: datetime
    
    class Config:
        from_attributes = True


class CommentListResponse(BaseModel):
    comments: List[CommentResponse]
    total: int
