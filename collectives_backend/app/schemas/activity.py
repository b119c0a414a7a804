"""
Activity schemas.
"""

from pydantic import BaseModel
from datetime import datetime
from typing import Optional, Dict, Any, List


class ActivityResponse(BaseModel):
    id: int
    type: str
    collective_id: Optional[int]
    expense_id: Optional[int]
    user_id: Optional[int]
    data: Optional[Dict[str, Any]]
    created_at: datetime
    
    class Config:
        from_attributes = True


class ActivityListResponse(BaseModel):
    activities: List[ActivityResponse]
    total: int
