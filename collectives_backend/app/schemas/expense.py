"""
Expense schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List, Dict, Any


class ExpenseItemCreate(BaseModel):
    """Schema for an expense line item."""
    amount: int = Field(..., gt=0, description="Amount in minor currency units")
    description: Optional[str] = Field(None, max_length=255)
    url: Optional[str] = Field(None, max_length=2048, description="Attachment URL")


class ExpenseCreate(BaseModel):
    """Schema for submitting an expense."""
    collective_id: int
    from_collective_id: Optional[int] = Field(None, description="Payee; defaults to the user's profile")
    description: str = Field(..., min_length=1, max_length=255)
    items: List[ExpenseItemCreate] = Field(..., min_length=1)
    payout_method: Optional[Dict[str, Any]] = None
    invoice_info: Optional[str] = None
    payee_location: Optional[Dict[str, Any]] = None


class ExpenseItemResponse(BaseModel):
    """Expense item; `url` is null unless the requester can see attachments."""
    id: int
    amount: int
    description: Optional[str]
    url: Optional[str]
    incurred_at: datetime
    
    class Config:
        from_attributes = True


class ExpensePermissions(BaseModel):
    """What the requester may do with an expense."""
    can_edit: bool
    can_delete: bool
    can_see_invoice_info: bool
    can_pay: bool
    can_approve: bool
    can_unapprove: bool
    can_reject: bool
    can_mark_as_unpaid: bool
    can_comment: bool
    can_verify_draft: bool
    can_view_required_legal_documents: bool


class ExpenseResponse(BaseModel):
    """
    Expense as seen by the requester.
    
    Sensitive fields are null when the matching visibility check fails.
    """
    id: int
    status: str
    amount: int
    currency: str
    description: str
    collective_id: int
    from_collective_id: int
    user_id: int
    last_edited_by_id: Optional[int]
    incurred_at: datetime
    created_at: datetime
    updated_at: datetime
    items: List[ExpenseItemResponse]
    payout_method: Optional[Dict[str, Any]]
    invoice_info: Optional[str]
    payee_location: Optional[Dict[str, Any]]
    legal_documents_required: Optional[bool]
    permissions: ExpensePermissions
