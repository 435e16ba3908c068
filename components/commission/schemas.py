"""Pydantic schemas for commission data validation."""

from datetime import date, datetime
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field


class CommissionStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"


class ApprovalStatus(str, Enum):
    PENDING_APPROVAL = "pending-approval"
    APPROVED = "approved"
    REJECTED = "rejected"


class CommissionCreate(BaseModel):
    """Schema for commission creation."""
    deal_id: Optional[int] = None
    property_id: str
    agent_id: int
    agent_name: Optional[str] = None
    amount: float = Field(..., gt=0)
    due_date: Optional[date] = None


class CommissionReject(BaseModel):
    reason: str


class CommissionOverride(BaseModel):
    amount: float
    reason: str


class CommissionPay(BaseModel):
    paid_date: Optional[date] = None


class SplitShare(BaseModel):
    """One agent's share of a split commission."""
    agent_id: int
    agent_name: Optional[str] = None
    percentage: float


class CommissionSplit(BaseModel):
    shares: List[SplitShare]


class Commission(BaseModel):
    """Schema for commission response."""
    id: int
    deal_id: Optional[int] = None
    property_id: str
    agent_id: int
    agent_name: str
    amount: float
    original_amount: Optional[float] = None
    status: CommissionStatus
    approval_status: ApprovalStatus
    is_split: bool
    parent_id: Optional[int] = None
    split_percentage: Optional[float] = None
    rejection_reason: Optional[str] = None
    override_reason: Optional[str] = None
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    due_date: Optional[date] = None
    paid_date: Optional[date] = None
    created_at: datetime

    class Config:
        from_attributes = True


class AgentCommissionReport(BaseModel):
    """Schema for per-agent commission totals."""
    agent_id: int
    agent_name: str
    commission_count: int
    total_amount: float
    pending_amount: float
    approved_amount: float
    paid_amount: float
    rejected_amount: float
