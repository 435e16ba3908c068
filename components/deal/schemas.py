"""Pydantic schemas for deal data validation."""

from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field


class PaymentState(str, Enum):
    NO_PLAN = "no-plan"
    PLAN_ACTIVE = "plan-active"
    PLAN_MODIFIED = "plan-modified"
    FULLY_PAID = "fully-paid"


class DealBase(BaseModel):
    """Base deal schema."""
    property_id: str
    buyer_name: str
    seller_name: str
    agreed_price: float = Field(..., gt=0)


class DealCreate(DealBase):
    """Schema for deal creation. The creator becomes primary agent unless set."""
    primary_agent_id: Optional[int] = None


class Deal(DealBase):
    """Schema for deal response."""
    id: int
    deal_number: str
    primary_agent_id: int
    payment_state: PaymentState
    created_at: datetime

    class Config:
        from_attributes = True


class DealBalance(BaseModel):
    """Schema for a deal's payment balance."""
    deal_id: int
    agreed_price: float
    total_paid: float
    balance_remaining: float
    percentage_paid: float
