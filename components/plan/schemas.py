"""Pydantic schemas for payment plan data validation."""

from datetime import date, datetime
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field


class Frequency(str, Enum):
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"


class InstallmentKind(str, Enum):
    DOWN_PAYMENT = "down-payment"
    INSTALLMENT = "installment"


class InstallmentStatus(str, Enum):
    PENDING = "pending"
    PARTIAL = "partial"
    PAID = "paid"
    OVERDUE = "overdue"


class PlanStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"


class Severity(str, Enum):
    WARNING = "warning"
    CRITICAL = "critical"
    SEVERE = "severe"


class PaymentPlanCreate(BaseModel):
    """Schema for payment plan creation.

    Ranges are checked by the schedule generator so that the caller gets
    the same message through the API and through the repository.
    """
    down_payment_percentage: float
    number_of_installments: int
    frequency: Frequency = Frequency.MONTHLY
    down_payment_date: Optional[date] = None
    first_installment_date: Optional[date] = None


class InstallmentCreate(BaseModel):
    """Schema for adding an installment to an existing plan."""
    amount: float = Field(..., gt=0)
    due_date: date
    description: Optional[str] = None
    reason: str = Field(..., min_length=1)


class InstallmentUpdate(BaseModel):
    """Schema for modifying an unpaid installment."""
    amount: Optional[float] = Field(None, gt=0)
    due_date: Optional[date] = None
    reason: str = Field(..., min_length=1)


class Installment(BaseModel):
    """Schema for installment response."""
    id: int
    kind: InstallmentKind
    sequence_number: int
    due_date: date
    amount: float
    paid_amount: float
    status: InstallmentStatus
    description: str
    paid_date: Optional[date] = None

    class Config:
        from_attributes = True


class PlanModification(BaseModel):
    id: int
    modification_type: str
    reason: str
    old_value: Optional[str] = None
    new_value: Optional[str] = None
    modified_by: int
    modified_at: datetime

    class Config:
        from_attributes = True


class PaymentPlan(BaseModel):
    """Schema for payment plan response."""
    id: int
    deal_id: int
    total_amount: float
    down_payment_percentage: float
    down_payment_amount: float
    down_payment_date: date
    frequency: Frequency
    number_of_installments: int
    status: PlanStatus
    created_by: int
    created_at: datetime
    installments: List[Installment]
    modifications: List[PlanModification] = []

    class Config:
        from_attributes = True


class NextPaymentDue(BaseModel):
    due_date: date
    amount: float
    description: str


class PlanSummary(BaseModel):
    """Schema for a deal's payment summary."""
    deal_id: int
    total_amount: float
    total_paid: float
    total_pending: float
    percentage_paid: float
    payment_state: str
    installment_count: int
    paid_installment_count: int
    pending_installment_count: int
    next_payment_due: Optional[NextPaymentDue] = None
    overdue_installments: List[Installment] = []


class OverduePayment(BaseModel):
    """Schema for one overdue installment across deals."""
    deal_id: int
    deal_number: str
    installment_id: int
    property_id: str
    buyer_name: str
    amount: float
    due_date: date
    days_overdue: int
    severity: Severity
    description: str
