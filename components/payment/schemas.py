"""Pydantic schemas for payment data validation."""

from datetime import date, datetime
from enum import Enum
from typing import Dict, Optional
from pydantic import BaseModel


class PaymentMethod(str, Enum):
    CASH = "cash"
    CHEQUE = "cheque"
    BANK_TRANSFER = "bank-transfer"
    ONLINE = "online"


class PaymentType(str, Enum):
    AD_HOC = "ad-hoc"
    DOWN_PAYMENT = "down-payment"
    INSTALLMENT = "installment"
    FINAL_PAYMENT = "final-payment"


class PaymentCreate(BaseModel):
    """Schema for recording a payment.

    The amount is range-checked by the ledger so a rejected payment
    always carries the ledger's message.
    """
    amount: float
    paid_date: date
    payment_method: PaymentMethod
    installment_id: Optional[int] = None
    reference_number: Optional[str] = None
    receipt_number: Optional[str] = None
    notes: Optional[str] = None


class Payment(BaseModel):
    """Schema for payment response."""
    id: int
    deal_id: int
    amount: float
    paid_date: date
    payment_method: PaymentMethod
    payment_type: PaymentType
    installment_id: Optional[int] = None
    recorded_by: int
    receipt_number: str
    reference_number: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class PaymentWithRunningTotal(Payment):
    """Payment row with the cumulative amount paid up to and including it."""
    running_total: float


class ReceiptStats(BaseModel):
    deal_id: int
    total_receipts: int
    total_collected: float
    by_payment_method: Dict[str, float]
    by_payment_type: Dict[str, float]
    latest_receipt: Optional[str] = None
