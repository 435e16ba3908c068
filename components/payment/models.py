"""Payment model for the database."""

from datetime import datetime

from sqlalchemy import Column, Integer, String, Date, DateTime, ForeignKey, Numeric

from components.core.database import Base


class Payment(Base):
    """Payment model: one append-only entry in a deal's payment ledger."""
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    deal_id = Column(Integer, ForeignKey("deals.id"), nullable=False, index=True)
    amount = Column(Numeric(14, 2), nullable=False)
    paid_date = Column(Date, nullable=False)
    payment_method = Column(String(20), nullable=False)
    payment_type = Column(String(20), nullable=False, default="ad-hoc")
    installment_id = Column(Integer, ForeignKey("installments.id"), nullable=True)
    recorded_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    receipt_number = Column(String(20), unique=True, nullable=False)
    reference_number = Column(String(50), nullable=True)
    notes = Column(String(255), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
