"""Payment plan models for the database."""

from datetime import datetime

from sqlalchemy import Column, Integer, String, Date, DateTime, ForeignKey, Numeric
from sqlalchemy.orm import relationship

from components.core.database import Base


class PaymentPlan(Base):
    """Payment plan: a down payment followed by periodic installments."""
    __tablename__ = "payment_plans"

    id = Column(Integer, primary_key=True, index=True)
    deal_id = Column(Integer, ForeignKey("deals.id"), unique=True, nullable=False)
    total_amount = Column(Numeric(14, 2), nullable=False)
    down_payment_percentage = Column(Numeric(5, 2), nullable=False)
    down_payment_amount = Column(Numeric(14, 2), nullable=False)
    down_payment_date = Column(Date, nullable=False)
    frequency = Column(String(20), nullable=False)
    number_of_installments = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False, default="active")
    created_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    modified_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    modified_at = Column(DateTime, nullable=True)

    # Relationships
    installments = relationship(
        "Installment",
        back_populates="plan",
        order_by="Installment.sequence_number",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    modifications = relationship(
        "PlanModification",
        back_populates="plan",
        order_by="PlanModification.id",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class Installment(Base):
    """One scheduled partial payment within a payment plan."""
    __tablename__ = "installments"

    id = Column(Integer, primary_key=True, index=True)
    plan_id = Column(Integer, ForeignKey("payment_plans.id"), nullable=False)
    kind = Column(String(20), nullable=False, default="installment")  # down-payment | installment
    sequence_number = Column(Integer, nullable=False)  # 0 for the down payment
    due_date = Column(Date, nullable=False)
    amount = Column(Numeric(14, 2), nullable=False)
    paid_amount = Column(Numeric(14, 2), nullable=False, default=0)
    status = Column(String(20), nullable=False, default="pending")
    description = Column(String(100), nullable=False)
    paid_date = Column(Date, nullable=True)

    # Relationships
    plan = relationship("PaymentPlan", back_populates="installments")


class PlanModification(Base):
    """Audit trail entry for a change to a payment plan."""
    __tablename__ = "plan_modifications"

    id = Column(Integer, primary_key=True, index=True)
    plan_id = Column(Integer, ForeignKey("payment_plans.id"), nullable=False)
    modification_type = Column(String(30), nullable=False)
    reason = Column(String(255), nullable=False)
    old_value = Column(String(255), nullable=True)
    new_value = Column(String(255), nullable=True)
    modified_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    modified_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    # Relationships
    plan = relationship("PaymentPlan", back_populates="modifications")
