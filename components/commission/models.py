"""Commission model for the database."""

from datetime import datetime

from sqlalchemy import Column, Integer, String, Boolean, Date, DateTime, ForeignKey, Numeric
from sqlalchemy.orm import relationship

from components.core.database import Base


class Commission(Base):
    """Commission owed to an agent for a property sale."""
    __tablename__ = "commissions"

    id = Column(Integer, primary_key=True, index=True)
    deal_id = Column(Integer, ForeignKey("deals.id"), nullable=True)
    property_id = Column(String(50), nullable=False)
    agent_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    agent_name = Column(String(100), nullable=False)
    amount = Column(Numeric(14, 2), nullable=False)
    original_amount = Column(Numeric(14, 2), nullable=True)
    status = Column(String(20), nullable=False, default="pending")
    approval_status = Column(String(20), nullable=False, default="pending-approval")
    is_split = Column(Boolean, nullable=False, default=False)
    parent_id = Column(Integer, ForeignKey("commissions.id"), nullable=True)
    split_percentage = Column(Numeric(5, 2), nullable=True)
    rejection_reason = Column(String(255), nullable=True)
    override_reason = Column(String(255), nullable=True)
    approved_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    approved_at = Column(DateTime, nullable=True)
    due_date = Column(Date, nullable=True)
    paid_date = Column(Date, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    # Relationships
    children = relationship(
        "Commission",
        back_populates="parent",
        order_by="Commission.id",
        lazy="selectin",
    )
    parent = relationship("Commission", back_populates="children", remote_side=[id])
