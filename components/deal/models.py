"""Deal model for the database."""

from datetime import datetime

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Numeric

from components.core.database import Base


class Deal(Base):
    """Deal model tying a property, buyer and seller through a payment lifecycle."""
    __tablename__ = "deals"

    id = Column(Integer, primary_key=True, index=True)
    deal_number = Column(String(20), unique=True, nullable=False)
    property_id = Column(String(50), nullable=False)
    buyer_name = Column(String(100), nullable=False)
    seller_name = Column(String(100), nullable=False)
    primary_agent_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    agreed_price = Column(Numeric(14, 2), nullable=False)
    payment_state = Column(String(20), nullable=False, default="no-plan")
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
