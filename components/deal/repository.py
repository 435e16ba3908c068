"""Repository for deal operations."""

import logging
from datetime import date
from decimal import Decimal
from typing import List, Optional
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from components.core.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from components.core.money import to_money
from components.deal.models import Deal
from components.deal import schemas
from components.payment.models import Payment
from components.user.models import User

logger = logging.getLogger(__name__)


class DealRepository:
    """Repository for deal operations."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session."""
        self.session = session

    async def create(self, data: schemas.DealCreate, user: User) -> Deal:
        """Create a new deal with a generated DL-<year>-<seq> number."""
        primary_agent_id = data.primary_agent_id or user.id
        agent = await self.session.get(User, primary_agent_id)
        if agent is None:
            raise ValidationError(f"Agent {primary_agent_id} does not exist")

        deal = Deal(
            deal_number=await self._next_deal_number(),
            property_id=data.property_id,
            buyer_name=data.buyer_name,
            seller_name=data.seller_name,
            primary_agent_id=primary_agent_id,
            agreed_price=to_money(data.agreed_price),
            payment_state=schemas.PaymentState.NO_PLAN.value,
        )
        self.session.add(deal)
        await self.session.commit()
        await self.session.refresh(deal)
        logger.info("Created deal %s for property %s", deal.deal_number, deal.property_id)
        return deal

    async def _next_deal_number(self) -> str:
        year = date.today().year
        prefix = f"DL-{year}-"
        result = await self.session.execute(
            select(func.count(Deal.id)).where(Deal.deal_number.like(f"{prefix}%"))
        )
        count = result.scalar() or 0
        return f"{prefix}{count + 1:04d}"

    async def get_by_id(self, deal_id: int) -> Optional[Deal]:
        """Get deal by ID."""
        result = await self.session.execute(
            select(Deal).where(Deal.id == deal_id)
        )
        return result.scalar_one_or_none()

    async def get_or_raise(self, deal_id: int) -> Deal:
        deal = await self.get_by_id(deal_id)
        if deal is None:
            raise NotFoundError(f"Deal {deal_id} not found")
        return deal

    async def get_all(self, skip: int = 0, limit: int = 100) -> List[Deal]:
        result = await self.session.execute(
            select(Deal).order_by(Deal.id).offset(skip).limit(limit)
        )
        return list(result.scalars().all())

    async def get_total_paid(self, deal_id: int) -> Decimal:
        """Sum of every recorded payment for a deal."""
        result = await self.session.execute(
            select(func.sum(Payment.amount)).where(Payment.deal_id == deal_id)
        )
        return to_money(result.scalar() or 0)

    async def get_balance(self, deal_id: int) -> schemas.DealBalance:
        deal = await self.get_or_raise(deal_id)
        agreed_price = to_money(deal.agreed_price)
        total_paid = await self.get_total_paid(deal_id)
        return schemas.DealBalance(
            deal_id=deal.id,
            agreed_price=float(agreed_price),
            total_paid=float(total_paid),
            balance_remaining=float(agreed_price - total_paid),
            percentage_paid=float(total_paid / agreed_price * 100) if agreed_price > 0 else 0,
        )

    @staticmethod
    def ensure_can_manage(deal: Deal, user: User, action: str) -> None:
        """Only the deal's primary agent or an administrator may change its money flow."""
        if user.is_admin or deal.primary_agent_id == user.id:
            return
        logger.warning("User %s denied: %s on deal %s", user.login, action, deal.deal_number)
        raise PermissionDeniedError(f"Only primary agent can {action}")
