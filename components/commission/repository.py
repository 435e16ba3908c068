"""Repository for commission ledger operations."""

import logging
from collections import OrderedDict
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from components.commission.models import Commission
from components.commission import schemas
from components.core.exceptions import (
    InvalidStateError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from components.core.money import CENT, allocate, to_money
from components.deal.repository import DealRepository
from components.user.models import User

logger = logging.getLogger(__name__)

MIN_SPLIT_SHARES = 2
MAX_SPLIT_SHARES = 5


class CommissionRepository:
    """
    Repository for commission operations.

    Approval workflow::

        pending-approval -> approved -> paid
                         -> rejected

    ``paid`` and ``rejected`` are terminal. A split commission stays in
    the ledger for audit but can no longer change; its children carry
    the money.
    """

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session."""
        self.session = session

    async def create(self, data: schemas.CommissionCreate) -> Commission:
        agent = await self._get_agent(data.agent_id)
        if data.deal_id is not None:
            await DealRepository(self.session).get_or_raise(data.deal_id)

        commission = Commission(
            deal_id=data.deal_id,
            property_id=data.property_id,
            agent_id=agent.id,
            agent_name=data.agent_name or agent.display_name,
            amount=to_money(data.amount),
            status=schemas.CommissionStatus.PENDING.value,
            approval_status=schemas.ApprovalStatus.PENDING_APPROVAL.value,
            is_split=False,
            due_date=data.due_date,
        )
        self.session.add(commission)
        await self.session.commit()
        await self.session.refresh(commission)
        logger.info("Created commission %s of %s for agent %s", commission.id, commission.amount, agent.login)
        return commission

    async def get_by_id(self, commission_id: int) -> Optional[Commission]:
        result = await self.session.execute(
            select(Commission).where(Commission.id == commission_id)
        )
        return result.scalar_one_or_none()

    async def get_or_raise(self, commission_id: int) -> Commission:
        commission = await self.get_by_id(commission_id)
        if commission is None:
            raise NotFoundError(f"Commission {commission_id} not found")
        return commission

    async def get_all(
        self,
        status: Optional[schemas.CommissionStatus] = None,
        approval_status: Optional[schemas.ApprovalStatus] = None,
        agent_id: Optional[int] = None,
    ) -> List[Commission]:
        """Get commissions with optional filtering."""
        query = select(Commission)
        if status:
            query = query.where(Commission.status == status.value)
        if approval_status:
            query = query.where(Commission.approval_status == approval_status.value)
        if agent_id:
            query = query.where(Commission.agent_id == agent_id)
        result = await self.session.execute(query.order_by(Commission.id))
        return list(result.scalars().all())

    async def approve(self, commission_id: int, user: User) -> Commission:
        self._ensure_admin(user, "approve commissions")
        commission = await self.get_or_raise(commission_id)
        self._ensure_pending_approval(commission)

        commission.approval_status = schemas.ApprovalStatus.APPROVED.value
        commission.approved_by = user.id
        commission.approved_at = datetime.utcnow()
        await self.session.commit()
        logger.info("Commission %s approved by %s", commission.id, user.login)
        return commission

    async def reject(self, commission_id: int, reason: str, user: User) -> Commission:
        self._ensure_admin(user, "reject commissions")
        if not reason or not reason.strip():
            raise ValidationError("Please provide a rejection reason")
        commission = await self.get_or_raise(commission_id)
        self._ensure_pending_approval(commission)

        commission.approval_status = schemas.ApprovalStatus.REJECTED.value
        commission.rejection_reason = reason.strip()
        commission.approved_by = user.id
        commission.approved_at = datetime.utcnow()
        await self.session.commit()
        logger.info("Commission %s rejected by %s", commission.id, user.login)
        return commission

    async def override(self, commission_id: int, amount: float, reason: str, user: User) -> Commission:
        """Approve a pending commission at an adjusted amount, keeping the original."""
        self._ensure_admin(user, "override commissions")
        if not reason or not reason.strip():
            raise ValidationError("Please provide an override reason")
        new_amount = to_money(amount)
        if new_amount <= 0:
            raise ValidationError("Override amount must be a valid positive number")
        commission = await self.get_or_raise(commission_id)
        self._ensure_pending_approval(commission)

        if commission.original_amount is None:
            commission.original_amount = commission.amount
        commission.amount = new_amount
        commission.override_reason = reason.strip()
        commission.approval_status = schemas.ApprovalStatus.APPROVED.value
        commission.approved_by = user.id
        commission.approved_at = datetime.utcnow()
        await self.session.commit()
        logger.info(
            "Commission %s overridden from %s to %s by %s",
            commission.id, commission.original_amount, new_amount, user.login,
        )
        return commission

    async def mark_paid(self, commission_id: int, user: User, paid_date: Optional[date] = None) -> Commission:
        self._ensure_admin(user, "pay commissions")
        commission = await self.get_or_raise(commission_id)
        self._ensure_mutable(commission)
        if commission.approval_status != schemas.ApprovalStatus.APPROVED.value:
            raise InvalidStateError("Only approved commissions can be paid")

        commission.status = schemas.CommissionStatus.PAID.value
        commission.paid_date = paid_date or date.today()
        await self.session.commit()
        logger.info("Commission %s paid on %s", commission.id, commission.paid_date)
        return commission

    async def split(
        self,
        commission_id: int,
        shares: List[schemas.SplitShare],
        user: User,
    ) -> List[Commission]:
        """
        Divide a commission among several agents.

        Percentages must be positive with at most two decimals, name
        distinct agents and add up to exactly 100. Child amounts are
        allocated at cent precision by largest remainder, so none is
        negative and they sum to the parent amount.
        """
        commission = await self.get_or_raise(commission_id)
        if not (user.is_admin or user.id == commission.agent_id):
            raise PermissionDeniedError("Only the commission's agent or an admin can split it")
        self._ensure_mutable(commission)
        if commission.approval_status == schemas.ApprovalStatus.REJECTED.value:
            raise InvalidStateError("Rejected commissions can't be split")

        if not MIN_SPLIT_SHARES <= len(shares) <= MAX_SPLIT_SHARES:
            raise ValidationError(
                f"A commission can be split among {MIN_SPLIT_SHARES} to {MAX_SPLIT_SHARES} agents"
            )
        agent_ids = [share.agent_id for share in shares]
        if len(set(agent_ids)) != len(agent_ids):
            raise ValidationError("Same agent cannot appear multiple times")
        percentages = [Decimal(str(share.percentage)) for share in shares]
        if any(p <= 0 or p > 100 for p in percentages):
            raise ValidationError("Percentage must be between 0 and 100")
        if any(p != p.quantize(CENT) for p in percentages):
            raise ValidationError("Percentage can have at most 2 decimal places")
        if sum(percentages) != 100:
            raise ValidationError("Total percentage must equal 100%")

        agents = [await self._get_agent(agent_id) for agent_id in agent_ids]
        amounts = allocate(commission.amount, percentages)

        children = []
        for share, agent, percentage, amount in zip(shares, agents, percentages, amounts):
            child = Commission(
                deal_id=commission.deal_id,
                property_id=commission.property_id,
                agent_id=agent.id,
                agent_name=share.agent_name or agent.display_name,
                amount=amount,
                status=schemas.CommissionStatus.PENDING.value,
                approval_status=commission.approval_status,
                approved_by=commission.approved_by,
                approved_at=commission.approved_at,
                is_split=False,
                parent_id=commission.id,
                split_percentage=percentage,
                due_date=commission.due_date,
            )
            self.session.add(child)
            children.append(child)

        commission.is_split = True
        await self.session.commit()
        for child in children:
            await self.session.refresh(child)
        logger.info("Commission %s split among %d agents", commission.id, len(children))
        return children

    async def agent_report(self) -> List[schemas.AgentCommissionReport]:
        """Totals per agent. Split parents are left out, their children count instead."""
        result = await self.session.execute(
            select(Commission)
            .where(Commission.is_split.is_(False))
            .order_by(Commission.agent_id, Commission.id)
        )

        report = OrderedDict()
        for commission in result.scalars().all():
            row = report.setdefault(commission.agent_id, {
                "agent_id": commission.agent_id,
                "agent_name": commission.agent_name,
                "commission_count": 0,
                "total_amount": Decimal("0"),
                "pending_amount": Decimal("0"),
                "approved_amount": Decimal("0"),
                "paid_amount": Decimal("0"),
                "rejected_amount": Decimal("0"),
            })
            amount = to_money(commission.amount)
            row["commission_count"] += 1
            row["total_amount"] += amount
            if commission.status == schemas.CommissionStatus.PAID.value:
                row["paid_amount"] += amount
            elif commission.approval_status == schemas.ApprovalStatus.APPROVED.value:
                row["approved_amount"] += amount
            elif commission.approval_status == schemas.ApprovalStatus.REJECTED.value:
                row["rejected_amount"] += amount
            else:
                row["pending_amount"] += amount

        return [schemas.AgentCommissionReport(**row) for row in report.values()]

    async def _get_agent(self, agent_id: int) -> User:
        agent = await self.session.get(User, agent_id)
        if agent is None:
            raise NotFoundError(f"Agent {agent_id} not found")
        return agent

    @staticmethod
    def _ensure_admin(user: User, action: str) -> None:
        if not user.is_admin:
            raise PermissionDeniedError(f"Only administrators can {action}")

    @staticmethod
    def _ensure_mutable(commission: Commission) -> None:
        if commission.status == schemas.CommissionStatus.PAID.value:
            logger.warning("Attempt to change paid commission %s", commission.id)
            raise InvalidStateError("Commission is already paid and can't be changed")
        if commission.is_split:
            raise InvalidStateError("Commission has been split and can't be changed")

    def _ensure_pending_approval(self, commission: Commission) -> None:
        self._ensure_mutable(commission)
        if commission.approval_status != schemas.ApprovalStatus.PENDING_APPROVAL.value:
            raise InvalidStateError(f"Commission has already been {commission.approval_status}")
