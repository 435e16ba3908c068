"""Repository for payment ledger operations."""

import logging
from collections import defaultdict
from datetime import date
from typing import List, Optional, Tuple
from decimal import Decimal
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from components.core.exceptions import (
    ConflictError,
    InsufficientBalanceError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from components.core.money import to_money
from components.deal.repository import DealRepository
from components.deal.schemas import PaymentState
from components.payment.models import Payment
from components.payment import schemas
from components.payment.utils import format_receipt_number, payment_type_for, running_totals
from components.plan.repository import PlanRepository
from components.plan.schemas import InstallmentStatus
from components.user.models import User

logger = logging.getLogger(__name__)


class PaymentRepository:
    """Repository for the append-only payment ledger."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session."""
        self.session = session
        self.deals = DealRepository(session)
        self.plans = PlanRepository(session)

    async def record_payment(
        self,
        deal_id: int,
        data: schemas.PaymentCreate,
        user: User,
    ) -> Payment:
        """
        Append a payment to a deal's ledger.

        Rejected when the amount is not positive or exceeds the remaining
        balance (agreed price minus every payment so far). A rejected call
        writes nothing. When linked to an installment the installment's
        paid amount and status follow, and the plan completes once every
        installment is paid.
        """
        amount = to_money(data.amount)
        if amount <= 0:
            raise ValidationError("Please enter a valid payment amount")

        deal = await self.deals.get_or_raise(deal_id)
        self.deals.ensure_can_manage(deal, user, "record payments")

        total_paid = await self.deals.get_total_paid(deal_id)
        remaining = to_money(deal.agreed_price) - total_paid
        if amount > remaining:
            logger.warning(
                "Rejected payment of %s on deal %s: remaining balance is %s",
                amount, deal.deal_number, remaining,
            )
            raise InsufficientBalanceError("Payment amount cannot exceed remaining balance")

        plan = await self.plans.find_plan(deal_id)
        installment = None
        if data.installment_id is not None:
            if plan is None:
                raise NotFoundError("Payment plan does not exist")
            installment = next(
                (inst for inst in plan.installments if inst.id == data.installment_id),
                None,
            )
            if installment is None:
                raise NotFoundError("Installment not found")
            if installment.status == InstallmentStatus.PAID.value:
                raise InvalidStateError("Installment is already paid")

        receipt_number = data.receipt_number or await self._next_receipt_number()
        if data.receipt_number and await self._receipt_exists(data.receipt_number):
            raise ConflictError(f"Receipt {data.receipt_number} already exists")

        payment = Payment(
            deal_id=deal.id,
            amount=amount,
            paid_date=data.paid_date,
            payment_method=data.payment_method.value,
            payment_type=payment_type_for(installment).value,
            installment_id=installment.id if installment else None,
            recorded_by=user.id,
            receipt_number=receipt_number,
            reference_number=data.reference_number,
            notes=data.notes,
        )
        self.session.add(payment)

        if installment is not None:
            self.plans.apply_payment(plan, installment, amount, data.paid_date)
        if plan is not None:
            self.plans.refresh_completion(plan, deal)
        if amount == remaining:
            deal.payment_state = PaymentState.FULLY_PAID.value

        await self.session.commit()
        await self.session.refresh(payment)
        logger.info(
            "Recorded payment %s of %s on deal %s (%s)",
            payment.receipt_number, amount, deal.deal_number, payment.payment_method,
        )
        return payment

    async def list_payments(self, deal_id: int) -> List[Payment]:
        """Payments of a deal, newest first."""
        await self.deals.get_or_raise(deal_id)
        result = await self.session.execute(
            select(Payment)
            .where(Payment.deal_id == deal_id)
            .order_by(Payment.paid_date.desc(), Payment.id.desc())
        )
        return list(result.scalars().all())

    async def get_history(self, deal_id: int) -> List[Tuple[Payment, Decimal]]:
        """Payments of a deal with running totals, newest first."""
        return running_totals(await self.list_payments(deal_id))

    async def receipt_stats(self, deal_id: int) -> schemas.ReceiptStats:
        payments = await self.list_payments(deal_id)
        by_method = defaultdict(Decimal)
        by_type = defaultdict(Decimal)
        for payment in payments:
            by_method[payment.payment_method] += to_money(payment.amount)
            by_type[payment.payment_type] += to_money(payment.amount)

        latest: Optional[Payment] = max(payments, key=lambda p: p.id, default=None)
        return schemas.ReceiptStats(
            deal_id=deal_id,
            total_receipts=len(payments),
            total_collected=float(sum(by_method.values(), Decimal("0"))),
            by_payment_method={k: float(v) for k, v in by_method.items()},
            by_payment_type={k: float(v) for k, v in by_type.items()},
            latest_receipt=latest.receipt_number if latest else None,
        )

    async def _next_receipt_number(self) -> str:
        """Next number in this month's RCP series, after the highest one taken."""
        today = date.today()
        prefix = format_receipt_number(today, 0)[:-4]
        result = await self.session.execute(
            select(Payment.receipt_number).where(Payment.receipt_number.like(f"{prefix}%"))
        )
        sequences = [
            int(number[len(prefix):])
            for number in result.scalars().all()
            if number[len(prefix):].isdigit()
        ]
        return format_receipt_number(today, max(sequences, default=0) + 1)

    async def _receipt_exists(self, receipt_number: str) -> bool:
        result = await self.session.execute(
            select(Payment.id).where(Payment.receipt_number == receipt_number)
        )
        return result.scalar_one_or_none() is not None
