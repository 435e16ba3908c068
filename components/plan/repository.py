"""Repository for payment plan operations."""

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from components.core.exceptions import ConflictError, InvalidStateError, NotFoundError
from components.core.money import to_money
from components.deal.models import Deal
from components.deal.repository import DealRepository
from components.deal.schemas import PaymentState
from components.plan.models import PaymentPlan, Installment, PlanModification
from components.plan import schemas
from components.plan.utils import generate_schedule, overdue_severity
from components.user.models import User

logger = logging.getLogger(__name__)

UNPAID_STATUSES = (
    schemas.InstallmentStatus.PENDING.value,
    schemas.InstallmentStatus.PARTIAL.value,
    schemas.InstallmentStatus.OVERDUE.value,
)


class PlanRepository:
    """Repository for payment plan operations."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session."""
        self.session = session
        self.deals = DealRepository(session)

    async def find_plan(self, deal_id: int) -> Optional[PaymentPlan]:
        """Get the plan of a deal, reloading installments from the database."""
        result = await self.session.execute(
            select(PaymentPlan)
            .options(
                selectinload(PaymentPlan.installments),
                selectinload(PaymentPlan.modifications),
            )
            .where(PaymentPlan.deal_id == deal_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_plan(self, deal_id: int) -> PaymentPlan:
        plan = await self.find_plan(deal_id)
        if plan is None:
            raise NotFoundError("Payment plan does not exist")
        return plan

    async def create_plan(
        self,
        deal_id: int,
        data: schemas.PaymentPlanCreate,
        user: User,
    ) -> PaymentPlan:
        """
        Create the payment plan of a deal.

        The whole agreed price is scheduled: a down payment on
        ``down_payment_date`` and equal installments every 30 or 90 days
        starting at ``first_installment_date``. Nothing is written when
        validation fails.
        """
        deal = await self.deals.get_or_raise(deal_id)
        self.deals.ensure_can_manage(deal, user, "create payment plan")

        if await self.find_plan(deal_id) is not None:
            raise ConflictError("Payment plan already exists. Use modify functions to change it.")

        schedule = generate_schedule(
            total_amount=deal.agreed_price,
            down_payment_percentage=data.down_payment_percentage,
            number_of_installments=data.number_of_installments,
            frequency=data.frequency,
            down_payment_date=data.down_payment_date,
            first_installment_date=data.first_installment_date,
        )

        plan = PaymentPlan(
            deal_id=deal.id,
            total_amount=schedule.total_amount,
            down_payment_percentage=schedule.down_payment_percentage,
            down_payment_amount=schedule.down_payment_amount,
            down_payment_date=data.down_payment_date,
            frequency=data.frequency.value,
            number_of_installments=data.number_of_installments,
            status=schemas.PlanStatus.ACTIVE.value,
            created_by=user.id,
        )
        plan.installments = [
            Installment(
                kind=row.kind.value,
                sequence_number=row.sequence_number,
                due_date=row.due_date,
                amount=row.amount,
                paid_amount=Decimal("0"),
                status=schemas.InstallmentStatus.PENDING.value,
                description=row.description,
            )
            for row in schedule.rows
        ]
        self.session.add(plan)
        deal.payment_state = PaymentState.PLAN_ACTIVE.value
        await self.session.commit()

        logger.info(
            "Created payment plan for deal %s: down payment %s, %d x %s",
            deal.deal_number,
            schedule.down_payment_amount,
            data.number_of_installments,
            data.frequency.value,
        )
        return await self.get_plan(deal_id)

    async def add_installment(
        self,
        deal_id: int,
        data: schemas.InstallmentCreate,
        user: User,
    ) -> PaymentPlan:
        """Append a periodic installment; the plan total and agreed price grow by its amount."""
        deal = await self.deals.get_or_raise(deal_id)
        self.deals.ensure_can_manage(deal, user, "modify payment plan")
        plan = await self.get_plan(deal_id)

        amount = to_money(data.amount)
        periodic = self._periodic(plan)
        sequence_number = len(periodic) + 1
        installment = Installment(
            plan_id=plan.id,
            kind=schemas.InstallmentKind.INSTALLMENT.value,
            sequence_number=sequence_number,
            due_date=data.due_date,
            amount=amount,
            paid_amount=Decimal("0"),
            status=schemas.InstallmentStatus.PENDING.value,
            description=data.description or f"Installment {sequence_number}",
        )
        self.session.add(installment)

        plan.number_of_installments = sequence_number
        plan.total_amount = to_money(plan.total_amount) + amount
        plan.status = schemas.PlanStatus.ACTIVE.value
        deal.agreed_price = to_money(deal.agreed_price) + amount
        deal.payment_state = PaymentState.PLAN_MODIFIED.value
        self._record_modification(
            plan, user, "installment-added", data.reason,
            old_value=str(len(periodic)), new_value=str(sequence_number),
        )
        await self.session.commit()

        logger.info("Added installment of %s to deal %s", amount, deal.deal_number)
        return await self.get_plan(deal_id)

    async def modify_installment(
        self,
        deal_id: int,
        installment_id: int,
        data: schemas.InstallmentUpdate,
        user: User,
    ) -> PaymentPlan:
        """Change the amount or due date of an installment that has no payments yet."""
        deal = await self.deals.get_or_raise(deal_id)
        self.deals.ensure_can_manage(deal, user, "modify payment plan")
        plan = await self.get_plan(deal_id)
        installment = self._find_installment(plan, installment_id)
        self._ensure_unpaid(installment, "modify")

        changes = []
        if data.amount is not None and to_money(data.amount) != to_money(installment.amount):
            old_amount = to_money(installment.amount)
            new_amount = to_money(data.amount)
            difference = new_amount - old_amount
            installment.amount = new_amount
            plan.total_amount = to_money(plan.total_amount) + difference
            deal.agreed_price = to_money(deal.agreed_price) + difference
            if installment.kind == schemas.InstallmentKind.DOWN_PAYMENT.value:
                plan.down_payment_amount = new_amount
            changes.append(("amount", str(old_amount), str(new_amount)))

        if data.due_date is not None and data.due_date != installment.due_date:
            changes.append(("due_date", installment.due_date.isoformat(), data.due_date.isoformat()))
            installment.due_date = data.due_date
            if installment.kind == schemas.InstallmentKind.DOWN_PAYMENT.value:
                plan.down_payment_date = data.due_date
            if installment.status == schemas.InstallmentStatus.OVERDUE.value:
                installment.status = schemas.InstallmentStatus.PENDING.value

        if not changes:
            return plan

        for field_name, old_value, new_value in changes:
            self._record_modification(
                plan, user, "installment-modified", data.reason,
                old_value=f"{field_name}={old_value}", new_value=f"{field_name}={new_value}",
            )
        deal.payment_state = PaymentState.PLAN_MODIFIED.value
        await self.session.commit()

        logger.info("Modified installment %s of deal %s", installment_id, deal.deal_number)
        return await self.get_plan(deal_id)

    async def remove_installment(
        self,
        deal_id: int,
        installment_id: int,
        reason: str,
        user: User,
    ) -> PaymentPlan:
        """Delete an unpaid periodic installment and renumber the remaining ones."""
        deal = await self.deals.get_or_raise(deal_id)
        self.deals.ensure_can_manage(deal, user, "delete installments")
        plan = await self.get_plan(deal_id)
        installment = self._find_installment(plan, installment_id)

        if installment.kind == schemas.InstallmentKind.DOWN_PAYMENT.value:
            raise InvalidStateError("The down payment can't be deleted; modify it instead")
        self._ensure_unpaid(installment, "delete")

        amount = to_money(installment.amount)
        plan.installments.remove(installment)
        for number, remaining in enumerate(self._periodic(plan), start=1):
            remaining.sequence_number = number

        plan.number_of_installments = len(self._periodic(plan))
        plan.total_amount = to_money(plan.total_amount) - amount
        deal.agreed_price = to_money(deal.agreed_price) - amount
        deal.payment_state = PaymentState.PLAN_MODIFIED.value
        self._record_modification(
            plan, user, "installment-removed", reason,
            old_value=installment.description, new_value=None,
        )
        self.refresh_completion(plan, deal)
        await self.session.commit()

        logger.info("Removed installment %s from deal %s", installment_id, deal.deal_number)
        return await self.get_plan(deal_id)

    def apply_payment(
        self,
        plan: PaymentPlan,
        installment: Installment,
        amount: Decimal,
        paid_date: date,
    ) -> None:
        """Add a payment to an installment's paid amount. The caller commits."""
        installment.paid_amount = to_money(installment.paid_amount) + amount
        if installment.paid_amount >= to_money(installment.amount):
            installment.status = schemas.InstallmentStatus.PAID.value
            installment.paid_date = paid_date
        elif installment.paid_amount > 0:
            installment.status = schemas.InstallmentStatus.PARTIAL.value

    @staticmethod
    def refresh_completion(plan: PaymentPlan, deal: Deal) -> None:
        """Close the plan and the deal once every installment is paid."""
        if plan.installments and all(
            inst.status == schemas.InstallmentStatus.PAID.value for inst in plan.installments
        ):
            plan.status = schemas.PlanStatus.COMPLETED.value
            deal.payment_state = PaymentState.FULLY_PAID.value

    async def get_summary(self, deal_id: int, as_of: Optional[date] = None) -> schemas.PlanSummary:
        """Payment totals, installment counts, next due and overdue installments of a deal."""
        as_of = as_of or date.today()
        deal = await self.deals.get_or_raise(deal_id)
        plan = await self.find_plan(deal_id)
        total_paid = await self.deals.get_total_paid(deal_id)
        agreed_price = to_money(deal.agreed_price)

        installments = plan.installments if plan else []
        unpaid = sorted(
            (inst for inst in installments if inst.status in UNPAID_STATUSES),
            key=lambda inst: inst.due_date,
        )
        next_due = None
        if unpaid:
            first = unpaid[0]
            next_due = schemas.NextPaymentDue(
                due_date=first.due_date,
                amount=float(to_money(first.amount) - to_money(first.paid_amount)),
                description=first.description,
            )

        return schemas.PlanSummary(
            deal_id=deal.id,
            total_amount=float(agreed_price),
            total_paid=float(total_paid),
            total_pending=float(agreed_price - total_paid),
            percentage_paid=float(total_paid / agreed_price * 100) if agreed_price > 0 else 0,
            payment_state=deal.payment_state,
            installment_count=len(installments),
            paid_installment_count=len(installments) - len(unpaid),
            pending_installment_count=len(unpaid),
            next_payment_due=next_due,
            overdue_installments=[
                schemas.Installment.model_validate(inst)
                for inst in unpaid if inst.due_date < as_of
            ],
        )

    async def mark_overdue(self, as_of: Optional[date] = None) -> int:
        """Flag unpaid installments past their due date on active plans."""
        as_of = as_of or date.today()
        result = await self.session.execute(
            select(Installment)
            .join(PaymentPlan, Installment.plan_id == PaymentPlan.id)
            .where(
                PaymentPlan.status == schemas.PlanStatus.ACTIVE.value,
                Installment.status.in_([
                    schemas.InstallmentStatus.PENDING.value,
                    schemas.InstallmentStatus.PARTIAL.value,
                ]),
                Installment.due_date < as_of,
            )
        )
        installments = list(result.scalars().all())
        for installment in installments:
            installment.status = schemas.InstallmentStatus.OVERDUE.value
        if installments:
            await self.session.commit()
            logger.info("Marked %d installments overdue as of %s", len(installments), as_of)
        return len(installments)

    async def get_overdue(self, as_of: Optional[date] = None) -> List[schemas.OverduePayment]:
        """All unpaid installments past due across deals, most overdue first."""
        as_of = as_of or date.today()
        result = await self.session.execute(
            select(Installment, Deal)
            .join(PaymentPlan, Installment.plan_id == PaymentPlan.id)
            .join(Deal, PaymentPlan.deal_id == Deal.id)
            .where(
                Installment.status.in_(UNPAID_STATUSES),
                Installment.due_date < as_of,
            )
        )

        overdue = []
        for installment, deal in result.all():
            days_overdue = (as_of - installment.due_date).days
            overdue.append(schemas.OverduePayment(
                deal_id=deal.id,
                deal_number=deal.deal_number,
                installment_id=installment.id,
                property_id=deal.property_id,
                buyer_name=deal.buyer_name,
                amount=float(to_money(installment.amount) - to_money(installment.paid_amount)),
                due_date=installment.due_date,
                days_overdue=days_overdue,
                severity=overdue_severity(days_overdue),
                description=installment.description,
            ))
        return sorted(overdue, key=lambda item: item.days_overdue, reverse=True)

    @staticmethod
    def _periodic(plan: PaymentPlan) -> List[Installment]:
        return [
            inst for inst in plan.installments
            if inst.kind == schemas.InstallmentKind.INSTALLMENT.value
        ]

    @staticmethod
    def _find_installment(plan: PaymentPlan, installment_id: int) -> Installment:
        for installment in plan.installments:
            if installment.id == installment_id:
                return installment
        raise NotFoundError("Installment not found")

    @staticmethod
    def _ensure_unpaid(installment: Installment, action: str) -> None:
        if to_money(installment.paid_amount) > 0:
            raise InvalidStateError(
                f"Cannot {action} installment with payments. Only pending installments can be changed."
            )

    def _record_modification(
        self,
        plan: PaymentPlan,
        user: User,
        modification_type: str,
        reason: str,
        old_value: Optional[str],
        new_value: Optional[str],
    ) -> None:
        plan.modified_by = user.id
        plan.modified_at = datetime.utcnow()
        self.session.add(PlanModification(
            plan_id=plan.id,
            modification_type=modification_type,
            reason=reason,
            old_value=old_value,
            new_value=new_value,
            modified_by=user.id,
        ))
