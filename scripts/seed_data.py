"""Script to seed demo data into the database."""

import asyncio
import logging
from datetime import date, timedelta

from components.commission.repository import CommissionRepository
from components.commission.schemas import CommissionCreate
from components.core.init_db import db_manager, get_db
from components.core.log_config import configure_logging
from components.deal.repository import DealRepository
from components.deal.schemas import DealCreate
from components.payment.repository import PaymentRepository
from components.payment.schemas import PaymentCreate, PaymentMethod
from components.plan.repository import PlanRepository
from components.plan.schemas import Frequency, PaymentPlanCreate
from components.reconciliation.repository import ReconciliationRepository
from components.reconciliation.schemas import LedgerEntryCreate
from components.user.repository import UserRepository
from components.user.schemas import UserCreate, UserRole

logger = logging.getLogger(__name__)


async def seed_data():
    """Seed demo users, deals, plans, payments, commissions and ledger entries."""
    await db_manager.create_all()
    async for db in get_db():
        users = UserRepository(db)
        admin = await users.create(UserCreate(
            login="admin", password="password123", full_name="Office Admin", role=UserRole.ADMIN
        ))
        agents = [
            await users.create(UserCreate(login=login, password="password123", full_name=name))
            for login, name in [("ali_khan", "Ali Khan"), ("sara_ahmed", "Sara Ahmed")]
        ]

        deals = DealRepository(db)
        plans = PlanRepository(db)
        payments = PaymentRepository(db)
        today = date.today()

        for i, agent in enumerate(agents):
            deal = await deals.create(DealCreate(
                property_id=f"PROP-{100 + i}",
                buyer_name=f"Buyer {i + 1}",
                seller_name=f"Seller {i + 1}",
                agreed_price=1_000_000 * (i + 1),
            ), agent)
            plan = await plans.create_plan(deal.id, PaymentPlanCreate(
                down_payment_percentage=30,
                number_of_installments=4,
                frequency=Frequency.MONTHLY if i == 0 else Frequency.QUARTERLY,
                down_payment_date=today - timedelta(days=60),
                first_installment_date=today - timedelta(days=30),
            ), agent)
            down_payment = plan.installments[0]
            await payments.record_payment(deal.id, PaymentCreate(
                amount=float(down_payment.amount),
                paid_date=down_payment.due_date,
                payment_method=PaymentMethod.BANK_TRANSFER,
                installment_id=down_payment.id,
            ), agent)

            commission = await CommissionRepository(db).create(CommissionCreate(
                deal_id=deal.id,
                property_id=deal.property_id,
                agent_id=agent.id,
                amount=float(deal.agreed_price) * 0.02,
            ))
            if i == 0:
                await CommissionRepository(db).approve(commission.id, admin)

            await ReconciliationRepository(db).create_ledger_entry(LedgerEntryCreate(
                entry_date=down_payment.due_date,
                description=f"Down payment {deal.deal_number}",
                amount=float(down_payment.amount),
                account="Client receipts",
                reference=deal.deal_number,
            ))

        logger.info("Seeded %d agents and %d deals", len(agents), len(agents))


if __name__ == "__main__":
    configure_logging()
    asyncio.run(seed_data())
