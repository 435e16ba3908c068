"""Shared fixtures and helpers for Brokerage Ledger test suite."""

import os

os.environ.setdefault("DB_URL", "sqlite+aiosqlite:///:memory:")

from datetime import date, timedelta

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from components.core import init_db
from components.core.database import DatabaseManager
from components.core.security import create_access_token
from components.deal.repository import DealRepository
from components.deal.schemas import DealCreate
from components.plan.schemas import Frequency, PaymentPlanCreate
from components.user.repository import UserRepository
from components.user.schemas import UserCreate, UserRole
from restapi.router import create_app

DOWN_PAYMENT_DATE = date(2024, 1, 1)
FIRST_INSTALLMENT_DATE = date(2024, 2, 1)


@pytest.fixture
async def db_manager():
    """In-memory SQLite database shared by every session of one test."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    manager = DatabaseManager(engine=engine)
    await manager.create_all()
    yield manager
    await manager.dispose()


@pytest.fixture
async def session(db_manager):
    async with db_manager.get_db() as s:
        yield s


@pytest.fixture
async def admin(session):
    return await UserRepository(session).create(UserCreate(
        login="admin", password="secret123", full_name="Office Admin", role=UserRole.ADMIN
    ))


@pytest.fixture
async def agent(session):
    return await UserRepository(session).create(UserCreate(
        login="ali_khan", password="secret123", full_name="Ali Khan"
    ))


@pytest.fixture
async def other_agent(session):
    return await UserRepository(session).create(UserCreate(
        login="sara_ahmed", password="secret123", full_name="Sara Ahmed"
    ))


@pytest.fixture
async def deal(session, agent):
    """A 1,000,000 deal whose primary agent is ``agent``."""
    return await DealRepository(session).create(_make_deal(), agent)


@pytest.fixture
async def client(db_manager):
    """HTTP client bound to the app, with the database swapped for the test one."""
    app = create_app()

    async def override_get_db():
        async with db_manager.get_db() as s:
            yield s

    app.dependency_overrides[init_db.get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


def _make_deal(**kwargs) -> DealCreate:
    """Helper to create a DealCreate with defaults."""
    defaults = {
        "property_id": "PROP-100",
        "buyer_name": "Buyer One",
        "seller_name": "Seller One",
        "agreed_price": 1_000_000,
    }
    defaults.update(kwargs)
    return DealCreate(**defaults)


def _make_plan(**kwargs) -> PaymentPlanCreate:
    """Helper for a 30% down payment and 4 monthly installments."""
    defaults = {
        "down_payment_percentage": 30,
        "number_of_installments": 4,
        "frequency": Frequency.MONTHLY,
        "down_payment_date": DOWN_PAYMENT_DATE,
        "first_installment_date": FIRST_INSTALLMENT_DATE,
    }
    defaults.update(kwargs)
    return PaymentPlanCreate(**defaults)


def _auth_headers(user) -> dict:
    """Bearer header for ``user``."""
    token = create_access_token({"sub": str(user.id)}, timedelta(minutes=5))
    return {"Authorization": f"Bearer {token}"}
