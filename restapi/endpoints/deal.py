"""Deal and payment ledger endpoints for the API."""

from typing import List
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from components.core.init_db import get_db
from components.deal.repository import DealRepository
from components.deal import schemas
from components.payment.repository import PaymentRepository
from components.payment import schemas as payment_schemas
from restapi.endpoints.auth import get_current_user
from components.user.models import User

router = APIRouter(
    prefix="/deals",
    tags=["deals"],
    responses={404: {"description": "Not found"}},
)


@router.post("/", response_model=schemas.Deal, status_code=status.HTTP_201_CREATED)
async def create_deal(
    deal: schemas.DealCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Create a new deal. The caller is the primary agent unless another is given."""
    return await DealRepository(db).create(deal, current_user)


@router.get("/", response_model=List[schemas.Deal])
async def read_deals(
    skip: int = Query(0, ge=0, description="Number of records to skip"),
    limit: int = Query(100, ge=1, le=100, description="Number of records to return"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await DealRepository(db).get_all(skip=skip, limit=limit)


@router.get("/{deal_id}", response_model=schemas.Deal)
async def read_deal(
    deal_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await DealRepository(db).get_or_raise(deal_id)


@router.post(
    "/{deal_id}/payments",
    response_model=payment_schemas.Payment,
    status_code=status.HTTP_201_CREATED,
)
async def record_payment(
    deal_id: int,
    payment: payment_schemas.PaymentCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Record a payment against a deal.

    Fails with 400 when the amount is not positive or exceeds the
    remaining balance; the ledger is left unchanged in that case.
    """
    return await PaymentRepository(db).record_payment(deal_id, payment, current_user)


@router.get("/{deal_id}/payments", response_model=List[payment_schemas.PaymentWithRunningTotal])
async def read_payments(
    deal_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Payment history of a deal, newest first, with running totals."""
    history = await PaymentRepository(db).get_history(deal_id)
    return [
        payment_schemas.PaymentWithRunningTotal(
            **payment_schemas.Payment.model_validate(payment).model_dump(),
            running_total=float(total),
        )
        for payment, total in history
    ]


@router.get("/{deal_id}/payments/balance", response_model=schemas.DealBalance)
async def read_balance(
    deal_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await DealRepository(db).get_balance(deal_id)


@router.get("/{deal_id}/payments/receipts", response_model=payment_schemas.ReceiptStats)
async def read_receipt_stats(
    deal_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await PaymentRepository(db).receipt_stats(deal_id)
