"""Payment plan endpoints for the API."""

from datetime import date
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from components.core.init_db import get_db
from components.plan.repository import PlanRepository
from components.plan import schemas
from restapi.endpoints.auth import get_current_user
from components.user.models import User

router = APIRouter(
    tags=["payment plans"],
    responses={404: {"description": "Not found"}},
)


@router.post(
    "/deals/{deal_id}/payment-plan",
    response_model=schemas.PaymentPlan,
    status_code=status.HTTP_201_CREATED,
)
async def create_payment_plan(
    deal_id: int,
    plan: schemas.PaymentPlanCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Create the payment plan of a deal.

    - down_payment_percentage: 10 to 90
    - number_of_installments: 1 to 24
    - frequency: monthly (every 30 days) or quarterly (every 90 days)
    - down_payment_date and first_installment_date are required
    """
    return await PlanRepository(db).create_plan(deal_id, plan, current_user)


@router.get("/deals/{deal_id}/payment-plan", response_model=schemas.PaymentPlan)
async def read_payment_plan(
    deal_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await PlanRepository(db).get_plan(deal_id)


@router.post(
    "/deals/{deal_id}/payment-plan/installments",
    response_model=schemas.PaymentPlan,
    status_code=status.HTTP_201_CREATED,
)
async def add_installment(
    deal_id: int,
    installment: schemas.InstallmentCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Add an installment; the deal's agreed price grows by its amount."""
    return await PlanRepository(db).add_installment(deal_id, installment, current_user)


@router.put(
    "/deals/{deal_id}/payment-plan/installments/{installment_id}",
    response_model=schemas.PaymentPlan,
)
async def modify_installment(
    deal_id: int,
    installment_id: int,
    installment: schemas.InstallmentUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Change amount or due date of an installment without payments."""
    return await PlanRepository(db).modify_installment(deal_id, installment_id, installment, current_user)


@router.delete(
    "/deals/{deal_id}/payment-plan/installments/{installment_id}",
    response_model=schemas.PaymentPlan,
)
async def remove_installment(
    deal_id: int,
    installment_id: int,
    reason: str = Query(..., min_length=1, description="Why the installment is removed"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Delete an installment that has no payments yet."""
    return await PlanRepository(db).remove_installment(deal_id, installment_id, reason, current_user)


@router.get("/deals/{deal_id}/payment-plan/summary", response_model=schemas.PlanSummary)
async def read_payment_summary(
    deal_id: int,
    as_of_date: Optional[date] = Query(None, description="Date for overdue checks (defaults to today)"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await PlanRepository(db).get_summary(deal_id, as_of_date or date.today())


@router.get("/payment-plans/overdue", response_model=List[schemas.OverduePayment])
async def read_overdue(
    as_of_date: Optional[date] = Query(None, description="Date for overdue checks (defaults to today)"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Overdue installments across all deals, most overdue first.

    Severity: warning (1-30 days), critical (31-60), severe (over 60).
    """
    repo = PlanRepository(db)
    check_date = as_of_date or date.today()
    await repo.mark_overdue(check_date)
    return await repo.get_overdue(check_date)
