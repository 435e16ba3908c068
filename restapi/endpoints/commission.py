"""Commission endpoints for the API."""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from components.core.init_db import get_db
from components.commission.repository import CommissionRepository
from components.commission import schemas
from restapi.endpoints.auth import get_current_user
from components.user.models import User

router = APIRouter(
    prefix="/commissions",
    tags=["commissions"],
    responses={404: {"description": "Not found"}},
)


@router.post("/", response_model=schemas.Commission, status_code=status.HTTP_201_CREATED)
async def create_commission(
    commission: schemas.CommissionCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await CommissionRepository(db).create(commission)


@router.get("/", response_model=List[schemas.Commission])
async def read_commissions(
    commission_status: Optional[schemas.CommissionStatus] = Query(None, alias="status"),
    approval_status: Optional[schemas.ApprovalStatus] = Query(None),
    agent_id: Optional[int] = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Get commissions with optional filtering by status, approval status and agent."""
    return await CommissionRepository(db).get_all(
        status=commission_status,
        approval_status=approval_status,
        agent_id=agent_id,
    )


@router.get("/reports/agents", response_model=List[schemas.AgentCommissionReport])
async def read_agent_report(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Per agent: number of commissions and amounts by workflow stage."""
    return await CommissionRepository(db).agent_report()


@router.get("/{commission_id}", response_model=schemas.Commission)
async def read_commission(
    commission_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await CommissionRepository(db).get_or_raise(commission_id)


@router.post("/{commission_id}/approve", response_model=schemas.Commission)
async def approve_commission(
    commission_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await CommissionRepository(db).approve(commission_id, current_user)


@router.post("/{commission_id}/reject", response_model=schemas.Commission)
async def reject_commission(
    commission_id: int,
    body: schemas.CommissionReject,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await CommissionRepository(db).reject(commission_id, body.reason, current_user)


@router.post("/{commission_id}/override", response_model=schemas.Commission)
async def override_commission(
    commission_id: int,
    body: schemas.CommissionOverride,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Approve at a different amount; the original amount is kept for audit."""
    return await CommissionRepository(db).override(commission_id, body.amount, body.reason, current_user)


@router.post("/{commission_id}/pay", response_model=schemas.Commission)
async def pay_commission(
    commission_id: int,
    body: schemas.CommissionPay,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await CommissionRepository(db).mark_paid(commission_id, current_user, body.paid_date)


@router.post(
    "/{commission_id}/split",
    response_model=List[schemas.Commission],
    status_code=status.HTTP_201_CREATED,
)
async def split_commission(
    commission_id: int,
    body: schemas.CommissionSplit,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Split a commission among 2 to 5 agents.

    Percentages must total 100. Returns the child commissions; the parent
    is kept and flagged as split.
    """
    return await CommissionRepository(db).split(commission_id, body.shares, current_user)
