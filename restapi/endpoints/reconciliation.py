"""Bank reconciliation endpoints for the API."""

import io
from typing import List, Optional
from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from components.core.init_db import get_db
from components.core.schemas import Message
from components.reconciliation.repository import ReconciliationRepository
from components.reconciliation import schemas
from components.reconciliation.utils import AUTO_MATCH_THRESHOLD
from restapi.endpoints.auth import get_current_user
from components.user.models import User

router = APIRouter(
    prefix="/reconciliation",
    tags=["reconciliation"],
    responses={404: {"description": "Not found"}},
)


@router.post(
    "/ledger-entries",
    response_model=schemas.LedgerEntry,
    status_code=status.HTTP_201_CREATED,
)
async def create_ledger_entry(
    entry: schemas.LedgerEntryCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await ReconciliationRepository(db).create_ledger_entry(entry)


@router.get("/ledger-entries", response_model=List[schemas.LedgerEntry])
async def read_ledger_entries(
    entry_status: Optional[schemas.ReconciliationStatus] = Query(None, alias="status"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await ReconciliationRepository(db).list_ledger_entries(entry_status)


@router.get("/bank-transactions", response_model=List[schemas.BankTransaction])
async def read_bank_transactions(
    transaction_status: Optional[schemas.ReconciliationStatus] = Query(None, alias="status"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await ReconciliationRepository(db).list_bank_transactions(transaction_status)


@router.post("/import", response_model=schemas.StatementImportResponse)
async def import_statement(
    file: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Import a bank statement from a CSV file.

    Columns are recognised by header name:
    - date (also "transaction date", "posted date"): YYYY-MM-DD, MM/DD/YYYY, DD/MM/YYYY or DD.MM.YYYY
    - amount: signed, deposits positive and withdrawals negative
    - description, reference, balance: optional

    Nothing is imported when any row fails validation.
    """
    if not file.filename.endswith('.csv'):
        return schemas.StatementImportResponse(
            success=False,
            message="Invalid file format. Only CSV files (.csv) are supported."
        )

    file_content = await file.read()
    success, message, statement, errors = await ReconciliationRepository(db).import_statement(
        io.BytesIO(file_content), file.filename, current_user
    )

    if not success:
        return schemas.StatementImportResponse(
            success=False,
            message=message,
            errors=[schemas.StatementImportError(**error) for error in errors] or None,
        )

    return schemas.StatementImportResponse(
        success=True,
        message=message,
        statement_id=statement.id,
        imported=statement.transaction_count,
    )


@router.post(
    "/matches",
    response_model=schemas.ReconciliationMatch,
    status_code=status.HTTP_201_CREATED,
)
async def create_match(
    match: schemas.MatchCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Match the selected bank transactions with the selected ledger entries."""
    return await ReconciliationRepository(db).match(
        match.bank_transaction_ids,
        match.ledger_entry_ids,
        current_user,
        note=match.note,
    )


@router.get("/matches", response_model=List[schemas.ReconciliationMatch])
async def read_matches(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await ReconciliationRepository(db).list_matches()


@router.delete("/matches/{match_id}", response_model=Message)
async def delete_match(
    match_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    await ReconciliationRepository(db).unmatch(match_id, current_user)
    return Message(message="Match removed")


@router.get("/suggestions", response_model=List[schemas.MatchSuggestion])
async def read_suggestions(
    min_confidence: int = Query(AUTO_MATCH_THRESHOLD, ge=0, le=100),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await ReconciliationRepository(db).suggest_matches(min_confidence)


@router.post("/auto-match", response_model=List[schemas.ReconciliationMatch])
async def auto_match(
    min_confidence: int = Query(AUTO_MATCH_THRESHOLD, ge=0, le=100),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Store every suggestion at or above min_confidence as a match."""
    return await ReconciliationRepository(db).auto_match(current_user, min_confidence)


@router.get("/discrepancies", response_model=List[schemas.Discrepancy])
async def read_discrepancies(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await ReconciliationRepository(db).detect_discrepancies()
