"""Pydantic schemas for bank reconciliation."""

from datetime import date, datetime
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field


class ReconciliationStatus(str, Enum):
    UNRECONCILED = "unreconciled"
    RECONCILED = "reconciled"


class DiscrepancyType(str, Enum):
    MISSING_ENTRY = "missing_entry"
    DUPLICATE = "duplicate"


class BankTransaction(BaseModel):
    id: int
    statement_id: Optional[int] = None
    transaction_date: date
    description: str
    amount: float
    balance: Optional[float] = None
    reference: Optional[str] = None
    status: ReconciliationStatus

    class Config:
        from_attributes = True


class LedgerEntryCreate(BaseModel):
    entry_date: date
    description: str
    amount: float
    account: str
    reference: Optional[str] = None


class LedgerEntry(LedgerEntryCreate):
    id: int
    status: ReconciliationStatus

    class Config:
        from_attributes = True


class MatchCreate(BaseModel):
    """Schema for a manual match of selected records."""
    bank_transaction_ids: List[int] = Field(default_factory=list)
    ledger_entry_ids: List[int] = Field(default_factory=list)
    note: Optional[str] = None


class ReconciliationMatch(BaseModel):
    id: int
    matched_by: int
    matched_at: datetime
    auto_matched: bool
    confidence: Optional[int] = None
    note: Optional[str] = None
    bank_transactions: List[BankTransaction]
    ledger_entries: List[LedgerEntry]

    class Config:
        from_attributes = True


class MatchSuggestion(BaseModel):
    bank_transaction_id: int
    ledger_entry_id: int
    confidence: int
    reason: str


class Discrepancy(BaseModel):
    type: DiscrepancyType
    severity: str
    description: str
    bank_transaction_ids: List[int] = []
    ledger_entry_ids: List[int] = []


class StatementImportError(BaseModel):
    """Schema for a statement row that failed validation."""
    row: int
    message: str


class StatementImportResponse(BaseModel):
    """Schema for statement upload response."""
    success: bool
    message: str
    statement_id: Optional[int] = None
    imported: int = 0
    errors: Optional[List[StatementImportError]] = None
