"""Bank reconciliation models for the database."""

from datetime import datetime

from sqlalchemy import Column, Integer, String, Boolean, Date, DateTime, ForeignKey, Numeric, Table
from sqlalchemy.orm import relationship

from components.core.database import Base


match_bank_transactions = Table(
    "match_bank_transactions",
    Base.metadata,
    Column("match_id", Integer, ForeignKey("reconciliation_matches.id"), primary_key=True),
    Column("bank_transaction_id", Integer, ForeignKey("bank_transactions.id"), primary_key=True),
)

match_ledger_entries = Table(
    "match_ledger_entries",
    Base.metadata,
    Column("match_id", Integer, ForeignKey("reconciliation_matches.id"), primary_key=True),
    Column("ledger_entry_id", Integer, ForeignKey("ledger_entries.id"), primary_key=True),
)


class BankStatement(Base):
    """An imported bank statement file."""
    __tablename__ = "bank_statements"

    id = Column(Integer, primary_key=True, index=True)
    file_name = Column(String(255), nullable=False)
    imported_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    imported_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    transaction_count = Column(Integer, nullable=False, default=0)


class BankTransaction(Base):
    """Line item of a bank statement. Deposits are positive, withdrawals negative."""
    __tablename__ = "bank_transactions"

    id = Column(Integer, primary_key=True, index=True)
    statement_id = Column(Integer, ForeignKey("bank_statements.id"), nullable=True)
    transaction_date = Column(Date, nullable=False)
    description = Column(String(255), nullable=False)
    amount = Column(Numeric(14, 2), nullable=False)
    balance = Column(Numeric(14, 2), nullable=True)
    reference = Column(String(100), nullable=True)
    status = Column(String(20), nullable=False, default="unreconciled")


class LedgerEntry(Base):
    """Internal (ERP) ledger transaction to be reconciled against the bank."""
    __tablename__ = "ledger_entries"

    id = Column(Integer, primary_key=True, index=True)
    entry_date = Column(Date, nullable=False)
    description = Column(String(255), nullable=False)
    amount = Column(Numeric(14, 2), nullable=False)
    account = Column(String(100), nullable=False)
    reference = Column(String(100), nullable=True)
    status = Column(String(20), nullable=False, default="unreconciled")


class ReconciliationMatch(Base):
    """Auditable cross-reference between bank transactions and ledger entries."""
    __tablename__ = "reconciliation_matches"

    id = Column(Integer, primary_key=True, index=True)
    matched_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    matched_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    auto_matched = Column(Boolean, nullable=False, default=False)
    confidence = Column(Integer, nullable=True)
    note = Column(String(255), nullable=True)

    # Relationships
    bank_transactions = relationship(
        "BankTransaction", secondary=match_bank_transactions, lazy="selectin"
    )
    ledger_entries = relationship(
        "LedgerEntry", secondary=match_ledger_entries, lazy="selectin"
    )
