"""Repository for bank reconciliation operations."""

import logging
from typing import BinaryIO, Dict, List, Optional, Sequence, Tuple

import pandas as pd
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from components.core.exceptions import InvalidStateError, NotFoundError, ValidationError
from components.core.money import to_money
from components.reconciliation.models import (
    BankStatement,
    BankTransaction,
    LedgerEntry,
    ReconciliationMatch,
)
from components.reconciliation import schemas
from components.reconciliation.utils import (
    AUTO_MATCH_THRESHOLD,
    find_duplicates,
    parse_statement,
    suggest_pairs,
)
from components.user.models import User

logger = logging.getLogger(__name__)

UNRECONCILED = schemas.ReconciliationStatus.UNRECONCILED.value
RECONCILED = schemas.ReconciliationStatus.RECONCILED.value


class ReconciliationRepository:
    """Repository for matching bank statement lines with ledger entries."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session."""
        self.session = session

    async def create_ledger_entry(self, data: schemas.LedgerEntryCreate) -> LedgerEntry:
        entry = LedgerEntry(
            entry_date=data.entry_date,
            description=data.description,
            amount=to_money(data.amount),
            account=data.account,
            reference=data.reference,
            status=UNRECONCILED,
        )
        self.session.add(entry)
        await self.session.commit()
        await self.session.refresh(entry)
        return entry

    async def list_bank_transactions(
        self, status: Optional[schemas.ReconciliationStatus] = None
    ) -> List[BankTransaction]:
        query = select(BankTransaction)
        if status:
            query = query.where(BankTransaction.status == status.value)
        result = await self.session.execute(
            query.order_by(BankTransaction.transaction_date, BankTransaction.id)
        )
        return list(result.scalars().all())

    async def list_ledger_entries(
        self, status: Optional[schemas.ReconciliationStatus] = None
    ) -> List[LedgerEntry]:
        query = select(LedgerEntry)
        if status:
            query = query.where(LedgerEntry.status == status.value)
        result = await self.session.execute(
            query.order_by(LedgerEntry.entry_date, LedgerEntry.id)
        )
        return list(result.scalars().all())

    async def list_matches(self) -> List[ReconciliationMatch]:
        result = await self.session.execute(
            select(ReconciliationMatch).order_by(ReconciliationMatch.id)
        )
        return list(result.scalars().all())

    async def match(
        self,
        bank_transaction_ids: Sequence[int],
        ledger_entry_ids: Sequence[int],
        user: User,
        note: Optional[str] = None,
        auto_matched: bool = False,
        confidence: Optional[int] = None,
    ) -> ReconciliationMatch:
        """
        Group selected bank lines and ledger entries into one match.

        Both selections must be non-empty, exist and still be unreconciled.
        The match is stored and every member is flagged reconciled.
        """
        if not bank_transaction_ids or not ledger_entry_ids:
            raise ValidationError("Select at least one bank transaction and one ledger entry")

        bank_transactions = await self._load(BankTransaction, bank_transaction_ids, "Bank transaction")
        ledger_entries = await self._load(LedgerEntry, ledger_entry_ids, "Ledger entry")
        already = [f"bank transaction {t.id}" for t in bank_transactions if t.status == RECONCILED]
        already += [f"ledger entry {e.id}" for e in ledger_entries if e.status == RECONCILED]
        if already:
            raise InvalidStateError(f"Already reconciled: {', '.join(already)}")

        match = ReconciliationMatch(
            matched_by=user.id,
            auto_matched=auto_matched,
            confidence=confidence,
            note=note,
        )
        match.bank_transactions = list(bank_transactions)
        match.ledger_entries = list(ledger_entries)
        for record in [*bank_transactions, *ledger_entries]:
            record.status = RECONCILED
        self.session.add(match)
        await self.session.commit()
        await self.session.refresh(match)

        logger.info(
            "Match %s by %s: %d bank transactions, %d ledger entries",
            match.id, user.login, len(bank_transactions), len(ledger_entries),
        )
        return match

    async def unmatch(self, match_id: int, user: User) -> None:
        """Delete a match and return its members to the unreconciled pool."""
        result = await self.session.execute(
            select(ReconciliationMatch).where(ReconciliationMatch.id == match_id)
        )
        match = result.scalar_one_or_none()
        if match is None:
            raise NotFoundError(f"Match {match_id} not found")

        for record in [*match.bank_transactions, *match.ledger_entries]:
            record.status = UNRECONCILED
        await self.session.delete(match)
        await self.session.commit()
        logger.info("Match %s undone by %s", match_id, user.login)

    async def suggest_matches(self, min_confidence: int = AUTO_MATCH_THRESHOLD) -> List[schemas.MatchSuggestion]:
        """Score unreconciled bank lines against unreconciled ledger entries."""
        pairs = suggest_pairs(
            await self.list_bank_transactions(schemas.ReconciliationStatus.UNRECONCILED),
            await self.list_ledger_entries(schemas.ReconciliationStatus.UNRECONCILED),
            min_confidence,
        )
        return [
            schemas.MatchSuggestion(
                bank_transaction_id=bank.id,
                ledger_entry_id=entry.id,
                confidence=score,
                reason="Fuzzy match (amount + date + description)",
            )
            for bank, entry, score in pairs
        ]

    async def auto_match(self, user: User, min_confidence: int = AUTO_MATCH_THRESHOLD) -> List[ReconciliationMatch]:
        """Persist every suggestion at or above ``min_confidence`` as a one-to-one match."""
        matches = []
        for suggestion in await self.suggest_matches(min_confidence):
            matches.append(await self.match(
                [suggestion.bank_transaction_id],
                [suggestion.ledger_entry_id],
                user,
                note=suggestion.reason,
                auto_matched=True,
                confidence=suggestion.confidence,
            ))
        return matches

    async def detect_discrepancies(self) -> List[schemas.Discrepancy]:
        """Unreconciled records on either side and probable duplicate bank lines."""
        bank_transactions = await self.list_bank_transactions()
        discrepancies = []

        for transaction in bank_transactions:
            if transaction.status == UNRECONCILED:
                discrepancies.append(schemas.Discrepancy(
                    type=schemas.DiscrepancyType.MISSING_ENTRY,
                    severity="medium",
                    description=(
                        f"Bank transaction {transaction.description} ({to_money(transaction.amount)}) "
                        "has no matching ledger entry"
                    ),
                    bank_transaction_ids=[transaction.id],
                ))

        for entry in await self.list_ledger_entries(schemas.ReconciliationStatus.UNRECONCILED):
            discrepancies.append(schemas.Discrepancy(
                type=schemas.DiscrepancyType.MISSING_ENTRY,
                severity="medium",
                description=(
                    f"Ledger entry {entry.description} ({to_money(entry.amount)}) "
                    "has no matching bank transaction"
                ),
                ledger_entry_ids=[entry.id],
            ))

        for group in find_duplicates(bank_transactions):
            first = group[0]
            discrepancies.append(schemas.Discrepancy(
                type=schemas.DiscrepancyType.DUPLICATE,
                severity="medium",
                description=(
                    f"Possible duplicate transactions: {len(group)} transactions with amount "
                    f"{to_money(first.amount)} on {first.transaction_date}"
                ),
                bank_transaction_ids=[t.id for t in group],
            ))
        return discrepancies

    async def import_statement(
        self,
        file_content: BinaryIO,
        file_name: str,
        user: User,
        delimiter: str = ",",
    ) -> Tuple[bool, str, Optional[BankStatement], List[Dict]]:
        """
        Import a bank statement CSV.

        All rows are validated first; when any row fails nothing is written
        and the per-row errors are returned.
        """
        try:
            rows, errors = parse_statement(file_content, delimiter)
        except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
            logger.warning("Unreadable statement %s: %s", file_name, e)
            return False, f"Error processing file: {e}", None, []

        if errors:
            return False, "Validation errors occurred", None, errors
        if not rows:
            return False, "Statement contains no transactions", None, []

        statement = BankStatement(
            file_name=file_name,
            imported_by=user.id,
            transaction_count=len(rows),
        )
        self.session.add(statement)
        await self.session.flush()
        self.session.add_all([
            BankTransaction(statement_id=statement.id, status=UNRECONCILED, **row)
            for row in rows
        ])
        await self.session.commit()

        logger.info("Imported %d transactions from %s", len(rows), file_name)
        return True, "Statement imported successfully", statement, []

    async def _load(self, model, ids: Sequence[int], label: str) -> list:
        unique_ids = list(dict.fromkeys(ids))
        result = await self.session.execute(select(model).where(model.id.in_(unique_ids)))
        records = {record.id: record for record in result.scalars().all()}
        missing = [str(record_id) for record_id in unique_ids if record_id not in records]
        if missing:
            raise NotFoundError(f"{label} not found: {', '.join(missing)}")
        return [records[record_id] for record_id in unique_ids]
