"""Matching heuristics and statement parsing for bank reconciliation."""

import re
from collections import defaultdict
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import BinaryIO, Dict, List, Optional, Sequence, Tuple

import pandas as pd

from components.core.config import settings
from components.core.money import to_money
from components.reconciliation.models import BankTransaction, LedgerEntry

AUTO_MATCH_THRESHOLD = 70

# Header aliases, checked in order, matched by substring
COLUMN_ALIASES = {
    "date": ["date", "transaction date", "posted date"],
    "amount": ["amount", "transaction amount", "debit/credit"],
    "description": ["description", "details", "memo", "narration"],
    "balance": ["balance", "running balance"],
    "reference": ["reference", "ref", "check number", "transaction id"],
}

DATE_FORMATS = ("%Y-%m-%d", "%m/%d/%Y", "%d/%m/%Y", "%d.%m.%Y")


def string_similarity(first: str, second: str) -> float:
    """Rough 0..1 similarity of two descriptions."""
    first, second = first.lower().strip(), second.lower().strip()
    longer, shorter = (first, second) if len(first) > len(second) else (second, first)
    if not longer:
        return 1.0
    if shorter and shorter in longer:
        return 0.8

    words_first = first.split()
    words_second = second.split()
    if not words_first or not words_second:
        return 0.0
    common = [word for word in words_first if word in words_second]
    return len(common) * 2 / (len(words_first) + len(words_second))


def score_pair(
    bank: BankTransaction,
    entry: LedgerEntry,
    tolerance: Decimal = Decimal(str(settings.AMOUNT_TOLERANCE)),
) -> int:
    """
    Confidence (0-100) that a bank line and a ledger entry are the same movement.

    Amount weighs 40, date 30 and description 30.
    """
    confidence = 0.0

    bank_amount = to_money(bank.amount)
    entry_amount = to_money(entry.amount)
    difference = abs(bank_amount - entry_amount)
    largest = max(abs(bank_amount), abs(entry_amount))
    if difference < tolerance:
        confidence += 40
    elif largest > 0 and difference / largest < Decimal("0.05"):
        confidence += 20

    days_apart = abs((bank.transaction_date - entry.entry_date).days)
    if days_apart == 0:
        confidence += 30
    elif days_apart <= 3:
        confidence += 20
    elif days_apart <= 7:
        confidence += 10

    confidence += string_similarity(bank.description, entry.description) * 30
    return round(confidence)


def suggest_pairs(
    bank_transactions: Sequence[BankTransaction],
    ledger_entries: Sequence[LedgerEntry],
    min_confidence: int = AUTO_MATCH_THRESHOLD,
) -> List[Tuple[BankTransaction, LedgerEntry, int]]:
    """Greedy one-to-one pairing: each bank line takes its best unused ledger entry."""
    used_entries = set()
    pairs = []
    for bank in bank_transactions:
        best, best_score = None, 0
        for entry in ledger_entries:
            if entry.id in used_entries:
                continue
            score = score_pair(bank, entry)
            if score > best_score and score >= min_confidence:
                best, best_score = entry, score
        if best is not None:
            used_entries.add(best.id)
            pairs.append((bank, best, best_score))
    return pairs


def find_duplicates(bank_transactions: Sequence[BankTransaction]) -> List[List[BankTransaction]]:
    """Groups of bank lines sharing amount and date."""
    groups: Dict[Tuple[Decimal, date], List[BankTransaction]] = defaultdict(list)
    for transaction in bank_transactions:
        groups[(to_money(transaction.amount), transaction.transaction_date)].append(transaction)
    return [group for group in groups.values() if len(group) > 1]


def parse_statement_date(value: str) -> date:
    value = value.strip()
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"Invalid date: {value}")


def parse_amount(value: str) -> Decimal:
    """Parse a statement amount. Accounting style "(100.00)" is a debit of 100."""
    stripped = (value or "").strip()
    negative = stripped.startswith("(") and stripped.endswith(")")
    cleaned = re.sub(r"[^0-9.\-]", "", stripped)
    if not cleaned:
        raise ValueError(f"Invalid amount: {value}")
    try:
        amount = to_money(Decimal(cleaned))
        return -amount if negative else amount
    except InvalidOperation:
        raise ValueError(f"Invalid amount: {value}")


def _find_column(columns: Sequence[str], aliases: Sequence[str]) -> Optional[str]:
    for alias in aliases:
        for column in columns:
            if alias in column:
                return column
    return None


def parse_statement(file_content: BinaryIO, delimiter: str = ",") -> Tuple[List[Dict], List[Dict]]:
    """
    Parse a bank statement CSV.

    Returns the parsed rows and a list of ``{"row", "message"}`` errors.
    Row numbers count the header as row 1.
    """
    frame = pd.read_csv(file_content, sep=delimiter, dtype=str, keep_default_na=False)
    frame.columns = [str(column).strip().lower() for column in frame.columns]

    columns = {key: _find_column(list(frame.columns), aliases) for key, aliases in COLUMN_ALIASES.items()}
    if columns["date"] is None or columns["amount"] is None:
        return [], [{"row": 1, "message": "Statement must contain date and amount columns"}]

    rows, errors = [], []
    for row_num, record in enumerate(frame.to_dict("records"), start=2):
        try:
            transaction_date = parse_statement_date(record[columns["date"]])
            amount = parse_amount(record[columns["amount"]])
        except ValueError as e:
            errors.append({"row": row_num, "message": str(e)})
            continue

        balance = None
        if columns["balance"] and record[columns["balance"]].strip():
            try:
                balance = parse_amount(record[columns["balance"]])
            except ValueError as e:
                errors.append({"row": row_num, "message": str(e)})
                continue

        description = record[columns["description"]].strip() if columns["description"] else ""
        reference = record[columns["reference"]].strip() if columns["reference"] else ""
        rows.append({
            "transaction_date": transaction_date,
            "amount": amount,
            "description": description or "Imported transaction",
            "balance": balance,
            "reference": reference or None,
        })
    return rows, errors
