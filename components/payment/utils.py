from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional, Tuple

from components.core.money import to_money
from components.payment.models import Payment
from components.payment.schemas import PaymentType
from components.plan.models import Installment


def running_totals(payments: Iterable[Payment]) -> List[Tuple[Payment, Decimal]]:
    """
    Pair each payment with the cumulative amount paid up to it.

    Accumulates once over the payments in date order (ties broken by id)
    and returns the pairs newest first for display.
    """
    ordered = sorted(payments, key=lambda p: (p.paid_date, p.id or 0))
    total = Decimal("0")
    rows = []
    for payment in ordered:
        total += to_money(payment.amount)
        rows.append((payment, total))
    rows.reverse()
    return rows


def payment_type_for(installment: Optional[Installment]) -> PaymentType:
    """Classify a payment by the installment it settles."""
    if installment is None:
        return PaymentType.AD_HOC
    if installment.kind == "down-payment":
        return PaymentType.DOWN_PAYMENT
    if "final" in installment.description.lower():
        return PaymentType.FINAL_PAYMENT
    return PaymentType.INSTALLMENT


def format_receipt_number(on: date, sequence: int) -> str:
    """Receipt numbers look like RCP-2410-0007."""
    return f"RCP-{on:%y%m}-{sequence:04d}"
