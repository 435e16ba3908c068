"""Payment schedule generation."""

from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from typing import List, Optional

from components.core.exceptions import ValidationError
from components.core.money import Number, to_money
from components.plan.schemas import Frequency, InstallmentKind, Severity

MIN_DOWN_PAYMENT_PERCENTAGE = 10
MAX_DOWN_PAYMENT_PERCENTAGE = 90
MIN_INSTALLMENTS = 1
MAX_INSTALLMENTS = 24

# Calendar-naive step between due dates
FREQUENCY_DAYS = {
    Frequency.MONTHLY: 30,
    Frequency.QUARTERLY: 90,
}


@dataclass
class ScheduledInstallment:
    kind: InstallmentKind
    sequence_number: int
    due_date: date
    amount: Decimal
    description: str


@dataclass
class Schedule:
    total_amount: Decimal
    down_payment_percentage: Decimal
    down_payment_amount: Decimal
    remaining_amount: Decimal
    down_payment: ScheduledInstallment
    installments: List[ScheduledInstallment] = field(default_factory=list)

    @property
    def rows(self) -> List[ScheduledInstallment]:
        return [self.down_payment] + self.installments


def generate_schedule(
    total_amount: Number,
    down_payment_percentage: Number,
    number_of_installments: int,
    frequency: Frequency,
    down_payment_date: Optional[date],
    first_installment_date: Optional[date],
) -> Schedule:
    """
    Derive a down payment and equal periodic installments from a deal amount.

    Raises ValidationError with a user-facing message when an input is
    missing or out of range. Installment amounts are rounded to cents and
    the final installment carries the rounding remainder, so the down
    payment plus all installments equals ``total_amount``.
    """
    if down_payment_date is None:
        raise ValidationError("Please select down payment date")
    if first_installment_date is None:
        raise ValidationError("Please select first installment date")

    total = to_money(total_amount)
    if total <= 0:
        raise ValidationError("Total amount must be greater than zero")

    percentage = Decimal(str(down_payment_percentage))
    if not MIN_DOWN_PAYMENT_PERCENTAGE <= percentage <= MAX_DOWN_PAYMENT_PERCENTAGE:
        raise ValidationError(
            f"Down payment must be between {MIN_DOWN_PAYMENT_PERCENTAGE}% "
            f"and {MAX_DOWN_PAYMENT_PERCENTAGE}%"
        )
    if not MIN_INSTALLMENTS <= number_of_installments <= MAX_INSTALLMENTS:
        raise ValidationError(
            f"Number of installments must be between {MIN_INSTALLMENTS} and {MAX_INSTALLMENTS}"
        )

    frequency = Frequency(frequency)
    step = timedelta(days=FREQUENCY_DAYS[frequency])

    down_payment_amount = to_money(total * percentage / 100)
    remaining = total - down_payment_amount
    per_installment = to_money(remaining / number_of_installments)

    schedule = Schedule(
        total_amount=total,
        down_payment_percentage=percentage,
        down_payment_amount=down_payment_amount,
        remaining_amount=remaining,
        down_payment=ScheduledInstallment(
            kind=InstallmentKind.DOWN_PAYMENT,
            sequence_number=0,
            due_date=down_payment_date,
            amount=down_payment_amount,
            description=f"Down Payment ({percentage.normalize():f}%)",
        ),
    )

    for i in range(number_of_installments):
        is_last = i == number_of_installments - 1
        amount = remaining - per_installment * i if is_last else per_installment
        if is_last:
            description = f"Final Payment (Installment {i + 1} of {number_of_installments})"
        else:
            description = f"Installment {i + 1} of {number_of_installments}"
        schedule.installments.append(ScheduledInstallment(
            kind=InstallmentKind.INSTALLMENT,
            sequence_number=i + 1,
            due_date=first_installment_date + step * i,
            amount=amount,
            description=description,
        ))

    return schedule


def overdue_severity(days_overdue: int) -> Severity:
    """Classify how late an installment is."""
    if days_overdue > 60:
        return Severity.SEVERE
    if days_overdue > 30:
        return Severity.CRITICAL
    return Severity.WARNING
