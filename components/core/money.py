"""Helpers for cent-precision money arithmetic."""

from decimal import Decimal, ROUND_FLOOR, ROUND_HALF_UP
from typing import List, Sequence, Union

from components.core.exceptions import ValidationError

CENT = Decimal("0.01")

Number = Union[Decimal, float, int, str]


def to_money(value: Number) -> Decimal:
    """Convert a number to a Decimal rounded to cents.

    Raises ValidationError for NaN and infinities.
    """
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    if not value.is_finite():
        raise ValidationError("Amount must be a finite number")
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def allocate(total: Number, weights: Sequence[Number]) -> List[Decimal]:
    """
    Split ``total`` proportionally to ``weights``.

    Largest remainder at cent precision: every share is rounded down and
    the leftover cents go to the shares with the largest dropped fraction,
    later shares first on ties. Shares add up to ``total`` exactly and
    none of them changes sign.
    """
    total = to_money(total)
    weights = [Decimal(str(w)) for w in weights]
    weight_sum = sum(weights)
    if not weights or weight_sum <= 0 or any(w < 0 for w in weights):
        raise ValueError("weights must be non-empty and positive")

    sign = -1 if total < 0 else 1
    cents = int(abs(total) / CENT)
    exact = [cents * w / weight_sum for w in weights]
    shares = [int(e.to_integral_value(rounding=ROUND_FLOOR)) for e in exact]

    leftover = cents - sum(shares)
    by_fraction = sorted(
        range(len(shares)),
        key=lambda i: (exact[i] - shares[i], i),
        reverse=True,
    )
    for i in by_fraction[:leftover]:
        shares[i] += 1

    return [sign * share * CENT for share in shares]
