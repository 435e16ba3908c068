from datetime import date, timedelta
from decimal import Decimal

import pytest

from components.core.exceptions import ValidationError
from components.core.money import allocate, to_money
from components.plan.schemas import Frequency, InstallmentKind, Severity
from components.plan.utils import generate_schedule, overdue_severity


def _schedule(**kwargs):
    defaults = {
        "total_amount": 1_000_000,
        "down_payment_percentage": 30,
        "number_of_installments": 4,
        "frequency": Frequency.MONTHLY,
        "down_payment_date": date(2024, 1, 1),
        "first_installment_date": date(2024, 2, 1),
    }
    defaults.update(kwargs)
    return generate_schedule(**defaults)


class TestGenerateSchedule:
    """Tests for down payment and installment derivation."""

    def test_even_split(self):
        """30% of 1,000,000 down and four installments of 175,000."""
        schedule = _schedule()
        assert schedule.down_payment_amount == Decimal("300000.00")
        assert schedule.remaining_amount == Decimal("700000.00")
        assert [row.amount for row in schedule.installments] == [Decimal("175000.00")] * 4

    def test_rows_start_with_down_payment(self):
        rows = _schedule().rows
        assert rows[0].kind == InstallmentKind.DOWN_PAYMENT
        assert rows[0].sequence_number == 0
        assert rows[0].due_date == date(2024, 1, 1)
        assert [row.sequence_number for row in rows[1:]] == [1, 2, 3, 4]

    def test_descriptions(self):
        rows = _schedule().rows
        assert rows[0].description == "Down Payment (30%)"
        assert rows[1].description == "Installment 1 of 4"
        assert rows[-1].description == "Final Payment (Installment 4 of 4)"

    def test_monthly_steps_are_30_days(self):
        """Monthly due dates are 30 days apart, not calendar months."""
        schedule = _schedule()
        first = date(2024, 2, 1)
        assert [row.due_date for row in schedule.installments] == [
            first, first + timedelta(days=30), first + timedelta(days=60), first + timedelta(days=90),
        ]

    def test_quarterly_steps_are_90_days(self):
        schedule = _schedule(frequency=Frequency.QUARTERLY, number_of_installments=2)
        assert schedule.installments[1].due_date - schedule.installments[0].due_date == timedelta(days=90)

    def test_final_installment_absorbs_rounding(self):
        """900 over 7 installments: six of 128.57 and a final 128.58."""
        schedule = _schedule(total_amount=1000, down_payment_percentage=10, number_of_installments=7)
        amounts = [row.amount for row in schedule.installments]
        assert amounts[:-1] == [Decimal("128.57")] * 6
        assert amounts[-1] == Decimal("128.58")
        assert sum(row.amount for row in schedule.rows) == Decimal("1000.00")

    @pytest.mark.parametrize("total,percentage,count", [
        (1_234_567.89, 15, 11),
        (999.99, 33, 24),
        (50_000, 12.5, 3),
    ])
    def test_amounts_add_up_to_total(self, total, percentage, count):
        schedule = _schedule(total_amount=total, down_payment_percentage=percentage, number_of_installments=count)
        assert sum(row.amount for row in schedule.rows) == to_money(total)

    def test_single_installment(self):
        schedule = _schedule(number_of_installments=1)
        assert len(schedule.installments) == 1
        assert schedule.installments[0].amount == Decimal("700000.00")
        assert schedule.installments[0].description == "Final Payment (Installment 1 of 1)"


class TestScheduleValidation:
    """Tests for rejected schedule inputs."""

    def test_missing_down_payment_date(self):
        with pytest.raises(ValidationError, match="Please select down payment date"):
            _schedule(down_payment_date=None)

    def test_missing_first_installment_date(self):
        with pytest.raises(ValidationError, match="Please select first installment date"):
            _schedule(first_installment_date=None)

    @pytest.mark.parametrize("percentage", [0, 9.99, 90.01, 100])
    def test_down_payment_out_of_range(self, percentage):
        with pytest.raises(ValidationError, match="Down payment must be between"):
            _schedule(down_payment_percentage=percentage)

    @pytest.mark.parametrize("percentage", [10, 90])
    def test_down_payment_bounds_inclusive(self, percentage):
        assert _schedule(down_payment_percentage=percentage).down_payment_percentage == percentage

    @pytest.mark.parametrize("count", [0, 25])
    def test_installment_count_out_of_range(self, count):
        with pytest.raises(ValidationError, match="Number of installments"):
            _schedule(number_of_installments=count)

    def test_non_positive_total(self):
        with pytest.raises(ValidationError):
            _schedule(total_amount=0)


class TestOverdueSeverity:
    @pytest.mark.parametrize("days,severity", [
        (1, Severity.WARNING),
        (30, Severity.WARNING),
        (31, Severity.CRITICAL),
        (60, Severity.CRITICAL),
        (61, Severity.SEVERE),
    ])
    def test_thresholds(self, days, severity):
        assert overdue_severity(days) == severity


class TestMoney:
    def test_to_money_rounds_half_up(self):
        assert to_money(0.125) == Decimal("0.13")
        assert to_money("10") == Decimal("10.00")

    def test_allocate_last_share_takes_remainder(self):
        assert allocate(100, [1, 1, 1]) == [Decimal("33.33"), Decimal("33.33"), Decimal("33.34")]

    def test_allocate_rejects_empty_weights(self):
        with pytest.raises(ValueError):
            allocate(100, [])

    @pytest.mark.parametrize("value", ["NaN", "Infinity", float("-inf")])
    def test_to_money_rejects_non_finite(self, value):
        with pytest.raises(ValidationError, match="finite"):
            to_money(value)

    def test_allocate_never_goes_negative(self):
        """Four cents-level shares of 0.05 stay non-negative and add up."""
        shares = allocate("0.05", [30, 30, 30, 10])
        assert shares == [Decimal("0.01"), Decimal("0.01"), Decimal("0.02"), Decimal("0.01")]
        assert sum(shares) == Decimal("0.05")

    @pytest.mark.parametrize("total,weights", [
        ("0.07", [1, 1, 1, 1, 1]),
        ("1000.00", [33.33, 33.33, 33.34]),
        ("0.01", [50, 50]),
    ])
    def test_allocate_shares_sum_to_total(self, total, weights):
        shares = allocate(total, weights)
        assert sum(shares) == Decimal(total)
        assert all(share >= 0 for share in shares)
