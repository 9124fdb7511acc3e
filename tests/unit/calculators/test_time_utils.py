"""Unit tests for date and rounding utilities."""
import datetime as dt
from decimal import Decimal

import pytest

from billing_engine.calculators.time_utils import (
    in_date_range,
    round_hours,
    round_share,
    to_decimal,
    week_start_sunday,
)


class TestToDecimal:
    """Test conversion to Decimal."""

    def test_float_without_binary_noise(self):
        """Test that floats convert through their string form."""
        assert to_decimal(7.1) == Decimal("7.1")

    def test_decimal_passthrough(self):
        """Test that Decimals are returned unchanged."""
        value = Decimal("3.25")
        assert to_decimal(value) is value

    def test_string_and_int(self):
        """Test string and integer input."""
        assert to_decimal("2.5") == Decimal("2.5")
        assert to_decimal(40) == Decimal("40")


class TestRounding:
    """Test half-up rounding of hours and shares."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            (Decimal("7.125"), Decimal("7.13")),
            (Decimal("2.675"), Decimal("2.68")),
            (Decimal("7.124"), Decimal("7.12")),
            (40, Decimal("40.00")),
            ("0.005", Decimal("0.01")),
        ],
    )
    def test_round_hours(self, value, expected):
        """Test rounding to 2 decimals."""
        assert round_hours(value) == expected

    def test_round_hours_exponent(self):
        """Test that results always carry 2 decimals."""
        assert str(round_hours(8)) == "8.00"

    def test_round_share(self):
        """Test rounding to 4 decimals."""
        assert round_share(Decimal("10") / Decimal("3")) == Decimal("3.3333")
        assert round_share(Decimal("0.00005")) == Decimal("0.0001")


class TestWeekStartSunday:
    """Test Sunday-based week starts."""

    @pytest.mark.parametrize(
        "date",
        [
            dt.date(2024, 6, 2),  # Sunday
            dt.date(2024, 6, 3),  # Monday
            dt.date(2024, 6, 5),  # Wednesday
            dt.date(2024, 6, 8),  # Saturday
        ],
    )
    def test_days_of_one_week(self, date):
        """Test that Sunday through Saturday share a week start."""
        assert week_start_sunday(date) == dt.date(2024, 6, 2)

    def test_next_sunday_starts_new_week(self):
        """Test that a Sunday starts its own week."""
        assert week_start_sunday(dt.date(2024, 6, 9)) == dt.date(2024, 6, 9)

    def test_week_across_month_boundary(self):
        """Test a week that starts in the previous month."""
        assert week_start_sunday(dt.date(2024, 6, 1)) == dt.date(2024, 5, 26)


class TestInDateRange:
    """Test inclusive date range checks."""

    def test_bounds_included(self):
        """Test that both bounds are inside the range."""
        start, end = dt.date(2024, 6, 1), dt.date(2024, 6, 30)

        assert in_date_range(start, start, end)
        assert in_date_range(end, start, end)

    def test_outside(self):
        """Test dates outside the range."""
        start, end = dt.date(2024, 6, 1), dt.date(2024, 6, 30)

        assert not in_date_range(dt.date(2024, 5, 31), start, end)
        assert not in_date_range(dt.date(2024, 7, 1), start, end)
