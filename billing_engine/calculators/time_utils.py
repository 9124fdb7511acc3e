"""Date and rounding utilities for the billing engine.

This module provides low-level helpers shared by the aggregators and the
target allocator:
- Rounding hours and shares with half-up semantics
- Sunday-based week starts for weekly breakdowns
- Inclusive date range checks
"""

import datetime as dt
from decimal import ROUND_HALF_UP, Decimal
from typing import Union

HOURS_QUANTUM = Decimal("0.01")
SHARE_QUANTUM = Decimal("0.0001")
EPSILON = Decimal("0.0001")
ZERO = Decimal("0")

Number = Union[int, float, str, Decimal]


def to_decimal(value: Number) -> Decimal:
    """Convert a numeric value to Decimal without binary float noise.

    Example:
        >>> to_decimal(7.1)
        Decimal('7.1')
    """
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_hours(value: Number) -> Decimal:
    """Round an hour value to 2 decimal places (half-up).

    Example:
        >>> round_hours(Decimal("7.125"))
        Decimal('7.13')
        >>> round_hours(40)
        Decimal('40.00')
    """
    return to_decimal(value).quantize(HOURS_QUANTUM, rounding=ROUND_HALF_UP)


def round_share(value: Number) -> Decimal:
    """Round a distribution share to 4 decimal places (half-up).

    Example:
        >>> round_share(Decimal("10") / Decimal("3"))
        Decimal('3.3333')
    """
    return to_decimal(value).quantize(SHARE_QUANTUM, rounding=ROUND_HALF_UP)


def week_start_sunday(date: dt.date) -> dt.date:
    """Return the Sunday that starts the week containing ``date``.

    Example:
        >>> week_start_sunday(dt.date(2024, 6, 5))  # Wednesday
        datetime.date(2024, 6, 2)
        >>> week_start_sunday(dt.date(2024, 6, 2))  # Sunday
        datetime.date(2024, 6, 2)
    """
    # isoweekday: Monday=1 ... Sunday=7
    return date - dt.timedelta(days=date.isoweekday() % 7)


def in_date_range(date: dt.date, start_date: dt.date, end_date: dt.date) -> bool:
    """Inclusive range check: ``start_date <= date <= end_date``."""
    return start_date <= date <= end_date
