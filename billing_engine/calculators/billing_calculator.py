"""Billing calculator for entry-level and resource-level figures.

This module implements the arithmetic shared by every billing path:
- Billable contribution of a single time entry
- Non-billable hours with the zero floor
- Amounts priced at an hourly rate
- Integrity checks for layered billing adjustments
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import List

from billing_engine.calculators.time_utils import ZERO, to_decimal
from billing_engine.models.timesheet import TimeEntry

INTEGRITY_TOLERANCE = Decimal("0.01")


def calculate_entry_billable_hours(entry: TimeEntry) -> Decimal:
    """Calculate the billable contribution of one time entry.

    An explicit ``billable_hours`` value takes precedence over the
    ``is_billable`` flag.

    Args:
        entry: Time entry to evaluate

    Returns:
        Billable hours contributed by the entry

    Example:
        >>> entry = TimeEntry(
        ...     id="e-1", timesheet_id="ts-1", user_id="u-1", project_id="p-1",
        ...     date=dt.date(2024, 6, 4), hours="8", is_billable=False,
        ... )
        >>> calculate_entry_billable_hours(entry)
        Decimal('0')
    """
    if entry.billable_hours is not None:
        return entry.billable_hours
    return entry.hours if entry.is_billable else ZERO


def calculate_flag_billable_hours(entry: TimeEntry) -> Decimal:
    """Billable hours from the ``is_billable`` flag only.

    The task view counts billable time this way and ignores explicit
    overrides.
    """
    return entry.hours if entry.is_billable else ZERO


def calculate_non_billable_hours(total_hours: Decimal, billable_hours: Decimal) -> Decimal:
    """Non-billable hours, floored at zero.

    Example:
        >>> calculate_non_billable_hours(Decimal("10"), Decimal("12"))
        Decimal('0')
    """
    return max(total_hours - billable_hours, ZERO)


def calculate_amount(billable_hours: Decimal, hourly_rate: Decimal) -> Decimal:
    """Price billable hours at an hourly rate.

    The amount is not rounded so that project totals remain the exact sum of
    their resources.
    """
    return billable_hours * hourly_rate


@dataclass
class AdjustmentIntegrityResult:
    """Result of validating a layered billing adjustment.

    Attributes:
        valid: True when every check passed
        errors: Human-readable description of each failed check
    """

    valid: bool
    errors: List[str] = field(default_factory=list)


def validate_adjustment_integrity(
    worked_hours,
    manager_adjustment,
    base_billable_hours,
    management_adjustment,
    final_billable_hours,
) -> AdjustmentIntegrityResult:
    """Check that adjusted billable hours follow the expected data flow.

    - base billable hours = worked hours + manager adjustment
    - final billable hours = base billable hours + management adjustment

    Both checks allow a 0.01h rounding tolerance.

    Args:
        worked_hours: Hours worked according to the time entries
        manager_adjustment: Delta applied during manager approval
        base_billable_hours: Billable hours after manager approval
        management_adjustment: Delta applied by management
        final_billable_hours: Billable hours after all adjustments

    Returns:
        AdjustmentIntegrityResult listing every failed check

    Example:
        >>> validate_adjustment_integrity(40, -2, 38, 2, 40).valid
        True
    """
    worked = to_decimal(worked_hours)
    manager = to_decimal(manager_adjustment)
    base = to_decimal(base_billable_hours)
    management = to_decimal(management_adjustment)
    final = to_decimal(final_billable_hours)

    errors: List[str] = []

    expected_base = worked + manager
    if abs(base - expected_base) > INTEGRITY_TOLERANCE:
        errors.append(
            f"Base billable hours ({base}) doesn't match worked ({worked}) + "
            f"manager adjustment ({manager}). Expected: {expected_base}"
        )

    expected_final = base + management
    if abs(final - expected_final) > INTEGRITY_TOLERANCE:
        errors.append(
            f"Final billable hours ({final}) doesn't match base ({base}) + "
            f"management adjustment ({management}). Expected: {expected_final}"
        )

    return AdjustmentIntegrityResult(valid=not errors, errors=errors)
