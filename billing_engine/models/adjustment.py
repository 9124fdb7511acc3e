"""Billing adjustment model.

A billing adjustment is a manually entered override of a user's billable
hours on a project over a billing period. Records are unique on
``(user_id, project_id, billing_period_start, billing_period_end)``: the
first adjustment for a key creates the record and later ones update it in
place.
"""

import datetime as dt
import uuid
from decimal import Decimal
from typing import NamedTuple, Optional, Union

from pydantic import Field, field_validator, model_validator

from billing_engine.models.base import BaseDataModel


class AdjustmentKey(NamedTuple):
    """Composite identity of a billing adjustment."""

    user_id: str
    project_id: str
    billing_period_start: dt.date
    billing_period_end: dt.date

    def contains(self, start_date: dt.date, end_date: dt.date) -> bool:
        """Whether this period fully contains the inclusive range."""
        return self.billing_period_start <= start_date and self.billing_period_end >= end_date

    def span_days(self) -> int:
        return (self.billing_period_end - self.billing_period_start).days


def _now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class BillingAdjustment(BaseDataModel):
    """Persisted override of billable hours for a user/project/period.

    Attributes:
        id: Surrogate identifier, stable across updates of the same key
        user_id: Adjusted resource
        project_id: Adjusted project
        billing_period_start: First day of the adjusted period
        billing_period_end: Last day of the adjusted period
        original_billable_hours: Billable hours aggregated from time entries
        adjusted_billable_hours: Billable hours requested by the adjuster
        total_worked_hours: Worked hours the adjustment is reconciled against
        total_billable_hours: Final billable hours (equals adjusted hours)
        adjustment_hours: adjusted_billable_hours - total_worked_hours
        reason: Free-text justification
        adjusted_by: Actor that made the adjustment
        timesheet_id: First timesheet overlapping the period, if any
        created_at: Creation time
        updated_at: Last modification time
        deleted_at: Soft-delete time; deleted records are never matched
        deleted_by: Actor that soft-deleted the record
    """

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    user_id: str = Field(..., min_length=1)
    project_id: str = Field(..., min_length=1)
    billing_period_start: dt.date
    billing_period_end: dt.date
    original_billable_hours: Decimal = Field(Decimal("0"), ge=0)
    adjusted_billable_hours: Decimal = Field(Decimal("0"), ge=0)
    total_worked_hours: Decimal = Field(Decimal("0"), ge=0)
    total_billable_hours: Decimal = Field(Decimal("0"), ge=0)
    adjustment_hours: Decimal = Decimal("0")
    reason: Optional[str] = Field(None, max_length=500)
    adjusted_by: str = Field(..., min_length=1)
    timesheet_id: Optional[str] = None
    created_at: dt.datetime = Field(default_factory=_now)
    updated_at: dt.datetime = Field(default_factory=_now)
    deleted_at: Optional[dt.datetime] = None
    deleted_by: Optional[str] = None

    @field_validator(
        "original_billable_hours",
        "adjusted_billable_hours",
        "total_worked_hours",
        "total_billable_hours",
        "adjustment_hours",
        mode="before",
    )
    @classmethod
    def convert_to_decimal(cls, v: Union[str, int, float, Decimal]) -> Decimal:
        """Convert numeric values to Decimal for precision.

        Raises:
            ValueError: If the value cannot be converted to Decimal
        """
        if isinstance(v, Decimal):
            return v
        try:
            return Decimal(str(v))
        except (ValueError, TypeError, ArithmeticError) as e:
            raise ValueError(f"Cannot convert {v} to Decimal: {e}")

    @model_validator(mode="after")
    def validate_period(self) -> "BillingAdjustment":
        """Validate that the billing period is not inverted."""
        if self.billing_period_end < self.billing_period_start:
            raise ValueError(
                f"billing_period_end ({self.billing_period_end}) must not be "
                f"before billing_period_start ({self.billing_period_start})"
            )
        return self

    @property
    def key(self) -> AdjustmentKey:
        return AdjustmentKey(
            self.user_id,
            self.project_id,
            self.billing_period_start,
            self.billing_period_end,
        )

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None
