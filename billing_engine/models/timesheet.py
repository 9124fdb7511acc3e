"""Timesheet data models for the billing engine.

This module defines the Timesheet and TimeEntry models owned by the
time-tracking system. The engine only reads them: the approval status of a
timesheet decides whether its entries count towards billing.
"""

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import FrozenSet, Optional, Union

from pydantic import Field, field_validator, model_validator

from billing_engine.models.base import BaseDataModel


class TimesheetStatus(str, Enum):
    """Approval states a weekly timesheet can be in."""

    DRAFT = "draft"
    SUBMITTED = "submitted"
    MANAGER_APPROVED = "manager_approved"
    MANAGER_REJECTED = "manager_rejected"
    MANAGEMENT_PENDING = "management_pending"
    MANAGEMENT_APPROVED = "management_approved"
    MANAGEMENT_REJECTED = "management_rejected"
    APPROVED = "approved"
    FROZEN = "frozen"
    BILLED = "billed"


# Only entries of timesheets in one of these states are billed
BILLING_ELIGIBLE_STATUSES: FrozenSet[TimesheetStatus] = frozenset(
    {
        TimesheetStatus.FROZEN,
        TimesheetStatus.APPROVED,
        TimesheetStatus.MANAGER_APPROVED,
        TimesheetStatus.MANAGEMENT_APPROVED,
    }
)


def _to_decimal(v: Union[str, int, float, Decimal]) -> Decimal:
    if isinstance(v, Decimal):
        return v
    try:
        return Decimal(str(v))
    except (ValueError, TypeError, ArithmeticError) as e:
        raise ValueError(f"Cannot convert {v} to Decimal: {e}")


class Timesheet(BaseDataModel):
    """A user's weekly timesheet.

    Attributes:
        id: Timesheet identifier
        user_id: Owner of the timesheet
        status: Current approval status
        week_start_date: First day covered by the timesheet
        week_end_date: Last day covered by the timesheet

    Example:
        >>> ts = Timesheet(
        ...     id="ts-1",
        ...     user_id="u-1",
        ...     status="approved",
        ...     week_start_date=dt.date(2024, 6, 3),
        ...     week_end_date=dt.date(2024, 6, 9),
        ... )
        >>> ts.is_billing_eligible
        True
    """

    id: str = Field(..., min_length=1, description="Timesheet identifier")
    user_id: str = Field(..., min_length=1, description="Owning user")
    status: TimesheetStatus = Field(..., description="Approval status")
    week_start_date: dt.date = Field(..., description="First day of the week")
    week_end_date: dt.date = Field(..., description="Last day of the week")

    @model_validator(mode="after")
    def validate_week_range(self) -> "Timesheet":
        """Validate that the week does not end before it starts.

        Raises:
            ValueError: If week_end_date is before week_start_date
        """
        if self.week_end_date < self.week_start_date:
            raise ValueError(
                f"week_end_date ({self.week_end_date}) must not be before "
                f"week_start_date ({self.week_start_date})"
            )
        return self

    @property
    def is_billing_eligible(self) -> bool:
        """Whether entries of this timesheet may be billed."""
        return self.status in BILLING_ELIGIBLE_STATUSES

    def overlaps(self, start_date: dt.date, end_date: dt.date) -> bool:
        """Check whether the timesheet week overlaps an inclusive date range."""
        return self.week_start_date <= end_date and self.week_end_date >= start_date


class TimeEntry(BaseDataModel):
    """A single time-tracking record.

    ``billable_hours`` is an explicit override captured at entry time. When it
    is absent, the billable contribution is ``hours`` for billable entries and
    zero otherwise.

    Attributes:
        id: Entry identifier
        timesheet_id: Timesheet the entry belongs to
        user_id: User who worked the hours
        project_id: Project the hours were worked on
        task_id: Optional task reference
        date: Work date
        hours: Worked hours
        is_billable: Whether the work is chargeable to the client
        billable_hours: Optional explicit billable hours
        description: Optional free-text description of the work
        deleted_at: Soft-delete timestamp, if the entry was removed

    Example:
        >>> entry = TimeEntry(
        ...     id="e-1",
        ...     timesheet_id="ts-1",
        ...     user_id="u-1",
        ...     project_id="p-1",
        ...     date=dt.date(2024, 6, 4),
        ...     hours="8",
        ...     is_billable=True,
        ... )
        >>> entry.hours
        Decimal('8')
    """

    id: str = Field(..., min_length=1, description="Entry identifier")
    timesheet_id: str = Field(..., min_length=1, description="Owning timesheet")
    user_id: str = Field(..., min_length=1, description="User who worked")
    project_id: str = Field(..., min_length=1, description="Project identifier")
    task_id: Optional[str] = Field(None, description="Optional task reference")
    date: dt.date = Field(..., description="Date of work")
    hours: Decimal = Field(..., ge=0, description="Worked hours")
    is_billable: bool = Field(True, description="Whether the work is billable")
    billable_hours: Optional[Decimal] = Field(
        None, ge=0, description="Explicit billable hours override"
    )
    description: Optional[str] = Field(None, description="Work description")
    deleted_at: Optional[dt.datetime] = Field(None, description="Soft delete time")

    @field_validator("hours", mode="before")
    @classmethod
    def convert_hours(cls, v: Union[str, int, float, Decimal]) -> Decimal:
        """Convert hours to Decimal for precision."""
        return _to_decimal(v)

    @field_validator("billable_hours", mode="before")
    @classmethod
    def convert_billable_hours(
        cls, v: Optional[Union[str, int, float, Decimal]]
    ) -> Optional[Decimal]:
        """Convert the optional billable override to Decimal."""
        if v is None or v == "":
            return None
        return _to_decimal(v)

    @field_validator("task_id", "description", mode="before")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        """Treat blank optional strings as missing."""
        if v is None:
            return None
        v = str(v).strip()
        return v or None

    @property
    def is_deleted(self) -> bool:
        """Whether the entry has been soft-deleted."""
        return self.deleted_at is not None
