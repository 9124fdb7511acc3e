"""Derived billing records returned by the engine.

These records are computed per request and never persisted. They mirror the
three read shapes of the engine (project, user and task views) plus the
results of the write operations.
"""

import datetime as dt
from dataclasses import asdict, dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

ZERO = Decimal("0")


class BillingViewType(str, Enum):
    """Granularity requested for project and user views.

    Only ``weekly`` changes the output: it adds a per-week breakdown to each
    resource.
    """

    WEEKLY = "weekly"
    MONTHLY = "monthly"
    CUSTOM = "custom"


@dataclass
class WeeklyBreakdown:
    """Hours and amount of one resource for one week.

    Attributes:
        week_start: Sunday that starts the week
        total_hours: Worked hours in the week
        billable_hours: Billable hours in the week
        amount: billable_hours x hourly rate
    """

    week_start: dt.date
    total_hours: Decimal
    billable_hours: Decimal
    amount: Decimal


@dataclass
class TaskBillingRecord:
    """Hours and amount of one resource on one task."""

    task_id: str
    task_name: str
    project_id: str
    project_name: str
    total_hours: Decimal
    billable_hours: Decimal
    non_billable_hours: Decimal
    amount: Decimal


@dataclass
class ResourceBillingRecord:
    """Billing totals of one resource on one project.

    ``billable_hours`` is the final figure: the adjustment override when one
    covers the queried period, else the aggregated billable hours. Task rows
    always reflect the raw aggregation.
    """

    user_id: str
    user_name: str
    role: str
    total_hours: Decimal
    billable_hours: Decimal
    non_billable_hours: Decimal
    hourly_rate: Decimal
    total_amount: Decimal
    tasks: List[TaskBillingRecord] = field(default_factory=list)
    weekly_breakdown: Optional[List[WeeklyBreakdown]] = None


@dataclass
class ProjectBillingRecord:
    """Billing totals of one project, with its resources."""

    project_id: str
    project_name: str
    client_id: Optional[str]
    client_name: Optional[str]
    total_hours: Decimal = ZERO
    billable_hours: Decimal = ZERO
    non_billable_hours: Decimal = ZERO
    total_amount: Decimal = ZERO
    resources: List[ResourceBillingRecord] = field(default_factory=list)


@dataclass
class UserProjectBilling:
    """One project line within the user view."""

    project_id: str
    project_name: str
    client_name: Optional[str]
    total_hours: Decimal
    billable_hours: Decimal
    non_billable_hours: Decimal
    amount: Decimal


@dataclass
class UserBillingRecord:
    """Billing totals of one user across projects."""

    user_id: str
    user_name: str
    role: str
    total_hours: Decimal = ZERO
    billable_hours: Decimal = ZERO
    non_billable_hours: Decimal = ZERO
    total_amount: Decimal = ZERO
    projects: List[UserProjectBilling] = field(default_factory=list)
    tasks: List[TaskBillingRecord] = field(default_factory=list)


@dataclass
class TaskResourceBilling:
    """One user's contribution to a task in the task view."""

    user_id: str
    user_name: str
    hours: Decimal
    billable_hours: Decimal
    rate: Decimal
    amount: Decimal


@dataclass
class TaskViewRecord:
    """One task line of the task view."""

    task_id: str
    task_name: str
    project_id: str
    project_name: str
    total_hours: Decimal
    billable_hours: Decimal
    resources: List[TaskResourceBilling] = field(default_factory=list)

    @property
    def amount(self) -> Decimal:
        return sum((r.amount for r in self.resources), ZERO)


@dataclass
class BillingPeriod:
    start_date: dt.date
    end_date: dt.date
    view: Optional[str] = None


@dataclass
class ProjectBillingSummary:
    total_projects: int
    total_hours: Decimal
    total_billable_hours: Decimal
    total_amount: Decimal


@dataclass
class UserBillingSummary:
    total_users: int
    total_hours: Decimal
    total_billable_hours: Decimal
    total_non_billable_hours: Decimal
    total_amount: Decimal


@dataclass
class TaskBillingSummary:
    total_tasks: int
    total_hours: Decimal
    total_billable_hours: Decimal
    total_amount: Decimal


@dataclass
class ProjectBillingView:
    projects: List[ProjectBillingRecord]
    summary: ProjectBillingSummary
    period: BillingPeriod

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class UserBillingView:
    users: List[UserBillingRecord]
    summary: UserBillingSummary
    period: BillingPeriod

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class TaskBillingView:
    tasks: List[TaskViewRecord]
    summary: TaskBillingSummary
    period: BillingPeriod

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        for task, record in zip(data["tasks"], self.tasks):
            task["amount"] = record.amount
        return data


@dataclass
class AdjustmentResult:
    """Outcome of writing one billing adjustment."""

    adjustment_id: str
    original_billable_hours: Decimal
    adjusted_billable_hours: Decimal

    @property
    def difference(self) -> Decimal:
        return self.adjusted_billable_hours - self.original_billable_hours

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["difference"] = self.difference
        return data


@dataclass
class ResourceAdjustmentFailure:
    """A resource whose adjustment failed within a project-level update."""

    user_id: str
    target_hours: Decimal
    error_code: str
    message: str


@dataclass
class ResourceAdjustmentSuccess:
    user_id: str
    target_hours: Decimal
    result: AdjustmentResult


@dataclass
class ProjectTotalUpdateResult:
    """Per-resource outcome of redistributing a project billable total."""

    project_id: str
    target_billable_hours: Decimal
    succeeded: List[ResourceAdjustmentSuccess] = field(default_factory=list)
    failed: List[ResourceAdjustmentFailure] = field(default_factory=list)

    @property
    def members_updated(self) -> int:
        return len(self.succeeded)

    @property
    def is_complete(self) -> bool:
        return not self.failed

    def to_dict(self) -> Dict[str, Any]:
        return {
            "project_id": self.project_id,
            "target_billable_hours": self.target_billable_hours,
            "members_updated": self.members_updated,
            "succeeded": [
                {
                    "user_id": s.user_id,
                    "target_hours": s.target_hours,
                    **s.result.to_dict(),
                }
                for s in self.succeeded
            ],
            "failed": [asdict(f) for f in self.failed],
        }
