"""Data models for the billing engine.

This package contains Pydantic models for all business entities and the
dataclass records the engine computes:
- BaseDataModel: Base class with common configuration
- Timesheet, TimeEntry: Time-tracking records (read-only)
- Client, Project, Task, User: Reference data
- BillingAdjustment: Persisted billable-hours override
- BillingRate, RateQuery, RateResult: Rate resolution
- Billing view records (project, user and task views)
"""

from billing_engine.models.adjustment import AdjustmentKey, BillingAdjustment
from billing_engine.models.base import BaseDataModel
from billing_engine.models.billing import (
    AdjustmentResult,
    BillingPeriod,
    BillingViewType,
    ProjectBillingRecord,
    ProjectBillingSummary,
    ProjectBillingView,
    ProjectTotalUpdateResult,
    ResourceAdjustmentFailure,
    ResourceAdjustmentSuccess,
    ResourceBillingRecord,
    TaskBillingRecord,
    TaskBillingSummary,
    TaskBillingView,
    TaskResourceBilling,
    TaskViewRecord,
    UserBillingRecord,
    UserBillingSummary,
    UserBillingView,
    UserProjectBilling,
    WeeklyBreakdown,
)
from billing_engine.models.project import Client, Project, Task, User
from billing_engine.models.rate import BillingRate, RateEntityType, RateQuery, RateResult
from billing_engine.models.timesheet import (
    BILLING_ELIGIBLE_STATUSES,
    TimeEntry,
    Timesheet,
    TimesheetStatus,
)

__all__ = [
    "BaseDataModel",
    "AdjustmentKey",
    "BillingAdjustment",
    "Client",
    "Project",
    "Task",
    "User",
    "BillingRate",
    "RateEntityType",
    "RateQuery",
    "RateResult",
    "BillingViewType",
    "BILLING_ELIGIBLE_STATUSES",
    "TimeEntry",
    "Timesheet",
    "TimesheetStatus",
    "AdjustmentResult",
    "BillingPeriod",
    "ProjectBillingRecord",
    "ProjectBillingSummary",
    "ProjectBillingView",
    "ProjectTotalUpdateResult",
    "ResourceAdjustmentFailure",
    "ResourceAdjustmentSuccess",
    "ResourceBillingRecord",
    "TaskBillingRecord",
    "TaskBillingSummary",
    "TaskBillingView",
    "TaskResourceBilling",
    "TaskViewRecord",
    "UserBillingRecord",
    "UserBillingSummary",
    "UserBillingView",
    "UserProjectBilling",
    "WeeklyBreakdown",
]
