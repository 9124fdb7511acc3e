"""Write path for billing adjustments.

This module implements:
- apply_adjustment: set a user's billable hours on a project for a period,
  reconciled against the hours found in their timesheets
- record_adjustment: create or update an adjustment with caller-supplied
  original and adjusted hours
- update_project_billable_total: redistribute a project billable total over
  its resources and apply one adjustment per resource

Every write goes through the adjustment store's atomic upsert, so repeating
the same request updates the same record.
"""

import datetime as dt
import logging
from decimal import Decimal
from typing import Optional

from billing_engine.calculators.billing_calculator import calculate_entry_billable_hours
from billing_engine.calculators.target_allocator import (
    ResourceCapacity,
    calculate_project_billable_targets,
)
from billing_engine.calculators.time_utils import ZERO, Number, to_decimal
from billing_engine.exceptions import (
    BillingEngineError,
    InvalidAdjustmentError,
    NoEligibleResourcesError,
    NotFoundError,
)
from billing_engine.models.adjustment import AdjustmentKey, BillingAdjustment
from billing_engine.models.billing import (
    AdjustmentResult,
    BillingViewType,
    ProjectTotalUpdateResult,
    ResourceAdjustmentFailure,
    ResourceAdjustmentSuccess,
)
from billing_engine.services.adjustment_store import InMemoryAdjustmentStore
from billing_engine.services.billing_view_service import BillingViewService
from billing_engine.services.time_tracking_store import TimeTrackingStore

logger = logging.getLogger(__name__)

DEFAULT_ADJUSTMENT_REASON = "Manual adjustment from billing management"
PROJECT_ADJUSTMENT_REASON = "Project-level billable hours adjustment"
DEFAULT_SYSTEM_ACTOR = "system"


def _validate_period(start_date: dt.date, end_date: dt.date) -> None:
    if start_date > end_date:
        raise InvalidAdjustmentError(
            f"Billing period start {start_date} is after end {end_date}"
        )


def _non_negative(value: Number, name: str) -> Decimal:
    try:
        hours = to_decimal(value)
    except ArithmeticError as e:
        raise InvalidAdjustmentError(f"{name} is not a number: {value!r}") from e
    if hours < ZERO:
        raise InvalidAdjustmentError(f"{name} must not be negative, got {hours}")
    return hours


class BillingAdjustmentService:
    """Creates and updates billing adjustments.

    Example:
        >>> service = BillingAdjustmentService(store, adjustments, view_service)
        >>> result = service.apply_adjustment(
        ...     "u-1", "p-1", dt.date(2024, 6, 1), dt.date(2024, 6, 30), billable_hours=30
        ... )
        >>> result.adjusted_billable_hours
        Decimal('30')
    """

    def __init__(
        self,
        time_store: TimeTrackingStore,
        adjustment_store: InMemoryAdjustmentStore,
        view_service: BillingViewService,
        default_reason: str = DEFAULT_ADJUSTMENT_REASON,
        system_actor: str = DEFAULT_SYSTEM_ACTOR,
    ):
        """
        Initialize the service.

        Args:
            time_store: Read access to timesheets and entries
            adjustment_store: Where adjustments are upserted
            view_service: Used to read current project figures
            default_reason: Reason stored when the caller gives none
            system_actor: adjusted_by stored when the caller gives none
        """
        self.time_store = time_store
        self.adjustment_store = adjustment_store
        self.view_service = view_service
        self.default_reason = default_reason
        self.system_actor = system_actor

    def apply_adjustment(
        self,
        user_id: str,
        project_id: str,
        start_date: dt.date,
        end_date: dt.date,
        billable_hours: Number,
        total_hours: Optional[Number] = None,
        reason: Optional[str] = None,
        adjusted_by: Optional[str] = None,
    ) -> AdjustmentResult:
        """
        Set billable hours for a user on a project over a period.

        The user's timesheets overlapping the period are looked up regardless
        of approval status. Original billable hours are the entry-level
        billable sum of the project's entries in those timesheets within the
        period.

        Args:
            user_id: Resource to adjust
            project_id: Project to adjust
            start_date: First day of the billing period
            end_date: Last day of the billing period
            billable_hours: Requested billable hours
            total_hours: Worked hours to reconcile against; defaults to the
                original billable hours
            reason: Justification; defaults to the configured reason
            adjusted_by: Actor; defaults to the configured system actor

        Returns:
            AdjustmentResult with the stored record id

        Raises:
            NotFoundError: If the user has no timesheets overlapping the period
            InvalidAdjustmentError: If hours are negative or the period is inverted
            PersistenceError: If the adjustment cannot be stored
        """
        _validate_period(start_date, end_date)
        adjusted = _non_negative(billable_hours, "billable_hours")

        timesheets = self.time_store.find_user_timesheets(user_id, start_date, end_date)
        if not timesheets:
            raise NotFoundError(
                f"No timesheets found for user {user_id} between {start_date} and {end_date}",
                recovery_hint="Check the user id and billing period",
            )

        entries = self.time_store.find_timesheet_entries(
            [t.id for t in timesheets], project_id, start_date, end_date
        )
        original = sum((calculate_entry_billable_hours(e) for e in entries), ZERO)

        worked = original if total_hours is None else _non_negative(total_hours, "total_hours")

        key = AdjustmentKey(user_id, project_id, start_date, end_date)
        record, created = self.adjustment_store.upsert(
            key,
            {
                "original_billable_hours": original,
                "adjusted_billable_hours": adjusted,
                "total_worked_hours": worked,
                "total_billable_hours": adjusted,
                "adjustment_hours": adjusted - worked,
                "reason": reason or self.default_reason,
                "adjusted_by": adjusted_by or self.system_actor,
                "timesheet_id": timesheets[0].id,
            },
        )

        logger.info(
            f"{'Created' if created else 'Updated'} adjustment {record.id}: user {user_id} "
            f"on project {project_id} {original}h -> {adjusted}h"
        )
        return AdjustmentResult(
            adjustment_id=record.id,
            original_billable_hours=original,
            adjusted_billable_hours=adjusted,
        )

    def record_adjustment(
        self,
        user_id: str,
        project_id: str,
        start_date: dt.date,
        end_date: dt.date,
        original_billable_hours: Number,
        adjusted_billable_hours: Number,
        reason: Optional[str] = None,
        adjusted_by: Optional[str] = None,
        timesheet_id: Optional[str] = None,
    ) -> AdjustmentResult:
        """
        Create or update an adjustment from caller-supplied figures.

        No timesheet lookup is made; worked hours are taken to be the
        original billable hours.

        Raises:
            InvalidAdjustmentError: If hours are negative or the period is inverted
            PersistenceError: If the adjustment cannot be stored
        """
        _validate_period(start_date, end_date)
        original = _non_negative(original_billable_hours, "original_billable_hours")
        adjusted = _non_negative(adjusted_billable_hours, "adjusted_billable_hours")

        fields = {
            "original_billable_hours": original,
            "adjusted_billable_hours": adjusted,
            "total_worked_hours": original,
            "total_billable_hours": adjusted,
            "adjustment_hours": adjusted - original,
            "reason": reason or self.default_reason,
            "adjusted_by": adjusted_by or self.system_actor,
        }
        if timesheet_id:
            fields["timesheet_id"] = timesheet_id

        record, _ = self.adjustment_store.upsert(
            AdjustmentKey(user_id, project_id, start_date, end_date), fields
        )
        return AdjustmentResult(
            adjustment_id=record.id,
            original_billable_hours=original,
            adjusted_billable_hours=adjusted,
        )

    def get_adjustment(
        self, user_id: str, project_id: str, start_date: dt.date, end_date: dt.date
    ) -> Optional[BillingAdjustment]:
        """Return the live adjustment stored for exactly this period, if any."""
        record = self.adjustment_store.find(
            AdjustmentKey(user_id, project_id, start_date, end_date)
        )
        if record is None or record.is_deleted:
            return None
        return record

    def update_project_billable_total(
        self,
        project_id: str,
        start_date: dt.date,
        end_date: dt.date,
        billable_hours: Number,
        adjusted_by: Optional[str] = None,
    ) -> ProjectTotalUpdateResult:
        """
        Redistribute a project billable total over its resources.

        Current per-resource billable hours (adjustments included) are
        redistributed with calculate_project_billable_targets and applied one
        resource at a time. A failing resource is recorded in ``failed`` and
        the remaining resources are still applied.

        Raises:
            NotFoundError: If the project does not exist
            InvalidAdjustmentError: If billable_hours is negative or not a number
            NoEligibleResourcesError: If the project has no billable resources
                in the period
        """
        _validate_period(start_date, end_date)
        target = _non_negative(billable_hours, "billable_hours")

        if self.time_store.get_project(project_id) is None:
            raise NotFoundError(f"Project {project_id} not found")

        records = self.view_service.build_project_records(
            start_date, end_date, project_ids=[project_id], view=BillingViewType.CUSTOM
        )
        project = next((r for r in records if r.project_id == project_id), None)
        if project is None:
            raise NotFoundError(
                f"Project billing data not found for {project_id} "
                f"between {start_date} and {end_date}"
            )

        targets = calculate_project_billable_targets(
            [
                ResourceCapacity(r.user_id, r.billable_hours, r.total_hours)
                for r in project.resources
            ],
            target,
        )
        if not targets:
            raise NoEligibleResourcesError(
                f"No eligible project members found for adjustment on {project_id}"
            )

        result = ProjectTotalUpdateResult(project_id=project_id, target_billable_hours=target)
        for allocation in targets:
            try:
                applied = self.apply_adjustment(
                    allocation.user_id,
                    project_id,
                    start_date,
                    end_date,
                    billable_hours=allocation.target_hours,
                    total_hours=allocation.total_hours,
                    reason=PROJECT_ADJUSTMENT_REASON,
                    adjusted_by=adjusted_by,
                )
            except BillingEngineError as e:
                logger.error(
                    f"Adjustment for user {allocation.user_id} on project {project_id} "
                    f"failed: [{e.code}] {e.message}"
                )
                result.failed.append(
                    ResourceAdjustmentFailure(
                        user_id=allocation.user_id,
                        target_hours=allocation.target_hours,
                        error_code=e.code,
                        message=e.message,
                    )
                )
                continue
            result.succeeded.append(
                ResourceAdjustmentSuccess(
                    user_id=allocation.user_id,
                    target_hours=allocation.target_hours,
                    result=applied,
                )
            )

        log = logger.info if result.is_complete else logger.warning
        log(
            f"Project {project_id} billable total set to {target}h: "
            f"{len(result.succeeded)} updated, {len(result.failed)} failed"
        )
        return result
