"""Assembly of the project, user and task billing views.

The project view combines three sources per resource:
1. aggregated hours from eligible time entries
2. the adjustment override covering the queried period, if any
3. the effective hourly rate

The user view is a pivot of the project view. The task view is an
independent path over the raw entries and never consults adjustments.
"""

import datetime as dt
import logging
from decimal import Decimal
from typing import Callable, Dict, Iterable, List, Optional, Union

from billing_engine.aggregators.task_aggregator import TaskAggregator
from billing_engine.aggregators.time_entry_aggregator import (
    IdFilter,
    ProjectAggregate,
    TimeEntryAggregator,
    UserBucket,
)
from billing_engine.aggregators.weekly_breakdown import calculate_weekly_breakdown
from billing_engine.calculators.billing_calculator import (
    calculate_amount,
    calculate_non_billable_hours,
)
from billing_engine.calculators.time_utils import ZERO
from billing_engine.models.billing import (
    BillingPeriod,
    BillingViewType,
    ProjectBillingRecord,
    ProjectBillingSummary,
    ProjectBillingView,
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
)
from billing_engine.models.rate import RateQuery
from billing_engine.services.adjustment_store import InMemoryAdjustmentStore
from billing_engine.services.rate_resolver import RateResolver
from billing_engine.services.time_tracking_store import TimeTrackingStore

logger = logging.getLogger(__name__)

DEFAULT_TASK_VIEW_DAYS = 90

ViewArg = Union[str, BillingViewType]


def parse_roles(roles: Union[None, str, Iterable[str]]) -> List[str]:
    """Normalize a role filter to lowercase names.

    Example:
        >>> parse_roles("Employee, Manager,")
        ['employee', 'manager']
    """
    if roles is None:
        return []
    raw = roles.split(",") if isinstance(roles, str) else roles
    return [r.strip().lower() for r in raw if r and r.strip()]


class BillingViewService:
    """Builds billing views from time entries, adjustments and rates.

    The rate resolver is expected to recover its own failures (see
    FallbackRateResolver); any other error propagates.

    Example:
        >>> service = BillingViewService(store, adjustments, resolver)
        >>> view = service.get_project_view(dt.date(2024, 6, 1), dt.date(2024, 6, 30))
        >>> view.summary.total_projects
        2
    """

    def __init__(
        self,
        time_store: TimeTrackingStore,
        adjustment_store: InMemoryAdjustmentStore,
        rate_resolver: RateResolver,
        today: Callable[[], dt.date] = dt.date.today,
        task_view_default_days: int = DEFAULT_TASK_VIEW_DAYS,
    ):
        """
        Initialize the service.

        Args:
            time_store: Read access to time-tracking data
            adjustment_store: Source of billable-hours overrides
            rate_resolver: Effective rate lookup
            today: Clock used for rate dates and the task view default range
            task_view_default_days: Length of the task view default range
        """
        self.time_store = time_store
        self.adjustment_store = adjustment_store
        self.rate_resolver = rate_resolver
        self.today = today
        self.task_view_default_days = task_view_default_days
        self.aggregator = TimeEntryAggregator(time_store)
        self.task_aggregator = TaskAggregator(time_store)

    def _resolve_rate(
        self, user_id: str, project_id: str, client_id: Optional[str], hours: Decimal
    ) -> Decimal:
        query = RateQuery.for_date(user_id, project_id, client_id, self.today(), hours)
        return self.rate_resolver.get_effective_rate(query).effective_rate

    def _build_resource(
        self,
        aggregate: ProjectAggregate,
        bucket: UserBucket,
        start_date: dt.date,
        end_date: dt.date,
        view: BillingViewType,
    ) -> ResourceBillingRecord:
        project = aggregate.project
        override = self.adjustment_store.get(bucket.user_id, project.id, start_date, end_date)
        billable = override if override is not None else bucket.billable_hours
        if override is not None:
            logger.debug(
                f"Adjustment override {override}h for user {bucket.user_id} on "
                f"project {project.id} (aggregated {bucket.billable_hours}h)"
            )

        rate = self._resolve_rate(bucket.user_id, project.id, project.client_id, billable)

        tasks = [
            TaskBillingRecord(
                task_id=task.task_id,
                task_name=task.task_name,
                project_id=project.id,
                project_name=project.name,
                total_hours=task.total_hours,
                billable_hours=task.billable_hours,
                non_billable_hours=calculate_non_billable_hours(
                    task.total_hours, task.billable_hours
                ),
                amount=calculate_amount(task.billable_hours, rate),
            )
            for task in bucket.tasks
        ]

        weekly = None
        if view == BillingViewType.WEEKLY:
            weekly = calculate_weekly_breakdown(bucket.entries, rate)

        return ResourceBillingRecord(
            user_id=bucket.user_id,
            user_name=bucket.user.display_name,
            role=bucket.user.role,
            total_hours=bucket.total_hours,
            billable_hours=billable,
            non_billable_hours=calculate_non_billable_hours(bucket.total_hours, billable),
            hourly_rate=rate,
            total_amount=calculate_amount(billable, rate),
            tasks=tasks,
            weekly_breakdown=weekly,
        )

    def build_project_records(
        self,
        start_date: dt.date,
        end_date: dt.date,
        project_ids: IdFilter = None,
        client_ids: IdFilter = None,
        view: ViewArg = BillingViewType.MONTHLY,
    ) -> List[ProjectBillingRecord]:
        """Build one ProjectBillingRecord per matched project.

        Raises:
            ValueError: If ``view`` is not weekly, monthly or custom
        """
        view = BillingViewType(view)
        records = []

        for aggregate in self.aggregator.aggregate(
            start_date, end_date, project_ids=project_ids, client_ids=client_ids
        ):
            record = ProjectBillingRecord(
                project_id=aggregate.project.id,
                project_name=aggregate.project.name,
                client_id=aggregate.project.client_id,
                client_name=aggregate.client.name if aggregate.client else None,
            )
            for bucket in aggregate.users:
                resource = self._build_resource(aggregate, bucket, start_date, end_date, view)
                record.resources.append(resource)
                record.total_hours += resource.total_hours
                record.billable_hours += resource.billable_hours
                record.total_amount += resource.total_amount
            record.non_billable_hours = calculate_non_billable_hours(
                record.total_hours, record.billable_hours
            )
            records.append(record)

        return records

    def get_project_view(
        self,
        start_date: dt.date,
        end_date: dt.date,
        project_ids: IdFilter = None,
        client_ids: IdFilter = None,
        view: ViewArg = BillingViewType.MONTHLY,
    ) -> ProjectBillingView:
        """Project-centric billing view with summary."""
        view = BillingViewType(view)
        projects = self.build_project_records(start_date, end_date, project_ids, client_ids, view)

        summary = ProjectBillingSummary(
            total_projects=len(projects),
            total_hours=sum((p.total_hours for p in projects), ZERO),
            total_billable_hours=sum((p.billable_hours for p in projects), ZERO),
            total_amount=sum((p.total_amount for p in projects), ZERO),
        )
        logger.info(
            f"Project view {start_date} to {end_date}: {summary.total_projects} projects, "
            f"{summary.total_billable_hours} billable hours"
        )
        return ProjectBillingView(
            projects=projects,
            summary=summary,
            period=BillingPeriod(start_date, end_date, view.value),
        )

    def get_user_view(
        self,
        start_date: dt.date,
        end_date: dt.date,
        project_ids: IdFilter = None,
        client_ids: IdFilter = None,
        roles: Union[None, str, Iterable[str]] = None,
        search: Optional[str] = None,
        view: ViewArg = BillingViewType.MONTHLY,
    ) -> UserBillingView:
        """User-centric pivot of the project view.

        Args:
            roles: Roles to keep (case-insensitive exact match); empty keeps all
            search: Case-insensitive substring of the user name

        Users, their projects and their tasks are sorted by billable hours
        descending; ties keep their original order.
        """
        view = BillingViewType(view)
        role_filter = parse_roles(roles)
        search_term = search.strip().lower() if search else ""

        users: Dict[str, UserBillingRecord] = {}
        for project in self.build_project_records(
            start_date, end_date, project_ids, client_ids, view
        ):
            for resource in project.resources:
                if role_filter and (resource.role or "").lower() not in role_filter:
                    continue
                if search_term and search_term not in resource.user_name.lower():
                    continue

                user = users.get(resource.user_id)
                if user is None:
                    user = UserBillingRecord(
                        user_id=resource.user_id,
                        user_name=resource.user_name,
                        role=resource.role,
                    )
                    users[resource.user_id] = user

                user.total_hours += resource.total_hours
                user.billable_hours += resource.billable_hours
                user.total_amount += resource.total_amount
                user.projects.append(
                    UserProjectBilling(
                        project_id=project.project_id,
                        project_name=project.project_name,
                        client_name=project.client_name,
                        total_hours=resource.total_hours,
                        billable_hours=resource.billable_hours,
                        non_billable_hours=resource.non_billable_hours,
                        amount=resource.total_amount,
                    )
                )
                user.tasks.extend(resource.tasks)

        result = list(users.values())
        for user in result:
            user.non_billable_hours = calculate_non_billable_hours(
                user.total_hours, user.billable_hours
            )
            user.projects.sort(key=lambda p: p.billable_hours, reverse=True)
            user.tasks.sort(key=lambda t: t.billable_hours, reverse=True)
        result.sort(key=lambda u: u.billable_hours, reverse=True)

        summary = UserBillingSummary(
            total_users=len(result),
            total_hours=sum((u.total_hours for u in result), ZERO),
            total_billable_hours=sum((u.billable_hours for u in result), ZERO),
            total_non_billable_hours=sum((u.non_billable_hours for u in result), ZERO),
            total_amount=sum((u.total_amount for u in result), ZERO),
        )
        return UserBillingView(
            users=result,
            summary=summary,
            period=BillingPeriod(start_date, end_date, view.value),
        )

    def get_task_view(
        self,
        start_date: Optional[dt.date] = None,
        end_date: Optional[dt.date] = None,
        project_ids: IdFilter = None,
        task_ids: IdFilter = None,
    ) -> TaskBillingView:
        """Task-centric billing view over raw eligible entries.

        Missing dates default to the last ``task_view_default_days`` days
        ending today. Billable hours follow the ``is_billable`` flag only.
        """
        end = end_date or self.today()
        start = start_date or end - dt.timedelta(days=self.task_view_default_days)

        tasks = []
        for group in self.task_aggregator.aggregate(start, end, project_ids, task_ids):
            client_id = group.project.client_id if group.project else None
            record = TaskViewRecord(
                task_id=group.task_key,
                task_name=group.task_name,
                project_id=group.project_id,
                project_name=group.project_name,
                total_hours=group.total_hours,
                billable_hours=group.billable_hours,
            )
            for user_id, hours in group.users.items():
                rate = self._resolve_rate(
                    user_id, group.project_id, client_id, hours.billable_hours
                )
                record.resources.append(
                    TaskResourceBilling(
                        user_id=user_id,
                        user_name=hours.user.display_name,
                        hours=hours.hours,
                        billable_hours=hours.billable_hours,
                        rate=rate,
                        amount=calculate_amount(hours.billable_hours, rate),
                    )
                )
            tasks.append(record)

        summary = TaskBillingSummary(
            total_tasks=len(tasks),
            total_hours=sum((t.total_hours for t in tasks), ZERO),
            total_billable_hours=sum((t.billable_hours for t in tasks), ZERO),
            total_amount=sum((t.amount for t in tasks), ZERO),
        )
        return TaskBillingView(
            tasks=tasks,
            summary=summary,
            period=BillingPeriod(start, end),
        )
