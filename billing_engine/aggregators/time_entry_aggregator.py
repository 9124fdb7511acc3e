"""Time entry aggregator for project billing views.

This module pulls billing-eligible time entries for a date range and project
set, and groups them into project -> user -> task buckets with total and
billable hour sums. Pricing and adjustment overrides are applied later by
the view service; buckets here always reflect the raw entries.
"""

import datetime as dt
import logging
import re
from collections import OrderedDict
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Union

from billing_engine.calculators.billing_calculator import calculate_entry_billable_hours
from billing_engine.calculators.time_utils import ZERO
from billing_engine.models.project import Client, Project, User
from billing_engine.models.timesheet import BILLING_ELIGIBLE_STATUSES
from billing_engine.services.time_tracking_store import EligibleTimeEntry, TimeTrackingStore

logger = logging.getLogger(__name__)

UNASSIGNED_TASK_ID = "unassigned"
UNASSIGNED_TASK_NAME = "Unassigned Task"
UNKNOWN_TASK_NAME = "Task"

_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,64}$")

IdFilter = Union[None, str, Iterable[str]]


def sanitize_ids(ids: IdFilter) -> Optional[List[str]]:
    """Normalize an id filter.

    Accepts None, a comma-separated string or an iterable of strings.
    Malformed ids are dropped; duplicates are removed keeping first order.

    Returns:
        List of well-formed ids, or None when nothing usable remains
        (meaning "do not filter on this dimension")

    Example:
        >>> sanitize_ids("p-1, bad id!,p-2")
        ['p-1', 'p-2']
        >>> sanitize_ids(["???"]) is None
        True
    """
    if ids is None:
        return None

    raw = ids.split(",") if isinstance(ids, str) else list(ids)

    result: List[str] = []
    for value in raw:
        if not isinstance(value, str):
            logger.debug(f"Dropping non-string id filter value: {value!r}")
            continue
        value = value.strip()
        if not _ID_PATTERN.match(value):
            if value:
                logger.debug(f"Dropping malformed id: {value!r}")
            continue
        if value not in result:
            result.append(value)

    return result or None


@dataclass
class TaskBucket:
    """Hours of one user on one task."""

    task_id: str
    task_name: str
    total_hours: Decimal = ZERO
    billable_hours: Decimal = ZERO


@dataclass
class UserBucket:
    """Hours of one user on one project, with task buckets and source entries."""

    user: User
    total_hours: Decimal = ZERO
    billable_hours: Decimal = ZERO
    task_buckets: Dict[str, TaskBucket] = field(default_factory=OrderedDict)
    entries: List[EligibleTimeEntry] = field(default_factory=list)

    @property
    def user_id(self) -> str:
        return self.user.id

    @property
    def tasks(self) -> List[TaskBucket]:
        """Task buckets sorted by total hours descending.

        Ties keep the order in which tasks were first encountered.
        """
        return sorted(self.task_buckets.values(), key=lambda t: t.total_hours, reverse=True)


@dataclass
class ProjectAggregate:
    """Aggregated hours of one project."""

    project: Project
    client: Optional[Client] = None
    users: List[UserBucket] = field(default_factory=list)

    @property
    def total_hours(self) -> Decimal:
        return sum((u.total_hours for u in self.users), ZERO)

    @property
    def billable_hours(self) -> Decimal:
        return sum((u.billable_hours for u in self.users), ZERO)


class TimeEntryAggregator:
    """Groups billing-eligible time entries into project/user/task buckets.

    Only entries of timesheets with an eligible status (frozen, approved,
    manager_approved, management_approved) are counted. Projects matching
    the filters are returned even when they have no eligible entries.

    Example:
        >>> aggregator = TimeEntryAggregator(store)
        >>> projects = aggregator.aggregate(dt.date(2024, 6, 1), dt.date(2024, 6, 30))
        >>> projects[0].users[0].tasks[0].task_name
        'Frontend'
    """

    def __init__(self, store: TimeTrackingStore):
        self.store = store

    def aggregate(
        self,
        start_date: dt.date,
        end_date: dt.date,
        project_ids: IdFilter = None,
        client_ids: IdFilter = None,
    ) -> List[ProjectAggregate]:
        """Aggregate eligible entries in the inclusive range.

        Args:
            start_date: First day of the range
            end_date: Last day of the range
            project_ids: Optional project filter
            client_ids: Optional client filter

        Returns:
            One ProjectAggregate per matched project, in store order
        """
        if start_date > end_date:
            logger.info(f"Inverted range {start_date} to {end_date}, nothing to aggregate")
            return []

        projects = self.store.list_projects(
            project_ids=sanitize_ids(project_ids),
            client_ids=sanitize_ids(client_ids),
        )
        logger.info(
            f"Aggregating {len(projects)} projects from {start_date} to {end_date}"
        )

        result = []
        for project in projects:
            entries = self.store.find_project_entries(
                project.id, start_date, end_date, BILLING_ELIGIBLE_STATUSES
            )
            client = self.store.get_client(project.client_id) if project.client_id else None
            result.append(
                ProjectAggregate(
                    project=project,
                    client=client,
                    users=self.group_by_user(entries),
                )
            )
        return result

    def group_by_user(self, entries: List[EligibleTimeEntry]) -> List[UserBucket]:
        """Group joined entries by owning user, then by task.

        Users keep the order of their first entry.
        """
        task_ids = {e.entry.task_id for e in entries if e.entry.task_id}
        task_names = self.store.get_task_names(task_ids)

        buckets: Dict[str, UserBucket] = OrderedDict()
        for joined in entries:
            entry = joined.entry
            bucket = buckets.get(joined.user_id)
            if bucket is None:
                bucket = UserBucket(user=joined.user)
                buckets[joined.user_id] = bucket

            billable = calculate_entry_billable_hours(entry)
            bucket.total_hours += entry.hours
            bucket.billable_hours += billable
            bucket.entries.append(joined)

            if entry.task_id:
                task_id = entry.task_id
                task_name = task_names.get(task_id, UNKNOWN_TASK_NAME)
            else:
                task_id = UNASSIGNED_TASK_ID
                task_name = UNASSIGNED_TASK_NAME

            task = bucket.task_buckets.get(task_id)
            if task is None:
                task = TaskBucket(task_id=task_id, task_name=task_name)
                bucket.task_buckets[task_id] = task
            task.total_hours += entry.hours
            task.billable_hours += billable

        return list(buckets.values())
