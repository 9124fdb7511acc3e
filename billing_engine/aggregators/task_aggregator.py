"""Task-centric aggregation of time entries.

The task view groups eligible entries by project and entry description.
Billable hours follow the ``is_billable`` flag only and billing adjustments
are never consulted.
"""

import datetime as dt
import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Optional

from billing_engine.aggregators.time_entry_aggregator import IdFilter, sanitize_ids
from billing_engine.calculators.billing_calculator import calculate_flag_billable_hours
from billing_engine.calculators.time_utils import ZERO
from billing_engine.models.project import Project, User
from billing_engine.models.timesheet import BILLING_ELIGIBLE_STATUSES
from billing_engine.services.time_tracking_store import TimeTrackingStore

logger = logging.getLogger(__name__)

NO_DESCRIPTION = "No Description"
NO_PROJECT = "No Project"


@dataclass
class TaskUserHours:
    user: User
    hours: Decimal = ZERO
    billable_hours: Decimal = ZERO


@dataclass
class TaskGroup:
    """Entries of one project sharing one description.

    Attributes:
        task_key: ``"<project_id>_<description>"``
        task_name: Entry description (or "No Description")
        project_id: Project identifier
        project: Project record, None when the project is unknown
        users: Per-user hours in order of first appearance
    """

    task_key: str
    task_name: str
    project_id: str
    project: Optional[Project] = None
    total_hours: Decimal = ZERO
    billable_hours: Decimal = ZERO
    users: Dict[str, TaskUserHours] = field(default_factory=OrderedDict)

    @property
    def project_name(self) -> str:
        return self.project.name if self.project else NO_PROJECT


class TaskAggregator:
    """Groups eligible entries into task groups.

    Example:
        >>> groups = TaskAggregator(store).aggregate(dt.date(2024, 6, 1), dt.date(2024, 6, 30))
        >>> groups[0].task_key
        'p-1_Homepage layout'
    """

    def __init__(self, store: TimeTrackingStore):
        self.store = store

    def aggregate(
        self,
        start_date: dt.date,
        end_date: dt.date,
        project_ids: IdFilter = None,
        task_ids: IdFilter = None,
    ) -> List[TaskGroup]:
        """Group eligible entries in the inclusive range by project and description.

        Args:
            start_date: First day of the range
            end_date: Last day of the range
            project_ids: Optional project filter
            task_ids: Optional filter on the entries' task ids

        Returns:
            Task groups in order of first appearance
        """
        if start_date > end_date:
            return []

        project_filter = sanitize_ids(project_ids)
        task_filter = sanitize_ids(task_ids)
        wanted_projects = set(project_filter) if project_filter else None
        wanted_tasks = set(task_filter) if task_filter else None

        entries = self.store.find_eligible_entries(
            start_date, end_date, BILLING_ELIGIBLE_STATUSES
        )

        groups: Dict[str, TaskGroup] = OrderedDict()
        projects: Dict[str, Optional[Project]] = {}

        for joined in entries:
            entry = joined.entry
            if wanted_projects is not None and entry.project_id not in wanted_projects:
                continue
            if wanted_tasks is not None and entry.task_id not in wanted_tasks:
                continue

            description = entry.description or NO_DESCRIPTION
            task_key = f"{entry.project_id}_{description}"

            group = groups.get(task_key)
            if group is None:
                if entry.project_id not in projects:
                    projects[entry.project_id] = self.store.get_project(entry.project_id)
                group = TaskGroup(
                    task_key=task_key,
                    task_name=description,
                    project_id=entry.project_id,
                    project=projects[entry.project_id],
                )
                groups[task_key] = group

            billable = calculate_flag_billable_hours(entry)
            group.total_hours += entry.hours
            group.billable_hours += billable

            user_hours = group.users.get(joined.user_id)
            if user_hours is None:
                user_hours = TaskUserHours(user=joined.user)
                group.users[joined.user_id] = user_hours
            user_hours.hours += entry.hours
            user_hours.billable_hours += billable

        logger.info(
            f"Grouped {len(entries)} eligible entries into {len(groups)} tasks "
            f"from {start_date} to {end_date}"
        )
        return list(groups.values())
