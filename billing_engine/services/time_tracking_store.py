"""Read access to time-tracking data.

The time-tracking system owns timesheets, time entries and reference data;
the engine only reads them. TimeTrackingStore describes the queries the
engine needs, and InMemoryTimeTrackingStore answers them from loaded records
(see ``billing_engine.readers.dataset_reader``).
"""

import datetime as dt
import logging
from abc import ABC, abstractmethod
from collections import OrderedDict
from dataclasses import dataclass
from typing import AbstractSet, Collection, Dict, Iterable, List, Optional

from billing_engine.calculators.time_utils import in_date_range
from billing_engine.models.project import Client, Project, Task, User
from billing_engine.models.timesheet import TimeEntry, Timesheet, TimesheetStatus

logger = logging.getLogger(__name__)


@dataclass
class EligibleTimeEntry:
    """A time entry joined with its owning timesheet and user."""

    entry: TimeEntry
    timesheet: Timesheet
    user: User

    @property
    def user_id(self) -> str:
        return self.timesheet.user_id


class TimeTrackingStore(ABC):
    """Queries the engine runs against the time-tracking system."""

    @abstractmethod
    def list_projects(
        self,
        project_ids: Optional[Collection[str]] = None,
        client_ids: Optional[Collection[str]] = None,
    ) -> List[Project]:
        """List projects, optionally restricted by id and/or client.

        An empty or missing filter does not restrict that dimension.
        """

    @abstractmethod
    def get_project(self, project_id: str) -> Optional[Project]:
        """Look up a project by id."""

    @abstractmethod
    def get_client(self, client_id: str) -> Optional[Client]:
        """Look up a client by id."""

    @abstractmethod
    def get_user(self, user_id: str) -> Optional[User]:
        """Look up a user by id."""

    @abstractmethod
    def get_task_names(self, task_ids: Iterable[str]) -> Dict[str, str]:
        """Map task ids to task names; unknown ids are omitted."""

    @abstractmethod
    def find_project_entries(
        self,
        project_id: str,
        start_date: dt.date,
        end_date: dt.date,
        statuses: AbstractSet[TimesheetStatus],
    ) -> List[EligibleTimeEntry]:
        """Entries of one project in an inclusive range, in a single pass.

        Only entries whose timesheet status is in ``statuses`` and whose
        owning user exists are returned, in stored order.
        """

    @abstractmethod
    def find_eligible_entries(
        self,
        start_date: dt.date,
        end_date: dt.date,
        statuses: AbstractSet[TimesheetStatus],
    ) -> List[EligibleTimeEntry]:
        """Entries of all projects in an inclusive range with eligible status."""

    @abstractmethod
    def find_user_timesheets(
        self, user_id: str, start_date: dt.date, end_date: dt.date
    ) -> List[Timesheet]:
        """Timesheets of a user whose week overlaps the inclusive range."""

    @abstractmethod
    def find_timesheet_entries(
        self,
        timesheet_ids: Collection[str],
        project_id: str,
        start_date: dt.date,
        end_date: dt.date,
    ) -> List[TimeEntry]:
        """Entries of a project within given timesheets and date range."""


class InMemoryTimeTrackingStore(TimeTrackingStore):
    """TimeTrackingStore backed by in-memory records.

    Records keep their insertion order, which is the encounter order the
    aggregators rely on for stable sorting.

    Example:
        >>> store = InMemoryTimeTrackingStore(
        ...     projects=[Project(id="p-1", name="Website")],
        ...     users=[User(id="u-1", full_name="Jane Smith")],
        ... )
        >>> store.get_project("p-1").name
        'Website'
    """

    def __init__(
        self,
        projects: Iterable[Project] = (),
        clients: Iterable[Client] = (),
        users: Iterable[User] = (),
        tasks: Iterable[Task] = (),
        timesheets: Iterable[Timesheet] = (),
        entries: Iterable[TimeEntry] = (),
    ):
        self._projects: Dict[str, Project] = OrderedDict((p.id, p) for p in projects)
        self._clients: Dict[str, Client] = {c.id: c for c in clients}
        self._users: Dict[str, User] = {u.id: u for u in users}
        self._tasks: Dict[str, Task] = {t.id: t for t in tasks}
        self._timesheets: Dict[str, Timesheet] = OrderedDict(
            (t.id, t) for t in timesheets
        )
        self._entries: List[TimeEntry] = list(entries)

        logger.debug(
            f"InMemoryTimeTrackingStore loaded {len(self._projects)} projects, "
            f"{len(self._timesheets)} timesheets, {len(self._entries)} entries"
        )

    def add_project(self, project: Project) -> None:
        self._projects[project.id] = project

    def add_client(self, client: Client) -> None:
        self._clients[client.id] = client

    def add_user(self, user: User) -> None:
        self._users[user.id] = user

    def add_task(self, task: Task) -> None:
        self._tasks[task.id] = task

    def add_timesheet(self, timesheet: Timesheet) -> None:
        self._timesheets[timesheet.id] = timesheet

    def add_entry(self, entry: TimeEntry) -> None:
        self._entries.append(entry)

    def list_projects(
        self,
        project_ids: Optional[Collection[str]] = None,
        client_ids: Optional[Collection[str]] = None,
    ) -> List[Project]:
        projects = list(self._projects.values())
        if project_ids:
            wanted = set(project_ids)
            projects = [p for p in projects if p.id in wanted]
        if client_ids:
            wanted_clients = set(client_ids)
            projects = [p for p in projects if p.client_id in wanted_clients]
        return projects

    def get_project(self, project_id: str) -> Optional[Project]:
        return self._projects.get(project_id)

    def get_client(self, client_id: str) -> Optional[Client]:
        return self._clients.get(client_id)

    def get_user(self, user_id: str) -> Optional[User]:
        return self._users.get(user_id)

    def get_task_names(self, task_ids: Iterable[str]) -> Dict[str, str]:
        return {
            task_id: self._tasks[task_id].name
            for task_id in task_ids
            if task_id in self._tasks
        }

    def _join(
        self, entry: TimeEntry, statuses: AbstractSet[TimesheetStatus]
    ) -> Optional[EligibleTimeEntry]:
        timesheet = self._timesheets.get(entry.timesheet_id)
        if timesheet is None or timesheet.status not in statuses:
            return None
        user = self._users.get(timesheet.user_id)
        if user is None:
            return None
        return EligibleTimeEntry(entry=entry, timesheet=timesheet, user=user)

    def find_project_entries(
        self,
        project_id: str,
        start_date: dt.date,
        end_date: dt.date,
        statuses: AbstractSet[TimesheetStatus],
    ) -> List[EligibleTimeEntry]:
        result = []
        for entry in self._entries:
            if entry.project_id != project_id or entry.is_deleted:
                continue
            if not in_date_range(entry.date, start_date, end_date):
                continue
            joined = self._join(entry, statuses)
            if joined is not None:
                result.append(joined)
        return result

    def find_eligible_entries(
        self,
        start_date: dt.date,
        end_date: dt.date,
        statuses: AbstractSet[TimesheetStatus],
    ) -> List[EligibleTimeEntry]:
        result = []
        for entry in self._entries:
            if entry.is_deleted or not in_date_range(entry.date, start_date, end_date):
                continue
            joined = self._join(entry, statuses)
            if joined is not None:
                result.append(joined)
        return result

    def find_user_timesheets(
        self, user_id: str, start_date: dt.date, end_date: dt.date
    ) -> List[Timesheet]:
        return [
            t
            for t in self._timesheets.values()
            if t.user_id == user_id and t.overlaps(start_date, end_date)
        ]

    def find_timesheet_entries(
        self,
        timesheet_ids: Collection[str],
        project_id: str,
        start_date: dt.date,
        end_date: dt.date,
    ) -> List[TimeEntry]:
        wanted = set(timesheet_ids)
        return [
            e
            for e in self._entries
            if e.timesheet_id in wanted
            and e.project_id == project_id
            and not e.is_deleted
            and in_date_range(e.date, start_date, end_date)
        ]
