"""
Dataset generator for integration tests.

Writes a directory of time-tracking CSV exports with a configurable number
of users, projects and weeks, and returns the totals a billing view over
the whole range must report.
"""

import random
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from pathlib import Path
from typing import List

import pandas as pd

ELIGIBLE = ["frozen", "approved", "manager_approved", "management_approved"]
DESCRIPTIONS = [
    "Development work",
    "Client meeting",
    "Code review",
    "Testing",
    "Documentation",
    "Workshop",
    "Planning",
]


@dataclass
class DatasetTotals:
    """Expected totals of the eligible entries of a generated dataset."""

    start_date: date
    end_date: date
    entries: int
    total_hours: Decimal
    billable_hours: Decimal


def generate_large_dataset(
    data_dir: Path,
    num_users: int = 30,
    num_projects: int = 4,
    weeks: int = 60,
    start_date: date = date(2024, 6, 2),
    seed: int = 7,
) -> DatasetTotals:
    """
    Generate a large dataset for consistency and performance testing.

    The default volume matches production (30 users with ~300 entries
    each = ~9000 rows). Every user fills one timesheet per week with one
    entry per weekday; about one timesheet in ten stays in draft.

    Args:
        data_dir: Directory to write the CSV files to
        num_users: Number of users
        num_projects: Number of projects (every second one without client)
        weeks: Number of Sunday-based weeks, starting at start_date
        start_date: First Sunday of the range
        seed: Random seed, so repeated runs produce the same data

    Returns:
        DatasetTotals over the eligible entries
    """
    rng = random.Random(seed)
    data_dir.mkdir(parents=True, exist_ok=True)

    projects = [
        {"id": f"p-{i:02d}", "name": f"Project {i:02d}", "client_id": "c-1" if i % 2 else ""}
        for i in range(1, num_projects + 1)
    ]
    users = [
        {
            "id": f"u-{i:03d}",
            "full_name": f"User {i:03d}",
            "role": rng.choice(["employee", "lead", "manager"]),
        }
        for i in range(1, num_users + 1)
    ]
    tasks = [
        {"id": f"{p['id']}-t{j}", "project_id": p["id"], "name": f"Task {j}"}
        for p in projects
        for j in (1, 2)
    ]

    timesheets: List[dict] = []
    entries: List[dict] = []
    total_hours = Decimal("0")
    billable_hours = Decimal("0")
    eligible_entries = 0

    for user in users:
        user_projects = rng.sample(projects, k=min(2, len(projects)))
        for week in range(weeks):
            week_start = start_date + timedelta(weeks=week)
            timesheet_id = f"ts-{user['id']}-{week:03d}"
            status = "draft" if rng.random() < 0.1 else rng.choice(ELIGIBLE)
            timesheets.append(
                {
                    "id": timesheet_id,
                    "user_id": user["id"],
                    "status": status,
                    "week_start_date": week_start.isoformat(),
                    "week_end_date": (week_start + timedelta(days=6)).isoformat(),
                }
            )

            # Monday to Friday
            for day in range(1, 6):
                project = rng.choice(user_projects)
                hours = Decimal(rng.choice(["4", "6", "7.5", "8"]))
                is_billable = rng.random() < 0.8
                entries.append(
                    {
                        "id": f"e-{len(entries) + 1}",
                        "timesheet_id": timesheet_id,
                        "user_id": user["id"],
                        "project_id": project["id"],
                        "task_id": f"{project['id']}-t{rng.choice([1, 2])}",
                        "date": (week_start + timedelta(days=day)).isoformat(),
                        "hours": str(hours),
                        "is_billable": "true" if is_billable else "false",
                        "billable_hours": "",
                        "description": rng.choice(DESCRIPTIONS),
                        "deleted_at": "",
                    }
                )
                if status != "draft":
                    eligible_entries += 1
                    total_hours += hours
                    if is_billable:
                        billable_hours += hours

    pd.DataFrame([{"id": "c-1", "name": "Acme Corp"}]).to_csv(data_dir / "clients.csv", index=False)
    pd.DataFrame(projects).to_csv(data_dir / "projects.csv", index=False)
    pd.DataFrame(users).to_csv(data_dir / "users.csv", index=False)
    pd.DataFrame(tasks).to_csv(data_dir / "tasks.csv", index=False)
    pd.DataFrame(timesheets).to_csv(data_dir / "timesheets.csv", index=False)
    pd.DataFrame(entries).to_csv(data_dir / "time_entries.csv", index=False)
    pd.DataFrame(
        [
            {"entity_type": "global", "entity_id": "", "standard_rate": "80",
             "effective_from": "2024-01-01"},
            {"entity_type": "client", "entity_id": "c-1", "standard_rate": "95",
             "effective_from": "2024-01-01"},
        ]
    ).to_csv(data_dir / "billing_rates.csv", index=False)

    return DatasetTotals(
        start_date=start_date,
        end_date=start_date + timedelta(weeks=weeks, days=-1),
        entries=eligible_entries,
        total_hours=total_hours,
        billable_hours=billable_hours,
    )
