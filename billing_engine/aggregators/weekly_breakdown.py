"""Weekly breakdown of resource hours.

Weeks start on Sunday. The breakdown is computed from the raw time entries
of a resource, so it does not reflect billing adjustments.
"""

import logging
from collections import OrderedDict
from decimal import Decimal
from typing import Dict, Iterable, List, Tuple

import pandas as pd

from billing_engine.calculators.billing_calculator import (
    calculate_amount,
    calculate_entry_billable_hours,
)
from billing_engine.calculators.time_utils import ZERO, week_start_sunday
from billing_engine.models.billing import ProjectBillingRecord, WeeklyBreakdown
from billing_engine.services.time_tracking_store import EligibleTimeEntry

logger = logging.getLogger(__name__)


def calculate_weekly_breakdown(
    entries: Iterable[EligibleTimeEntry], hourly_rate: Decimal
) -> List[WeeklyBreakdown]:
    """Bucket entries by the Sunday that starts their week.

    Args:
        entries: Joined entries of one resource on one project
        hourly_rate: Rate used to price the billable hours of each week

    Returns:
        One WeeklyBreakdown per week with entries, sorted by week start

    Example:
        >>> weeks = calculate_weekly_breakdown(entries, Decimal("100"))
        >>> weeks[0].week_start.isoweekday()
        7
    """
    weeks: Dict = OrderedDict()
    for joined in entries:
        entry = joined.entry
        week_start = week_start_sunday(entry.date)
        total, billable = weeks.get(week_start, (ZERO, ZERO))
        weeks[week_start] = (
            total + entry.hours,
            billable + calculate_entry_billable_hours(entry),
        )

    return [
        WeeklyBreakdown(
            week_start=week_start,
            total_hours=total,
            billable_hours=billable,
            amount=calculate_amount(billable, hourly_rate),
        )
        for week_start, (total, billable) in sorted(weeks.items())
    ]


def generate_weekly_matrix(projects: List[ProjectBillingRecord]) -> pd.DataFrame:
    """Build a resource-by-week matrix of billable hours.

    Rows are ``(project_name, user_name)`` pairs and columns are week start
    dates in ISO format. Resources without a weekly breakdown are skipped.

    Args:
        projects: Project records from a weekly project view

    Returns:
        DataFrame of billable hours (missing weeks are 0)

    Example:
        >>> matrix = generate_weekly_matrix(view.projects)
        >>> matrix.loc[("Website", "Jane Smith"), "2024-06-02"]
        Decimal('14')
    """
    matrix_data: Dict[Tuple[str, str], Dict[str, Decimal]] = OrderedDict()

    for project in projects:
        for resource in project.resources:
            if not resource.weekly_breakdown:
                continue
            row = matrix_data.setdefault((project.project_name, resource.user_name), {})
            for week in resource.weekly_breakdown:
                label = week.week_start.isoformat()
                row[label] = row.get(label, ZERO) + week.billable_hours

    if not matrix_data:
        logger.info("No weekly data, returning empty DataFrame")
        return pd.DataFrame()

    df = pd.DataFrame(
        list(matrix_data.values()),
        index=pd.MultiIndex.from_tuples(list(matrix_data), names=["project", "resource"]),
    )
    df = df.reindex(sorted(df.columns), axis=1).fillna(ZERO)

    logger.info(f"Generated weekly matrix with {len(df)} rows and {len(df.columns)} weeks")
    return df
