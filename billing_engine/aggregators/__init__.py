"""Aggregators turning time entries into billing buckets."""

from billing_engine.aggregators.task_aggregator import TaskAggregator, TaskGroup
from billing_engine.aggregators.time_entry_aggregator import (
    ProjectAggregate,
    TaskBucket,
    TimeEntryAggregator,
    UserBucket,
    sanitize_ids,
)
from billing_engine.aggregators.weekly_breakdown import (
    calculate_weekly_breakdown,
    generate_weekly_matrix,
)

__all__ = [
    "ProjectAggregate",
    "TaskAggregator",
    "TaskBucket",
    "TaskGroup",
    "TimeEntryAggregator",
    "UserBucket",
    "calculate_weekly_breakdown",
    "generate_weekly_matrix",
    "sanitize_ids",
]
