"""Redistribution of a project-level billable target across resources.

This module implements the pure allocation step behind "set this project's
billable hours to N": given each resource's current billable hours and worked
hours, it computes per-resource targets whose sum equals N whenever the
resources have enough capacity.

Rules:
- Increases are spread evenly over resources that still have headroom
  (worked hours not yet billed), capped by that headroom, round after round.
  Whatever cannot be placed goes entirely to the first resource, even past
  its worked hours.
- Decreases are taken greedily from the largest current targets first.
- Hours are rounded to 2 decimals and shares to 4 decimals at every step.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Sequence

from billing_engine.calculators.time_utils import (
    EPSILON,
    ZERO,
    Number,
    round_hours,
    round_share,
    to_decimal,
)

logger = logging.getLogger(__name__)


@dataclass
class ResourceCapacity:
    """Input row for the allocator.

    Attributes:
        user_id: Resource identifier
        current_hours: Billable hours currently reported for the resource
        total_hours: Hours actually worked (capacity for billing)
    """

    user_id: str
    current_hours: Decimal
    total_hours: Decimal


@dataclass
class ProjectAdjustmentTarget:
    """Allocator output row.

    Attributes:
        user_id: Resource identifier
        current_hours: Current billable hours, rounded to 2 decimals
        total_hours: Hours worked
        target_hours: New billable hours for the resource
    """

    user_id: str
    current_hours: Decimal
    total_hours: Decimal
    target_hours: Decimal


@dataclass
class _Candidate:
    index: int
    headroom: Decimal


def _headroom(allocation: ProjectAdjustmentTarget) -> Decimal:
    return max(allocation.total_hours - allocation.target_hours, ZERO)


def _distribute_increase(
    allocations: List[ProjectAdjustmentTarget], remaining: Decimal
) -> None:
    candidates = [_Candidate(i, _headroom(a)) for i, a in enumerate(allocations)]

    while remaining > EPSILON and any(c.headroom > EPSILON for c in candidates):
        active = [c for c in candidates if c.headroom > EPSILON]
        share = round_share(remaining / len(active))
        consumed = ZERO

        for candidate in active:
            budget = remaining - consumed
            if budget <= EPSILON:
                break
            allocation = allocations[candidate.index]
            previous = allocation.target_hours
            allocation.target_hours = round_hours(
                previous + min(share, candidate.headroom, budget)
            )
            # Count what rounding actually placed, not the raw share
            consumed += allocation.target_hours - previous

        remaining = round_hours(remaining - consumed)
        candidates = [_Candidate(c.index, _headroom(allocations[c.index])) for c in candidates]

        if consumed == ZERO:
            break

    if remaining > EPSILON:
        # Headroom exhausted: the first resource absorbs the rest
        logger.debug(
            f"Headroom exhausted, assigning leftover {remaining}h to "
            f"{allocations[0].user_id}"
        )
        allocations[0].target_hours = round_hours(allocations[0].target_hours + remaining)


def _reduce_excess(allocations: List[ProjectAdjustmentTarget], remaining: Decimal) -> None:
    # sorted() is stable, so equal targets keep their input order
    ordered = sorted(
        range(len(allocations)),
        key=lambda i: allocations[i].target_hours,
        reverse=True,
    )

    for index in ordered:
        if remaining <= EPSILON:
            break
        allocation = allocations[index]
        reducible = allocation.target_hours
        if reducible <= ZERO:
            continue
        delta = min(reducible, remaining)
        allocation.target_hours = round_hours(allocation.target_hours - delta)
        remaining = round_hours(remaining - delta)


def calculate_project_billable_targets(
    resources: Sequence[ResourceCapacity], target_billable_hours: Number
) -> List[ProjectAdjustmentTarget]:
    """Redistribute a project billable target across its resources.

    Args:
        resources: Current billable and worked hours per resource, in the
            order the project reports them
        target_billable_hours: Desired billable total for the project

    Returns:
        One ProjectAdjustmentTarget per resource, in input order. Empty when
        no resources are given.

    Example:
        >>> resources = [
        ...     ResourceCapacity("u-1", Decimal("50"), Decimal("50")),
        ...     ResourceCapacity("u-2", Decimal("30"), Decimal("30")),
        ...     ResourceCapacity("u-3", Decimal("20"), Decimal("20")),
        ... ]
        >>> [t.target_hours for t in calculate_project_billable_targets(resources, 60)]
        [Decimal('10.00'), Decimal('30.00'), Decimal('20.00')]
    """
    if not resources:
        return []

    rounded_target = round_hours(target_billable_hours)
    current_total = sum((to_decimal(r.current_hours) for r in resources), ZERO)

    allocations = [
        ProjectAdjustmentTarget(
            user_id=r.user_id,
            current_hours=round_hours(r.current_hours),
            total_hours=to_decimal(r.total_hours),
            target_hours=round_hours(r.current_hours),
        )
        for r in resources
    ]

    if rounded_target <= ZERO:
        for allocation in allocations:
            allocation.target_hours = ZERO
        return allocations

    if len(allocations) == 1:
        allocations[0].target_hours = max(rounded_target, ZERO)
        return allocations

    if rounded_target > current_total:
        _distribute_increase(allocations, round_hours(rounded_target - current_total))
    elif rounded_target < current_total:
        _reduce_excess(allocations, round_hours(current_total - rounded_target))

    return allocations
