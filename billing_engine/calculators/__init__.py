"""Calculator modules for the billing engine."""

from billing_engine.calculators.billing_calculator import (
    AdjustmentIntegrityResult,
    calculate_amount,
    calculate_entry_billable_hours,
    calculate_flag_billable_hours,
    calculate_non_billable_hours,
    validate_adjustment_integrity,
)
from billing_engine.calculators.target_allocator import (
    ProjectAdjustmentTarget,
    ResourceCapacity,
    calculate_project_billable_targets,
)
from billing_engine.calculators.time_utils import (
    EPSILON,
    in_date_range,
    round_hours,
    round_share,
    to_decimal,
    week_start_sunday,
)

__all__ = [
    # billing_calculator
    "AdjustmentIntegrityResult",
    "calculate_amount",
    "calculate_entry_billable_hours",
    "calculate_flag_billable_hours",
    "calculate_non_billable_hours",
    "validate_adjustment_integrity",
    # target_allocator
    "ProjectAdjustmentTarget",
    "ResourceCapacity",
    "calculate_project_billable_targets",
    # time_utils
    "EPSILON",
    "in_date_range",
    "round_hours",
    "round_share",
    "to_decimal",
    "week_start_sunday",
]
