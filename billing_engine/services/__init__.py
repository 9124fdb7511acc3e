"""
Storage and collaborator services for the billing engine.

This package provides:
- Read access to time-tracking data
- Adjustment persistence (in memory or JSON file) with atomic upsert
- Effective rate resolution with a default-rate fallback

The adjustment and view services are imported from their modules directly.
"""

from .adjustment_store import InMemoryAdjustmentStore, JsonFileAdjustmentStore
from .rate_resolver import (
    FallbackRateResolver,
    HttpRateResolver,
    RateResolver,
    RateTableResolver,
)
from .time_tracking_store import (
    EligibleTimeEntry,
    InMemoryTimeTrackingStore,
    TimeTrackingStore,
)

__all__ = [
    "EligibleTimeEntry",
    "FallbackRateResolver",
    "HttpRateResolver",
    "InMemoryAdjustmentStore",
    "InMemoryTimeTrackingStore",
    "JsonFileAdjustmentStore",
    "RateResolver",
    "RateTableResolver",
    "TimeTrackingStore",
]
