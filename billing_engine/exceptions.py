"""Typed exceptions for the billing engine.

Every engine error derives from BillingEngineError and carries a
machine-readable ``code`` so callers can map errors without parsing
messages.

    BillingEngineError
    +-- NotFoundError
    +-- InvalidAdjustmentError
    +-- NoEligibleResourcesError
    +-- PersistenceError
    +-- DatasetError
    +-- RateResolutionError
        +-- RateNotFoundError
        +-- RateServiceUnavailableError

Rate resolution errors never reach callers of the billing views: the rate
boundary substitutes the configured default rate instead.
"""

from typing import Optional


class BillingEngineError(Exception):
    """Base exception for all billing engine errors."""

    code: str = "BILLING_ENGINE_ERROR"

    def __init__(self, message: str, recovery_hint: Optional[str] = None):
        """
        Initialize the error.

        Args:
            message: Error message
            recovery_hint: Optional hint for recovering from the error
        """
        self.message = message
        self.recovery_hint = recovery_hint
        super().__init__(message)


class NotFoundError(BillingEngineError):
    """Ground truth needed for an operation does not exist."""

    code = "NOT_FOUND"


class InvalidAdjustmentError(BillingEngineError):
    """An adjustment request cannot be applied as given."""

    code = "INVALID_ADJUSTMENT"


class NoEligibleResourcesError(BillingEngineError):
    """A project-level update found no resources to distribute hours to."""

    code = "NO_ELIGIBLE_RESOURCES"


class PersistenceError(BillingEngineError):
    """The adjustment store could not read or write its records."""

    code = "PERSISTENCE_FAILURE"


class RateResolutionError(BillingEngineError):
    """An effective rate could not be resolved."""

    code = "RATE_RESOLUTION_FAILED"


class RateNotFoundError(RateResolutionError):
    """No pricing rule matches the rate query."""

    code = "RATE_NOT_FOUND"


class RateServiceUnavailableError(RateResolutionError):
    """The remote pricing service failed or returned an unusable answer."""

    code = "RATE_SERVICE_UNAVAILABLE"


class DatasetError(BillingEngineError):
    """A time-tracking dataset is missing or unreadable."""

    code = "INVALID_DATASET"
