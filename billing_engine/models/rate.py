"""Billing rate models.

This module defines the query sent to a rate resolver, its result, and the
BillingRate rule used by the table-based resolver.
"""

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Optional, Union

from pydantic import Field, field_validator, model_validator

from billing_engine.models.base import BaseDataModel


class RateEntityType(str, Enum):
    """What a billing rate rule applies to."""

    USER = "user"
    PROJECT = "project"
    CLIENT = "client"
    GLOBAL = "global"


class RateQuery(BaseDataModel):
    """Parameters for resolving an effective hourly rate.

    ``day_of_week`` follows the 0=Sunday ... 6=Saturday convention.
    """

    user_id: str
    project_id: str
    client_id: Optional[str] = None
    date: dt.date
    hours: Decimal = Decimal("0")
    day_of_week: int = Field(..., ge=0, le=6)

    @classmethod
    def for_date(
        cls,
        user_id: str,
        project_id: str,
        client_id: Optional[str],
        date: dt.date,
        hours: Decimal,
    ) -> "RateQuery":
        return cls(
            user_id=user_id,
            project_id=project_id,
            client_id=client_id,
            date=date,
            hours=hours,
            day_of_week=date.isoweekday() % 7,
        )


class RateResult(BaseDataModel):
    """Resolved rate."""

    effective_rate: Decimal = Field(..., ge=0)

    @field_validator("effective_rate", mode="before")
    @classmethod
    def convert_to_decimal(cls, v: Union[str, int, float, Decimal]) -> Decimal:
        if isinstance(v, Decimal):
            return v
        try:
            return Decimal(str(v))
        except (ValueError, TypeError, ArithmeticError) as e:
            raise ValueError(f"Cannot convert {v} to Decimal: {e}")


class BillingRate(BaseDataModel):
    """A billing rate rule.

    A ``user`` rule may be scoped to a single project through ``project_id``.
    ``global`` rules carry no ``entity_id``.

    Example:
        >>> rate = BillingRate(
        ...     entity_type="user",
        ...     entity_id="u-1",
        ...     standard_rate="95.00",
        ...     effective_from=dt.date(2024, 1, 1),
        ... )
        >>> rate.standard_rate
        Decimal('95.00')
    """

    entity_type: RateEntityType
    entity_id: Optional[str] = None
    project_id: Optional[str] = None
    standard_rate: Decimal = Field(..., ge=0)
    effective_from: dt.date
    effective_to: Optional[dt.date] = None
    is_active: bool = True

    @field_validator("standard_rate", mode="before")
    @classmethod
    def convert_to_decimal(cls, v: Union[str, int, float, Decimal]) -> Decimal:
        if isinstance(v, Decimal):
            return v
        try:
            return Decimal(str(v))
        except (ValueError, TypeError, ArithmeticError) as e:
            raise ValueError(f"Cannot convert {v} to Decimal: {e}")

    @field_validator("entity_id", "project_id", mode="before")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = str(v).strip()
        return v or None

    @model_validator(mode="after")
    def validate_rule(self) -> "BillingRate":
        """Validate entity linkage and the effective window.

        Raises:
            ValueError: If a non-global rule has no entity_id, a project scope
                is set on a non-user rule, or the window is inverted
        """
        if self.entity_type != RateEntityType.GLOBAL and not self.entity_id:
            raise ValueError(f"entity_id is required for {self.entity_type.value} rates")
        if self.project_id and self.entity_type != RateEntityType.USER:
            raise ValueError("project_id scope is only allowed on user rates")
        if self.effective_to is not None and self.effective_to < self.effective_from:
            raise ValueError(
                f"effective_to ({self.effective_to}) must not be before "
                f"effective_from ({self.effective_from})"
            )
        return self

    def is_effective_on(self, date: dt.date) -> bool:
        if not self.is_active or date < self.effective_from:
            return False
        return self.effective_to is None or date <= self.effective_to
