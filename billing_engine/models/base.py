"""Base model for all data models in the billing engine.

This module provides a base Pydantic model with common configuration
and helper methods for serialization/deserialization.
"""

from pydantic import BaseModel, ConfigDict


class BaseDataModel(BaseModel):
    """Base class for all data models.

    Provides common configuration for:
    - Validation with type checking
    - Serialization to/from dictionaries
    - Arbitrary types support for dates and decimals

    Example:
        >>> class Client(BaseDataModel):
        ...     id: str
        ...     name: str
        >>> client = Client(id="c1", name="Acme")
        >>> client.model_dump()
        {'id': 'c1', 'name': 'Acme'}
    """

    model_config = ConfigDict(
        # Allow arbitrary types like Decimal, date
        arbitrary_types_allowed=True,
        # Validate on assignment to catch errors early
        validate_assignment=True,
        strict=False,
        # Unknown fields are rejected
        extra="forbid",
        frozen=False,
    )
