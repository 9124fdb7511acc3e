"""Project billing aggregation and adjustment engine."""

__version__ = "1.0.0"
