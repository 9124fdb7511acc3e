"""
Utility modules for integration testing.

This package provides utilities for:
- Generating CSV datasets of realistic size
"""

from .dataset_generator import DatasetTotals, generate_large_dataset

__all__ = [
    "DatasetTotals",
    "generate_large_dataset",
]
