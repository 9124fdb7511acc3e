"""
Data readers for loading time-tracking exports.
"""

from .dataset_reader import Dataset, DatasetReader

__all__ = ["Dataset", "DatasetReader"]
