"""
Mock data generation utilities for the cellgeo test suite.

Synthetic count matrices written to disk in the layouts GEO datasets use.
"""

from .base import (
    SMALL_DATASET_CONFIG,
    STANDARD_DATASET_CONFIG,
    TINY_BARCODES,
    TINY_COUNTS,
    TINY_GENES,
    MockDataConfig,
)
from .generators import generate_counts, write_10x_triplet, write_count_table

__all__ = [
    "MockDataConfig",
    "SMALL_DATASET_CONFIG",
    "STANDARD_DATASET_CONFIG",
    "TINY_BARCODES",
    "TINY_COUNTS",
    "TINY_GENES",
    "generate_counts",
    "write_10x_triplet",
    "write_count_table",
]
