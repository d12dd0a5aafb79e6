"""
Per-sample loaders.

- tenx: 10X matrix-triplet samples (matrix.mtx, barcodes.tsv, features.tsv)
- tabular: counts CSV samples
"""

from cellgeo.services.geo.loaders.base import BaseSampleIngestor
from cellgeo.services.geo.loaders.tabular import TabularSampleIngestor
from cellgeo.services.geo.loaders.tenx import TenXSampleIngestor

__all__ = [
    "BaseSampleIngestor",
    "TabularSampleIngestor",
    "TenXSampleIngestor",
]
