"""
GEO (Gene Expression Omnibus) single-cell data access.

- constants: File roles, layout kinds and filename patterns
- format_detection: classify() and the format descriptor types
- loaders/: Per-sample ingestion (10X matrix triplet, counts table)
- builder: Dispatch of detected formats to loaders
- downloader: Supplementary file retrieval
- metadata: Series metadata via GEOparse
- facade: End-to-end SingleCellGEOService

Usage:
    from cellgeo.services.geo import classify, ExpressionMatrixBuilder

    fmt = classify(paths)
    result = ExpressionMatrixBuilder(tool_version="0.1.0").build(
        fmt, min_cells=3, min_features=200, project_label="GSE123456"
    )
"""

from cellgeo.services.geo.builder import BuildResult, ExpressionMatrixBuilder
from cellgeo.services.geo.constants import FileRole, FormatKind
from cellgeo.services.geo.downloader import GEODownloadManager, validate_geo_accession
from cellgeo.services.geo.facade import SingleCellGEOService, fetch_dataset
from cellgeo.services.geo.format_detection import (
    AmbiguousSampleWarning,
    ClassificationResult,
    FormatDescriptor,
    MatrixTripletFormat,
    NotDetected,
    SampleDescriptor,
    TabularFormat,
    classify,
)
from cellgeo.services.geo.metadata import fetch_series_metadata

__all__ = [
    "AmbiguousSampleWarning",
    "BuildResult",
    "ClassificationResult",
    "ExpressionMatrixBuilder",
    "FileRole",
    "FormatDescriptor",
    "FormatKind",
    "GEODownloadManager",
    "MatrixTripletFormat",
    "NotDetected",
    "SampleDescriptor",
    "SingleCellGEOService",
    "TabularFormat",
    "classify",
    "fetch_dataset",
    "fetch_series_metadata",
    "validate_geo_accession",
]
