"""
cellgeo: single-cell expression matrices from GEO supplementary files.

Download a GEO series, detect the layout of its files (10X matrix triplet
or counts table) and build filtered AnnData-backed expression matrices.
"""

from cellgeo.core.exceptions import (
    CellGeoError,
    CopyError,
    EmptySourceFileError,
    FormatNotDetectedError,
    GEODownloadError,
    IngestionError,
    InvalidAccessionError,
    MissingRoleError,
    SourceFileNotFoundError,
    UnsupportedFormatError,
)
from cellgeo.core.expression import ExpressionMatrix
from cellgeo.core.provenance import ProvenanceRecord
from cellgeo.services.geo import (
    AmbiguousSampleWarning,
    ExpressionMatrixBuilder,
    FileRole,
    FormatDescriptor,
    FormatKind,
    GEODownloadManager,
    MatrixTripletFormat,
    NotDetected,
    SampleDescriptor,
    SingleCellGEOService,
    TabularFormat,
    classify,
    fetch_dataset,
    fetch_series_metadata,
)
from cellgeo.version import __version__

__all__ = [
    "AmbiguousSampleWarning",
    "CellGeoError",
    "CopyError",
    "EmptySourceFileError",
    "ExpressionMatrix",
    "ExpressionMatrixBuilder",
    "FileRole",
    "FormatDescriptor",
    "FormatKind",
    "FormatNotDetectedError",
    "GEODownloadError",
    "GEODownloadManager",
    "IngestionError",
    "InvalidAccessionError",
    "MatrixTripletFormat",
    "MissingRoleError",
    "NotDetected",
    "ProvenanceRecord",
    "SampleDescriptor",
    "SingleCellGEOService",
    "SourceFileNotFoundError",
    "TabularFormat",
    "UnsupportedFormatError",
    "__version__",
    "classify",
    "fetch_dataset",
    "fetch_series_metadata",
]
