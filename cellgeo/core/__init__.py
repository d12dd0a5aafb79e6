"""Core types: exceptions, provenance, expression matrices and archives."""

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

__all__ = [
    "CellGeoError",
    "CopyError",
    "EmptySourceFileError",
    "FormatNotDetectedError",
    "GEODownloadError",
    "IngestionError",
    "InvalidAccessionError",
    "MissingRoleError",
    "SourceFileNotFoundError",
    "UnsupportedFormatError",
]
