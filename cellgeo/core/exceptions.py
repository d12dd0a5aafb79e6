"""
Core exceptions for cellgeo.

This module provides the exception hierarchy used by the format-detection
and matrix-ingestion pipeline, plus the retrieval layer around it.
"""

from typing import Any, Dict, Optional


class CellGeoError(Exception):
    """Base exception for all cellgeo errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self):
        return self.message


class InvalidAccessionError(CellGeoError, ValueError):
    """Raised when an accession does not look like a GEO series (GSE######)."""

    pass


class GEODownloadError(CellGeoError):
    """
    Raised when supplementary files cannot be retrieved for an accession.

    Attributes:
        details: Contains:
            - geo_id: Dataset identifier
            - failed_urls: URLs that could not be downloaded (if any)
    """

    pass


class FormatNotDetectedError(CellGeoError):
    """
    Raised when downloaded files match no supported layout.

    Recoverable from the caller's point of view: another accession may work,
    or the dataset can be reported as unsupported.

    Attributes:
        details: Contains:
            - files: Basenames of the files that were classified
            - supported_formats: Layout names the classifier knows about
    """

    pass


class UnsupportedFormatError(CellGeoError):
    """
    Raised when the builder is handed a format it has no ingestor for.

    Example:
        try:
            result = builder.build(fmt, min_cells=3, min_features=200, project_label="GSE1")
        except UnsupportedFormatError as e:
            print(f"Cannot build: {e.message}")
    """

    pass


class IngestionError(CellGeoError):
    """
    Raised when a sample cannot be turned into an expression matrix.

    Wraps failures of the matrix-construction step; the original exception
    is chained as __cause__ and its message kept in details["cause"].
    """

    pass


class MissingRoleError(IngestionError):
    """
    Raised when a sample lacks a file role its layout requires.

    Attributes:
        details: Contains:
            - sample_id: Offending sample
            - missing_roles: Role names that are absent
    """

    pass


class SourceFileNotFoundError(IngestionError, FileNotFoundError):
    """
    Raised when a sample references files that do not exist on disk.

    Attributes:
        details: Contains:
            - sample_id: Offending sample
            - missing_paths: Paths that could not be found
    """

    pass


class CopyError(IngestionError):
    """
    Raised when a file cannot be staged for loading.

    Attributes:
        details: Contains:
            - source: Source path
            - destination: Target path
    """

    pass


class EmptySourceFileError(IngestionError):
    """
    Raised when a sample references files that exist but are empty.

    Attributes:
        details: Contains:
            - sample_id: Offending sample
            - empty_paths: Paths of zero-byte files
    """

    pass
