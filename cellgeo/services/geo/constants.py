"""
GEO service constants and enums.

Contains the shared constants used across the GEO service modules:
- Enums for file roles and layout kinds
- Filename patterns used by format detection
- Staged file names expected by the 10X reader
"""

import re
from enum import Enum


class FileRole(Enum):
    """Function of a file within a data layout."""

    MATRIX = "matrix"
    BARCODES = "barcodes"
    FEATURES = "features"
    COUNTS = "counts"
    ANNOTATION = "annotation"


class FormatKind(Enum):
    """Supported data layouts."""

    MATRIX_TRIPLET = "matrix_triplet"
    TABULAR = "tabular"


# Matrix-triplet (10X) patterns, matched against basenames
MATRIX_PATTERN = re.compile(r"matrix\.mtx(\.gz)?$", re.IGNORECASE)
BARCODES_PATTERN = re.compile(r"barcodes\.tsv(\.gz)?$", re.IGNORECASE)
FEATURES_PATTERN = re.compile(r"features\.tsv(\.gz)?$", re.IGNORECASE)
LEGACY_FEATURES_PATTERN = re.compile(r"genes\.tsv(\.gz)?$", re.IGNORECASE)  # CellRanger < 3

# Tabular patterns
COUNTS_PATTERN = re.compile(r"count[^/]*\.csv(\.gz)?$", re.IGNORECASE)
ANNOTATION_PATTERN = re.compile(
    r"(anno|index|barcode|meta)[^/]*\.csv(\.gz)?$", re.IGNORECASE
)

DEFAULT_SAMPLE_ID = "sample1"

# Names the 10X reader expects inside a staging directory
STAGED_FILENAMES = {
    FileRole.MATRIX: "matrix.mtx",
    FileRole.BARCODES: "barcodes.tsv",
    FileRole.FEATURES: "features.tsv",
}

MATRIX_TRIPLET_ROLES = (FileRole.MATRIX, FileRole.BARCODES, FileRole.FEATURES)
TABULAR_ROLES = (FileRole.COUNTS,)

GEO_ACCESSION_PATTERN = re.compile(r"^GSE\d+$")
