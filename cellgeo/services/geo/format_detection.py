"""
Data layout detection for downloaded GEO supplementary files.

classify() turns an unordered list of file paths into one of:

- MatrixTripletFormat: 10X-style matrix.mtx / barcodes.tsv / features.tsv
- TabularFormat: a counts CSV, optionally with an annotation CSV
- NotDetected: nothing we know how to load

Layouts are tried in that priority order and the first match wins. Only
basenames take part in matching; the stored paths are the ones given.
"""

import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import ClassVar, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from cellgeo.services.geo.constants import (
    ANNOTATION_PATTERN,
    BARCODES_PATTERN,
    COUNTS_PATTERN,
    DEFAULT_SAMPLE_ID,
    FEATURES_PATTERN,
    LEGACY_FEATURES_PATTERN,
    MATRIX_PATTERN,
    MATRIX_TRIPLET_ROLES,
    TABULAR_ROLES,
    FileRole,
    FormatKind,
)
from cellgeo.utils.logger import get_logger

logger = get_logger(__name__)

PathLike = Union[str, Path]


class AmbiguousSampleWarning(UserWarning):
    """Several candidate files for one role; only the first is used."""


@dataclass(frozen=True)
class SampleDescriptor:
    """Files making up one sample, keyed by their role."""

    sample_id: str
    role_to_path: Dict[FileRole, Path]

    def missing_roles(self, required: Iterable[FileRole]) -> List[FileRole]:
        return [role for role in required if role not in self.role_to_path]

    def path_for(self, role: FileRole) -> Optional[Path]:
        return self.role_to_path.get(role)


@dataclass(frozen=True)
class FormatDescriptor:
    """
    Detected layout of a set of files.

    Concrete subclasses fix format_kind. samples is ordered by detection;
    all_files_by_role lists every match per role and is meant for
    diagnostics, never for ingestion.
    """

    format_kind: ClassVar[FormatKind]
    required_roles: ClassVar[Tuple[FileRole, ...]] = ()

    samples: Dict[str, SampleDescriptor]
    all_files_by_role: Dict[FileRole, Tuple[Path, ...]] = field(default_factory=dict)

    def __post_init__(self):
        if type(self) is FormatDescriptor:
            raise TypeError("FormatDescriptor is abstract; use a concrete layout")
        if not self.samples:
            raise ValueError(f"{type(self).__name__} needs at least one sample")
        for sample_id, sample in self.samples.items():
            if sample.sample_id != sample_id:
                raise ValueError(
                    f"Sample key {sample_id!r} does not match sample_id {sample.sample_id!r}"
                )
            missing = sample.missing_roles(self.required_roles)
            if missing:
                raise ValueError(
                    f"Sample {sample_id!r} lacks required roles: "
                    f"{', '.join(r.value for r in missing)}"
                )

    @property
    def n_samples(self) -> int:
        return len(self.samples)


@dataclass(frozen=True)
class MatrixTripletFormat(FormatDescriptor):
    """10X layout: matrix.mtx, barcodes.tsv and features.tsv (or genes.tsv)."""

    format_kind: ClassVar[FormatKind] = FormatKind.MATRIX_TRIPLET
    required_roles: ClassVar[Tuple[FileRole, ...]] = MATRIX_TRIPLET_ROLES


@dataclass(frozen=True)
class TabularFormat(FormatDescriptor):
    """Counts CSV (genes x cells) with an optional annotation CSV."""

    format_kind: ClassVar[FormatKind] = FormatKind.TABULAR
    required_roles: ClassVar[Tuple[FileRole, ...]] = TABULAR_ROLES


@dataclass(frozen=True)
class NotDetected:
    """No supported layout was found. Always falsy."""

    n_files: int
    reason: str

    def __bool__(self):
        return False


ClassificationResult = Union[MatrixTripletFormat, TabularFormat, NotDetected]

SUPPORTED_FORMATS = (FormatKind.MATRIX_TRIPLET.value, FormatKind.TABULAR.value)


def _match(paths: Sequence[Path], pattern) -> List[Path]:
    return [p for p in paths if pattern.search(p.name)]


def _warn_ambiguous(role_counts: Dict[FileRole, int]) -> None:
    summary = ", ".join(f"{role.value}={n}" for role, n in role_counts.items())
    message = (
        f"Multiple sample detection is not supported ({summary}); "
        "only the first file of each role is processed."
    )
    logger.warning(message)
    warnings.warn(message, AmbiguousSampleWarning, stacklevel=4)


def _detect_matrix_triplet(paths: Sequence[Path]) -> Optional[MatrixTripletFormat]:
    matrix_files = _match(paths, MATRIX_PATTERN)
    barcodes_files = _match(paths, BARCODES_PATTERN)
    features_files = _match(paths, FEATURES_PATTERN)
    legacy_files = _match(paths, LEGACY_FEATURES_PATTERN)

    # features.tsv wins over the pre-v3 genes.tsv
    feature_files = features_files or legacy_files

    if not (matrix_files and barcodes_files and feature_files):
        logger.debug(
            f"No 10X trio: matrix={len(matrix_files)}, barcodes={len(barcodes_files)}, "
            f"features={len(feature_files)}"
        )
        return None

    counts = {
        FileRole.MATRIX: len(matrix_files),
        FileRole.BARCODES: len(barcodes_files),
        FileRole.FEATURES: len(feature_files),
    }
    if len(matrix_files) > 1:
        _warn_ambiguous(counts)
    elif len(barcodes_files) > 1 or len(feature_files) > 1:
        # one matrix cannot be paired with several barcodes/features files
        logger.debug(
            f"No 10X trio: single matrix with barcodes={len(barcodes_files)}, "
            f"features={len(feature_files)}"
        )
        return None

    sample = SampleDescriptor(
        sample_id=DEFAULT_SAMPLE_ID,
        role_to_path={
            FileRole.MATRIX: matrix_files[0],
            FileRole.BARCODES: barcodes_files[0],
            FileRole.FEATURES: feature_files[0],
        },
    )
    return MatrixTripletFormat(
        samples={sample.sample_id: sample},
        all_files_by_role={
            FileRole.MATRIX: tuple(matrix_files),
            FileRole.BARCODES: tuple(barcodes_files),
            FileRole.FEATURES: tuple(feature_files),
        },
    )


def _detect_tabular(paths: Sequence[Path]) -> Optional[TabularFormat]:
    counts_files = _match(paths, COUNTS_PATTERN)
    if not counts_files:
        return None

    remaining = [p for p in paths if p not in counts_files]
    annotation_files = _match(remaining, ANNOTATION_PATTERN)

    if len(counts_files) > 1:
        _warn_ambiguous({FileRole.COUNTS: len(counts_files)})

    role_to_path = {FileRole.COUNTS: counts_files[0]}
    all_files = {FileRole.COUNTS: tuple(counts_files)}
    if annotation_files:
        role_to_path[FileRole.ANNOTATION] = annotation_files[0]
        all_files[FileRole.ANNOTATION] = tuple(annotation_files)

    sample = SampleDescriptor(sample_id=DEFAULT_SAMPLE_ID, role_to_path=role_to_path)
    return TabularFormat(samples={sample.sample_id: sample}, all_files_by_role=all_files)


def classify(file_paths: Iterable[PathLike]) -> ClassificationResult:
    """
    Detect the data layout of a list of files.

    Args:
        file_paths: Paths of the retrieved files, in retrieval order

    Returns:
        MatrixTripletFormat, TabularFormat, or NotDetected when no supported
        layout matches (including an empty list)
    """
    paths = [Path(p) for p in file_paths]

    if not paths:
        return NotDetected(n_files=0, reason="No files to classify")

    for detector in (_detect_matrix_triplet, _detect_tabular):
        detected = detector(paths)
        if detected is not None:
            logger.info(
                f"Detected {detected.format_kind.value} layout with "
                f"{detected.n_samples} sample(s)"
            )
            return detected

    return NotDetected(
        n_files=len(paths),
        reason=(
            "No supported layout found; expected matrix.mtx/barcodes.tsv/features.tsv "
            "or a counts .csv file"
        ),
    )
