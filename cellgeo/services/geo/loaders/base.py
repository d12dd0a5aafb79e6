"""
Shared ingestion steps for per-sample loaders.

Each loader validates a SampleDescriptor, loads its raw counts and hands
them to create_expression_matrix(). Failures of the construction step are
re-raised as IngestionError.
"""

from pathlib import Path
from typing import Dict, Iterable, Optional, Tuple

from cellgeo.core.exceptions import (
    CellGeoError,
    EmptySourceFileError,
    IngestionError,
    MissingRoleError,
    SourceFileNotFoundError,
)
from cellgeo.core.expression import ExpressionMatrix, create_expression_matrix
from cellgeo.core.provenance import ProvenanceRecord
from cellgeo.services.geo.constants import FileRole
from cellgeo.services.geo.format_detection import SampleDescriptor
from cellgeo.utils.logger import get_logger

logger = get_logger(__name__)


class BaseSampleIngestor:
    """
    Common behaviour of the per-layout sample ingestors.

    Subclasses set required_roles and implement ingest().
    """

    required_roles: Tuple[FileRole, ...] = ()
    original_format: Optional[str] = None

    def __init__(self, tool_version: str):
        """
        Args:
            tool_version: Version string recorded in every provenance record
        """
        if not tool_version:
            raise ValueError("tool_version is required")
        self.tool_version = tool_version

    def ingest(
        self, sample: SampleDescriptor, min_cells: int, min_features: int, label: str
    ) -> ExpressionMatrix:
        raise NotImplementedError

    def _check_sample(self, sample: SampleDescriptor) -> Dict[FileRole, Path]:
        """Validate required roles, file existence and size; return the consumed paths."""
        missing_roles = sample.missing_roles(self.required_roles)
        if missing_roles:
            names = [role.value for role in missing_roles]
            raise MissingRoleError(
                f"Sample {sample.sample_id} is missing required files: {', '.join(names)}",
                {"sample_id": sample.sample_id, "missing_roles": names},
            )

        paths = {role: Path(sample.role_to_path[role]) for role in self.required_roles}
        missing_paths = [str(p) for p in paths.values() if not p.exists()]
        if missing_paths:
            raise SourceFileNotFoundError(
                f"Files not found: {', '.join(missing_paths)}",
                {"sample_id": sample.sample_id, "missing_paths": missing_paths},
            )

        empty_paths = [str(p) for p in paths.values() if p.stat().st_size == 0]
        if empty_paths:
            raise EmptySourceFileError(
                f"Files are empty: {', '.join(empty_paths)}",
                {"sample_id": sample.sample_id, "empty_paths": empty_paths},
            )
        return paths

    def _construct(self, raw, sample: SampleDescriptor, **kwargs):
        """Run create_expression_matrix, wrapping failures in IngestionError."""
        try:
            return create_expression_matrix(raw, **kwargs)
        except CellGeoError:
            raise
        except Exception as e:
            raise IngestionError(
                f"Failed to create expression matrix for {sample.sample_id}: {e}",
                {"sample_id": sample.sample_id, "cause": str(e)},
            ) from e

    def _provenance(
        self,
        sample: SampleDescriptor,
        consumed: Iterable[FileRole],
        label: str,
        min_cells: int,
        min_features: int,
    ) -> ProvenanceRecord:
        consumed = set(consumed)
        return ProvenanceRecord(
            source_files={
                role.value: str(path)
                for role, path in sample.role_to_path.items()
                if role in consumed
            },
            reserved_files={
                role.value: str(path)
                for role, path in sample.role_to_path.items()
                if role not in consumed
            },
            tool_version=self.tool_version,
            label=label,
            min_cells=min_cells,
            min_features=min_features,
            original_format=self.original_format,
        )
