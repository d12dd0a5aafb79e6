"""
10X Genomics (matrix-triplet) sample loader.

Stages a sample's matrix/barcodes/features files into a private temporary
directory under the names the 10X reader expects, loads them and builds a
filtered expression matrix. The staging directory is always removed.
"""

import shutil
import tempfile
from pathlib import Path
from typing import Dict, Optional, Union

from cellgeo.core.exceptions import CellGeoError, IngestionError
from cellgeo.core.expression import ExpressionMatrix, read_10x_directory
from cellgeo.services.geo.constants import (
    MATRIX_TRIPLET_ROLES,
    STAGED_FILENAMES,
    FileRole,
)
from cellgeo.services.geo.format_detection import SampleDescriptor
from cellgeo.services.geo.loaders.base import BaseSampleIngestor
from cellgeo.utils.file_ops import copy_preserving_compression, is_gzipped
from cellgeo.utils.logger import get_logger

logger = get_logger(__name__)


def staged_name(role: FileRole, source: Path) -> str:
    """Target file name for a role, keeping the source's gzip suffix."""
    name = STAGED_FILENAMES[role]
    return f"{name}.gz" if is_gzipped(source) else name


class TenXSampleIngestor(BaseSampleIngestor):
    """
    Ingest one matrix-triplet sample.

    Steps: role and existence checks, staging copy (compression of each file
    kept as-is), read_10x_directory(), create_expression_matrix(), provenance.
    """

    required_roles = MATRIX_TRIPLET_ROLES

    def __init__(
        self, tool_version: str, staging_root: Optional[Union[str, Path]] = None
    ):
        """
        Args:
            tool_version: Version string recorded in provenance
            staging_root: Parent directory for staging dirs (system temp if None)
        """
        super().__init__(tool_version)
        self.staging_root = Path(staging_root) if staging_root else None

    def stage_files(
        self, paths: Dict[FileRole, Path], staging_dir: Path
    ) -> Dict[FileRole, Path]:
        """Copy each source into staging_dir under its standard name."""
        staged = {}
        for role in self.required_roles:
            source = paths[role]
            dest = staging_dir / staged_name(role, source)
            staged[role] = copy_preserving_compression(source, dest)
            logger.debug(
                f"Staged {role.value}: {source.name} -> {dest.name} "
                f"({dest.stat().st_size} bytes)"
            )
        return staged

    def ingest(
        self, sample: SampleDescriptor, min_cells: int, min_features: int, label: str
    ) -> ExpressionMatrix:
        """
        Build an ExpressionMatrix from a matrix-triplet sample.

        Args:
            sample: Sample with matrix, barcodes and features roles
            min_cells: Minimum cells per gene (inclusive)
            min_features: Minimum genes per cell (inclusive)
            label: Project label for the cells

        Returns:
            ExpressionMatrix: Filtered matrix with provenance

        Raises:
            MissingRoleError: A required role is absent
            SourceFileNotFoundError: A referenced file does not exist
            EmptySourceFileError: A referenced file is empty
            CopyError: Staging a file failed
            IngestionError: Loading or constructing the matrix failed
        """
        paths = self._check_sample(sample)

        if self.staging_root is not None:
            self.staging_root.mkdir(parents=True, exist_ok=True)
        staging_dir = Path(
            tempfile.mkdtemp(prefix=f"cellgeo_{sample.sample_id}_", dir=self.staging_root)
        )
        logger.debug(f"Created staging directory: {staging_dir}")

        try:
            self.stage_files(paths, staging_dir)

            try:
                raw = read_10x_directory(staging_dir)
            except CellGeoError:
                raise
            except Exception as e:
                raise IngestionError(
                    f"Failed to read 10X files for {sample.sample_id}: {e}",
                    {"sample_id": sample.sample_id, "cause": str(e)},
                ) from e

            adata = self._construct(
                raw,
                sample,
                label=label,
                min_cells=min_cells,
                min_features=min_features,
            )
        finally:
            shutil.rmtree(staging_dir, ignore_errors=True)
            logger.debug(f"Removed staging directory: {staging_dir}")

        provenance = self._provenance(
            sample, self.required_roles, label, min_cells, min_features
        )
        result = ExpressionMatrix(adata=adata, provenance=provenance)
        logger.info(f"Created {result!r}")
        return result
