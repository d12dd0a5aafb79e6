"""
Tabular (counts CSV) sample loader.

Reads a genes x cells count table, converts it to a sparse matrix and
builds a filtered expression matrix. An annotation file attached to the
sample is recorded in provenance but not merged into cell metadata yet.
"""

from pathlib import Path

from cellgeo.core.exceptions import CellGeoError, IngestionError
from cellgeo.core.expression import ExpressionMatrix, read_count_table
from cellgeo.services.geo.constants import TABULAR_ROLES, FileRole
from cellgeo.services.geo.format_detection import SampleDescriptor
from cellgeo.services.geo.loaders.base import BaseSampleIngestor
from cellgeo.utils.logger import get_logger

logger = get_logger(__name__)


class TabularSampleIngestor(BaseSampleIngestor):
    """Ingest one counts-table sample."""

    required_roles = TABULAR_ROLES
    original_format = "tabular"

    def ingest(
        self, sample: SampleDescriptor, min_cells: int, min_features: int, label: str
    ) -> ExpressionMatrix:
        """
        Build an ExpressionMatrix from a tabular sample.

        Raises:
            MissingRoleError: No counts file in the sample
            SourceFileNotFoundError: The counts file does not exist
            EmptySourceFileError: The counts file is empty
            IngestionError: Parsing or constructing the matrix failed
        """
        paths = self._check_sample(sample)
        counts_path = paths[FileRole.COUNTS]

        if FileRole.ANNOTATION in sample.role_to_path:
            logger.info(
                f"Annotation file {Path(sample.role_to_path[FileRole.ANNOTATION]).name} "
                "recorded but not merged into cell metadata"
            )

        try:
            raw = read_count_table(counts_path)
        except CellGeoError:
            raise
        except Exception as e:
            raise IngestionError(
                f"Failed to read count table {counts_path.name}: {e}",
                {"sample_id": sample.sample_id, "cause": str(e)},
            ) from e

        adata = self._construct(
            raw, sample, label=label, min_cells=min_cells, min_features=min_features
        )
        provenance = self._provenance(
            sample, self.required_roles, label, min_cells, min_features
        )
        result = ExpressionMatrix(adata=adata, provenance=provenance)
        logger.info(f"Created {result!r}")
        return result
