"""
Expression-matrix builder: dispatches detected formats to sample loaders.

One sample yields a single ExpressionMatrix labeled with the project label.
Several samples yield a dict keyed by sample id, each labeled
"<project>_<sample_id>". Samples are processed in order and the first
failure aborts the build.
"""

from pathlib import Path
from typing import Dict, Optional, Type, Union

from cellgeo.core.exceptions import UnsupportedFormatError
from cellgeo.core.expression import ExpressionMatrix
from cellgeo.services.geo.format_detection import (
    FormatDescriptor,
    MatrixTripletFormat,
    TabularFormat,
)
from cellgeo.services.geo.loaders import (
    BaseSampleIngestor,
    TabularSampleIngestor,
    TenXSampleIngestor,
)
from cellgeo.utils.logger import get_logger

logger = get_logger(__name__)

BuildResult = Union[ExpressionMatrix, Dict[str, ExpressionMatrix]]


class ExpressionMatrixBuilder:
    """
    Turn a FormatDescriptor into expression matrices.

    Example:
        >>> fmt = classify(paths)
        >>> builder = ExpressionMatrixBuilder(tool_version=__version__)
        >>> result = builder.build(fmt, min_cells=3, min_features=200, project_label="GSE1")
    """

    def __init__(
        self, tool_version: str, staging_root: Optional[Union[str, Path]] = None
    ):
        """
        Args:
            tool_version: Version string stamped into provenance records
            staging_root: Parent directory for 10X staging dirs (system temp if None)
        """
        self.tool_version = tool_version
        self._ingestors: Dict[Type[FormatDescriptor], BaseSampleIngestor] = {
            MatrixTripletFormat: TenXSampleIngestor(tool_version, staging_root),
            TabularFormat: TabularSampleIngestor(tool_version),
        }

    def get_ingestor(self, format_info) -> BaseSampleIngestor:
        """Return the loader for a descriptor, or raise UnsupportedFormatError."""
        ingestor = self._ingestors.get(type(format_info))
        if ingestor is None:
            kind = getattr(format_info, "format_kind", None)
            kind_name = getattr(kind, "value", kind) or type(format_info).__name__
            raise UnsupportedFormatError(
                f"Unsupported format type: {kind_name}",
                {
                    "format_kind": str(kind_name),
                    "supported_formats": [
                        cls.format_kind.value for cls in self._ingestors
                    ],
                },
            )
        return ingestor

    def build(
        self,
        format_info: FormatDescriptor,
        min_cells: int,
        min_features: int,
        project_label: str,
    ) -> BuildResult:
        """
        Ingest every sample of a detected format.

        Args:
            format_info: Result of classify() (a FormatDescriptor variant)
            min_cells: Minimum cells per gene (inclusive)
            min_features: Minimum genes per cell (inclusive)
            project_label: Project label; suffixed with the sample id when
                there is more than one sample

        Returns:
            ExpressionMatrix for a single sample, otherwise a dict of
            sample id -> ExpressionMatrix in descriptor order

        Raises:
            UnsupportedFormatError: No loader for this format
            IngestionError: A sample could not be ingested
        """
        ingestor = self.get_ingestor(format_info)
        samples = format_info.samples

        if len(samples) == 1:
            logger.info("Processing single sample...")
            sample = next(iter(samples.values()))
            return ingestor.ingest(sample, min_cells, min_features, project_label)

        logger.info(f"Processing {len(samples)} samples...")
        results: Dict[str, ExpressionMatrix] = {}
        for sample_id, sample in samples.items():
            logger.info(f"Processing sample: {sample_id}")
            results[sample_id] = ingestor.ingest(
                sample, min_cells, min_features, f"{project_label}_{sample_id}"
            )
        return results
