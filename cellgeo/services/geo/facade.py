"""
End-to-end GEO single-cell service.

Coordinates the three steps of turning an accession into expression
matrices: download supplementary files, detect their layout, build the
matrices.
"""

from pathlib import Path
from typing import List, Optional, Sequence, Union

from cellgeo.config.settings import get_settings
from cellgeo.core.exceptions import FormatNotDetectedError, InvalidAccessionError
from cellgeo.services.geo.builder import BuildResult, ExpressionMatrixBuilder
from cellgeo.services.geo.downloader import GEODownloadManager, validate_geo_accession
from cellgeo.services.geo.format_detection import (
    SUPPORTED_FORMATS,
    ClassificationResult,
    NotDetected,
    classify,
)
from cellgeo.utils.logger import get_logger
from cellgeo.version import __version__

logger = get_logger(__name__)


class SingleCellGEOService:
    """
    Download a GEO series and build expression matrices from it.

    Example:
        >>> service = SingleCellGEOService()
        >>> adata = service.fetch_dataset("GSE111108").adata
    """

    def __init__(
        self,
        downloader: Optional[GEODownloadManager] = None,
        builder: Optional[ExpressionMatrixBuilder] = None,
        tool_version: str = __version__,
    ):
        """
        Args:
            downloader: Retrieval backend (GEODownloadManager() if None)
            builder: Matrix builder (created with tool_version if None)
            tool_version: Version stamped into provenance records
        """
        settings = get_settings()
        self.settings = settings
        self.downloader = downloader or GEODownloadManager()
        self.builder = builder or ExpressionMatrixBuilder(
            tool_version=tool_version, staging_root=settings.STAGING_DIR
        )

    def detect(self, files: Sequence[Union[str, Path]]) -> ClassificationResult:
        """Classify files and log what was found."""
        format_info = classify(files)
        if isinstance(format_info, NotDetected):
            logger.warning(format_info.reason)
        return format_info

    def fetch_dataset(
        self,
        accession: str,
        output_dir: Optional[Union[str, Path]] = None,
        min_cells: Optional[int] = None,
        min_features: Optional[int] = None,
        project_name: Optional[str] = None,
    ) -> BuildResult:
        """
        Download a GEO series and create expression matrices.

        Args:
            accession: GEO series accession (e.g. "GSE123456")
            output_dir: Download root (settings cache dir if None)
            min_cells: Minimum cells per gene (CELLGEO_MIN_CELLS if None)
            min_features: Minimum genes per cell (CELLGEO_MIN_FEATURES if None)
            project_name: Project label (the accession if None)

        Returns:
            ExpressionMatrix, or dict of sample id -> ExpressionMatrix for
            multi-sample datasets

        Raises:
            InvalidAccessionError: Malformed accession
            GEODownloadError: Nothing could be downloaded
            FormatNotDetectedError: Files match no supported layout
            IngestionError: A sample could not be ingested
        """
        if not validate_geo_accession(accession):
            raise InvalidAccessionError(
                f"Invalid GEO accession format: {accession!r}. Expected format: GSE######",
                {"accession": accession},
            )

        min_cells = self.settings.MIN_CELLS if min_cells is None else min_cells
        min_features = self.settings.MIN_FEATURES if min_features is None else min_features
        project_name = project_name or accession

        logger.info(f"Starting download for accession: {accession}")

        logger.info("Step 1: Downloading GEO supplementary files...")
        files: List[Path] = self.downloader.fetch(accession, output_dir)

        logger.info("Step 2: Detecting data format...")
        format_info = self.detect(files)
        if isinstance(format_info, NotDetected):
            raise FormatNotDetectedError(
                f"Could not detect supported data format for {accession}. "
                f"Supported formats: {', '.join(SUPPORTED_FORMATS)}",
                {
                    "files": [Path(f).name for f in files],
                    "supported_formats": list(SUPPORTED_FORMATS),
                },
            )

        logger.info("Step 3: Creating expression matrices...")
        result = self.builder.build(
            format_info,
            min_cells=min_cells,
            min_features=min_features,
            project_label=project_name,
        )
        logger.info(f"Successfully created expression matrices for {accession}")
        return result


def fetch_dataset(
    accession: str,
    output_dir: Optional[Union[str, Path]] = None,
    min_cells: Optional[int] = None,
    min_features: Optional[int] = None,
    project_name: Optional[str] = None,
    downloader: Optional[GEODownloadManager] = None,
) -> BuildResult:
    """Convenience wrapper around SingleCellGEOService.fetch_dataset()."""
    service = SingleCellGEOService(downloader=downloader)
    return service.fetch_dataset(
        accession,
        output_dir=output_dir,
        min_cells=min_cells,
        min_features=min_features,
        project_name=project_name,
    )
