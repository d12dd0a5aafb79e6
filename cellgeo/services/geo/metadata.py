"""
GEO series metadata lookup via GEOparse.

Metadata is informational only; a failed lookup never blocks ingestion.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import GEOparse

from cellgeo.config.settings import get_settings
from cellgeo.core.exceptions import InvalidAccessionError
from cellgeo.services.geo.downloader import validate_geo_accession
from cellgeo.utils.logger import get_logger

logger = get_logger(__name__)

ORGANISM_KEYS = ("organism", "sample_organism", "platform_organism", "taxon")


def _first(metadata: Dict[str, List[str]], *keys: str) -> Optional[str]:
    for key in keys:
        values = metadata.get(key)
        if values:
            return "; ".join(values) if key.endswith("organism") else values[0]
    return None


def fetch_series_metadata(
    accession: str, cache_dir: Optional[Union[str, Path]] = None
) -> Optional[Dict[str, Any]]:
    """
    Extract basic metadata for a GEO series.

    Args:
        accession: GEO series accession (GSE######)
        cache_dir: Where GEOparse stores the SOFT file (settings cache if None)

    Returns:
        dict with title, summary, organism, submission_date and samples,
        or None if the record could not be retrieved

    Raises:
        InvalidAccessionError: Malformed accession
    """
    if not validate_geo_accession(accession):
        raise InvalidAccessionError(
            f"Invalid GEO accession format: {accession!r}", {"accession": accession}
        )

    destdir = Path(cache_dir or get_settings().CACHE_DIR).expanduser()
    destdir.mkdir(parents=True, exist_ok=True)

    try:
        gse = GEOparse.get_GEO(geo=accession, destdir=str(destdir), how="brief", silent=True)
    except Exception as e:
        logger.warning(f"Could not retrieve GEO metadata for {accession}: {e}")
        return None

    metadata = gse.metadata
    samples = list(gse.gsms) or list(metadata.get("sample_id", []))
    return {
        "accession": accession,
        "title": _first(metadata, "title"),
        "summary": _first(metadata, "summary"),
        "organism": _first(metadata, *ORGANISM_KEYS),
        "submission_date": _first(metadata, "submission_date"),
        "samples": samples,
    }
