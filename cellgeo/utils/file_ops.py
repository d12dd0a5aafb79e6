"""
File copy helpers used when staging downloaded files for loading.

Copies are verified (destination exists and is non-empty) and failures are
reported as CopyError so that callers can clean up before propagating.
"""

import gzip
import shutil
from pathlib import Path
from typing import Iterable, List, Union

from cellgeo.core.exceptions import CopyError
from cellgeo.utils.logger import get_logger

logger = get_logger(__name__)

PathLike = Union[str, Path]

GZIP_SUFFIX = ".gz"
CHUNK_SIZE = 1024 * 1024


def is_gzipped(path: PathLike) -> bool:
    """Return True if the file name carries a gzip suffix."""
    return Path(path).name.lower().endswith(GZIP_SUFFIX)


def copy_file(source: PathLike, dest: PathLike, decompress: bool = False) -> Path:
    """
    Copy a file, optionally gunzipping it on the way.

    Args:
        source: File to copy
        dest: Destination path (overwritten if present)
        decompress: If True and source is gzipped, write the decompressed
            content to dest. Uncompressed sources are copied as-is.

    Returns:
        Path: The destination path

    Raises:
        CopyError: If the source is missing, the copy fails, or the
            destination ends up missing or empty
    """
    source = Path(source)
    dest = Path(dest)
    details = {"source": str(source), "destination": str(dest)}

    if not source.is_file():
        raise CopyError(f"Source file does not exist: {source}", details)

    logger.debug(f"Copying {source.name} -> {dest.name}")

    try:
        if decompress and is_gzipped(source):
            logger.debug(f"Decompressing {source.name}")
            with gzip.open(source, "rb") as src, open(dest, "wb") as dst:
                shutil.copyfileobj(src, dst, CHUNK_SIZE)
        else:
            shutil.copyfile(source, dest)
    except (OSError, EOFError) as e:
        raise CopyError(f"Error copying {source.name}: {e}", details) from e

    if not dest.exists():
        raise CopyError(f"Destination file was not created: {dest}", details)

    dest_size = dest.stat().st_size
    if dest_size == 0:
        raise CopyError(f"Destination file is empty: {dest}", details)

    logger.debug(f"Copied {dest.name} ({dest_size} bytes)")
    return dest


def copy_preserving_compression(source: PathLike, dest: PathLike) -> Path:
    """Byte-for-byte copy; a gzipped source stays gzipped."""
    return copy_file(source, dest, decompress=False)


def copy_and_decompress(source: PathLike, dest: PathLike) -> Path:
    """Copy a file, gunzipping it if its name ends in .gz."""
    return copy_file(source, dest, decompress=True)


def check_file_integrity(files: Iterable[PathLike]) -> List[bool]:
    """
    Basic checks for file existence and readability.

    Args:
        files: File paths to check

    Returns:
        List[bool]: One flag per input, True when the file exists and is non-empty
    """
    results = []
    for f in files:
        path = Path(f)
        results.append(path.is_file() and path.stat().st_size > 0)
    return results
