"""Shared utilities: logging and file operations."""

from cellgeo.utils.file_ops import (
    check_file_integrity,
    copy_file,
    copy_preserving_compression,
    is_gzipped,
)
from cellgeo.utils.logger import get_logger, setup_cli_logging

__all__ = [
    "check_file_integrity",
    "copy_file",
    "copy_preserving_compression",
    "get_logger",
    "is_gzipped",
    "setup_cli_logging",
]
