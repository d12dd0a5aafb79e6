"""
Archive handling for downloaded GEO supplementary files.

GEO commonly ships per-sample files inside a GSE*_RAW.tar. This module
expands TAR/ZIP archives next to the download so that format detection
sees the individual files.

Security:
- Path traversal attack prevention (CVE-2007-4559)
- Members that are not regular files or directories are skipped
"""

import os
import shutil
import tarfile
import zipfile
from pathlib import Path
from typing import List, Union

from cellgeo.utils.logger import get_logger

logger = get_logger(__name__)

PathLike = Union[str, Path]

TAR_SUFFIXES = (".tar", ".tar.gz", ".tgz", ".tar.bz2")
ZIP_SUFFIXES = (".zip",)


def is_archive(path: PathLike) -> bool:
    """Return True if the file name looks like a TAR or ZIP archive."""
    name = Path(path).name.lower()
    return name.endswith(TAR_SUFFIXES + ZIP_SUFFIXES)


class ArchiveExtractor:
    """
    Secure TAR/ZIP extraction with path traversal protection.

    Example:
        >>> extractor = ArchiveExtractor()
        >>> files = extractor.extract_safely(tar_path, target_dir)
    """

    def _is_within(self, target_dir: Path, name: str) -> bool:
        try:
            target_path = (target_dir / name).resolve()
            common_path = Path(os.path.commonpath([target_dir.resolve(), target_path]))
            return common_path == target_dir.resolve()
        except (ValueError, RuntimeError) as e:
            logger.warning(f"Path safety check failed for {name}: {e}")
            return False

    def _is_safe_member(self, member: tarfile.TarInfo, target_dir: Path) -> bool:
        """
        Prevent path traversal attacks during TAR extraction.

        Blocks members such as ../../etc/passwd, absolute paths, links and
        device files.
        """
        if not (member.isfile() or member.isdir()):
            logger.warning(f"Skipping non-regular TAR member: {member.name}")
            return False
        is_safe = self._is_within(target_dir, member.name)
        if not is_safe:
            logger.warning(f"Blocked unsafe TAR member: {member.name}")
        return is_safe

    def extract_safely(
        self, archive_path: PathLike, target_dir: PathLike, cleanup_on_error: bool = False
    ) -> List[Path]:
        """
        Extract a TAR/ZIP archive with security checks.

        Args:
            archive_path: Path to archive file
            target_dir: Directory for extraction
            cleanup_on_error: Remove target_dir if extraction fails

        Returns:
            List[Path]: Extracted regular files, in archive order

        Raises:
            ValueError: Unsupported archive format
            RuntimeError: Extraction failed
        """
        archive_path = Path(archive_path)
        target_dir = Path(target_dir)
        name = archive_path.name.lower()

        if not is_archive(archive_path):
            raise ValueError(f"Unsupported archive format: {archive_path.name}")

        try:
            target_dir.mkdir(parents=True, exist_ok=True)
            extracted: List[Path] = []

            if name.endswith(TAR_SUFFIXES):
                with tarfile.open(archive_path, "r:*") as tar:
                    safe_members = [
                        m for m in tar.getmembers() if self._is_safe_member(m, target_dir)
                    ]
                    if not safe_members:
                        raise RuntimeError("No safe members found in TAR archive")

                    logger.debug(f"Extracting {len(safe_members)} safe members from TAR")
                    # Python >= 3.12 (and security backports) accept an extraction filter
                    extract_kwargs = {"filter": "data"} if hasattr(tarfile, "data_filter") else {}
                    for member in safe_members:
                        tar.extract(member, path=target_dir, **extract_kwargs)
                        if member.isfile():
                            extracted.append(target_dir / member.name)
            else:
                with zipfile.ZipFile(archive_path, "r") as zip_ref:
                    for info in zip_ref.infolist():
                        if not self._is_within(target_dir, info.filename):
                            logger.warning(f"Blocked unsafe ZIP member: {info.filename}")
                            continue
                        zip_ref.extract(info, target_dir)
                        if not info.is_dir():
                            extracted.append(target_dir / info.filename)

            logger.info(
                f"Extracted {len(extracted)} files from {archive_path.name} to {target_dir}"
            )
            return extracted

        except (tarfile.TarError, zipfile.BadZipFile, OSError, RuntimeError) as e:
            logger.error(f"Archive extraction failed: {e}")
            if cleanup_on_error and target_dir.exists():
                shutil.rmtree(target_dir, ignore_errors=True)
            raise RuntimeError(f"Failed to extract {archive_path.name}: {e}") from e
