"""
GEO supplementary file downloader.

This module retrieves the supplementary files of a GEO series over HTTPS
(or FTP), expands TAR archives and hands back the local file list that
format detection works on.
"""

import ftplib
import gzip
import random
import re
import time
from pathlib import Path
from typing import Dict, List, Optional, Union
from urllib.parse import urljoin, urlparse

import requests
from rich.console import Console
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    TimeElapsedColumn,
    TimeRemainingColumn,
    TransferSpeedColumn,
)

from cellgeo.config.settings import get_settings
from cellgeo.core.archive_utils import ArchiveExtractor, is_archive
from cellgeo.core.exceptions import GEODownloadError, InvalidAccessionError
from cellgeo.services.geo.constants import GEO_ACCESSION_PATTERN
from cellgeo.utils.file_ops import check_file_integrity
from cellgeo.utils.logger import get_logger

logger = get_logger(__name__)

GEO_SERIES_BASE_URL = "https://ftp.ncbi.nlm.nih.gov/geo/series"

SUPPLEMENTARY_LINK_PATTERN = re.compile(
    r'href="([^"]*\.(?:txt|csv|tsv|mtx|xlsx|h5|gz|bz2|tar|zip))"', re.IGNORECASE
)


def validate_geo_accession(accession) -> bool:
    """
    Validate GEO Series accession format.

    Args:
        accession: Candidate accession

    Returns:
        bool: True for strings of the form GSE followed by digits
    """
    return isinstance(accession, str) and bool(GEO_ACCESSION_PATTERN.match(accession))


class GEODownloadManager:
    """
    Handles downloading supplementary files from GEO.

    Example:
        >>> downloader = GEODownloadManager(cache_dir="~/geo")
        >>> files = downloader.fetch("GSE111108")
    """

    def __init__(
        self,
        cache_dir: Optional[Union[str, Path]] = None,
        console: Optional[Console] = None,
        timeout: Optional[int] = None,
        max_retries: Optional[int] = None,
    ):
        """
        Initialize the download manager.

        Args:
            cache_dir: Directory to store downloads (CELLGEO_CACHE_DIR if None)
            console: Rich console for progress display (creates new if None)
            timeout: HTTP timeout in seconds (CELLGEO_DOWNLOAD_TIMEOUT if None)
            max_retries: FTP download attempts (CELLGEO_MAX_RETRIES if None)
        """
        settings = get_settings()
        self.cache_dir = Path(cache_dir or settings.CACHE_DIR).expanduser()
        self.timeout = timeout or settings.DOWNLOAD_TIMEOUT
        self.max_retries = max_retries or settings.MAX_RETRIES
        self.session = requests.Session()
        self.session.headers.update(
            {"User-Agent": "Mozilla/5.0 (compatible; cellgeo downloader)"}
        )
        self.console = console or Console(stderr=True)
        self.extractor = ArchiveExtractor()

    def construct_geo_urls(self, gse_id: str) -> Dict[str, str]:
        """
        Construct GEO FTP-over-HTTPS URLs for a series.

        Args:
            gse_id: GEO series ID (e.g., GSE109564)

        Returns:
            dict: URLs for the series folder and its suppl/ subfolder
        """
        gse_str = gse_id[3:]
        # Series are bucketed by thousands: GSE109564 -> GSE109nnn, GSE12 -> GSEnnn
        series_folder = f"GSE{int(gse_str[:-3])}nnn" if len(gse_str) > 3 else "GSEnnn"
        base_url = f"{GEO_SERIES_BASE_URL}/{series_folder}/{gse_id}"

        return {
            "series_folder": f"{base_url}/",
            "suppl_folder": f"{base_url}/suppl/",
        }

    def get_supplementary_files(self, gse_id: str) -> List[str]:
        """
        List supplementary file URLs from the suppl folder listing.

        Args:
            gse_id: GEO series ID

        Returns:
            list: Supplementary file URLs (empty if the listing failed)
        """
        suppl_url = self.construct_geo_urls(gse_id)["suppl_folder"]
        try:
            response = self.session.get(suppl_url, timeout=self.timeout)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            logger.warning(f"Could not get supplementary files list: {e}")
            return []

        suppl_files = []
        for link in SUPPLEMENTARY_LINK_PATTERN.findall(response.text):
            if link.startswith(("..", "?")):
                continue
            url = urljoin(suppl_url, link)
            if url not in suppl_files:
                suppl_files.append(url)

        logger.info(f"Found {len(suppl_files)} supplementary files for {gse_id}")
        return suppl_files

    def download_file(
        self, url: str, local_path: Path, description: Optional[str] = None
    ) -> bool:
        """
        Download file from URL to local path with progress tracking.
        Supports both HTTP/HTTPS and FTP protocols.

        Args:
            url: URL to download from
            local_path: Path to save file to
            description: Optional description for the progress bar

        Returns:
            bool: True if download succeeded, False otherwise
        """
        local_path = Path(local_path)
        logger.debug(f"Downloading from: {url}")

        if not description:
            filename = local_path.name
            if len(filename) > 40:
                filename = filename[:37] + "..."
            description = f"Downloading {filename}"

        if urlparse(url).scheme.lower() == "ftp":
            return self._download_with_retry(url, local_path, description)
        return self._download_http(url, local_path, description)

    def _progress(self) -> Progress:
        return Progress(
            BarColumn(),
            DownloadColumn(),
            TransferSpeedColumn(),
            "•",
            TimeElapsedColumn(),
            "•",
            TimeRemainingColumn(),
            console=self.console,
            transient=True,
        )

    def _download_http(self, url: str, local_path: Path, description: str) -> bool:
        """
        Download file from HTTP/HTTPS URL with progress tracking.

        Returns:
            bool: True if download succeeded, False otherwise
        """
        try:
            response = self.session.get(url, stream=True, timeout=self.timeout)
            response.raise_for_status()
            file_size = int(response.headers.get("content-length", 0)) or None

            with self._progress() as progress:
                task_id = progress.add_task(description, total=file_size)
                with open(local_path, "wb") as f:
                    downloaded = 0
                    for chunk in response.iter_content(chunk_size=32768):
                        if chunk:
                            f.write(chunk)
                            downloaded += len(chunk)
                            progress.update(task_id, completed=downloaded)

        except (requests.exceptions.RequestException, OSError) as e:
            logger.warning(f"Failed to download HTTP {url}: {e}")
            if local_path.exists():
                local_path.unlink()
            return False

        logger.info(f"Downloaded to: {local_path}")

        if local_path.name.endswith(".gz") and not self._validate_gzip_integrity(
            local_path
        ):
            logger.error(f"Gzip validation failed, removing corrupted file: {local_path}")
            local_path.unlink()
            return False

        return True

    def _download_with_retry(self, url: str, local_path: Path, description: str) -> bool:
        """
        Download a file over FTP with retry and integrity verification.

        Exponential backoff with jitter between attempts; truncated files
        and broken gzip streams count as failed attempts.

        Returns:
            bool: True if download successful and validated, False otherwise
        """
        parsed_url = urlparse(url)
        username = parsed_url.username or "anonymous"
        password = parsed_url.password or "anonymous@"

        for attempt in range(1, self.max_retries + 1):
            if attempt > 1:
                base_delay = 2**attempt
                jitter = base_delay * 0.2 * (2 * random.random() - 1)
                wait_time = base_delay + jitter
                logger.info(
                    f"Retry attempt {attempt}/{self.max_retries} after {wait_time:.1f}s delay"
                )
                time.sleep(wait_time)

            try:
                ftp = ftplib.FTP()
                ftp.connect(parsed_url.hostname, parsed_url.port or 21, timeout=30)
                ftp.login(username, password)
                try:
                    ftp.voidcmd("TYPE I")
                    file_size = ftp.size(parsed_url.path) or 0

                    with self._progress() as progress:
                        task_id = progress.add_task(description, total=file_size or None)
                        with open(local_path, "wb") as f:
                            downloaded = 0

                            def callback(data):
                                nonlocal downloaded
                                f.write(data)
                                downloaded += len(data)
                                progress.update(task_id, completed=downloaded)

                            ftp.retrbinary(
                                f"RETR {parsed_url.path}", callback, blocksize=8192
                            )
                finally:
                    ftp.quit()

            except (*ftplib.all_errors, OSError) as e:
                logger.error(f"Download attempt {attempt}/{self.max_retries} failed: {e}")
                if local_path.exists():
                    local_path.unlink()
                continue

            actual_size = local_path.stat().st_size
            if file_size > 0 and actual_size != file_size:
                logger.warning(
                    f"File size mismatch on attempt {attempt}/{self.max_retries}: "
                    f"expected {file_size} bytes, got {actual_size} bytes"
                )
                local_path.unlink()
                continue

            if local_path.name.endswith(".gz") and not self._validate_gzip_integrity(
                local_path
            ):
                logger.warning(
                    f"Gzip validation failed on attempt {attempt}/{self.max_retries}"
                )
                local_path.unlink()
                continue

            logger.info(
                f"Download successful: {local_path.name} ({actual_size / (1024**2):.1f} MB)"
            )
            return True

        logger.error(f"All {self.max_retries} download attempts failed for {url}")
        return False

    def _validate_gzip_integrity(self, file_path: Path) -> bool:
        """
        Validate that a gzip file can be fully decompressed.

        Returns:
            bool: True if file can be fully decompressed, False otherwise
        """
        try:
            with gzip.open(file_path, "rb") as f:
                while f.read(32768):
                    pass
        except (OSError, EOFError) as e:
            logger.warning(f"Gzip validation failed for {file_path.name}: {e}")
            return False

        logger.debug(f"Gzip validation passed: {file_path.name}")
        return True

    def _expand_archives(self, files: List[Path]) -> List[Path]:
        """Replace TAR/ZIP archives by the files they contain."""
        expanded: List[Path] = []
        for path in files:
            if not is_archive(path):
                expanded.append(path)
                continue
            logger.info(f"Extracting archive: {path.name}")
            try:
                expanded.extend(self.extractor.extract_safely(path, path.parent))
            except RuntimeError as e:
                raise GEODownloadError(
                    f"Could not extract {path.name}: {e}", {"archive": str(path)}
                ) from e
        return expanded

    def fetch(
        self, accession: str, target_dir: Optional[Union[str, Path]] = None
    ) -> List[Path]:
        """
        Download all supplementary files of a series.

        Files land in <target_dir>/<accession>/. Files already present are
        reused. TAR/ZIP archives are expanded in place and replaced by their
        contents. Empty or unreadable files are dropped with a warning.

        Args:
            accession: GEO series accession (GSE######)
            target_dir: Download root (the manager's cache_dir if None)

        Returns:
            List[Path]: Local files, in listing order

        Raises:
            InvalidAccessionError: Malformed accession
            GEODownloadError: No files could be retrieved
        """
        if not validate_geo_accession(accession):
            raise InvalidAccessionError(
                f"Invalid GEO accession format: {accession!r}. Expected format: GSE######",
                {"accession": accession},
            )

        accession_dir = Path(target_dir or self.cache_dir).expanduser() / accession
        accession_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"Downloading files to: {accession_dir}")

        suppl_urls = self.get_supplementary_files(accession)
        if not suppl_urls:
            raise GEODownloadError(
                f"No supplementary files found for accession: {accession}",
                {"geo_id": accession},
            )

        downloaded: List[Path] = []
        failed: List[str] = []
        for url in suppl_urls:
            local_path = accession_dir / url.rstrip("/").split("/")[-1]
            if local_path.exists() and local_path.stat().st_size > 0:
                logger.info(f"Using cached file: {local_path.name}")
                downloaded.append(local_path)
            elif self.download_file(url, local_path):
                downloaded.append(local_path)
            else:
                failed.append(url)

        if failed:
            logger.warning(f"{len(failed)} file(s) failed to download for {accession}")

        files = self._expand_archives(downloaded)

        valid = check_file_integrity(files)
        if not all(valid):
            corrupted = [str(f) for f, ok in zip(files, valid) if not ok]
            logger.warning(f"Some files appear corrupted or empty: {', '.join(corrupted)}")
            files = [f for f, ok in zip(files, valid) if ok]

        if not files:
            raise GEODownloadError(
                f"Failed to download GEO data for {accession}",
                {"geo_id": accession, "failed_urls": failed},
            )

        logger.info(f"Successfully processed {len(files)} files")
        for f in files:
            logger.debug(f"  - {f.name}")
        return files
