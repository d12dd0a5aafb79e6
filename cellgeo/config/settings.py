"""
Application settings and configuration.

This module centralizes configuration for downloads, logging and the default
filtering thresholds, with environment variable overrides (a local .env file
is honoured through python-dotenv).
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import find_dotenv, load_dotenv

_VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "")
    if not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


class Settings:
    """
    Application settings with environment variable support.

    Environment variables (all optional):
        CELLGEO_CACHE_DIR: Root directory for downloaded GEO files
        CELLGEO_STAGING_DIR: Parent directory for per-sample staging dirs
        CELLGEO_LOG_LEVEL: Logging level name (default WARNING)
        CELLGEO_MIN_CELLS: Default minimum cells per gene (default 3)
        CELLGEO_MIN_FEATURES: Default minimum features per cell (default 200)
        CELLGEO_DOWNLOAD_TIMEOUT: HTTP timeout in seconds (default 60)
        CELLGEO_MAX_RETRIES: FTP download attempts (default 3)
    """

    def __init__(self):
        """Initialize settings from the environment."""
        # .env in the working directory; real environment variables win
        load_dotenv(find_dotenv(usecwd=True))

        self.CACHE_DIR = Path(
            os.environ.get("CELLGEO_CACHE_DIR", str(Path.home() / ".cellgeo" / "cache"))
        ).expanduser()

        staging = os.environ.get("CELLGEO_STAGING_DIR", "")
        self.STAGING_DIR: Optional[Path] = Path(staging).expanduser() if staging else None

        self.LOG_LEVEL = os.environ.get("CELLGEO_LOG_LEVEL", "WARNING").upper()
        if self.LOG_LEVEL not in _VALID_LOG_LEVELS:
            raise ValueError(
                f"CELLGEO_LOG_LEVEL must be one of {', '.join(_VALID_LOG_LEVELS)}, "
                f"got {self.LOG_LEVEL!r}"
            )

        # Filtering defaults
        self.MIN_CELLS = _env_int("CELLGEO_MIN_CELLS", 3)
        self.MIN_FEATURES = _env_int("CELLGEO_MIN_FEATURES", 200)
        if self.MIN_CELLS < 0 or self.MIN_FEATURES < 0:
            raise ValueError("CELLGEO_MIN_CELLS and CELLGEO_MIN_FEATURES must be >= 0")

        # Download settings
        self.DOWNLOAD_TIMEOUT = _env_int("CELLGEO_DOWNLOAD_TIMEOUT", 60)
        self.MAX_RETRIES = max(1, _env_int("CELLGEO_MAX_RETRIES", 3))

    def get_all_settings(self) -> Dict[str, Any]:
        """
        Get all settings as a dictionary.

        Returns:
            dict: All settings
        """
        return {
            attr: getattr(self, attr)
            for attr in dir(self)
            if not attr.startswith("_") and not callable(getattr(self, attr))
        }

    def get_setting(self, name: str, default: Any = None) -> Any:
        """Get a specific setting, or default if it doesn't exist."""
        return getattr(self, name, default)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide Settings instance."""
    return Settings()
