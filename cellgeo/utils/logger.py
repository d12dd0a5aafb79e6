"""
Logging configuration for cellgeo.

Library code logs through module loggers obtained from get_logger(). When the
CLI is active it installs a RichHandler on the root logger and module loggers
propagate to it; otherwise each logger gets its own StreamHandler.
"""

import logging
import sys
from typing import Optional, Union

from rich.console import Console
from rich.logging import RichHandler

LOG_FORMAT = "[%(asctime)s] %(levelname)s - [%(name)s] - %(message)s"


def _resolve_level(level: Union[int, str]) -> int:
    if isinstance(level, str):
        return logging.getLevelName(level.upper()) if level else logging.INFO
    return level


def setup_logger(name: str, level: Optional[Union[int, str]] = None) -> logging.Logger:
    """
    Configure a logger with consistent formatting.

    Handles two scenarios:
    1. CLI usage: setup_cli_logging() put a RichHandler on the root logger.
       Logs propagate to root (single output).
    2. Direct usage: no RichHandler on root. We add our own StreamHandler
       and disable propagation to prevent duplicate output.

    Args:
        name: Name of the logger
        level: Logging level; defaults to the configured CELLGEO_LOG_LEVEL

    Returns:
        logging.Logger: Configured logger instance
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        if level is None:
            from cellgeo.config.settings import get_settings

            level = get_settings().LOG_LEVEL
        logger.setLevel(_resolve_level(level))

        root_logger = logging.getLogger()
        has_rich_handler = any(
            isinstance(handler, RichHandler) for handler in root_logger.handlers
        )

        if not has_rich_handler:
            handler = logging.StreamHandler(sys.stdout)
            handler.setFormatter(logging.Formatter(LOG_FORMAT))
            logger.addHandler(handler)
            logger.propagate = False

    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger with the given name.

    Args:
        name: Name of the logger

    Returns:
        logging.Logger: Logger instance
    """
    return setup_logger(name)


def setup_cli_logging(
    level: Union[int, str] = logging.INFO, console: Optional[Console] = None
) -> None:
    """Install a RichHandler on the root logger and route cellgeo loggers to it."""
    level = _resolve_level(level)
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    if not any(isinstance(h, RichHandler) for h in root_logger.handlers):
        handler = RichHandler(
            console=console or Console(stderr=True),
            show_path=False,
            rich_tracebacks=True,
        )
        root_logger.addHandler(handler)

    for handler in root_logger.handlers:
        handler.setLevel(level)

    # Loggers created before the CLI started have their own handlers; hand
    # their output over to the root RichHandler.
    for name, logger in logging.Logger.manager.loggerDict.items():
        if not name.startswith("cellgeo") or not isinstance(logger, logging.Logger):
            continue
        for handler in list(logger.handlers):
            if isinstance(handler, logging.StreamHandler) and not isinstance(
                handler, RichHandler
            ):
                logger.removeHandler(handler)
        logger.setLevel(level)
        logger.propagate = True
