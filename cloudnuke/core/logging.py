"""
Logging Configuration Module
============================

Provides centralized logging configuration for cloudnuke.

Console output goes through Rich on stderr so that tables and JSON written
to stdout stay clean. An optional plain-text file log can be added.

Functions
---------
setup_logging
    Configure application-wide logging.
resolve_log_level
    Turn a level name (or the ``LOG_LEVEL`` environment variable) into a
    logging level.

Example
-------
>>> import logging
>>> from cloudnuke.core.logging import setup_logging
>>>
>>> setup_logging(level="DEBUG", log_file="cloudnuke.log")
>>> logger = logging.getLogger(__name__)
>>> logger.info("Starting nuke")

Log Levels
----------
- DEBUG: Per-identifier successes and API detail
- INFO: Batch starts and run milestones
- WARNING: Degraded reads, skipped resources
- ERROR: Per-identifier deletion failures
"""

from __future__ import annotations

import logging
import os
from typing import Optional, Union

from rich.console import Console
from rich.logging import RichHandler

# Default format for log messages
DEFAULT_FORMAT = "%(message)s"
FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

LOG_LEVEL_ENV_VAR = "LOG_LEVEL"


def resolve_log_level(level: Union[str, int, None] = None) -> int:
    """
    Resolve a log level name to its numeric value.

    Parameters
    ----------
    level : str or int, optional
        Level name (case-insensitive) or number. When omitted, the
        ``LOG_LEVEL`` environment variable is consulted, then INFO.

    Returns
    -------
    int
        Numeric logging level. Unknown names resolve to INFO.
    """
    if level is None:
        level = os.environ.get(LOG_LEVEL_ENV_VAR, "INFO")
    if isinstance(level, int):
        return level
    resolved = getattr(logging, level.strip().upper(), None)
    return resolved if isinstance(resolved, int) else logging.INFO


def setup_logging(
    level: Union[str, int, None] = None,
    log_file: Optional[str] = None,
    rich_tracebacks: bool = True,
    console: Optional[Console] = None,
) -> None:
    """
    Configure application-wide logging.

    Sets up logging with a Rich console handler and an optional file
    handler. Should be called once at application startup.

    Parameters
    ----------
    level : str or int, optional
        Logging level. Defaults to ``$LOG_LEVEL`` or INFO.
    log_file : str, optional
        Path to log file. If provided, logs will be written to this file.
    rich_tracebacks : bool, default=True
        Whether to use Rich for exception tracebacks.
    console : Console, optional
        Rich Console instance. If not provided, creates one on stderr.

    Notes
    -----
    Existing root handlers are replaced, so calling this twice does not
    duplicate output.
    """
    level = resolve_log_level(level)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    rich_console = console or Console(stderr=True)
    console_handler = RichHandler(
        console=rich_console,
        show_time=True,
        show_path=False,
        rich_tracebacks=rich_tracebacks,
        tracebacks_show_locals=False,
        markup=False,
    )
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(DEFAULT_FORMAT))
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(
            logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT)
        )
        root_logger.addHandler(file_handler)

    # Reduce noise from third-party libraries
    logging.getLogger("boto3").setLevel(logging.WARNING)
    logging.getLogger("botocore").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    root_logger.debug(
        f"Logging configured: level={logging.getLevelName(level)}, "
        f"file={log_file or 'None'}"
    )
