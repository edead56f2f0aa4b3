"""Logging setup for the update checker CLI and background watch."""

import logging
import os
import sys
from pathlib import Path
from typing import Optional

from .constants import LOG_LEVEL_ENV

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Network and filesystem-event libraries log every request/event at INFO/DEBUG
QUIET_LOGGERS = ("httpx", "httpcore", "watchdog")


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance.

    Args:
        name: Logger name (usually __name__).

    Returns:
        Configured logger instance.
    """
    return logging.getLogger(name)


def resolve_log_level(verbose: bool = False) -> int:
    """Pick the log level for a run.

    `--verbose` always means DEBUG. Otherwise the level named in the
    APP_CHECKER_LOG_LEVEL environment variable is used, falling back to
    INFO when it is unset or not a level name.
    """
    if verbose:
        return logging.DEBUG

    name = os.environ.get(LOG_LEVEL_ENV, "").strip().upper()
    level = logging.getLevelName(name) if name else None
    return level if isinstance(level, int) else logging.INFO


def setup_logging(
    level: int = logging.INFO,
    log_file: Optional[Path] = None,
) -> None:
    """Send log records to stderr and, optionally, a file.

    Replaces any handlers already on the root logger, so a `watch`
    session restarted in the same process does not log twice.

    Args:
        level: Root logging level.
        log_file: Optional log file path; parent directories are created.
    """
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        handlers=handlers,
        force=True,
    )

    # Library chatter stays hidden unless it is a warning, even with --verbose
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
