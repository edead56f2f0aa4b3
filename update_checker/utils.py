"""Utility functions for App Update Checker."""

import os
import platform
from pathlib import Path
from typing import Optional, Union

from .constants import APPLICATIONS_DIR_ENV, DEFAULT_APPLICATIONS_DIR
from .logging_config import get_logger

logger = get_logger(__name__)


def _platform_applications_dir() -> Optional[Path]:
    """Return the platform's standard applications location, if it has one."""
    system = platform.system()

    if system == "Darwin":
        return Path("/Applications")
    elif system == "Linux":
        return Path.home() / "Applications"
    elif system == "Windows":
        program_files = os.environ.get("ProgramFiles")
        return Path(program_files) if program_files else None

    return None


def resolve_applications_dir(
    explicit: Optional[Union[str, Path]] = None,
) -> Optional[Path]:
    """Resolve the directory holding installed application bundles.

    Looks at, in order: the explicit argument, the environment override,
    the platform location, and finally the conventional macOS path.

    Args:
        explicit: Directory given by the caller.

    Returns:
        The directory path, or None if it does not exist.
    """
    if explicit is not None:
        candidates = [Path(explicit)]
    elif os.environ.get(APPLICATIONS_DIR_ENV):
        candidates = [Path(os.environ[APPLICATIONS_DIR_ENV])]
    else:
        candidates = [
            path
            for path in (_platform_applications_dir(), Path(DEFAULT_APPLICATIONS_DIR))
            if path is not None
        ]

    for candidate in candidates:
        path = candidate.expanduser()
        if path.is_dir():
            return path

    logger.debug("No applications directory found in %s", candidates)
    return None


def parse_version(version: str) -> tuple[int, ...]:
    """Parse a version string into a tuple of integers.

    Handles pre-release tags by stripping them.
    E.g., "1.0.0-beta" -> (1, 0, 0)

    Args:
        version: Version string (e.g., "1.2.3").

    Returns:
        Tuple of integers (e.g., (1, 2, 3)).
    """
    if not version:
        return (0,)

    version = version.strip()

    if version.lower().startswith("v"):
        version = version[1:]

    for separator in ("-", "+", " "):
        idx = version.find(separator)
        if idx > 0:
            version = version[:idx]

    parts = []

    for part in version.split("."):
        try:
            parts.append(int(part))
        except ValueError:
            break

    # Trailing zeros don't change the version: "1.2" == "1.2.0"
    while len(parts) > 1 and parts[-1] == 0:
        parts.pop()

    return tuple(parts) if parts else (0,)


def compare_versions(v1: str, v2: str) -> int:
    """Compare two version strings.

    Args:
        v1: First version string.
        v2: Second version string.

    Returns:
        -1 if v1 < v2, 0 if v1 == v2, 1 if v1 > v2.
    """
    p1 = parse_version(v1)
    p2 = parse_version(v2)

    if p1 < p2:
        return -1
    elif p1 > p2:
        return 1
    return 0


def normalize_version(version: Optional[str]) -> Optional[str]:
    """Normalize a version string.

    Args:
        version: Version string to normalize.

    Returns:
        Normalized version string without 'v' prefix.
    """
    if not version:
        return None

    version = version.strip()

    if version.lower().startswith("v"):
        version = version[1:]

    return version if version else None


def is_newer(installed: Optional[str], latest: Optional[str]) -> bool:
    """Check whether `latest` is a newer version than `installed`.

    Returns False when either side is missing.
    """
    installed = normalize_version(installed)
    latest = normalize_version(latest)

    if not installed or not latest:
        return False

    return compare_versions(installed, latest) < 0
