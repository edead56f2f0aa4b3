"""Reading version metadata out of application bundles."""

import plistlib
from pathlib import Path
from typing import Any, Optional, Union

from .constants import (
    BUILD_KEY,
    CONTENTS_DIR,
    FEED_URL_KEY,
    IDENTIFIER_KEY,
    METADATA_EXTENSION,
    VERSION_KEY,
)
from .logging_config import get_logger
from .models import InstalledApp

logger = get_logger(__name__)

PathLike = Union[str, Path]


def read_info_plist(bundle_path: PathLike) -> Optional[dict[str, Any]]:
    """Read the metadata plist of a bundle.

    The bundle must contain exactly one `.plist` file directly under its
    Contents directory.

    Args:
        bundle_path: Path to the application bundle.

    Returns:
        The parsed plist dictionary, or None if it can't be read.
    """
    contents = Path(bundle_path) / CONTENTS_DIR

    try:
        plists = [
            entry for entry in contents.iterdir()
            if entry.suffix == METADATA_EXTENSION and entry.is_file()
        ]
    except OSError:
        return None

    if len(plists) != 1:
        logger.debug("Expected one plist in %s, found %d", contents, len(plists))
        return None

    try:
        with open(plists[0], "rb") as f:
            data = plistlib.load(f)
    except Exception as e:
        logger.debug("Unreadable plist %s: %s", plists[0], e)
        return None

    if not isinstance(data, dict):
        return None
    return data


def _get_str(data: Optional[dict[str, Any]], key: str) -> Optional[str]:
    if data is None:
        return None
    value = data.get(key)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def extract(bundle_path: PathLike) -> Optional[tuple[str, str]]:
    """Extract (version, build number) from a bundle, or None."""
    data = read_info_plist(bundle_path)
    version = _get_str(data, VERSION_KEY)
    build_number = _get_str(data, BUILD_KEY)

    if version is None or build_number is None:
        return None
    return version, build_number


def bundle_identifier(bundle_path: PathLike) -> Optional[str]:
    return _get_str(read_info_plist(bundle_path), IDENTIFIER_KEY)


def feed_url(bundle_path: PathLike) -> Optional[str]:
    return _get_str(read_info_plist(bundle_path), FEED_URL_KEY)


class AppMetadataReader:
    """Builds InstalledApp records from bundle paths."""

    def extract(self, bundle_path: PathLike) -> Optional[tuple[str, str]]:
        return extract(bundle_path)

    def read_app(self, bundle_path: PathLike) -> InstalledApp:
        """Read a bundle into an InstalledApp.

        Bundles without readable metadata still produce a record, with
        version and build number left as None.
        """
        path = Path(bundle_path)
        metadata = self.extract(path)

        if metadata is None:
            return InstalledApp(path=path)

        version, build_number = metadata
        return InstalledApp(path=path, version=version, build_number=build_number)
