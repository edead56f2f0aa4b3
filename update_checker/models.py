"""Data models for App Update Checker."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from .constants import BUNDLE_SUFFIX
from .utils import compare_versions, is_newer


class AppStatus(Enum):
    OK = "ok"
    UPDATE_AVAILABLE = "update"
    UNKNOWN = "unknown"


@dataclass
class InstalledApp:
    """An application bundle found during a scan pass."""

    path: Path
    version: Optional[str] = None
    build_number: Optional[str] = None

    @property
    def name(self) -> str:
        name = self.path.name
        if name.endswith(BUNDLE_SUFFIX):
            return name[: -len(BUNDLE_SUFFIX)]
        return name

    @property
    def has_metadata(self) -> bool:
        return self.version is not None and self.build_number is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "path": str(self.path),
            "version": self.version,
            "build_number": self.build_number,
        }


@dataclass
class UpdateInfo:
    app_path: Path
    source: str
    installed_version: Optional[str] = None
    installed_build: Optional[str] = None
    latest_version: Optional[str] = None
    latest_build: Optional[str] = None
    release_url: Optional[str] = None
    release_notes: Optional[str] = field(default=None, repr=False)

    @property
    def app_name(self) -> str:
        return InstalledApp(self.app_path).name

    @property
    def update_available(self) -> bool:
        # Build numbers are authoritative when both sides carry one
        if self.installed_build and self.latest_build:
            order = compare_versions(self.installed_build, self.latest_build)
            if order != 0:
                return order < 0
        return is_newer(self.installed_version, self.latest_version)

    @property
    def status(self) -> AppStatus:
        if self.latest_version is None and self.latest_build is None:
            return AppStatus.UNKNOWN
        if self.update_available:
            return AppStatus.UPDATE_AVAILABLE
        return AppStatus.OK

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.app_name,
            "path": str(self.app_path),
            "source": self.source,
            "installed_version": self.installed_version,
            "installed_build": self.installed_build,
            "latest_version": self.latest_version,
            "latest_build": self.latest_build,
            "release_url": self.release_url,
            "status": self.status.value,
        }
