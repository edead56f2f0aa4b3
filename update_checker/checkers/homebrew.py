"""Homebrew cask checker for macOS."""

import asyncio
import json
import shutil
import time
from pathlib import Path
from typing import Any, Optional

from ..constants import HOMEBREW_CACHE_TTL, HOMEBREW_TIMEOUT
from ..logging_config import get_logger
from ..models import UpdateInfo
from .base import UpdateCheckMethod

logger = get_logger(__name__)


def _artifact_apps(cask: dict[str, Any]) -> list[str]:
    """List the .app bundle names a cask installs."""
    apps = []
    for artifact in cask.get("artifacts", []):
        if isinstance(artifact, dict):
            entries = artifact.get("app", [])
        elif isinstance(artifact, list):
            entries = artifact
        else:
            continue
        for entry in entries:
            if isinstance(entry, str) and entry.endswith(".app"):
                apps.append(Path(entry).name)
    return apps


def build_cask_index(data: dict[str, Any]) -> dict[str, dict[str, Any]]:
    """Map bundle file names to the installed casks that provide them."""
    index: dict[str, dict[str, Any]] = {}
    for cask in data.get("casks", []):
        if not isinstance(cask, dict):
            continue
        for app_name in _artifact_apps(cask):
            index[app_name] = cask
    return index


def split_cask_version(version: str) -> tuple[str, Optional[str]]:
    """Split a cask version like "1.2.3,4567" into version and build."""
    version, _, build = version.partition(",")
    return version, build or None


class HomebrewCaskMethod(UpdateCheckMethod):
    """Check apps installed through Homebrew casks."""

    def __init__(self, cache_ttl: float = HOMEBREW_CACHE_TTL) -> None:
        self._cache_ttl = cache_ttl
        self._index: Optional[dict[str, dict[str, Any]]] = None
        self._index_time = 0.0
        self._index_lock = asyncio.Lock()

    @property
    def name(self) -> str:
        return "homebrew"

    def _is_homebrew_available(self) -> bool:
        """Check if Homebrew is available on the system."""
        return shutil.which("brew") is not None

    async def check(self, path: Path, installed_version: str, installed_build: str) -> bool:
        if not self._is_homebrew_available():
            return False

        try:
            index = await self._get_cask_index()
        except asyncio.TimeoutError:
            logger.error("Timeout reading Homebrew cask info")
            return False

        cask = index.get(Path(path).name)
        if cask is None or not isinstance(cask.get("version"), str):
            return False

        latest_version, latest_build = split_cask_version(cask["version"])

        self.report(UpdateInfo(
            app_path=Path(path),
            source=self.name,
            installed_version=installed_version,
            installed_build=installed_build,
            latest_version=latest_version,
            latest_build=latest_build,
            release_url=cask.get("homepage"),
        ))
        return True

    async def _get_cask_index(self) -> dict[str, dict[str, Any]]:
        """Get the cached cask index, refreshing it when stale.

        Every app in a pass is checked concurrently, so the lock keeps
        it to a single brew invocation.
        """
        async with self._index_lock:
            age = time.monotonic() - self._index_time
            if self._index is None or age > self._cache_ttl:
                data = await self._get_installed_casks()
                self._index = build_cask_index(data)
                self._index_time = time.monotonic()
                logger.debug("Indexed %d Homebrew cask apps", len(self._index))
            return self._index

    async def _get_installed_casks(self) -> dict[str, Any]:
        """Get info on all installed casks from Homebrew.

        Returns:
            Parsed `brew info` JSON, or an empty dict if brew failed.
        """
        try:
            proc = await asyncio.create_subprocess_exec(
                "brew", "info", "--json=v2", "--installed", "--cask",
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE
            )
            stdout, _ = await asyncio.wait_for(
                proc.communicate(),
                timeout=HOMEBREW_TIMEOUT
            )

            if proc.returncode != 0:
                logger.debug("brew info returned %d", proc.returncode)
                return {}

            data = json.loads(stdout.decode("utf-8"))
            return data if isinstance(data, dict) else {}

        except json.JSONDecodeError as e:
            logger.error("Failed to parse brew info output: %s", e)
            return {}
        except asyncio.TimeoutError:
            logger.warning("brew info timed out")
            raise
        except OSError as e:
            logger.error("Error running brew: %s", e)
            return {}
