"""Mac App Store checker using the iTunes lookup API."""

from pathlib import Path
from typing import Any, Optional

import httpx

from .. import metadata
from ..constants import (
    APP_STORE_RECEIPT,
    APP_STORE_TIMEOUT,
    CONTENTS_DIR,
    DEFAULT_USER_AGENT,
    ITUNES_LOOKUP_URL,
)
from ..logging_config import get_logger
from ..models import UpdateInfo
from .base import UpdateCheckMethod

logger = get_logger(__name__)


class AppStoreMethod(UpdateCheckMethod):
    """Check apps installed from the Mac App Store."""

    def __init__(
        self,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        lookup_url: str = ITUNES_LOOKUP_URL,
    ) -> None:
        """Initialize the App Store checker.

        Args:
            transport: Optional httpx transport, used to stub the network.
            lookup_url: Catalog lookup endpoint.
        """
        self._transport = transport
        self._lookup_url = lookup_url

    @property
    def name(self) -> str:
        return "app_store"

    def has_receipt(self, path: Path) -> bool:
        """Apps from the store carry a receipt inside the bundle."""
        return Path(path, CONTENTS_DIR, *APP_STORE_RECEIPT).is_file()

    async def check(self, path: Path, installed_version: str, installed_build: str) -> bool:
        if not self.has_receipt(path):
            return False

        bundle_id = metadata.bundle_identifier(path)
        if not bundle_id:
            logger.debug("No bundle identifier for %s", path)
            return False

        try:
            entry = await self._lookup(bundle_id)
        except httpx.HTTPStatusError as e:
            logger.error(
                "App Store lookup for %s failed: HTTP %d", bundle_id, e.response.status_code
            )
            return False
        except (httpx.HTTPError, ValueError) as e:
            logger.error("App Store lookup for %s failed: %s", bundle_id, e)
            return False

        if entry is None or not isinstance(entry.get("version"), str):
            logger.debug("%s not found in the App Store catalog", bundle_id)
            return False

        self.report(UpdateInfo(
            app_path=Path(path),
            source=self.name,
            installed_version=installed_version,
            installed_build=installed_build,
            latest_version=entry["version"],
            release_url=entry.get("trackViewUrl"),
            release_notes=entry.get("releaseNotes"),
        ))
        return True

    async def _lookup(self, bundle_id: str) -> Optional[dict[str, Any]]:
        """Look up a bundle identifier in the store catalog.

        Args:
            bundle_id: The app's CFBundleIdentifier.

        Returns:
            The first catalog entry, or None if there is none.
        """
        headers = {"User-Agent": DEFAULT_USER_AGENT}
        params = {"bundleId": bundle_id, "entity": "macSoftware"}

        async with httpx.AsyncClient(
            timeout=APP_STORE_TIMEOUT,
            transport=self._transport,
        ) as client:
            response = await client.get(self._lookup_url, params=params, headers=headers)
            response.raise_for_status()
            data = response.json()

        results = data.get("results", []) if isinstance(data, dict) else []
        if not isinstance(results, list) or not results or not isinstance(results[0], dict):
            return None
        return results[0]
