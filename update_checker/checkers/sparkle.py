"""Sparkle appcast checker."""

import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Optional

import httpx

from .. import metadata
from ..constants import DEFAULT_USER_AGENT, SPARKLE_NAMESPACE, SPARKLE_TIMEOUT
from ..logging_config import get_logger
from ..models import UpdateInfo
from ..utils import parse_version
from .base import UpdateCheckMethod

logger = get_logger(__name__)

_NS = "{%s}" % SPARKLE_NAMESPACE


def _text(element: Optional[ET.Element]) -> Optional[str]:
    if element is None or element.text is None:
        return None
    return element.text.strip() or None


def parse_appcast(content: str) -> list[dict[str, Optional[str]]]:
    """Parse the items of a Sparkle appcast.

    Versions may live on the enclosure as attributes (Sparkle 1) or on the
    item as elements (Sparkle 2); element values win.

    Args:
        content: Appcast XML.

    Returns:
        List of dicts with version, build, url and notes keys. Items with
        neither a version nor a build are dropped.

    Raises:
        ET.ParseError: If the content is not XML.
    """
    root = ET.fromstring(content)
    items = []

    for item in root.iter("item"):
        enclosure = item.find("enclosure")
        attrs = enclosure.attrib if enclosure is not None else {}

        build = _text(item.find(f"{_NS}version")) or attrs.get(f"{_NS}version")
        version = (
            _text(item.find(f"{_NS}shortVersionString"))
            or attrs.get(f"{_NS}shortVersionString")
        )

        if not build and not version:
            continue

        items.append({
            "version": version or build,
            "build": build,
            "url": _text(item.find("link")) or attrs.get("url"),
            "notes": _text(item.find(f"{_NS}releaseNotesLink")) or _text(item.find("description")),
        })

    return items


def newest_item(items: list[dict[str, Optional[str]]]) -> Optional[dict[str, Optional[str]]]:
    """Pick the newest appcast item, by build number then version."""
    if not items:
        return None
    return max(
        items,
        key=lambda item: (
            parse_version(item["build"] or ""),
            parse_version(item["version"] or ""),
        ),
    )


class SparkleMethod(UpdateCheckMethod):
    """Check apps that publish a Sparkle appcast feed."""

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        """Initialize the Sparkle checker.

        Args:
            transport: Optional httpx transport, used to stub the network.
        """
        self._transport = transport

    @property
    def name(self) -> str:
        return "sparkle"

    async def check(self, path: Path, installed_version: str, installed_build: str) -> bool:
        url = metadata.feed_url(path)
        if not url:
            return False

        try:
            content = await self._fetch_feed(url)
            item = newest_item(parse_appcast(content))
        except httpx.HTTPStatusError as e:
            logger.error("Appcast %s returned HTTP %d", url, e.response.status_code)
            return False
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.error("Error fetching appcast %s: %s", url, e)
            return False
        except ET.ParseError as e:
            logger.error("Malformed appcast %s: %s", url, e)
            return False

        if item is None:
            logger.debug("Appcast %s has no versioned items", url)
            return False

        self.report(UpdateInfo(
            app_path=Path(path),
            source=self.name,
            installed_version=installed_version,
            installed_build=installed_build,
            latest_version=item["version"],
            latest_build=item["build"],
            release_url=item["url"],
            release_notes=item["notes"],
        ))
        return True

    async def _fetch_feed(self, url: str) -> str:
        headers = {
            "User-Agent": DEFAULT_USER_AGENT,
            "Accept": "application/rss+xml,application/xml;q=0.9,*/*;q=0.8",
        }

        async with httpx.AsyncClient(
            timeout=SPARKLE_TIMEOUT,
            follow_redirects=True,
            transport=self._transport,
        ) as client:
            response = await client.get(url, headers=headers)
            response.raise_for_status()
            return response.text
