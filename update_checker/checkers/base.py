"""Base class for update check methods."""

import weakref
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from ..logging_config import get_logger
from ..models import UpdateInfo
from ..observers import AppUpdateDelegate

logger = get_logger(__name__)


class UpdateCheckMethod(ABC):
    """Abstract base class for update check methods.

    A method is one link in the orchestrator's checker chain. It either
    resolves an app (returns True and reports an UpdateInfo to the bound
    delegate) or declines it (returns False) so the next method can try.
    """

    _delegate_ref: Optional["weakref.ReferenceType[AppUpdateDelegate]"] = None

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the name this method is configured by."""
        pass

    @abstractmethod
    async def check(
        self,
        path: Path,
        installed_version: str,
        installed_build: str,
    ) -> bool:
        """Try to determine whether a newer version of the app exists.

        Args:
            path: Path to the application bundle.
            installed_version: Installed short version string.
            installed_build: Installed build number.

        Returns:
            True if the update status was determined, either up to date
            or update available. False if this method can't tell.
        """
        pass

    def bind_delegate(self, delegate: Optional[AppUpdateDelegate]) -> None:
        """Bind the delegate results are reported to (held weakly)."""
        self._delegate_ref = weakref.ref(delegate) if delegate is not None else None

    @property
    def delegate(self) -> Optional[AppUpdateDelegate]:
        if self._delegate_ref is None:
            return None
        return self._delegate_ref()

    def report(self, info: UpdateInfo) -> None:
        """Hand a result to the delegate, if it is still alive."""
        delegate = self.delegate
        if delegate is None:
            logger.debug("No delegate for %s result on %s", self.name, info.app_path)
            return
        delegate.app_did_update(info)
