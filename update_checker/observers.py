"""Progress and update-result interfaces, plus console implementations."""

from abc import ABC, abstractmethod
from typing import Callable, Optional

from .models import AppStatus, UpdateInfo


class ProgressObserver(ABC):
    """Receives progress of an update checking pass."""

    @abstractmethod
    def start_checking(self, number_of_apps: int) -> None:
        """The pass has started.

        Args:
            number_of_apps: The number of apps that will be checked.
        """

    @abstractmethod
    def did_check_app(self) -> None:
        """A single app has been checked."""


class AppUpdateDelegate(ABC):
    """Receives update information found by a check method."""

    @abstractmethod
    def app_did_update(self, info: UpdateInfo) -> None:
        """A method resolved the update status of an app."""


class ConsoleProgress(ProgressObserver):
    """Prints a running "[n/total]" counter."""

    def __init__(self, write: Callable[[str], None] = print) -> None:
        self._write = write
        self.total = 0
        self.checked = 0

    def start_checking(self, number_of_apps: int) -> None:
        self.total = number_of_apps
        self.checked = 0
        self._write(f"Checking {number_of_apps} apps for updates...")

    def did_check_app(self) -> None:
        self.checked += 1
        if self.checked == self.total:
            self._write(f"  [{self.checked}/{self.total}] done")


class ConsoleReporter(AppUpdateDelegate):
    """Collects update results and prints them as they arrive."""

    def __init__(
        self,
        write: Optional[Callable[[str], None]] = print,
    ) -> None:
        self._write = write
        self.results: list[UpdateInfo] = []

    @property
    def updates_available(self) -> list[UpdateInfo]:
        return [info for info in self.results if info.update_available]

    def app_did_update(self, info: UpdateInfo) -> None:
        self.results.append(info)

        if self._write is None:
            return

        if info.status == AppStatus.UPDATE_AVAILABLE:
            self._write(
                f"  {info.app_name}... [UPDATE] {info.installed_version} -> "
                f"{info.latest_version} ({info.source})"
            )
        else:
            self._write(f"  {info.app_name}... [OK] {info.installed_version} ({info.source})")
