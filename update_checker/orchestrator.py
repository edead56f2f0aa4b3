"""Orchestrates update checking across the installed applications."""

import asyncio
import os
import weakref
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional, Union

from .checkers import UpdateCheckMethod, create_methods
from .constants import MAX_CONCURRENT_CHECKS
from .logging_config import get_logger
from .metadata import AppMetadataReader
from .models import InstalledApp
from .observers import AppUpdateDelegate, ProgressObserver
from .utils import resolve_applications_dir
from .watcher import DirectoryWatcher

logger = get_logger(__name__)


@dataclass
class ScanResult:
    """Outcome of a single check pass."""

    directory: Path
    total: int
    resolved: dict[str, list[Path]] = field(default_factory=dict)
    unresolved: list[Path] = field(default_factory=list)

    @property
    def resolved_count(self) -> int:
        return sum(len(paths) for paths in self.resolved.values())


class UpdateOrchestrator:
    """Checks every installed app against an ordered chain of methods.

    Each method only sees the apps that every earlier method declined, so
    cheap sources can settle apps before slower ones are consulted. Apps
    without readable version metadata are never handed to a method but
    are still counted in progress.

    Passes are serialized: a pass triggered while another is running waits
    for it to finish. The applications directory is watched after the first
    pass and changes to it queue another pass.

    The progress observer and the update delegate are held by weak
    reference; callers must keep them alive.
    """

    def __init__(
        self,
        methods: Optional[Iterable[UpdateCheckMethod]] = None,
        progress_observer: Optional[ProgressObserver] = None,
        app_update_delegate: Optional[AppUpdateDelegate] = None,
        applications_dir: Optional[Union[str, Path]] = None,
        watcher: Optional[DirectoryWatcher] = None,
        metadata_reader: Optional[AppMetadataReader] = None,
        max_concurrent: int = MAX_CONCURRENT_CHECKS,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            methods: Check methods, highest priority first. Defaults to
                the configured method order.
            progress_observer: Receives pass progress.
            app_update_delegate: Receives results, via the methods.
            applications_dir: Directory to scan instead of the platform one.
            watcher: Directory watcher to use; created on first run if None.
            metadata_reader: Reader for bundle metadata.
            max_concurrent: Maximum number of concurrent method calls.
        """
        self._methods = list(methods) if methods is not None else create_methods()
        self._applications_dir = applications_dir
        self._watcher = watcher
        self._reader = metadata_reader or AppMetadataReader()
        self._semaphore = asyncio.Semaphore(max_concurrent)
        self._pass_lock = asyncio.Lock()

        self._progress_ref: Optional["weakref.ReferenceType[ProgressObserver]"] = None
        self._delegate_ref: Optional["weakref.ReferenceType[AppUpdateDelegate]"] = None
        self.progress_observer = progress_observer
        self.app_update_delegate = app_update_delegate

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._rescan_queued = False
        self._rescan_tasks: set[asyncio.Task] = set()

    @property
    def methods(self) -> list[UpdateCheckMethod]:
        return list(self._methods)

    @property
    def watcher(self) -> Optional[DirectoryWatcher]:
        return self._watcher

    @property
    def progress_observer(self) -> Optional[ProgressObserver]:
        return self._progress_ref() if self._progress_ref is not None else None

    @progress_observer.setter
    def progress_observer(self, observer: Optional[ProgressObserver]) -> None:
        self._progress_ref = weakref.ref(observer) if observer is not None else None

    @property
    def app_update_delegate(self) -> Optional[AppUpdateDelegate]:
        return self._delegate_ref() if self._delegate_ref is not None else None

    @app_update_delegate.setter
    def app_update_delegate(self, delegate: Optional[AppUpdateDelegate]) -> None:
        self._delegate_ref = weakref.ref(delegate) if delegate is not None else None
        for method in self._methods:
            method.bind_delegate(delegate)

    async def run(self) -> Optional[ScanResult]:
        """Run one check pass over the applications directory.

        Returns:
            The pass result, or None if the directory couldn't be read.
        """
        self._loop = asyncio.get_running_loop()
        async with self._pass_lock:
            return await self._run_pass()

    async def _run_pass(self) -> Optional[ScanResult]:
        directory = resolve_applications_dir(self._applications_dir)
        if directory is None:
            logger.debug("Applications directory not found, skipping pass")
            return None

        self._ensure_watching(directory)

        try:
            entries = sorted(os.listdir(directory))
        except OSError as e:
            logger.debug("Could not list %s: %s", directory, e)
            return None

        total = len(entries)
        self._notify_start(total)
        logger.info("Checking %d apps in %s", total, directory)

        pending = [self._reader.read_app(directory / entry) for entry in entries]
        result = ScanResult(directory=directory, total=total)

        for method in self._methods:
            pending, resolved = await self._run_stage(method, pending)
            result.resolved.setdefault(method.name, []).extend(app.path for app in resolved)
            logger.debug("%s resolved %d apps, %d left", method.name, len(resolved), len(pending))

        result.unresolved = [app.path for app in pending]

        for _ in range(total):
            self._notify_checked()

        logger.info(
            "Pass complete: %d resolved, %d unresolved",
            result.resolved_count, len(result.unresolved),
        )
        return result

    async def _run_stage(
        self,
        method: UpdateCheckMethod,
        pending: list[InstalledApp],
    ) -> tuple[list[InstalledApp], list[InstalledApp]]:
        """Run one method over every pending app that has metadata.

        Returns:
            Tuple of (still pending, resolved by this method).
        """
        checkable = [app for app in pending if app.has_metadata]
        if not checkable:
            return pending, []

        outcomes = await asyncio.gather(*(self._check_app(method, app) for app in checkable))
        resolved_ids = {id(app) for app, done in zip(checkable, outcomes) if done}

        still_pending = [app for app in pending if id(app) not in resolved_ids]
        resolved = [app for app in checkable if id(app) in resolved_ids]
        return still_pending, resolved

    async def _check_app(self, method: UpdateCheckMethod, app: InstalledApp) -> bool:
        async with self._semaphore:
            try:
                logger.debug("Checking %s via %s", app.name, method.name)
                return bool(await method.check(app.path, app.version, app.build_number))
            except Exception:
                logger.exception("Error checking %s via %s", app.name, method.name)
                return False

    def _notify_start(self, number_of_apps: int) -> None:
        observer = self.progress_observer
        if observer is not None:
            observer.start_checking(number_of_apps)

    def _notify_checked(self) -> None:
        observer = self.progress_observer
        if observer is not None:
            observer.did_check_app()

    def _ensure_watching(self, directory: Path) -> None:
        if self._watcher is None:
            self._watcher = DirectoryWatcher()

        if not self._watcher.is_started:
            self._watcher.start(directory, self._on_directory_change)

        self._watcher.resume()

    def _on_directory_change(self) -> None:
        """Watcher callback; runs on the watcher's thread."""
        loop = self._loop
        if loop is None or loop.is_closed():
            return

        try:
            loop.call_soon_threadsafe(self._queue_rescan)
        except RuntimeError as e:
            logger.debug("Dropping directory change, event loop closed: %s", e)

    def _queue_rescan(self) -> None:
        # A queued pass that hasn't started yet will see this change too
        if self._rescan_queued:
            return

        self._rescan_queued = True
        task = asyncio.ensure_future(self._rescan())
        self._rescan_tasks.add(task)
        task.add_done_callback(self._rescan_tasks.discard)

    async def _rescan(self) -> None:
        async with self._pass_lock:
            self._rescan_queued = False
            logger.info("Applications directory changed, checking again")
            try:
                await self._run_pass()
            except Exception:
                logger.exception("Check pass triggered by directory change failed")

    async def wait_for_rescans(self) -> None:
        """Wait until all passes queued by directory changes have finished."""
        while self._rescan_tasks:
            await asyncio.gather(*list(self._rescan_tasks), return_exceptions=True)

    def close(self) -> None:
        """Stop watching and drop any queued passes."""
        if self._watcher is not None:
            self._watcher.stop()

        for task in list(self._rescan_tasks):
            task.cancel()
        self._rescan_queued = False
