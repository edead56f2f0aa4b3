"""Watching the applications directory for added and removed bundles."""

import threading
from pathlib import Path
from typing import Callable, Optional, Union

from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from .constants import WATCH_DEBOUNCE_SECONDS
from .logging_config import get_logger

logger = get_logger(__name__)

# Open/close events fire on plain reads and never change the listing
WATCHED_EVENT_TYPES = frozenset({
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
})


class _ChangeHandler(FileSystemEventHandler):
    def __init__(self, watcher: "DirectoryWatcher") -> None:
        super().__init__()
        self._watcher = watcher

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.event_type in WATCHED_EVENT_TYPES:
            self._watcher.notify_change()


class DirectoryWatcher:
    """Calls back when the contents of a directory change.

    Bursts of filesystem events are coalesced into a single callback after
    `debounce` seconds of quiet. The callback runs on a background thread.

    A paused watcher keeps its subscription and drops events until it is
    resumed.
    """

    def __init__(
        self,
        debounce: float = WATCH_DEBOUNCE_SECONDS,
        observer_factory: Callable[[], Observer] = Observer,
    ) -> None:
        self._debounce = debounce
        self._observer_factory = observer_factory
        self._observer: Optional[Observer] = None
        self._on_change: Optional[Callable[[], None]] = None
        self._path: Optional[Path] = None
        self._paused = False
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()

    @property
    def path(self) -> Optional[Path]:
        return self._path

    @property
    def is_started(self) -> bool:
        return self._observer is not None

    @property
    def is_active(self) -> bool:
        return self.is_started and not self._paused

    def start(self, path: Union[str, Path], on_change: Callable[[], None]) -> bool:
        """Start watching `path`.

        Does nothing if the watcher is already started.

        Args:
            path: Directory to watch (not recursive).
            on_change: Called after each batch of changes.

        Returns:
            True if the watch is established.
        """
        with self._lock:
            if self._observer is not None:
                return True

            observer = self._observer_factory()
            observer.daemon = True
            try:
                observer.schedule(_ChangeHandler(self), str(path), recursive=False)
                observer.start()
            except OSError as e:
                logger.warning("Could not watch %s: %s", path, e)
                return False

            self._observer = observer
            self._on_change = on_change
            self._path = Path(path)
            self._paused = False

        logger.debug("Watching %s for changes", path)
        return True

    def pause(self) -> None:
        with self._lock:
            self._paused = True
            self._cancel_timer()

    def resume(self) -> None:
        with self._lock:
            self._paused = False

    def stop(self) -> None:
        """Stop watching and release the subscription."""
        with self._lock:
            observer = self._observer
            self._observer = None
            self._on_change = None
            self._cancel_timer()

        if observer is not None:
            observer.stop()
            observer.join(timeout=5)
            logger.debug("Stopped watching %s", self._path)

    def notify_change(self) -> None:
        """Record a filesystem change and (re)arm the debounce timer."""
        with self._lock:
            if self._paused or self._on_change is None:
                return
            self._cancel_timer()
            self._timer = threading.Timer(self._debounce, self._fire)
            self._timer.daemon = True
            self._timer.start()

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _fire(self) -> None:
        with self._lock:
            self._timer = None
            callback = None if self._paused else self._on_change

        if callback is not None:
            callback()
