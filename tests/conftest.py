"""
Shared test fixtures for update checker tests.

Provides an isolated applications directory with fake app bundles, and
recording doubles for the orchestrator's collaborators.
"""

import plistlib
from pathlib import Path
from typing import Optional

import pytest

from update_checker.checkers import UpdateCheckMethod
from update_checker.observers import AppUpdateDelegate, ProgressObserver


def write_bundle(
    directory: Path,
    name: str,
    version: Optional[str] = "1.0",
    build: Optional[str] = "100",
    extra: Optional[dict] = None,
    fmt=plistlib.FMT_XML,
) -> Path:
    """Create `<directory>/<name>.app/Contents/Info.plist`."""
    bundle = directory / f"{name}.app"
    contents = bundle / "Contents"
    contents.mkdir(parents=True)

    info = {"CFBundleName": name, "CFBundleIdentifier": f"com.example.{name.lower()}"}
    if version is not None:
        info["CFBundleShortVersionString"] = version
    if build is not None:
        info["CFBundleVersion"] = build
    info.update(extra or {})

    with open(contents / "Info.plist", "wb") as f:
        plistlib.dump(info, f, fmt=fmt)
    return bundle


@pytest.fixture
def apps_dir(tmp_path):
    """Empty applications directory."""
    directory = tmp_path / "Applications"
    directory.mkdir()
    return directory


@pytest.fixture
def make_bundle(apps_dir):
    """Factory creating app bundles in `apps_dir`."""
    def _make(name, **kwargs):
        return write_bundle(apps_dir, name, **kwargs)
    return _make


class RecordingProgress(ProgressObserver):
    def __init__(self):
        self.events = []

    @property
    def starts(self):
        return [count for event, count in self.events if event == "start"]

    @property
    def checked(self):
        return sum(1 for event, _ in self.events if event == "checked")

    def start_checking(self, number_of_apps):
        self.events.append(("start", number_of_apps))

    def did_check_app(self):
        self.events.append(("checked", None))


class RecordingDelegate(AppUpdateDelegate):
    def __init__(self):
        self.infos = []

    def app_did_update(self, info):
        self.infos.append(info)


class FakeMethod(UpdateCheckMethod):
    """Resolves the apps whose bundle names are in `resolves`."""

    def __init__(self, name, resolves=(), error=None):
        self._name = name
        self.resolves = set(resolves)
        self.error = error
        self.calls = []

    @property
    def name(self):
        return self._name

    @property
    def called_names(self):
        return sorted(path.name for path, _, _ in self.calls)

    async def check(self, path, installed_version, installed_build):
        self.calls.append((path, installed_version, installed_build))
        if self.error is not None:
            raise self.error
        return path.name in self.resolves


class FakeWatcher:
    """Stands in for DirectoryWatcher without touching the filesystem."""

    def __init__(self, start_ok=True):
        self.start_ok = start_ok
        self.start_calls = []
        self.resume_calls = 0
        self.pause_calls = 0
        self.stopped = False
        self.on_change = None
        self._started = False

    @property
    def is_started(self):
        return self._started

    def start(self, path, on_change):
        self.start_calls.append(path)
        if self.start_ok:
            self._started = True
            self.on_change = on_change
        return self.start_ok

    def resume(self):
        self.resume_calls += 1

    def pause(self):
        self.pause_calls += 1

    def stop(self):
        self.stopped = True
        self._started = False


@pytest.fixture
def progress():
    return RecordingProgress()


@pytest.fixture
def delegate():
    return RecordingDelegate()


@pytest.fixture
def fake_watcher():
    return FakeWatcher()


BAD_DATE_PLIST = """<?xml version="1.0" encoding="UTF-8"?>
<!DOCTYPE plist PUBLIC "-//Apple//DTD PLIST 1.0//EN" "http://www.apple.com/DTDs/PropertyList-1.0.dtd">
<plist version="1.0">
<dict>
  <key>CFBundleShortVersionString</key>
  <string>1.0</string>
  <key>CFBundleVersion</key>
  <string>100</string>
  <key>Built</key>
  <date>yesterday</date>
</dict>
</plist>
"""


def write_bad_date_bundle(directory: Path, name: str) -> Path:
    """Bundle whose plist has valid version fields but an unparseable date."""
    contents = directory / f"{name}.app" / "Contents"
    contents.mkdir(parents=True)
    (contents / "Info.plist").write_text(BAD_DATE_PLIST)
    return directory / f"{name}.app"
