"""Tests for the update orchestrator."""

import asyncio
import gc
import threading

import pytest

from conftest import FakeMethod, FakeWatcher, RecordingProgress, write_bad_date_bundle
from update_checker import orchestrator as orchestrator_module
from update_checker.orchestrator import UpdateOrchestrator


def make_orchestrator(apps_dir, methods, progress=None, delegate=None, watcher=None):
    return UpdateOrchestrator(
        methods=methods,
        progress_observer=progress,
        app_update_delegate=delegate,
        applications_dir=apps_dir,
        watcher=watcher if watcher is not None else FakeWatcher(),
    )


@pytest.mark.asyncio
async def test_chain_resolves_each_app_once(apps_dir, make_bundle, progress):
    """Two methods, one app each, and one app without metadata."""
    make_bundle("A")
    make_bundle("B")
    (apps_dir / "C.app").mkdir()

    first = FakeMethod("first", resolves={"A.app"})
    second = FakeMethod("second", resolves={"B.app"})
    orchestrator = make_orchestrator(apps_dir, [first, second], progress)

    result = await orchestrator.run()

    assert progress.starts == [3]
    assert progress.checked == 3
    assert progress.events[0] == ("start", 3)
    assert first.called_names == ["A.app", "B.app"]
    assert second.called_names == ["B.app"]
    assert [path.name for path in result.resolved["first"]] == ["A.app"]
    assert [path.name for path in result.resolved["second"]] == ["B.app"]
    assert [path.name for path in result.unresolved] == ["C.app"]


@pytest.mark.asyncio
async def test_resolved_app_skips_later_methods(apps_dir, make_bundle):
    for name in ("One", "Two", "Three"):
        make_bundle(name)

    methods = [
        FakeMethod("m1", resolves={"One.app"}),
        FakeMethod("m2", resolves={"One.app", "Two.app"}),
        FakeMethod("m3", resolves={"One.app", "Two.app", "Three.app"}),
    ]
    orchestrator = make_orchestrator(apps_dir, methods)

    result = await orchestrator.run()

    assert methods[0].called_names == ["One.app", "Three.app", "Two.app"]
    assert methods[1].called_names == ["Three.app", "Two.app"]
    assert methods[2].called_names == ["Three.app"]
    assert result.unresolved == []
    assert result.resolved_count == 3


@pytest.mark.asyncio
async def test_methods_receive_installed_version_and_build(apps_dir, make_bundle):
    bundle = make_bundle("Editor", version="2.1.0", build="2104")
    method = FakeMethod("m")
    orchestrator = make_orchestrator(apps_dir, [method])

    await orchestrator.run()

    assert method.calls == [(bundle, "2.1.0", "2104")]


@pytest.mark.asyncio
async def test_app_without_metadata_is_counted_but_never_checked(apps_dir, make_bundle, progress):
    make_bundle("NoBuild", build=None)
    (apps_dir / ".DS_Store").write_text("")

    method = FakeMethod("m", resolves={"NoBuild.app", ".DS_Store"})
    orchestrator = make_orchestrator(apps_dir, [method], progress)

    result = await orchestrator.run()

    assert method.calls == []
    assert progress.starts == [2]
    assert progress.checked == 2
    assert len(result.unresolved) == 2


@pytest.mark.asyncio
async def test_empty_directory_still_reports_start(apps_dir, progress):
    method = FakeMethod("m")
    orchestrator = make_orchestrator(apps_dir, [method], progress)

    result = await orchestrator.run()

    assert progress.events == [("start", 0)]
    assert result.total == 0
    assert method.calls == []


@pytest.mark.asyncio
async def test_missing_directory_is_a_silent_no_op(tmp_path, progress):
    orchestrator = UpdateOrchestrator(
        methods=[FakeMethod("m")],
        progress_observer=progress,
        applications_dir=tmp_path / "missing",
    )

    assert await orchestrator.run() is None
    assert progress.events == []
    assert orchestrator.watcher is None


@pytest.mark.asyncio
async def test_listing_failure_aborts_without_progress(apps_dir, make_bundle, progress, monkeypatch):
    make_bundle("A")

    def deny(path):
        raise PermissionError(13, "Permission denied", str(path))

    monkeypatch.setattr(orchestrator_module.os, "listdir", deny)
    orchestrator = make_orchestrator(apps_dir, [FakeMethod("m")], progress)

    assert await orchestrator.run() is None
    assert progress.events == []


@pytest.mark.asyncio
async def test_repeated_runs_report_same_total(apps_dir, make_bundle, progress):
    make_bundle("A")
    make_bundle("B")
    orchestrator = make_orchestrator(apps_dir, [FakeMethod("m", resolves={"A.app"})], progress)

    await orchestrator.run()
    await orchestrator.run()

    assert progress.starts == [2, 2]
    assert progress.checked == 4


@pytest.mark.asyncio
async def test_method_exception_counts_as_unresolved(apps_dir, make_bundle, progress):
    make_bundle("A")
    broken = FakeMethod("broken", error=RuntimeError("boom"))
    fallback = FakeMethod("fallback", resolves={"A.app"})
    orchestrator = make_orchestrator(apps_dir, [broken, fallback], progress)

    result = await orchestrator.run()

    assert broken.called_names == ["A.app"]
    assert fallback.called_names == ["A.app"]
    assert [path.name for path in result.resolved["fallback"]] == ["A.app"]
    assert progress.checked == 1


@pytest.mark.asyncio
async def test_stage_checks_apps_concurrently(apps_dir, make_bundle):
    for name in ("A", "B", "C"):
        make_bundle(name)

    running = 0
    peak = 0

    class SlowMethod(FakeMethod):
        async def check(self, path, installed_version, installed_build):
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0.01)
            running -= 1
            return await super().check(path, installed_version, installed_build)

    orchestrator = make_orchestrator(apps_dir, [SlowMethod("slow")])
    await orchestrator.run()

    assert peak == 3


@pytest.mark.asyncio
async def test_concurrent_runs_are_serialized(apps_dir, make_bundle, progress):
    make_bundle("A")
    make_bundle("B")

    class SlowMethod(FakeMethod):
        async def check(self, path, installed_version, installed_build):
            await asyncio.sleep(0.01)
            return True

    orchestrator = make_orchestrator(apps_dir, [SlowMethod("slow")], progress)
    await asyncio.gather(orchestrator.run(), orchestrator.run())

    assert progress.events == [
        ("start", 2), ("checked", None), ("checked", None),
        ("start", 2), ("checked", None), ("checked", None),
    ]


@pytest.mark.asyncio
async def test_watch_is_created_once_and_resumed_every_run(apps_dir, fake_watcher):
    orchestrator = make_orchestrator(apps_dir, [FakeMethod("m")], watcher=fake_watcher)

    await orchestrator.run()
    await orchestrator.run()

    assert fake_watcher.start_calls == [apps_dir]
    assert fake_watcher.resume_calls == 2


@pytest.mark.asyncio
async def test_failed_watch_is_retried_on_next_run(apps_dir, progress):
    watcher = FakeWatcher(start_ok=False)
    orchestrator = make_orchestrator(apps_dir, [FakeMethod("m")], progress, watcher=watcher)

    await orchestrator.run()
    watcher.start_ok = True
    await orchestrator.run()

    assert watcher.start_calls == [apps_dir, apps_dir]
    assert watcher.is_started
    assert progress.starts == [0, 0]


@pytest.mark.asyncio
async def test_directory_change_triggers_rescan(apps_dir, make_bundle, progress, fake_watcher):
    make_bundle("A")
    orchestrator = make_orchestrator(apps_dir, [FakeMethod("m")], progress, watcher=fake_watcher)
    await orchestrator.run()

    make_bundle("B")
    thread = threading.Thread(target=fake_watcher.on_change)
    thread.start()
    thread.join()

    for _ in range(100):
        if len(progress.starts) == 2:
            break
        await asyncio.sleep(0.01)
    await orchestrator.wait_for_rescans()

    assert progress.starts == [1, 2]
    assert progress.checked == 3


@pytest.mark.asyncio
async def test_burst_of_changes_queues_one_rescan(apps_dir, make_bundle, progress, fake_watcher):
    make_bundle("A")
    orchestrator = make_orchestrator(apps_dir, [FakeMethod("m")], progress, watcher=fake_watcher)
    await orchestrator.run()

    for _ in range(5):
        fake_watcher.on_change()
    await asyncio.sleep(0)
    await asyncio.sleep(0)
    await orchestrator.wait_for_rescans()

    assert progress.starts == [1, 1]


@pytest.mark.asyncio
async def test_close_stops_watcher(apps_dir, fake_watcher):
    orchestrator = make_orchestrator(apps_dir, [FakeMethod("m")], watcher=fake_watcher)
    await orchestrator.run()

    orchestrator.close()

    assert fake_watcher.stopped


@pytest.mark.asyncio
async def test_observer_is_not_kept_alive(apps_dir, make_bundle):
    make_bundle("A")
    observer = RecordingProgress()
    orchestrator = make_orchestrator(apps_dir, [FakeMethod("m")], observer)

    del observer
    gc.collect()

    assert orchestrator.progress_observer is None
    result = await orchestrator.run()
    assert result.total == 1


@pytest.mark.asyncio
async def test_delegate_is_bound_to_every_method(apps_dir, delegate):
    methods = [FakeMethod("m1"), FakeMethod("m2")]
    orchestrator = make_orchestrator(apps_dir, methods, delegate=delegate)

    assert orchestrator.app_update_delegate is delegate
    assert all(method.delegate is delegate for method in methods)


@pytest.mark.asyncio
async def test_damaged_plist_is_counted_but_never_checked(apps_dir, make_bundle, progress):
    make_bundle("Good")
    write_bad_date_bundle(apps_dir, "Damaged")
    method = FakeMethod("m", resolves={"Good.app", "Damaged.app"})
    orchestrator = make_orchestrator(apps_dir, [method], progress)

    result = await orchestrator.run()

    assert progress.starts == [2]
    assert progress.checked == 2
    assert method.called_names == ["Good.app"]
    assert [path.name for path in result.unresolved] == ["Damaged.app"]
