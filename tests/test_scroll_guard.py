from __future__ import annotations

from fake_viewer import FakeScheduler, FakeViewer
from varhighlighter.highlight.scroll_guard import ScrollGuard
from varhighlighter.viewer.adapter import ScrollSnapshot


def _locked_guard(viewer, scheduler, lock_ms=1100):
    guard = ScrollGuard(viewer, scheduler, lock_ms=lock_ms)
    snapshots = []
    guard.capture(snapshots.append)
    assert guard.lock(snapshots[0]) is True
    return guard


def test_scroll_restored_within_lock_window_only() -> None:
    viewer = FakeViewer()
    viewer.scroll_top = 400.0
    scheduler = FakeScheduler()
    guard = _locked_guard(viewer, scheduler)
    assert viewer.suppressed == 1

    scheduler.advance(100)
    viewer.user_scroll(900)
    assert viewer.scroll_top == 400.0

    scheduler.advance(500)
    viewer.user_scroll(900)
    assert viewer.scroll_top == 400.0
    assert guard.restore_count == 2

    scheduler.advance(600)
    assert not guard.locked
    assert viewer.restored == 1
    assert viewer.scroll_listener_count == 0

    viewer.user_scroll(900)
    assert viewer.scroll_top == 900.0
    assert guard.restore_count == 2


def test_sub_pixel_drift_is_not_restored() -> None:
    viewer = FakeViewer()
    viewer.scroll_top = 400.0
    scheduler = FakeScheduler()
    guard = _locked_guard(viewer, scheduler)
    viewer.user_scroll(400.6)
    assert guard.restore_count == 0
    assert viewer.scroll_writes == []


def test_horizontal_scroll_is_restored_too() -> None:
    viewer = FakeViewer()
    viewer.scroll_top, viewer.scroll_left = 100.0, 20.0
    scheduler = FakeScheduler()
    _locked_guard(viewer, scheduler)
    viewer.user_scroll(100.0, 250.0)
    assert viewer.scroll_writes == [(100.0, 20.0)]


def test_missing_scroll_container_disables_guard() -> None:
    viewer = FakeViewer(has_container=False)
    scheduler = FakeScheduler()
    guard = ScrollGuard(viewer, scheduler)
    snapshots = []
    guard.capture(snapshots.append)
    assert snapshots == [None]
    assert guard.lock(None) is False
    assert viewer.suppressed == 0
    assert viewer.scroll_listener_count == 0
    assert scheduler.pending == 0


def test_capture_failure_reports_no_snapshot() -> None:
    class _Broken(FakeViewer):
        def read_scroll_position(self, callback):
            raise RuntimeError("no realm")

    guard = ScrollGuard(_Broken(), FakeScheduler())
    snapshots = []
    guard.capture(snapshots.append)
    assert snapshots == [None]


def test_release_is_idempotent_and_relock_replaces_old_lock() -> None:
    viewer = FakeViewer()
    scheduler = FakeScheduler()
    guard = ScrollGuard(viewer, scheduler, lock_ms=1000)
    guard.lock(ScrollSnapshot(10.0, 0.0))
    guard.lock(ScrollSnapshot(20.0, 0.0))
    assert viewer.scroll_listener_count == 1
    assert viewer.restored == 1
    assert guard.snapshot.scroll_top == 20.0

    guard.release()
    guard.release()
    assert viewer.restored == 2
    assert scheduler.pending == 0
