"""
Keep the reader where they are while a search runs.

The engine scrolls to the current match after a search. For a fixed window
after the search is dispatched the guard (1) swaps the engine's
scroll-into-view entry points for no-ops and (2) snaps any scroll it observes
back to the position captured just before dispatch.
"""

from __future__ import annotations

from typing import Callable, Optional

from varhighlighter.core.scheduler import Scheduler, TimerHandle
from varhighlighter.utils.logger import logger
from varhighlighter.viewer.adapter import ListenerHandle, ScrollSnapshot, ViewerAdapter

# Sub-pixel drift from zoom rounding is not a scroll.
_TOLERANCE_PX = 1.0


class ScrollGuard:
    def __init__(
        self, adapter: ViewerAdapter, scheduler: Scheduler, *, lock_ms: int = 1100
    ) -> None:
        self._adapter = adapter
        self._scheduler = scheduler
        self._lock_ms = max(0, int(lock_ms))
        self._snapshot: Optional[ScrollSnapshot] = None
        self._listener: Optional[ListenerHandle] = None
        self._release_timer: Optional[TimerHandle] = None
        self._suppressed = False
        self.restore_count = 0

    @property
    def locked(self) -> bool:
        return self._snapshot is not None

    @property
    def snapshot(self) -> Optional[ScrollSnapshot]:
        return self._snapshot

    def capture(self, callback: Callable[[Optional[ScrollSnapshot]], None]) -> None:
        try:
            self._adapter.read_scroll_position(callback)
        except Exception as exc:
            logger.debug("Scroll position unavailable: %s", exc)
            callback(None)

    def lock(self, snapshot: Optional[ScrollSnapshot]) -> bool:
        if snapshot is None:
            logger.debug("No scroll container; scroll guard disabled for this search")
            return False
        self.release()
        self._snapshot = snapshot
        try:
            self._adapter.suppress_scroll_into_view()
            self._suppressed = True
        except Exception as exc:
            logger.debug("Could not patch scroll-into-view: %s", exc)
        try:
            self._listener = self._adapter.add_scroll_listener(self._on_scroll)
        except Exception as exc:
            logger.debug("Could not listen for scroll events: %s", exc)
            self._listener = None
        self._release_timer = self._scheduler.call_later(self._lock_ms, self.release)
        return True

    def _on_scroll(self, scroll_top: float, scroll_left: float) -> None:
        snapshot = self._snapshot
        if snapshot is None:
            return
        if (
            abs(float(scroll_top) - snapshot.scroll_top) <= _TOLERANCE_PX
            and abs(float(scroll_left) - snapshot.scroll_left) <= _TOLERANCE_PX
        ):
            return
        self.restore_count += 1
        self._adapter.set_scroll_position(snapshot.scroll_top, snapshot.scroll_left)

    def release(self) -> None:
        if self._release_timer is not None:
            self._release_timer.cancel()
            self._release_timer = None
        if self._listener is not None:
            self._listener.remove()
            self._listener = None
        if self._suppressed:
            self._suppressed = False
            try:
                self._adapter.restore_scroll_into_view()
            except Exception as exc:
                logger.warning("Failed to restore scroll-into-view: %s", exc)
        self._snapshot = None
