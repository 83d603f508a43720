"""
Mark the first occurrence in the viewer's virtualized page DOM.

The viewer only keeps nearby pages mounted and rebuilds a page's text layer
whenever it scrolls back into range, so no element reference survives a
delay. Marking always re-resolves ``(page_number, match_index)`` against the
live DOM: clear the attribute everywhere, find the page container, count the
highlight elements that start a match and tag the ``match_index``-th one.
A miss is not an error; the page render observer tries again when the page
is (re)mounted.
"""

from __future__ import annotations

from typing import Callable, Optional

from varhighlighter.core.matches import GlobalFirstMatch
from varhighlighter.core.scheduler import Scheduler, TimerHandle
from varhighlighter.highlight.styles import FIRST_OCCURRENCE_ATTR
from varhighlighter.utils.logger import logger
from varhighlighter.viewer.adapter import ListenerHandle, ViewerAdapter


class FirstOccurrenceMarker:
    def __init__(
        self, adapter: ViewerAdapter, attribute: str = FIRST_OCCURRENCE_ATTR
    ) -> None:
        self._adapter = adapter
        self.attribute = attribute

    def mark(
        self,
        first: GlobalFirstMatch,
        callback: Optional[Callable[[bool], None]] = None,
    ) -> None:
        def done(marked: bool) -> None:
            if marked:
                logger.debug(
                    "Marked first occurrence on page %d (match %d)",
                    first.page_number,
                    first.match_index,
                )
            else:
                logger.debug(
                    "Page %d not rendered yet; first occurrence left unmarked",
                    first.page_number,
                )
            if callback is not None:
                callback(bool(marked))

        try:
            self._adapter.apply_first_marker(
                self.attribute, first.page_number, first.match_index, done
            )
        except Exception as exc:
            logger.warning("Marking the first occurrence failed: %s", exc)
            done(False)

    def clear(self) -> None:
        try:
            self._adapter.clear_first_marker(self.attribute)
        except Exception as exc:
            logger.debug("Clearing the first-occurrence marker failed: %s", exc)


class PageRenderObserver:
    """Re-marks the first occurrence whenever its page is re-rendered."""

    def __init__(
        self,
        adapter: ViewerAdapter,
        scheduler: Scheduler,
        marker: FirstOccurrenceMarker,
        *,
        settle_delay_ms: int = 50,
        is_current: Callable[[], bool] = lambda: True,
    ) -> None:
        self._adapter = adapter
        self._scheduler = scheduler
        self._marker = marker
        self._settle_delay_ms = max(0, int(settle_delay_ms))
        self._is_current = is_current
        self._target: Optional[GlobalFirstMatch] = None
        self._subscription: Optional[ListenerHandle] = None
        self._pending: Optional[TimerHandle] = None
        self.remark_count = 0

    @property
    def observing(self) -> bool:
        return self._subscription is not None and self._subscription.active

    def observe(self, first: GlobalFirstMatch) -> None:
        self.disconnect()
        self._target = first
        self._subscription = self._adapter.observe_page_mutations(
            first.page_number, self._on_mutation
        )

    def schedule_remark(self) -> None:
        if self._target is None:
            return
        # Debounce: a remount arrives as a burst of mutations.
        if self._pending is not None:
            self._pending.cancel()
        self._pending = self._scheduler.call_later(self._settle_delay_ms, self._remark)

    def _on_mutation(self, page_number: int) -> None:
        target = self._target
        if target is None or not self._is_current():
            return
        if int(page_number) != target.page_number:
            return
        self.schedule_remark()

    def _remark(self) -> None:
        self._pending = None
        target = self._target
        if target is None or not self._is_current():
            return
        self.remark_count += 1
        self._marker.mark(target)

    def disconnect(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None
        if self._subscription is not None:
            self._subscription.remove()
            self._subscription = None
        self._target = None
