"""
Resolve the global-first occurrence of a search.

The search engine fills its per-page match lists asynchronously and never
says when it is done. The resolver polls snapshots of those lists on a fixed
interval until they look complete or a timeout elapses, then applies the
deterministic tie-break: lowest page index, then lowest in-page index.

    IDLE -> DISPATCHED -> POLLING -> RESOLVED_COMPLETE
                                  -> RESOLVED_PARTIAL  (timeout, matches seen)
                                  -> RESOLVED_NONE     (no match anywhere)
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Optional

from varhighlighter.core.matches import GlobalFirstMatch, MatchSet, resolve_global_first
from varhighlighter.core.scheduler import Scheduler, TimerHandle
from varhighlighter.utils.logger import logger

if TYPE_CHECKING:  # pragma: no cover
    from varhighlighter.viewer.adapter import ViewerAdapter


class ResolutionState(enum.Enum):
    IDLE = "idle"
    DISPATCHED = "dispatched"
    POLLING = "polling"
    RESOLVED_COMPLETE = "resolved_complete"
    RESOLVED_PARTIAL = "resolved_partial"
    RESOLVED_NONE = "resolved_none"

    @property
    def terminal(self) -> bool:
        return self in (
            ResolutionState.RESOLVED_COMPLETE,
            ResolutionState.RESOLVED_PARTIAL,
            ResolutionState.RESOLVED_NONE,
        )


@dataclass(frozen=True)
class Resolution:
    state: ResolutionState
    first_match: Optional[GlobalFirstMatch]
    match_set: MatchSet
    total_pages: int
    elapsed_ms: float

    @property
    def total_matches(self) -> int:
        return self.match_set.total_matches


class FirstOccurrenceResolver:
    def __init__(
        self,
        adapter: "ViewerAdapter",
        scheduler: Scheduler,
        *,
        poll_interval_ms: int = 50,
        timeout_ms: int = 2000,
        query_text: Optional[str] = None,
        is_current: Callable[[], bool] = lambda: True,
    ) -> None:
        self._adapter = adapter
        self._scheduler = scheduler
        self._poll_interval_ms = max(1, int(poll_interval_ms))
        self._timeout_ms = max(0, int(timeout_ms))
        self._query_text = query_text
        self._is_current = is_current
        self._state = ResolutionState.IDLE
        self._on_resolved: Optional[Callable[[Resolution], None]] = None
        self._timer: Optional[TimerHandle] = None
        self._started_at = 0.0
        self._total_pages = 0
        self._last_seen = MatchSet()
        self._cancelled = False

    @property
    def state(self) -> ResolutionState:
        return self._state

    def _alive(self) -> bool:
        return not self._cancelled and self._is_current()

    def mark_dispatched(self) -> None:
        if self._state is ResolutionState.IDLE:
            self._state = ResolutionState.DISPATCHED

    def start(self, on_resolved: Callable[[Resolution], None]) -> None:
        if self._state not in (ResolutionState.IDLE, ResolutionState.DISPATCHED):
            raise RuntimeError(f"Resolver already {self._state.value}")
        self._state = ResolutionState.POLLING
        self._on_resolved = on_resolved
        self._started_at = self._scheduler.monotonic_ms()
        self._adapter.read_page_count(self._after_page_count)

    def cancel(self) -> None:
        self._cancelled = True
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _after_page_count(self, total_pages: object) -> None:
        if not self._alive():
            return
        try:
            self._total_pages = max(0, int(total_pages or 0))
        except (TypeError, ValueError):
            self._total_pages = 0
        if self._total_pages == 0:
            logger.debug("Page count unavailable; relying on pending count or timeout")
        self._schedule_tick()

    def _schedule_tick(self) -> None:
        self._timer = self._scheduler.call_later(self._poll_interval_ms, self._tick)

    def _tick(self) -> None:
        self._timer = None
        if not self._alive() or self._state is not ResolutionState.POLLING:
            return
        self._adapter.read_match_set(self._after_snapshot)

    def _after_snapshot(self, match_set: Optional[MatchSet]) -> None:
        if not self._alive() or self._state is not ResolutionState.POLLING:
            return
        if match_set is not None and not match_set.answers(self._query_text):
            logger.debug(
                "Engine still holds results for %r; waiting for %r",
                match_set.query,
                self._query_text,
            )
            match_set = None
        elif match_set is None:
            logger.debug("Match structure not readable on this tick")
        else:
            self._last_seen = match_set
        elapsed = self._scheduler.monotonic_ms() - self._started_at
        if match_set is not None and match_set.is_complete(self._total_pages):
            self._finish(complete=True, elapsed=elapsed)
        elif elapsed >= self._timeout_ms:
            self._finish(complete=False, elapsed=elapsed)
        else:
            self._schedule_tick()

    def _finish(self, *, complete: bool, elapsed: float) -> None:
        first = resolve_global_first(self._last_seen)
        if first is None:
            self._state = ResolutionState.RESOLVED_NONE
        elif complete:
            self._state = ResolutionState.RESOLVED_COMPLETE
        else:
            self._state = ResolutionState.RESOLVED_PARTIAL
            logger.info(
                "Search did not finish within %d ms (%d/%d pages); using best-effort first match",
                self._timeout_ms,
                self._last_seen.reported_pages,
                self._total_pages,
            )
        resolution = Resolution(
            state=self._state,
            first_match=first,
            match_set=self._last_seen,
            total_pages=self._total_pages,
            elapsed_ms=elapsed,
        )
        callback, self._on_resolved = self._on_resolved, None
        if callback is not None:
            callback(resolution)
