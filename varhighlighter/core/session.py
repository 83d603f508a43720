from __future__ import annotations

from typing import Callable, List, Optional

from varhighlighter.core.matches import GlobalFirstMatch
from varhighlighter.core.scheduler import Scheduler, TimerHandle
from varhighlighter.core.selection import SelectionQuery
from varhighlighter.utils.logger import logger


class Session:
    """All live state belonging to one user selection.

    A session owns the timers and teardown callbacks created on its behalf;
    ``dispose`` cancels and runs them once. The coordinator replaces the
    session wholesale on every new selection.
    """

    def __init__(self, generation: int, query: SelectionQuery) -> None:
        self.generation = generation
        self.query = query
        self.first_match: Optional[GlobalFirstMatch] = None
        self.resolution = None
        self.disposed = False
        self._timers: List[TimerHandle] = []
        self._disposers: List[Callable[[], None]] = []

    def __repr__(self) -> str:
        return (
            f"Session(generation={self.generation}, query={self.query.text!r}, "
            f"first_match={self.first_match}, disposed={self.disposed})"
        )

    def call_later(
        self, scheduler: Scheduler, delay_ms: int, callback: Callable[[], None]
    ) -> Optional[TimerHandle]:
        """Schedule ``callback``; it will not run once the session is disposed."""
        if self.disposed:
            return None

        def guarded() -> None:
            if self.disposed:
                return
            callback()

        handle = scheduler.call_later(delay_ms, guarded)
        self._timers = [timer for timer in self._timers if timer.active]
        self._timers.append(handle)
        return handle

    def add_disposer(self, disposer: Callable[[], None]) -> None:
        if self.disposed:
            disposer()
            return
        self._disposers.append(disposer)

    def dispose(self) -> None:
        if self.disposed:
            return
        self.disposed = True
        for timer in self._timers:
            timer.cancel()
        self._timers.clear()
        # Last in, first out: the preview goes before the observer, the
        # observer before the scroll guard.
        while self._disposers:
            disposer = self._disposers.pop()
            try:
                disposer()
            except Exception:
                logger.exception("Failed to tear down session %s", self.generation)
