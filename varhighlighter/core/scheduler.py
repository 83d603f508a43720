from __future__ import annotations

import time
from typing import Callable, Optional

from qtpy import QtCore

from varhighlighter.utils.logger import logger


class TimerHandle:
    """Cancellable handle for a callback scheduled with ``call_later``."""

    def __init__(self, cancel: Optional[Callable[[], None]] = None) -> None:
        self._cancel = cancel
        self.active = True

    def cancel(self) -> None:
        if not self.active:
            return
        self.active = False
        if self._cancel is not None:
            try:
                self._cancel()
            except Exception as exc:
                logger.debug("Timer cancel failed: %s", exc)
            self._cancel = None

    def _fired(self) -> None:
        self.active = False
        self._cancel = None


class Scheduler:
    """Event-loop seam: every wait in the pipeline goes through here."""

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> TimerHandle:
        raise NotImplementedError

    def monotonic_ms(self) -> float:
        raise NotImplementedError


class QtScheduler(Scheduler):
    """Runs callbacks from single-shot ``QTimer``s on the Qt event loop."""

    def __init__(self, parent: Optional[QtCore.QObject] = None) -> None:
        self._parent = parent

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> TimerHandle:
        timer = QtCore.QTimer(self._parent)
        timer.setSingleShot(True)

        def stop() -> None:
            timer.stop()
            timer.deleteLater()

        handle = TimerHandle(stop)

        def fire() -> None:
            if not handle.active:
                return
            handle._fired()
            timer.deleteLater()
            try:
                callback()
            except Exception:
                logger.exception("Scheduled callback failed")

        timer.timeout.connect(fire)
        timer.start(max(0, int(delay_ms)))
        return handle

    def monotonic_ms(self) -> float:
        return time.monotonic() * 1000.0
