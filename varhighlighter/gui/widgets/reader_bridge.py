from __future__ import annotations

from qtpy import QtCore


class ReaderBridge(QtCore.QObject):
    """Object published to the viewer page over ``QWebChannel``.

    The page calls these slots; they are re-emitted as Qt signals so the
    adapter can route them to whichever session subscribed with ``token``.
    """

    selectionPopup = QtCore.Signal(object)
    viewerScrolled = QtCore.Signal(str, float, float)
    pageMutated = QtCore.Signal(str, int)
    occurrenceHovered = QtCore.Signal(str, float, float)
    occurrenceLeft = QtCore.Signal(str)

    @QtCore.Slot("QVariant")
    def onSelectionPopup(self, payload: object) -> None:  # noqa: N802 - Qt slot name
        self.selectionPopup.emit(payload)

    @QtCore.Slot(str, float, float)
    def onViewerScroll(self, token: str, top: float, left: float) -> None:  # noqa: N802
        self.viewerScrolled.emit(token, top, left)

    @QtCore.Slot(str, int)
    def onPageMutated(self, token: str, pageNumber: int) -> None:  # noqa: N802
        self.pageMutated.emit(token, pageNumber)

    @QtCore.Slot(str, float, float)
    def onOccurrenceHover(self, token: str, x: float, y: float) -> None:  # noqa: N802
        self.occurrenceHovered.emit(token, x, y)

    @QtCore.Slot(str)
    def onOccurrenceLeave(self, token: str) -> None:  # noqa: N802
        self.occurrenceLeft.emit(token)


__all__ = ["ReaderBridge"]
