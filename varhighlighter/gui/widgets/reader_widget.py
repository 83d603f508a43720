from __future__ import annotations

from pathlib import Path
from typing import Optional

from qtpy import QtCore, QtWidgets

try:
    from qtpy import QtWebEngineWidgets  # type: ignore

    _WEBENGINE_AVAILABLE = True
except Exception:
    QtWebEngineWidgets = None  # type: ignore
    _WEBENGINE_AVAILABLE = False

try:
    from qtpy import QtWebChannel  # type: ignore

    _WEBCHANNEL_AVAILABLE = True
except Exception:
    QtWebChannel = None  # type: ignore
    _WEBCHANNEL_AVAILABLE = False

from varhighlighter.core.selection import SelectionPopupEvent
from varhighlighter.gui.widgets.reader_bridge import ReaderBridge
from varhighlighter.gui.widgets.reader_server import viewer_url
from varhighlighter.utils.logger import logger
from varhighlighter.viewer import pdfjs_scripts as scripts
from varhighlighter.viewer.events import RENDER_TEXT_SELECTION_POPUP, ReaderEventHub
from varhighlighter.viewer.pdfjs_adapter import PdfJsViewerAdapter

_QWEBCHANNEL_RESOURCE = ":/qtwebchannel/qwebchannel.js"

# PDF.js reports recoverable font and feature fallbacks on the console.
_BENIGN_CONSOLE_FRAGMENTS = (
    "Warning: TT:",
    "Warning: loadFont",
    "Warning: Unable to load font",
    "Warning: Error during font loading",
    "Warning: fetchStandardFontData",
    "Warning: Indexing all PDF objects",
    "Warning: Ignoring invalid character",
    "Warning: getPathGenerator",
    "Warning: Unimplemented border style",
    "Warning: Badly formatted number",
)


def _is_benign_pdfjs_console_message(message: str) -> bool:
    text = str(message or "")
    return any(fragment in text for fragment in _BENIGN_CONSOLE_FRAGMENTS)


if _WEBENGINE_AVAILABLE:
    # type: ignore[misc]
    class _ReaderWebEnginePage(QtWebEngineWidgets.QWebEnginePage):
        def javaScriptConsoleMessage(  # noqa: N802 - Qt override
            self,
            # type: ignore[name-defined]
            level: "QtWebEngineWidgets.QWebEnginePage.JavaScriptConsoleMessageLevel",
            message: str,
            lineNumber: int,
            sourceID: str,
        ) -> None:
            if _is_benign_pdfjs_console_message(message):
                return
            try:
                logger.debug(f"QtWebEngine js: {message} ({sourceID}:{lineNumber})")
            except Exception:
                pass


def _read_qwebchannel_source() -> str:
    resource = QtCore.QFile(_QWEBCHANNEL_RESOURCE)
    if not resource.open(QtCore.QIODevice.ReadOnly):
        logger.warning("qwebchannel.js is not available; selections will not be reported")
        return ""
    try:
        return bytes(resource.readAll()).decode("utf-8")
    finally:
        resource.close()


class PdfJsReaderWidget(QtWidgets.QWidget):
    """Stock PDF.js viewer in a ``QWebEngineView`` that reports selections.

    Text selected inside a page's text layer is wrapped in a
    ``SelectionPopupEvent`` (whose ``reader`` is this widget's adapter) and
    emitted on ``hub`` as ``renderTextSelectionPopup``.
    """

    document_loaded = QtCore.Signal(str)

    def __init__(
        self,
        viewer_root: Path,
        hub: ReaderEventHub,
        parent: Optional[QtWidgets.QWidget] = None,
    ) -> None:
        super().__init__(parent)
        if not _WEBENGINE_AVAILABLE:
            raise RuntimeError("QtWebEngine is required for the PDF.js reader.")
        self._viewer_root = Path(viewer_root)
        self._hub = hub
        self._pdf_path: Optional[Path] = None
        self._web_channel = None

        layout = QtWidgets.QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        self._web_view = QtWebEngineWidgets.QWebEngineView(self)
        self._web_view.setPage(_ReaderWebEnginePage(self._web_view))
        layout.addWidget(self._web_view)

        self.bridge = ReaderBridge(self)
        if _WEBCHANNEL_AVAILABLE:
            try:
                self._web_channel = QtWebChannel.QWebChannel(self._web_view.page())
                self._web_channel.registerObject(scripts.BRIDGE_OBJECT_NAME, self.bridge)
                self._web_view.page().setWebChannel(self._web_channel)
            except Exception as exc:
                logger.info("QtWebChannel unavailable: %s", exc)
                self._web_channel = None
        self._install_page_scripts()

        self.adapter = PdfJsViewerAdapter(
            self._web_view.page(), self.bridge, view=self._web_view
        )
        self.bridge.selectionPopup.connect(self._on_selection_popup)
        self._web_view.loadFinished.connect(self._on_load_finished)
        try:
            self._web_view.renderProcessTerminated.connect(
                lambda *_: logger.warning("QtWebEngine render process terminated")
            )
        except Exception:
            pass

    @property
    def web_view(self):
        return self._web_view

    @property
    def pdf_path(self) -> Optional[Path]:
        return self._pdf_path

    def _install_page_scripts(self) -> None:
        collection = self._web_view.page().scripts()
        sources = [("varhl-qwebchannel", _read_qwebchannel_source()),
                   ("varhl-bootstrap", scripts.BOOTSTRAP_SCRIPT)]
        for name, source in sources:
            if not source:
                continue
            script = QtWebEngineWidgets.QWebEngineScript()
            script.setName(name)
            script.setSourceCode(source)
            script.setInjectionPoint(QtWebEngineWidgets.QWebEngineScript.DocumentReady)
            script.setWorldId(QtWebEngineWidgets.QWebEngineScript.MainWorld)
            script.setRunsOnSubFrames(False)
            collection.insert(script)

    def load_pdf(self, pdf_path: str) -> None:
        path = Path(pdf_path)
        if not path.exists():
            raise FileNotFoundError(f"PDF not found: {pdf_path}")
        url = viewer_url(self._viewer_root, path)
        self._pdf_path = path
        self.adapter.document_loaded(url, path)
        logger.info(f"Opening {path} in PDF.js")
        self._web_view.load(QtCore.QUrl(url))

    def _on_load_finished(self, ok: bool) -> None:
        if not ok:
            logger.warning(f"PDF.js viewer failed to load {self._pdf_path}")
            return
        self.document_loaded.emit(str(self._pdf_path or ""))

    def _on_selection_popup(self, payload: object) -> None:
        event = SelectionPopupEvent.from_payload(payload, self.adapter)
        delivered = self._hub.emit(RENDER_TEXT_SELECTION_POPUP, event)
        logger.debug("Selection delivered to %d handler(s)", delivered)

    def closeEvent(self, event) -> None:  # noqa: N802 - Qt override
        self.adapter.close()
        super().closeEvent(event)


__all__ = ["PdfJsReaderWidget"]
