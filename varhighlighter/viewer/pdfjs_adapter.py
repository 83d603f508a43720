"""
``ViewerAdapter`` for a stock PDF.js viewer hosted in ``QWebEngineView``.

Reads and commands are JavaScript snippets (see ``pdfjs_scripts``) run
through ``page.runJavaScript``; page events (scroll, DOM mutations, hover)
arrive through the ``ReaderBridge`` published on the page's web channel.
Each subscription gets a token so a late event from a replaced listener can
be recognized and dropped.
"""

from __future__ import annotations

import uuid
from pathlib import Path
from typing import Callable, Dict, Optional, Tuple

from qtpy import QtCore

from varhighlighter.core.matches import MatchSet
from varhighlighter.utils.logger import logger
from varhighlighter.viewer import pdfjs_scripts as scripts
from varhighlighter.viewer.adapter import (
    ListenerHandle,
    ScrollSnapshot,
    SearchRequest,
    ViewerAdapter,
)
from varhighlighter.viewer.pdf_pages import open_document, page_text, render_page_image


def _safe_int(value: object, default: int = 0) -> int:
    try:
        return int(value)
    except Exception:
        return default


class PdfJsViewerAdapter(ViewerAdapter):
    def __init__(
        self,
        page,
        bridge=None,
        *,
        view=None,
        pdf_path: Optional[Path] = None,
    ) -> None:
        self._page = page
        self._view = view
        self._pdf_path: Optional[Path] = Path(pdf_path) if pdf_path else None
        self._pdf_doc = None
        self._document_url = ""
        self._document_serial = 0
        self._scroll_listeners: Dict[str, Callable[[float, float], None]] = {}
        self._mutation_listeners: Dict[str, Callable[[int], None]] = {}
        self._hover_listeners: Dict[
            str, Tuple[Callable[[int, int], None], Callable[[], None]]
        ] = {}
        if bridge is not None:
            bridge.viewerScrolled.connect(self._on_viewer_scrolled)
            bridge.pageMutated.connect(self._on_page_mutated)
            bridge.occurrenceHovered.connect(self._on_occurrence_hovered)
            bridge.occurrenceLeft.connect(self._on_occurrence_left)

    # ------------------------------------------------------------ lifecycle
    @property
    def pdf_path(self) -> Optional[Path]:
        return self._pdf_path

    def document_loaded(self, url: str, pdf_path: Optional[Path] = None) -> None:
        """Start over after the page navigated to a new document."""
        self._document_serial += 1
        self._document_url = str(url or "")
        self._scroll_listeners.clear()
        self._mutation_listeners.clear()
        self._hover_listeners.clear()
        self.close()
        self._pdf_path = Path(pdf_path) if pdf_path else None

    def close(self) -> None:
        if self._pdf_doc is not None:
            try:
                self._pdf_doc.close()
            except Exception:
                pass
            self._pdf_doc = None

    def document_key(self) -> str:
        return f"{self._document_url}#{self._document_serial}"

    def _run(self, script: str, callback: Optional[Callable[[object], None]] = None) -> None:
        try:
            if callback is None:
                self._page.runJavaScript(script)
            else:
                self._page.runJavaScript(script, callback)
        except Exception as exc:
            logger.debug("runJavaScript failed: %s", exc)
            if callback is not None:
                callback(None)

    # -------------------------------------------------------- search engine
    def read_page_count(self, callback: Callable[[int], None]) -> None:
        self._run(scripts.PAGE_COUNT_SCRIPT, lambda result: callback(_safe_int(result)))

    def read_match_set(self, callback: Callable[[Optional[MatchSet]], None]) -> None:
        def after(result: object) -> None:
            if not isinstance(result, dict) or not result.get("ok"):
                reason = result.get("reason") if isinstance(result, dict) else None
                logger.debug("Match structure probe failed (%s)", reason or "no result")
                callback(None)
                return
            callback(
                MatchSet.from_raw(
                    result.get("pages"),
                    result.get("pending"),
                    query=result.get("query"),
                    searching=result.get("searching"),
                )
            )

        self._run(scripts.MATCH_SET_SCRIPT, after)

    def reset_search(self, callback: Callable[[bool], None]) -> None:
        self._run(scripts.RESET_SEARCH_SCRIPT, lambda result: callback(result is True))

    def dispatch_search(
        self, request: SearchRequest, callback: Callable[[bool], None]
    ) -> None:
        script = scripts.dispatch_search_script(
            request.query,
            request.case_sensitive,
            request.highlight_all,
            request.phrase_search,
        )
        self._run(script, lambda result: callback(result is True))

    def select_match(self, page_index: int, match_index: int) -> None:
        def after(result: object) -> None:
            if result is not True:
                logger.debug(
                    "Find controller did not accept match %d on page %d",
                    match_index,
                    page_index + 1,
                )

        self._run(scripts.select_match_script(page_index, match_index), after)

    # ------------------------------------------------------------ scrolling
    def read_scroll_position(
        self, callback: Callable[[Optional[ScrollSnapshot]], None]
    ) -> None:
        def after(result: object) -> None:
            if not isinstance(result, dict):
                callback(None)
                return
            try:
                page = result.get("page")
                callback(
                    ScrollSnapshot(
                        scroll_top=float(result.get("top") or 0.0),
                        scroll_left=float(result.get("left") or 0.0),
                        page_number=None if page is None else int(page),
                    )
                )
            except (TypeError, ValueError):
                callback(None)

        self._run(scripts.READ_SCROLL_SCRIPT, after)

    def set_scroll_position(self, scroll_top: float, scroll_left: float) -> None:
        self._run(scripts.set_scroll_script(scroll_top, scroll_left))

    def suppress_scroll_into_view(self) -> None:
        self._run(scripts.SUPPRESS_SCROLL_INTO_VIEW_SCRIPT)

    def restore_scroll_into_view(self) -> None:
        self._run(scripts.RESTORE_SCROLL_INTO_VIEW_SCRIPT)

    def add_scroll_listener(
        self, listener: Callable[[float, float], None]
    ) -> ListenerHandle:
        token = registry_token()
        self._scroll_listeners[token] = listener
        self._run(scripts.add_scroll_listener_script(token))
        return self._handle(self._scroll_listeners, scripts.SCROLL_LISTENER_SLOT, token)

    def _handle(self, registry: dict, slot: str, token: str) -> ListenerHandle:
        def remove() -> None:
            if registry.pop(token, None) is not None:
                self._run(scripts.remove_listener_script(slot, token))

        return ListenerHandle(remove)

    # ------------------------------------------------------------- document
    def install_stylesheet(self, style_id: str, css: str) -> None:
        self._run(scripts.install_stylesheet_script(style_id, css))

    def apply_first_marker(
        self,
        attribute: str,
        page_number: int,
        match_index: int,
        callback: Callable[[bool], None],
    ) -> None:
        self._run(
            scripts.apply_marker_script(attribute, page_number, match_index),
            lambda result: callback(result is True),
        )

    def clear_first_marker(self, attribute: str) -> None:
        self._run(scripts.clear_marker_script(attribute))

    def observe_page_mutations(
        self, page_number: int, listener: Callable[[int], None]
    ) -> ListenerHandle:
        token = registry_token()
        self._mutation_listeners[token] = listener
        self._run(scripts.observe_page_script(token, page_number))
        return self._handle(self._mutation_listeners, scripts.OBSERVER_SLOT, token)

    def add_hover_listener(
        self,
        on_enter: Callable[[int, int], None],
        on_leave: Callable[[], None],
    ) -> ListenerHandle:
        token = registry_token()
        self._hover_listeners[token] = (on_enter, on_leave)
        self._run(scripts.add_hover_listener_script(token))
        return self._handle(self._hover_listeners, scripts.HOVER_SLOT, token)

    def set_current_page(self, page_number: int) -> None:
        self._run(scripts.set_current_page_script(page_number))

    def _document(self):
        if self._pdf_doc is None and self._pdf_path is not None:
            try:
                self._pdf_doc = open_document(self._pdf_path)
            except Exception as exc:
                logger.warning("Cannot open %s for previews: %s", self._pdf_path, exc)
                self._pdf_path = None
        return self._pdf_doc

    def render_page_thumbnail(
        self, page_index: int, scale: float, callback: Callable[[object], None]
    ) -> None:
        image = None
        try:
            image = render_page_image(self._document(), page_index, scale)
        except Exception as exc:
            logger.debug("Thumbnail of page %d failed: %s", page_index + 1, exc)
        callback(image)

    def read_page_text(self, page_index: int, callback: Callable[[str], None]) -> None:
        doc = self._document()
        if doc is not None:
            callback(page_text(doc, page_index))
            return
        self._run(
            scripts.page_text_script(page_index),
            lambda result: callback(result if isinstance(result, str) else ""),
        )

    # --------------------------------------------------------- bridge events
    def _on_viewer_scrolled(self, token: str, top: float, left: float) -> None:
        listener = self._scroll_listeners.get(token)
        if listener is not None:
            listener(top, left)

    def _on_page_mutated(self, token: str, page_number: int) -> None:
        listener = self._mutation_listeners.get(token)
        if listener is not None:
            listener(int(page_number))

    def _on_occurrence_hovered(self, token: str, x: float, y: float) -> None:
        listeners = self._hover_listeners.get(token)
        if listeners is not None:
            listeners[0](*self._to_global(x, y))

    def _on_occurrence_left(self, token: str) -> None:
        listeners = self._hover_listeners.get(token)
        if listeners is not None:
            listeners[1]()

    def _to_global(self, x: float, y: float) -> Tuple[int, int]:
        if self._view is None:
            return int(x), int(y)
        try:
            zoom = float(self._view.zoomFactor() or 1.0)
            point = self._view.mapToGlobal(QtCore.QPoint(int(x * zoom), int(y * zoom)))
            return point.x(), point.y()
        except Exception:
            return int(x), int(y)


def registry_token() -> str:
    return uuid.uuid4().hex
