"""
Contract between the highlighter and the document viewer it decorates.

Everything the pipeline knows about the host viewer goes through a
``ViewerAdapter``. The viewer's search engine keeps its state in private,
version-dependent fields; an adapter probes them with ordered fallbacks and
reports "not available" (``None``/``False``) instead of raising, so the rest
of the package only depends on the methods below.

Reads are callback based because the viewer lives in another realm (a web
page); callbacks may run synchronously or later on the event loop.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from varhighlighter.core.matches import MatchSet
from varhighlighter.utils.logger import logger


@dataclass(frozen=True)
class ScrollSnapshot:
    scroll_top: float
    scroll_left: float
    page_number: Optional[int] = None


@dataclass(frozen=True)
class SearchRequest:
    query: str
    case_sensitive: bool = True
    highlight_all: bool = True
    phrase_search: bool = True


class ListenerHandle:
    """Subscription returned by the ``add_*``/``observe_*`` methods."""

    def __init__(self, remove: Optional[Callable[[], None]] = None) -> None:
        self._remove = remove
        self.active = True

    def remove(self) -> None:
        if not self.active:
            return
        self.active = False
        remove, self._remove = self._remove, None
        if remove is None:
            return
        try:
            remove()
        except Exception as exc:
            logger.debug("Listener removal failed: %s", exc)


class ViewerAdapter:
    def document_key(self) -> str:
        """Identity of the currently loaded content document."""
        raise NotImplementedError

    # -- search engine -------------------------------------------------
    def read_page_count(self, callback: Callable[[int], None]) -> None:
        raise NotImplementedError

    def read_match_set(self, callback: Callable[[Optional[MatchSet]], None]) -> None:
        """Snapshot the per-page match lists; None when they cannot be probed."""
        raise NotImplementedError

    def reset_search(self, callback: Callable[[bool], None]) -> None:
        """Clear previous search highlighting; False when there is no reset."""
        raise NotImplementedError

    def dispatch_search(
        self, request: SearchRequest, callback: Callable[[bool], None]
    ) -> None:
        """Issue a search; False when the engine has no command channel."""
        raise NotImplementedError

    def select_match(self, page_index: int, match_index: int) -> None:
        """Best-effort update of the engine's own current-match pointer."""
        raise NotImplementedError

    # -- scrolling -----------------------------------------------------
    def read_scroll_position(
        self, callback: Callable[[Optional[ScrollSnapshot]], None]
    ) -> None:
        raise NotImplementedError

    def set_scroll_position(self, scroll_top: float, scroll_left: float) -> None:
        raise NotImplementedError

    def suppress_scroll_into_view(self) -> None:
        raise NotImplementedError

    def restore_scroll_into_view(self) -> None:
        raise NotImplementedError

    def add_scroll_listener(
        self, listener: Callable[[float, float], None]
    ) -> ListenerHandle:
        raise NotImplementedError

    # -- document ------------------------------------------------------
    def install_stylesheet(self, style_id: str, css: str) -> None:
        raise NotImplementedError

    def apply_first_marker(
        self,
        attribute: str,
        page_number: int,
        match_index: int,
        callback: Callable[[bool], None],
    ) -> None:
        """Move ``attribute`` onto the given match's element (see marker.py)."""
        raise NotImplementedError

    def clear_first_marker(self, attribute: str) -> None:
        raise NotImplementedError

    def observe_page_mutations(
        self, page_number: int, listener: Callable[[int], None]
    ) -> ListenerHandle:
        """Report structural changes touching the page's container."""
        raise NotImplementedError

    def add_hover_listener(
        self,
        on_enter: Callable[[int, int], None],
        on_leave: Callable[[], None],
    ) -> ListenerHandle:
        """Pointer enter/leave on any occurrence; positions are global pixels."""
        raise NotImplementedError

    def set_current_page(self, page_number: int) -> None:
        raise NotImplementedError

    def render_page_thumbnail(
        self, page_index: int, scale: float, callback: Callable[[object], None]
    ) -> None:
        """Deliver a ``QImage`` of the page, or None when it cannot be drawn."""
        raise NotImplementedError

    def read_page_text(self, page_index: int, callback: Callable[[str], None]) -> None:
        raise NotImplementedError
