from __future__ import annotations

from typing import Callable

from varhighlighter.core.selection import SelectionQuery
from varhighlighter.utils.logger import logger
from varhighlighter.viewer.adapter import SearchRequest, ViewerAdapter


class SearchDispatcher:
    """Clears the previous search, then asks the engine for every occurrence."""

    def __init__(self, adapter: ViewerAdapter) -> None:
        self._adapter = adapter

    def dispatch(self, query: SelectionQuery, on_done: Callable[[bool], None]) -> None:
        request = SearchRequest(
            query=query.text,
            case_sensitive=query.case_sensitive,
            highlight_all=True,
            phrase_search=True,
        )

        def after_search(ok: bool) -> None:
            if not ok:
                logger.warning("Search engine has no command channel; dropping %r", query.text)
            on_done(bool(ok))

        def after_reset(ok: bool) -> None:
            if not ok:
                # No explicit reset: an empty query clears the old highlights.
                self._adapter.dispatch_search(
                    SearchRequest(query="", case_sensitive=query.case_sensitive),
                    lambda _ok: None,
                )
            self._adapter.dispatch_search(request, after_search)

        self._adapter.reset_search(after_reset)
