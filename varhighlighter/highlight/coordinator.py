"""
Global-first-occurrence highlight pipeline.

One ``HighlightCoordinator`` serves one reader. Each selection event runs

    extract -> scroll snapshot -> lock + dispatch -> resolve -> mark
            -> observe page renders -> wire hover preview

inside a fresh ``Session``. Starting a session disposes the previous one, and
every asynchronous step re-checks the session generation first, so callbacks
left over from an older selection never touch the newer one.
"""

from __future__ import annotations

from typing import Callable, Optional

from varhighlighter.core.definition import DefinitionAnalyzer
from varhighlighter.core.resolver import FirstOccurrenceResolver, Resolution, ResolutionState
from varhighlighter.core.scheduler import QtScheduler, Scheduler
from varhighlighter.core.selection import SelectionPopupEvent, SelectionQuery, extract_selection
from varhighlighter.core.session import Session
from varhighlighter.highlight.marker import FirstOccurrenceMarker, PageRenderObserver
from varhighlighter.highlight.preview import PreviewController
from varhighlighter.highlight.scroll_guard import ScrollGuard
from varhighlighter.highlight.search import SearchDispatcher
from varhighlighter.highlight.styles import HighlightColors, StyleInjector
from varhighlighter.utils.config import HighlighterSettings
from varhighlighter.utils.logger import logger
from varhighlighter.viewer.adapter import ScrollSnapshot, ViewerAdapter


def _default_popup_factory(content, on_jump):
    from varhighlighter.gui.widgets.preview_popup import FirstOccurrencePopup

    return FirstOccurrencePopup(content, on_jump)


def _default_bounds_provider(x, y):
    from varhighlighter.gui.widgets.preview_popup import available_screen_bounds

    return available_screen_bounds(x, y)


class HighlightCoordinator:
    def __init__(
        self,
        adapter: ViewerAdapter,
        *,
        settings: Optional[HighlighterSettings] = None,
        scheduler: Optional[Scheduler] = None,
        colors: Callable[[], HighlightColors] = HighlightColors,
        popup_factory=None,
        bounds_provider=None,
        analyzer: Optional[DefinitionAnalyzer] = None,
        style_injector: Optional[StyleInjector] = None,
    ) -> None:
        self.adapter = adapter
        self.settings = settings or HighlighterSettings()
        self._scheduler = scheduler or QtScheduler()
        self._colors = colors
        self._popup_factory = popup_factory or _default_popup_factory
        self._bounds_provider = bounds_provider or _default_bounds_provider
        self._analyzer = analyzer or DefinitionAnalyzer(self.settings.context_chars)
        self._styles = style_injector or StyleInjector()
        self._dispatcher = SearchDispatcher(adapter)
        self._marker = FirstOccurrenceMarker(adapter)
        self._generation = 0
        self._session: Optional[Session] = None
        self.preview: Optional[PreviewController] = None
        self.observer: Optional[PageRenderObserver] = None

    @property
    def session(self) -> Optional[Session]:
        return self._session

    def is_current(self, session: Session) -> bool:
        return (
            self._session is session
            and not session.disposed
            and session.generation == self._generation
        )

    # ------------------------------------------------------------------ entry
    def handle_selection_event(self, event: SelectionPopupEvent) -> Optional[Session]:
        """Start a highlight session for ``event``; never raises."""
        try:
            query = extract_selection(
                event,
                case_sensitive=self.settings.case_sensitive,
                max_length=self.settings.max_selection_length,
            )
            if query is None:
                return None
            return self.start(query)
        except Exception:
            logger.exception("Highlight pipeline failed")
            return None

    def start(self, query: SelectionQuery) -> Session:
        self._teardown()
        self._marker.clear()
        self._generation += 1
        session = Session(self._generation, query)
        self._session = session
        logger.info("Text selected: %r (session %d)", query.text, session.generation)

        guard = ScrollGuard(
            self.adapter, self._scheduler, lock_ms=self.settings.scroll_lock_ms
        )
        session.add_disposer(guard.release)
        guard.capture(lambda snapshot: self._after_snapshot(session, guard, snapshot))
        return session

    def dispose(self) -> None:
        self._teardown()
        self._marker.clear()

    def _teardown(self) -> None:
        session, self._session = self._session, None
        if session is not None:
            session.dispose()
        self.preview = None
        self.observer = None

    # ------------------------------------------------------------- pipeline
    def _guarded(self, session: Session, step: Callable, *args) -> None:
        if not self.is_current(session):
            return
        try:
            step(session, *args)
        except Exception:
            logger.exception("Highlight step %s failed", getattr(step, "__name__", step))

    def _after_snapshot(
        self, session: Session, guard: ScrollGuard, snapshot: Optional[ScrollSnapshot]
    ) -> None:
        self._guarded(session, self._lock_and_dispatch, guard, snapshot)

    def _lock_and_dispatch(
        self, session: Session, guard: ScrollGuard, snapshot: Optional[ScrollSnapshot]
    ) -> None:
        guard.lock(snapshot)
        self._styles.ensure(self.adapter, self._colors())
        resolver = FirstOccurrenceResolver(
            self.adapter,
            self._scheduler,
            poll_interval_ms=self.settings.poll_interval_ms,
            timeout_ms=self.settings.resolve_timeout_ms,
            query_text=session.query.text,
            is_current=lambda: self.is_current(session),
        )
        session.add_disposer(resolver.cancel)

        def after_dispatch(ok: bool) -> None:
            self._guarded(session, self._start_resolving, guard, resolver, ok)

        self._dispatcher.dispatch(session.query, after_dispatch)

    def _start_resolving(
        self,
        session: Session,
        guard: ScrollGuard,
        resolver: FirstOccurrenceResolver,
        ok: bool,
    ) -> None:
        if not ok:
            logger.warning("Search dispatch failed; abandoning session %d", session.generation)
            guard.release()
            return
        resolver.mark_dispatched()
        resolver.start(
            lambda resolution: self._guarded(session, self._on_resolved, resolution, guard)
        )

    def _on_resolved(
        self, session: Session, resolution: Resolution, guard: ScrollGuard
    ) -> None:
        session.resolution = resolution
        first = resolution.first_match
        if resolution.state is ResolutionState.RESOLVED_NONE or first is None:
            logger.info("No occurrences found for %r", session.query.text)
            return
        session.first_match = first
        logger.info(
            "First occurrence of %r: page %d, match %d (%s, %d matches)",
            session.query.text,
            first.page_number,
            first.match_index,
            resolution.state.value,
            resolution.total_matches,
        )
        try:
            self.adapter.select_match(first.page_index, first.match_index)
        except Exception as exc:
            logger.debug("Could not move the engine's current match: %s", exc)

        observer = PageRenderObserver(
            self.adapter,
            self._scheduler,
            self._marker,
            settle_delay_ms=self.settings.settle_delay_ms,
            is_current=lambda: self.is_current(session),
        )
        session.add_disposer(observer.disconnect)
        observer.observe(first)
        self.observer = observer
        # Let the engine paint its own highlights before tagging one of them.
        session.call_later(
            self._scheduler,
            self.settings.settle_delay_ms,
            lambda: self._guarded(session, self._mark, first),
        )

        preview = PreviewController(
            self.adapter,
            self._scheduler,
            first,
            session.query.text,
            popup_factory=self._popup_factory,
            bounds_provider=self._bounds_provider,
            hover_delay_ms=self.settings.hover_delay_ms,
            thumbnail_scale=self.settings.thumbnail_scale,
            offset=self.settings.popup_offset,
            release_scroll=guard.release,
            is_current=lambda: self.is_current(session),
        )
        session.add_disposer(preview.dispose)
        preview.wire()
        self.preview = preview

        self._analyzer.analyze(
            self.adapter,
            session.query.text,
            first,
            lambda definition: self._log_definition(session, resolution, definition),
        )

    def _mark(self, session: Session, first) -> None:
        self._marker.mark(first)

    def _log_definition(self, session: Session, resolution: Resolution, definition: str) -> None:
        if not self.is_current(session):
            return
        logger.info(
            "Variable: %s, Count: %d, Definition: %s",
            session.query.text,
            resolution.total_matches,
            definition,
        )
