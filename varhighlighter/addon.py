from __future__ import annotations

from typing import Callable, Optional

from varhighlighter.core.selection import SelectionPopupEvent
from varhighlighter.highlight.coordinator import HighlightCoordinator
from varhighlighter.highlight.styles import HighlightColors
from varhighlighter.utils.config import HighlighterSettings
from varhighlighter.utils.logger import logger
from varhighlighter.viewer.events import RENDER_TEXT_SELECTION_POPUP, ReaderEventHub

DEFAULT_PLUGIN_ID = "varhighlighter@local"


class VarHighlighterAddon:
    """Leaf consumer of the reader: one selection handler, one coordinator.

    The coordinator follows the reader the latest selection came from;
    switching readers disposes the previous reader's session first.
    """

    def __init__(
        self,
        plugin_id: str = DEFAULT_PLUGIN_ID,
        *,
        settings: Optional[HighlighterSettings] = None,
        colors: Callable[[], HighlightColors] = HighlightColors,
        coordinator_factory: Optional[Callable[..., HighlightCoordinator]] = None,
    ) -> None:
        self.plugin_id = plugin_id
        self.settings = settings or HighlighterSettings()
        self._colors = colors
        self._coordinator_factory = coordinator_factory or HighlightCoordinator
        self._hub: Optional[ReaderEventHub] = None
        self._reader = None
        self.coordinator: Optional[HighlightCoordinator] = None

    @property
    def active(self) -> bool:
        return self._hub is not None

    def activate(self, hub: ReaderEventHub) -> None:
        if self._hub is hub:
            return
        if self._hub is not None:
            self.deactivate()
        hub.register(RENDER_TEXT_SELECTION_POPUP, self.on_selection_popup, self.plugin_id)
        self._hub = hub
        logger.info("Highlighter activated as %s", self.plugin_id)

    def deactivate(self) -> None:
        if self._hub is not None:
            self._hub.unregister(RENDER_TEXT_SELECTION_POPUP, self.plugin_id)
            self._hub = None
        self._detach_reader()
        logger.info("Highlighter deactivated")

    def _detach_reader(self) -> None:
        if self.coordinator is not None:
            self.coordinator.dispose()
        self.coordinator = None
        self._reader = None

    def _coordinator_for(self, reader) -> HighlightCoordinator:
        if self.coordinator is None or reader is not self._reader:
            if self._reader is not None:
                logger.info("Switching reader; detaching from the previous one")
            self._detach_reader()
            self._reader = reader
            self.coordinator = self._coordinator_factory(
                reader, settings=self.settings, colors=self._colors
            )
        return self.coordinator

    def on_selection_popup(self, event: object) -> None:
        if not isinstance(event, SelectionPopupEvent):
            logger.debug("Ignoring unexpected selection payload %r", event)
            return
        if event.reader is None:
            logger.debug("Selection event without a reader; ignoring")
            return
        self._coordinator_for(event.reader).handle_selection_event(event)
