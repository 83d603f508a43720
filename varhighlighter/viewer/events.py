from __future__ import annotations

from typing import Callable, Dict, Tuple

from varhighlighter.utils.logger import logger

RENDER_TEXT_SELECTION_POPUP = "renderTextSelectionPopup"


class ReaderEventHub:
    """Reader-side event registry.

    Plug-ins register at most one handler per (event type, plug-in id);
    registering again under the same id replaces the previous handler. A
    failing handler is logged and never reaches the reader.
    """

    def __init__(self) -> None:
        self._handlers: Dict[str, Dict[str, Callable[[object], None]]] = {}

    def register(
        self, event_type: str, handler: Callable[[object], None], plugin_id: str
    ) -> None:
        if not plugin_id:
            raise ValueError("plugin_id is required")
        self._handlers.setdefault(event_type, {})[plugin_id] = handler

    def unregister(self, event_type: str, plugin_id: str) -> bool:
        handlers = self._handlers.get(event_type)
        if not handlers or plugin_id not in handlers:
            return False
        del handlers[plugin_id]
        if not handlers:
            del self._handlers[event_type]
        return True

    def registered(self, event_type: str) -> Tuple[str, ...]:
        return tuple(self._handlers.get(event_type, {}))

    def emit(self, event_type: str, event: object) -> int:
        delivered = 0
        for plugin_id, handler in list(self._handlers.get(event_type, {}).items()):
            try:
                handler(event)
                delivered += 1
            except Exception:
                logger.exception("Handler %s failed for %s", plugin_id, event_type)
        return delivered
