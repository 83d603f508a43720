from varhighlighter.gui.widgets.preview_popup import (
    FirstOccurrencePopup,
    available_screen_bounds,
)
from varhighlighter.gui.widgets.reader_bridge import ReaderBridge

__all__ = [
    "FirstOccurrencePopup",
    "ReaderBridge",
    "available_screen_bounds",
]
