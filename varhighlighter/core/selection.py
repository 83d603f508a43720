from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Mapping, Optional

MAX_SELECTION_LENGTH = 100

_WHITESPACE_RUN = re.compile(r"\s+")


@dataclass(frozen=True)
class SelectionQuery:
    text: str
    case_sensitive: bool = True


@dataclass(frozen=True)
class SelectionPopupEvent:
    """A "selection popup render" event raised by the reader.

    ``reader`` is the originating viewer handle (a ``ViewerAdapter``);
    ``window_selection`` is the live window selection captured when the event
    fired, used when the structured fields are empty.
    """

    reader: Any
    text: str = ""
    annotation_text: str = ""
    window_selection: str = ""

    @classmethod
    def from_payload(cls, payload: object, reader: Any) -> "SelectionPopupEvent":
        if not isinstance(payload, Mapping):
            return cls(reader=reader, text=str(payload or ""))
        return cls(
            reader=reader,
            text=str(payload.get("text") or ""),
            annotation_text=str(payload.get("annotationText") or ""),
            window_selection=str(
                payload.get("windowSelection") or payload.get("selection") or ""
            ),
        )


def normalize_selection_text(raw: object) -> str:
    return _WHITESPACE_RUN.sub(" ", str(raw or "")).strip()


def extract_selection(
    event: SelectionPopupEvent,
    *,
    case_sensitive: bool = True,
    max_length: int = MAX_SELECTION_LENGTH,
) -> Optional[SelectionQuery]:
    """Return the normalized query for ``event``, or None to ignore it."""
    text = ""
    for candidate in (event.text, event.annotation_text, event.window_selection):
        text = normalize_selection_text(candidate)
        if text:
            break
    if not text or len(text) > max_length:
        return None
    return SelectionQuery(text=text, case_sensitive=bool(case_sensitive))
