from __future__ import annotations

from dataclasses import dataclass
from typing import Dict

from varhighlighter.utils.logger import logger

FIRST_OCCURRENCE_ATTR = "data-varhl-first-occurrence"
STYLE_ELEMENT_ID = "varhighlighter-style"

DEFAULT_FIRST_COLOR = "rgba(46, 204, 113, 0.55)"
DEFAULT_OTHER_COLOR = "rgba(255, 105, 180, 0.45)"


@dataclass(frozen=True)
class HighlightColors:
    first: str = DEFAULT_FIRST_COLOR
    other: str = DEFAULT_OTHER_COLOR


def build_stylesheet(colors: HighlightColors) -> str:
    # The attribute selectors are more specific than the native
    # ".highlight.selected" rule, so the first occurrence always wins.
    return (
        ".textLayer .highlight,\n"
        ".textLayer .highlight.selected {\n"
        f"  background-color: {colors.other} !important;\n"
        "}\n"
        f".textLayer .highlight[{FIRST_OCCURRENCE_ATTR}],\n"
        f".textLayer .highlight.selected[{FIRST_OCCURRENCE_ATTR}] {{\n"
        f"  background-color: {colors.first} !important;\n"
        "}\n"
    )


class StyleInjector:
    """Installs the highlight stylesheet once per content document."""

    def __init__(self) -> None:
        self._installed: Dict[str, HighlightColors] = {}

    def ensure(self, adapter, colors: HighlightColors) -> bool:
        key = adapter.document_key()
        if key and self._installed.get(key) == colors:
            return False
        try:
            adapter.install_stylesheet(STYLE_ELEMENT_ID, build_stylesheet(colors))
        except Exception as exc:
            logger.warning("Could not install highlight stylesheet: %s", exc)
            return False
        if key:
            self._installed[key] = colors
        return True

    def forget(self, document_key: str) -> None:
        self._installed.pop(document_key, None)
