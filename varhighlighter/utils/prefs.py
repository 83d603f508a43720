"""
Colour preferences for the highlighter.

Stored in ``QSettings`` under two keys, one for the first occurrence and one
for every other occurrence.
"""

from __future__ import annotations

import re
from typing import Optional

from qtpy import QtCore

from varhighlighter.highlight.styles import (
    DEFAULT_FIRST_COLOR,
    DEFAULT_OTHER_COLOR,
    HighlightColors,
)
from varhighlighter.utils.logger import logger

FIRST_COLOR_KEY = "highlight/firstColor"
OTHER_COLOR_KEY = "highlight/otherColor"

# Anything that could terminate a CSS declaration or rule.
_UNSAFE_CSS = re.compile(r"[;{}<>\\]")


def is_valid_color(value: object) -> bool:
    text = str(value or "").strip()
    if not text or len(text) > 64:
        return False
    return _UNSAFE_CSS.search(text) is None


class HighlightPreferences:
    """Key-value preference store holding the two highlight colours."""

    def __init__(
        self,
        organization: str = "VarHighlighter",
        application: str = "VarHighlighter",
        settings: Optional[QtCore.QSettings] = None,
    ):
        self._qt_settings = settings or QtCore.QSettings(organization, application)

    @property
    def qt_settings(self) -> QtCore.QSettings:
        return self._qt_settings

    def _read_color(self, key: str, default: str) -> str:
        try:
            value = self._qt_settings.value(key, default)
        except Exception as e:
            logger.warning(f"Failed to read preference '{key}': {e}")
            return default
        if not is_valid_color(value):
            if value not in (None, "", default):
                logger.warning("Ignoring invalid colour %r for %s", value, key)
            return default
        return str(value).strip()

    def colors(self) -> HighlightColors:
        return HighlightColors(
            first=self._read_color(FIRST_COLOR_KEY, DEFAULT_FIRST_COLOR),
            other=self._read_color(OTHER_COLOR_KEY, DEFAULT_OTHER_COLOR),
        )

    def set_colors(
        self, first: Optional[str] = None, other: Optional[str] = None
    ) -> bool:
        """Persist the given colours; invalid values are rejected."""
        updates = {}
        if first is not None:
            updates[FIRST_COLOR_KEY] = first
        if other is not None:
            updates[OTHER_COLOR_KEY] = other
        for key, value in updates.items():
            if not is_valid_color(value):
                logger.warning("Refusing to store invalid colour %r for %s", value, key)
                return False
        try:
            for key, value in updates.items():
                self._qt_settings.setValue(key, str(value).strip())
            self._qt_settings.sync()
            return True
        except Exception as e:
            logger.error(f"Failed to store highlight colours: {e}")
            return False

    def reset(self) -> None:
        for key in (FIRST_COLOR_KEY, OTHER_COLOR_KEY):
            self._qt_settings.remove(key)
        self._qt_settings.sync()
