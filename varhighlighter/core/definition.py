"""
Mock definition analysis.

Pulls a snippet of text around the first occurrence so the log shows where
the "definition" was taken from. Nothing semantic happens here.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Callable, Optional

from varhighlighter.core.matches import GlobalFirstMatch

if TYPE_CHECKING:  # pragma: no cover
    from varhighlighter.viewer.adapter import ViewerAdapter


def context_snippet(page_text: str, symbol: str, context_chars: int = 150) -> Optional[str]:
    position = page_text.lower().find(symbol.lower())
    if position == -1:
        return None
    start = max(0, position - context_chars)
    end = min(len(page_text), position + len(symbol) + context_chars)
    return re.sub(r"\s+", " ", page_text[start:end]).strip()


def describe_definition(
    symbol: str,
    page_text: str,
    first_match: Optional[GlobalFirstMatch],
    context_chars: int = 150,
) -> str:
    if first_match is None:
        return f'[Mock] No occurrences found for "{symbol}".'
    snippet = context_snippet(page_text or "", symbol, context_chars)
    if snippet is None:
        return (
            f'[Mock] Could not find text position of "{symbol}" '
            f"in page {first_match.page_number}."
        )
    return f'[Mock] Definition of "{symbol}" found in context: ...{snippet}...'


class DefinitionAnalyzer:
    def __init__(self, context_chars: int = 150) -> None:
        self.context_chars = context_chars

    def analyze(
        self,
        adapter: "ViewerAdapter",
        symbol: str,
        first_match: Optional[GlobalFirstMatch],
        callback: Callable[[str], None],
    ) -> None:
        if first_match is None:
            callback(describe_definition(symbol, "", None))
            return

        def after_text(page_text: str) -> None:
            callback(
                describe_definition(
                    symbol, str(page_text or ""), first_match, self.context_chars
                )
            )

        try:
            adapter.read_page_text(first_match.page_index, after_text)
        except Exception as exc:
            callback(f'[Mock] Error analyzing definition for "{symbol}": {exc}')
