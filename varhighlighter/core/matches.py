"""Snapshots of the search engine's per-page match structure."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional, Sequence, Tuple

PageMatches = Optional[Tuple[int, ...]]


@dataclass(frozen=True)
class GlobalFirstMatch:
    page_index: int
    match_index: int
    page_number: int

    @classmethod
    def at(cls, page_index: int, match_index: int = 0) -> "GlobalFirstMatch":
        return cls(
            page_index=int(page_index),
            match_index=int(match_index),
            page_number=int(page_index) + 1,
        )


def _match_offsets(raw: object) -> PageMatches:
    if raw is None:
        return None
    if isinstance(raw, (str, bytes)) or not isinstance(raw, Sequence):
        return None
    offsets = []
    for item in raw:
        try:
            offsets.append(int(item))
        except (TypeError, ValueError):
            # Opaque descriptor; only its position in the list matters.
            offsets.append(-1)
    return tuple(offsets)


@dataclass(frozen=True)
class MatchSet:
    """Read-only copy of the engine's match lists.

    ``pages[i]`` is None while page ``i`` has not been searched yet and a
    (possibly empty) tuple of match descriptors once it has. ``pending`` is
    the engine's count of pages still being searched, when it exposes one.
    ``query`` is the text the lists were computed for, and ``searching`` is
    set while the engine has accepted a new search but not yet reset them.
    """

    pages: Tuple[PageMatches, ...] = ()
    pending: Optional[int] = None
    query: Optional[str] = None
    searching: bool = False

    @classmethod
    def from_raw(
        cls,
        pages: object,
        pending: object = None,
        query: object = None,
        searching: object = False,
    ) -> "MatchSet":
        normalized: list[PageMatches] = []
        if isinstance(pages, Mapping):
            indexed = {}
            for key, value in pages.items():
                try:
                    index = int(key)
                except (TypeError, ValueError):
                    continue
                if index >= 0:
                    indexed[index] = _match_offsets(value)
            if indexed:
                normalized = [indexed.get(i) for i in range(max(indexed) + 1)]
        elif isinstance(pages, Sequence) and not isinstance(pages, (str, bytes)):
            normalized = [_match_offsets(value) for value in pages]
        try:
            pending_count = None if pending is None else max(0, int(pending))
        except (TypeError, ValueError):
            pending_count = None
        return cls(
            pages=tuple(normalized),
            pending=pending_count,
            query=query if isinstance(query, str) else None,
            searching=searching is True,
        )

    @property
    def reported_pages(self) -> int:
        return sum(1 for matches in self.pages if matches is not None)

    @property
    def total_matches(self) -> int:
        return sum(len(matches) for matches in self.pages if matches)

    def matches_on(self, page_index: int) -> Tuple[int, ...]:
        if 0 <= page_index < len(self.pages):
            return self.pages[page_index] or ()
        return ()

    def is_complete(self, total_pages: int) -> bool:
        """Whether the search can be considered finished.

        A zero pending count only counts once some page has reported, so a
        search that has not started yet is not taken for a finished one.
        """
        reported = self.reported_pages
        if self.pending is not None and self.pending == 0 and reported > 0:
            return True
        return total_pages > 0 and reported == total_pages

    def answers(self, query_text: Optional[str]) -> bool:
        """Whether these lists are the engine's results for ``query_text``.

        Until the engine starts over for a new search it still holds the
        previous search's lists, complete and with nothing pending.
        """
        if self.searching:
            return False
        if query_text is None or self.query is None:
            return True
        return _normalized(self.query) == _normalized(query_text)


def _normalized(text: str) -> str:
    return " ".join(text.split())


def resolve_global_first(match_set: MatchSet) -> Optional[GlobalFirstMatch]:
    """Lowest page index with any match, then its first match."""
    for page_index, matches in enumerate(match_set.pages):
        if matches:
            return GlobalFirstMatch.at(page_index, 0)
    return None
