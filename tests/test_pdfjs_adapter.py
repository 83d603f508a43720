from __future__ import annotations

import json
import logging

from varhighlighter.gui.widgets.reader_bridge import ReaderBridge
from varhighlighter.viewer import pdfjs_scripts as scripts
from varhighlighter.viewer.adapter import ScrollSnapshot, SearchRequest
from varhighlighter.viewer.pdfjs_adapter import PdfJsViewerAdapter


class _DummyPage:
    """Answers ``runJavaScript`` synchronously from a script -> result table."""

    def __init__(self, results=None, *, fail: bool = False) -> None:
        self.results = dict(results or {})
        self.fail = fail
        self.scripts: list[str] = []

    def runJavaScript(self, script: str, callback=None) -> None:  # noqa: N802
        if self.fail:
            raise RuntimeError("page is gone")
        self.scripts.append(script)
        if callback is None:
            return
        for needle, result in self.results.items():
            if needle in script:
                callback(result)
                return
        callback(None)


def test_match_set_probe_is_parsed() -> None:
    page = _DummyPage(
        {"pendingFindMatches": {"ok": True, "pages": [[], None, [4, 9]], "pending": 1}}
    )
    results = []
    PdfJsViewerAdapter(page).read_match_set(results.append)
    match_set = results[0]
    assert match_set.pages == ((), None, (4, 9))
    assert match_set.pending == 1


def test_failed_match_set_probe_reports_none() -> None:
    page = _DummyPage({"pendingFindMatches": {"ok": False, "reason": "no-find-controller"}})
    results = []
    PdfJsViewerAdapter(page).read_match_set(results.append)
    assert results == [None]


def test_page_count_defaults_to_zero() -> None:
    results = []
    PdfJsViewerAdapter(_DummyPage({"pagesCount": "7"})).read_page_count(results.append)
    PdfJsViewerAdapter(_DummyPage({"pagesCount": None})).read_page_count(results.append)
    assert results == [7, 0]


def test_dispatch_embeds_query_as_json() -> None:
    page = _DummyPage({'bus.dispatch("find"': True})
    results = []
    query = 'say "hi" </script>'
    PdfJsViewerAdapter(page).dispatch_search(
        SearchRequest(query=query, case_sensitive=False), results.append
    )
    assert results == [True]
    assert json.dumps(query) in page.scripts[-1]
    assert '"caseSensitive": false' in page.scripts[-1]
    assert '"highlightAll": true' in page.scripts[-1]


def test_reset_only_accepts_explicit_true() -> None:
    results = []
    PdfJsViewerAdapter(_DummyPage({"findbarclose": True})).reset_search(results.append)
    PdfJsViewerAdapter(_DummyPage({"findbarclose": "yes"})).reset_search(results.append)
    assert results == [True, False]


def test_scroll_position_snapshot() -> None:
    page = _DummyPage({"scrollTop, left": {"top": 412.5, "left": 3, "page": 4}})
    results = []
    PdfJsViewerAdapter(page).read_scroll_position(results.append)
    assert results == [ScrollSnapshot(412.5, 3.0, 4)]

    results.clear()
    PdfJsViewerAdapter(_DummyPage()).read_scroll_position(results.append)
    assert results == [None]


def test_page_gone_reports_neutral_values() -> None:
    adapter = PdfJsViewerAdapter(_DummyPage(fail=True))
    results = []
    adapter.read_page_count(results.append)
    adapter.reset_search(results.append)
    adapter.read_match_set(results.append)
    adapter.set_scroll_position(1, 2)
    assert results == [0, False, None]


def test_marker_script_uses_attribute_and_position() -> None:
    page = _DummyPage({"setAttribute(attr": True})
    results = []
    PdfJsViewerAdapter(page).apply_first_marker("data-x", 3, 2, results.append)
    assert results == [True]
    script = page.scripts[-1]
    assert '"data-x", 3, 2' in script
    assert 'classList.contains("middle")' in script


def test_bridge_events_are_routed_by_token() -> None:
    bridge = ReaderBridge()
    page = _DummyPage()
    adapter = PdfJsViewerAdapter(page, bridge)
    scrolls, mutations, hovers, leaves = [], [], [], []

    scroll_handle = adapter.add_scroll_listener(lambda top, left: scrolls.append((top, left)))
    adapter.observe_page_mutations(5, mutations.append)
    adapter.add_hover_listener(lambda x, y: hovers.append((x, y)), lambda: leaves.append(1))

    (scroll_token,) = adapter._scroll_listeners  # noqa: SLF001
    (mutation_token,) = adapter._mutation_listeners  # noqa: SLF001
    (hover_token,) = adapter._hover_listeners  # noqa: SLF001
    assert json.dumps(scroll_token) in page.scripts[0]

    bridge.onViewerScroll(scroll_token, 10.0, 0.0)
    bridge.onViewerScroll("someone-else", 99.0, 0.0)
    bridge.onPageMutated(mutation_token, 5)
    bridge.onOccurrenceHover(hover_token, 12.7, 30.2)
    bridge.onOccurrenceLeave(hover_token)

    assert scrolls == [(10.0, 0.0)]
    assert mutations == [5]
    assert hovers == [(12, 30)]
    assert leaves == [1]

    scroll_handle.remove()
    assert scripts.SCROLL_LISTENER_SLOT in page.scripts[-1]
    bridge.onViewerScroll(scroll_token, 20.0, 0.0)
    assert scrolls == [(10.0, 0.0)]


def test_new_document_drops_old_listeners() -> None:
    bridge = ReaderBridge()
    adapter = PdfJsViewerAdapter(_DummyPage(), bridge)
    seen = []
    adapter.observe_page_mutations(1, seen.append)
    (token,) = adapter._mutation_listeners  # noqa: SLF001
    key = adapter.document_key()

    adapter.document_loaded("http://127.0.0.1/viewer.html?file=b.pdf")
    bridge.onPageMutated(token, 1)
    assert seen == []
    assert adapter.document_key() != key


def test_page_text_falls_back_to_find_controller() -> None:
    page = _DummyPage({"_pageContents": "page two text"})
    results = []
    adapter = PdfJsViewerAdapter(page)
    adapter.read_page_text(1, results.append)
    adapter.render_page_thumbnail(1, 0.3, results.append)
    assert results == ["page two text", None]


def test_match_set_carries_query_and_restart_flag() -> None:
    page = _DummyPage(
        {
            "pendingFindMatches": {
                "ok": True,
                "pages": [[3], []],
                "pending": 0,
                "query": "alpha",
                "searching": True,
            }
        }
    )
    results = []
    PdfJsViewerAdapter(page).read_match_set(results.append)
    match_set = results[0]
    assert match_set.query == "alpha"
    assert match_set.searching is True
    assert not match_set.answers("alpha")
    assert "_dirtyMatch" in page.scripts[-1]
    assert '"_rawQuery"' in page.scripts[-1]


def test_dispatch_restarts_the_search_immediately() -> None:
    page = _DummyPage({'bus.dispatch("find"': True})
    PdfJsViewerAdapter(page).dispatch_search(SearchRequest(query="beta"), lambda ok: None)
    assert 'type: "again"' in page.scripts[-1]
    assert 'type: ""' not in page.scripts[-1]


def test_rejected_match_selection_is_logged(caplog) -> None:
    page = _DummyPage({"_selected": False})
    with caplog.at_level(logging.DEBUG, logger="varhighlighter"):
        PdfJsViewerAdapter(page).select_match(2, 1)
    assert "did not accept match 1 on page 3" in caplog.text
