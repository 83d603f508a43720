"""In-memory viewer and manual clock shared by the highlighter tests."""

from __future__ import annotations

from typing import Callable, Dict, List, Optional, Sequence

from varhighlighter.core.matches import MatchSet
from varhighlighter.core.scheduler import Scheduler, TimerHandle
from varhighlighter.viewer.adapter import (
    ListenerHandle,
    ScrollSnapshot,
    SearchRequest,
    ViewerAdapter,
)


class FakeScheduler(Scheduler):
    """Timers fire only when the test calls ``advance``."""

    def __init__(self) -> None:
        self.now = 0.0
        self._seq = 0
        self._queue: list = []

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> TimerHandle:
        self._seq += 1
        handle = TimerHandle()
        self._queue.append((self.now + max(0, int(delay_ms)), self._seq, handle, callback))
        return handle

    def monotonic_ms(self) -> float:
        return self.now

    @property
    def pending(self) -> int:
        return sum(1 for entry in self._queue if entry[2].active)

    def advance(self, ms: float) -> None:
        target = self.now + ms
        while True:
            due = [e for e in self._queue if e[2].active and e[0] <= target]
            if not due:
                break
            entry = min(due, key=lambda e: (e[0], e[1]))
            self._queue.remove(entry)
            self.now = entry[0]
            entry[2]._fired()
            entry[3]()
        self._queue = [e for e in self._queue if e[2].active]
        self.now = target


class _Element:
    def __init__(self, classes: Sequence[str] = ()) -> None:
        self.classes = {"highlight", *classes}
        self.attrs: Dict[str, str] = {}


class FakeViewer(ViewerAdapter):
    """A viewer whose engine, scroll container and page DOM live in memory.

    ``corpus`` maps a query to the per-page match lists the engine reports
    once it has searched everything; ``snapshots`` (when set) overrides that
    with the sequence of partial states returned by successive reads.
    With ``page_height`` set, page navigation scrolls the container.
    """

    def __init__(
        self,
        total_pages: int = 10,
        corpus: Optional[Dict[str, list]] = None,
        *,
        has_container: bool = True,
        page_height: float = 0.0,
    ) -> None:
        self.total_pages = total_pages
        self.page_height = float(page_height)
        self.corpus = dict(corpus or {})
        self.snapshots: Optional[List[Optional[MatchSet]]] = None
        self.has_container = has_container
        self.reset_ok = True
        self.dispatch_ok = True
        self.defer_dispatch = False
        self._deferred: list = []
        self.requests: List[SearchRequest] = []
        self.current_query: Optional[str] = None
        self.selected: list = []
        self.scroll_top = 0.0
        self.scroll_left = 0.0
        self.scroll_writes: list = []
        self.suppressed = 0
        self.restored = 0
        self._scroll_listeners: Dict[int, Callable[[float, float], None]] = {}
        self._mutation_listeners: Dict[int, tuple] = {}
        self._hover_listeners: Dict[int, tuple] = {}
        self._next_id = 0
        self.dom: Dict[int, List[_Element]] = {}
        self.stylesheets: list = []
        self.current_page: Optional[int] = None
        self.page_texts: Dict[int, str] = {}
        self.thumbnail: object = "thumbnail"
        self.thumbnail_requests: list = []
        self.key = "doc-1"

    # helpers -----------------------------------------------------------
    def _id(self) -> int:
        self._next_id += 1
        return self._next_id

    def flush(self) -> None:
        deferred, self._deferred = self._deferred, []
        for callback, value in deferred:
            callback(value)

    def user_scroll(self, top: float, left: float = 0.0) -> None:
        self.scroll_top, self.scroll_left = float(top), float(left)
        for listener in list(self._scroll_listeners.values()):
            listener(self.scroll_top, self.scroll_left)

    def mount_page(self, page_number: int, pieces: Sequence[Sequence[str]]) -> None:
        """Render a page's text layer; each entry is one highlight element."""
        self.dom[page_number] = [_Element(classes) for classes in pieces]
        self._notify_mutation(page_number)

    def unmount_page(self, page_number: int) -> None:
        self.dom.pop(page_number, None)
        self._notify_mutation(page_number)

    def _notify_mutation(self, page_number: int) -> None:
        for watched, listener in list(self._mutation_listeners.values()):
            if watched == page_number:
                listener(page_number)

    def marked(self, attribute: str) -> list:
        return [
            (page_number, index)
            for page_number, elements in sorted(self.dom.items())
            for index, element in enumerate(elements)
            if attribute in element.attrs
        ]

    def hover(self, x: int, y: int) -> None:
        for on_enter, _ in list(self._hover_listeners.values()):
            on_enter(x, y)

    def leave(self) -> None:
        for _, on_leave in list(self._hover_listeners.values()):
            on_leave()

    @property
    def scroll_listener_count(self) -> int:
        return len(self._scroll_listeners)

    @property
    def mutation_listener_count(self) -> int:
        return len(self._mutation_listeners)

    @property
    def hover_listener_count(self) -> int:
        return len(self._hover_listeners)

    def _handle(self, registry: dict, value) -> ListenerHandle:
        key = self._id()
        registry[key] = value
        return ListenerHandle(lambda: registry.pop(key, None))

    # adapter -----------------------------------------------------------
    def document_key(self) -> str:
        return self.key

    def read_page_count(self, callback):
        callback(self.total_pages)

    def read_match_set(self, callback):
        if self.snapshots is not None:
            snapshot = self.snapshots.pop(0) if len(self.snapshots) > 1 else self.snapshots[0]
            callback(snapshot)
            return
        pages = self.corpus.get(self.current_query or "")
        if pages is None:
            pages = [[] for _ in range(self.total_pages)]
        callback(MatchSet.from_raw(pages, 0, query=self.current_query))

    def reset_search(self, callback):
        callback(self.reset_ok)

    def dispatch_search(self, request, callback):
        self.requests.append(request)
        if self.dispatch_ok and request.query:
            self.current_query = request.query
        if self.defer_dispatch:
            self._deferred.append((callback, self.dispatch_ok))
        else:
            callback(self.dispatch_ok)

    def select_match(self, page_index, match_index):
        self.selected.append((page_index, match_index))

    def read_scroll_position(self, callback):
        if not self.has_container:
            callback(None)
            return
        callback(ScrollSnapshot(self.scroll_top, self.scroll_left))

    def set_scroll_position(self, scroll_top, scroll_left):
        self.scroll_top, self.scroll_left = float(scroll_top), float(scroll_left)
        self.scroll_writes.append((self.scroll_top, self.scroll_left))

    def suppress_scroll_into_view(self):
        self.suppressed += 1

    def restore_scroll_into_view(self):
        self.restored += 1

    def add_scroll_listener(self, listener):
        return self._handle(self._scroll_listeners, listener)

    def install_stylesheet(self, style_id, css):
        self.stylesheets.append((style_id, css))

    def apply_first_marker(self, attribute, page_number, match_index, callback):
        self.clear_first_marker(attribute)
        elements = self.dom.get(page_number)
        if elements is None:
            callback(False)
            return
        starts = [
            el for el in elements if not el.classes & {"middle", "end"}
        ]
        if not 0 <= match_index < len(starts):
            callback(False)
            return
        starts[match_index].attrs[attribute] = "true"
        callback(True)

    def clear_first_marker(self, attribute):
        for elements in self.dom.values():
            for element in elements:
                element.attrs.pop(attribute, None)

    def observe_page_mutations(self, page_number, listener):
        return self._handle(self._mutation_listeners, (page_number, listener))

    def add_hover_listener(self, on_enter, on_leave):
        return self._handle(self._hover_listeners, (on_enter, on_leave))

    def set_current_page(self, page_number):
        self.current_page = page_number
        # Page navigation scrolls, unless scroll-into-view is patched out.
        if self.page_height and self.suppressed == self.restored:
            self.user_scroll((page_number - 1) * self.page_height, self.scroll_left)

    def render_page_thumbnail(self, page_index, scale, callback):
        self.thumbnail_requests.append((page_index, scale))
        callback(self.thumbnail)

    def read_page_text(self, page_index, callback):
        callback(self.page_texts.get(page_index, ""))


class FakePopup:
    instances: list = []

    def __init__(self, content, on_jump) -> None:
        self.content = content
        self.on_jump = on_jump
        self.position = None
        self.visible = False
        self.dismissed = False
        FakePopup.instances.append(self)

    def popup_size(self):
        return (200, 150)

    def move_to(self, x, y):
        self.position = (x, y)

    def present(self):
        self.visible = True

    def dismiss(self):
        self.visible = False
        self.dismissed = True


def pages_with(total: int, matches: Dict[int, list]) -> list:
    """Per-page match lists keyed by page index; other pages are empty."""
    return [list(matches.get(i, [])) for i in range(total)]
