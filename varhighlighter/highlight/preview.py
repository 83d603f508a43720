from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from varhighlighter.core.matches import GlobalFirstMatch
from varhighlighter.core.scheduler import Scheduler, TimerHandle
from varhighlighter.utils.logger import logger
from varhighlighter.viewer.adapter import ListenerHandle, ViewerAdapter

Bounds = Tuple[int, int, int, int]  # left, top, right, bottom


@dataclass(frozen=True)
class PreviewContent:
    page_number: int
    caption: str
    image: object = None  # QImage, or None for the text-only fallback


def clamp_popup_position(
    anchor: Tuple[int, int],
    size: Tuple[int, int],
    bounds: Optional[Bounds],
    offset: int = 16,
) -> Tuple[int, int]:
    """Place a popup of ``size`` beside ``anchor`` without leaving ``bounds``.

    The popup goes below-right of the pointer and flips to the other side on
    an axis where it would overflow.
    """
    ax, ay = int(anchor[0]), int(anchor[1])
    width, height = max(0, int(size[0])), max(0, int(size[1]))
    x, y = ax + offset, ay + offset
    if bounds is None:
        return x, y
    left, top, right, bottom = bounds
    if x + width > right:
        x = ax - offset - width
    if y + height > bottom:
        y = ay - offset - height
    x = max(left, min(x, right - width))
    y = max(top, min(y, bottom - height))
    return x, y


class PreviewController:
    """Hover preview of the first-occurrence page for one session.

    ``popup_factory(content, on_jump)`` builds the floating panel; it must
    offer ``popup_size()``, ``move_to(x, y)``, ``present()`` and
    ``dismiss()``. ``bounds_provider(x, y)`` returns the usable screen area
    around a point.
    ``release_scroll()`` ends the search's scroll lock before a jump.
    """

    def __init__(
        self,
        adapter: ViewerAdapter,
        scheduler: Scheduler,
        first: GlobalFirstMatch,
        query_text: str,
        *,
        popup_factory: Callable[[PreviewContent, Callable[[], None]], object],
        bounds_provider: Callable[[int, int], Optional[Bounds]] = lambda x, y: None,
        hover_delay_ms: int = 500,
        thumbnail_scale: float = 0.3,
        offset: int = 16,
        release_scroll: Callable[[], None] = lambda: None,
        is_current: Callable[[], bool] = lambda: True,
    ) -> None:
        self._adapter = adapter
        self._scheduler = scheduler
        self.first = first
        self._release_scroll = release_scroll
        self._query_text = query_text
        self._popup_factory = popup_factory
        self._bounds_provider = bounds_provider
        self._hover_delay_ms = max(0, int(hover_delay_ms))
        self._thumbnail_scale = float(thumbnail_scale)
        self._offset = int(offset)
        self._is_current = is_current
        self._subscription: Optional[ListenerHandle] = None
        self._pending: Optional[TimerHandle] = None
        self._anchor: Tuple[int, int] = (0, 0)
        self._request = 0
        self._popup = None
        self._disposed = False

    @property
    def popup(self):
        return self._popup

    @property
    def wired(self) -> bool:
        return self._subscription is not None and self._subscription.active

    def wire(self) -> None:
        self._subscription = self._adapter.add_hover_listener(
            self._on_enter, self._on_leave
        )

    def _alive(self) -> bool:
        return not self._disposed and self._is_current()

    def _on_enter(self, x: int, y: int) -> None:
        if not self._alive():
            return
        self._cancel_pending()
        self._anchor = (int(x), int(y))
        self._pending = self._scheduler.call_later(self._hover_delay_ms, self._show)

    def _on_leave(self) -> None:
        self._cancel_pending()
        self._request += 1
        self.close_popup()

    def _cancel_pending(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    def _show(self) -> None:
        self._pending = None
        if not self._alive():
            return
        self._request += 1
        request = self._request
        try:
            self._adapter.render_page_thumbnail(
                self.first.page_index,
                self._thumbnail_scale,
                lambda image: self._present(request, image),
            )
        except Exception as exc:
            logger.debug("Thumbnail rendering failed: %s", exc)
            self._present(request, None)

    def _present(self, request: int, image: object) -> None:
        if request != self._request or not self._alive():
            return
        self.close_popup()
        caption = (
            f'First occurrence of "{self._query_text}" on page {self.first.page_number}'
        )
        if image is None:
            caption += " (preview unavailable)"
        content = PreviewContent(
            page_number=self.first.page_number, caption=caption, image=image
        )
        popup = self._popup_factory(content, self.jump)
        x, y = clamp_popup_position(
            self._anchor,
            popup.popup_size(),
            self._bounds_provider(*self._anchor),
            self._offset,
        )
        popup.move_to(x, y)
        popup.present()
        self._popup = popup

    def jump(self) -> None:
        if not self._alive():
            return
        # A scroll lock still held by the search would undo the navigation.
        self._release_scroll()
        self._adapter.set_current_page(self.first.page_number)
        self.close_popup()

    def close_popup(self) -> None:
        popup, self._popup = self._popup, None
        if popup is None:
            return
        try:
            popup.dismiss()
        except Exception as exc:
            logger.debug("Closing preview popup failed: %s", exc)

    def dispose(self) -> None:
        self._disposed = True
        self._cancel_pending()
        if self._subscription is not None:
            self._subscription.remove()
            self._subscription = None
        self.close_popup()
