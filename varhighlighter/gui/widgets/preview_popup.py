from __future__ import annotations

from typing import Callable, Optional, Tuple

from qtpy import QtCore, QtGui, QtWidgets

from varhighlighter.highlight.preview import Bounds, PreviewContent


def available_screen_bounds(x: int, y: int) -> Optional[Bounds]:
    """Usable geometry of the screen containing ``(x, y)``."""
    point = QtCore.QPoint(int(x), int(y))
    screen = None
    screen_at = getattr(QtGui.QGuiApplication, "screenAt", None)
    if screen_at is not None:
        screen = screen_at(point)
    if screen is None:
        screen = QtGui.QGuiApplication.primaryScreen()
    if screen is None:
        return None
    rect = screen.availableGeometry()
    return rect.left(), rect.top(), rect.left() + rect.width(), rect.top() + rect.height()


class FirstOccurrencePopup(QtWidgets.QFrame):
    """Floating panel with a first-occurrence page thumbnail and a jump button."""

    def __init__(
        self,
        content: PreviewContent,
        on_jump: Callable[[], None],
        parent: Optional[QtWidgets.QWidget] = None,
    ) -> None:
        super().__init__(parent, QtCore.Qt.ToolTip | QtCore.Qt.FramelessWindowHint)
        self.setAttribute(QtCore.Qt.WA_ShowWithoutActivating, True)
        self.setFrameShape(QtWidgets.QFrame.StyledPanel)
        self.setObjectName("firstOccurrencePopup")
        self.content = content
        self._on_jump = on_jump

        layout = QtWidgets.QVBoxLayout(self)
        layout.setContentsMargins(8, 8, 8, 8)
        layout.setSpacing(6)

        self.caption_label = QtWidgets.QLabel(content.caption, self)
        self.caption_label.setWordWrap(True)
        layout.addWidget(self.caption_label)

        self.image_label = QtWidgets.QLabel(self)
        self.image_label.setAlignment(QtCore.Qt.AlignCenter)
        if content.image is not None:
            self.image_label.setPixmap(QtGui.QPixmap.fromImage(content.image))
        else:
            self.image_label.setText(f"Page {content.page_number}")
            self.image_label.setMinimumSize(160, 60)
        layout.addWidget(self.image_label)

        self.jump_button = QtWidgets.QPushButton(
            f"Jump to page {content.page_number}", self
        )
        self.jump_button.clicked.connect(self._jump)
        layout.addWidget(self.jump_button)
        self.adjustSize()

    def _jump(self) -> None:
        self._on_jump()

    def popup_size(self) -> Tuple[int, int]:
        hint = self.sizeHint()
        return hint.width(), hint.height()

    def move_to(self, x: int, y: int) -> None:
        self.move(int(x), int(y))

    def present(self) -> None:
        self.show()
        self.raise_()

    def dismiss(self) -> None:
        self.hide()
        self.deleteLater()


__all__ = ["FirstOccurrencePopup", "available_screen_bounds"]
