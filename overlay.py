"""Transient message toast shown over the main window."""

from __future__ import annotations

try:
    from PySide6.QtCore import Qt, QTimer
    from PySide6.QtWidgets import QLabel, QVBoxLayout, QWidget
except Exception:  # pragma: no cover
    Qt = None  # type: ignore
    QTimer = None  # type: ignore
    QLabel = object  # type: ignore
    QWidget = object  # type: ignore
    QVBoxLayout = object  # type: ignore

_INFO_STYLE = (
    "color: white; font-size: 15px; padding: 12px 18px;"
    "background: rgba(15,23,42,210); border-radius: 12px;"
)
_ERROR_STYLE = (
    "color: #FECACA; font-size: 15px; padding: 12px 18px;"
    "background: rgba(127,29,29,225); border-radius: 12px;"
)


class ToastOverlay(QWidget):
    def __init__(self, parent: QWidget) -> None:
        if Qt is None:
            raise RuntimeError("PySide6 is not installed")
        super().__init__(parent)
        self.setAttribute(Qt.WA_TransparentForMouseEvents, True)
        self.setAttribute(Qt.WA_TranslucentBackground, True)

        self._label = QLabel("")
        self._label.setWordWrap(True)
        self._label.setMaximumWidth(520)
        self._label.setStyleSheet(_INFO_STYLE)

        layout = QVBoxLayout()
        layout.setContentsMargins(0, 0, 0, 0)
        layout.addWidget(self._label)
        self.setLayout(layout)
        self.hide()

        self._hide_timer: QTimer | None = None

    def _bottom_center(self) -> None:
        """Position the toast near the bottom center of the parent window."""
        parent = self.parentWidget()
        if parent is None:
            return
        self.adjustSize()
        x = (parent.width() - self.width()) // 2
        y = parent.height() - self.height() - 32
        self.move(max(0, x), max(0, y))

    def show_message(self, text: str, hide_after_ms: int = 2500) -> None:
        self._label.setStyleSheet(_INFO_STYLE)
        self._show(text, hide_after_ms)

    def show_error(self, text: str, hide_after_ms: int = 4000) -> None:
        self._label.setStyleSheet(_ERROR_STYLE)
        self._show(f"⚠️ {text}", hide_after_ms)

    def _show(self, text: str, hide_after_ms: int) -> None:
        self._cancel_hide_timer()
        self._label.setText(text)
        self._bottom_center()
        self.raise_()
        self.show()
        self._hide_timer = QTimer(self)
        self._hide_timer.setSingleShot(True)
        self._hide_timer.timeout.connect(self.hide)
        self._hide_timer.start(hide_after_ms)

    def _cancel_hide_timer(self) -> None:
        if self._hide_timer is not None:
            self._hide_timer.stop()
            self._hide_timer = None
