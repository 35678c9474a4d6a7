"""Dashboard screen: aggregate stats, mastery chart and recent batches."""

from __future__ import annotations

from datetime import datetime

from PySide6.QtCore import QRectF, Qt, Signal
from PySide6.QtGui import QColor, QPainter
from PySide6.QtWidgets import (
    QGridLayout,
    QHBoxLayout,
    QLabel,
    QListWidget,
    QListWidgetItem,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from models import UserStats
from navigation import AppState, ChartSlice, chart_slices


class MasteryChart(QWidget):
    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self._slices: list[ChartSlice] = []
        self.setMinimumSize(180, 180)

    def set_slices(self, slices: list[ChartSlice]) -> None:
        self._slices = slices
        self.update()

    def paintEvent(self, event) -> None:  # noqa: ANN001
        painter = QPainter(self)
        painter.setRenderHint(QPainter.Antialiasing, True)
        side = min(self.width(), self.height()) - 8
        rect = QRectF((self.width() - side) / 2, (self.height() - side) / 2, side, side)
        total = sum(s.value for s in self._slices)
        if total == 0:
            painter.setPen(QColor("#94a3b8"))
            painter.drawText(self.rect(), Qt.AlignCenter, "No words yet")
            painter.end()
            return
        start = 90 * 16
        for s in self._slices:
            span = -int(round(360 * 16 * s.value / total))
            painter.setBrush(QColor(s.color))
            painter.setPen(Qt.NoPen)
            painter.drawPie(rect, start, span)
            start += span
        painter.end()


def _stat_card(label: str) -> tuple[QWidget, QLabel]:
    card = QWidget()
    card.setStyleSheet("background: white; border: 1px solid #e2e8f0; border-radius: 12px;")
    layout = QVBoxLayout(card)
    value = QLabel("0")
    value.setStyleSheet("font-size: 28px; font-weight: 700; border: none;")
    caption = QLabel(label)
    caption.setStyleSheet("color: #64748b; border: none;")
    layout.addWidget(value)
    layout.addWidget(caption)
    return card, value


class DashboardView(QWidget):
    scan_requested = Signal()
    history_requested = Signal()
    session_selected = Signal(str)

    def __init__(self, state: AppState, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self._state = state

        title = QLabel("Welcome Back")
        title.setStyleSheet("font-size: 26px; font-weight: 700;")
        scan_button = QPushButton("Start New Scan")
        scan_button.clicked.connect(self.scan_requested.emit)

        header = QHBoxLayout()
        header.addWidget(title)
        header.addStretch(1)
        header.addWidget(scan_button)

        cards = QGridLayout()
        total_card, self._total_label = _stat_card("Total Words")
        mastered_card, self._mastered_label = _stat_card("Mastered")
        learning_card, self._learning_label = _stat_card("Learning")
        cards.addWidget(total_card, 0, 0)
        cards.addWidget(mastered_card, 0, 1)
        cards.addWidget(learning_card, 0, 2)

        self._chart = MasteryChart()
        self._recent = QListWidget()
        self._recent.itemActivated.connect(self._on_recent_activated)
        view_all = QPushButton("View All Batches")
        view_all.clicked.connect(self.history_requested.emit)

        recent_box = QVBoxLayout()
        recent_box.addWidget(QLabel("Recent Batches"))
        recent_box.addWidget(self._recent)
        recent_box.addWidget(view_all)

        body = QHBoxLayout()
        body.addWidget(self._chart, 1)
        body.addLayout(recent_box, 2)

        layout = QVBoxLayout(self)
        layout.addLayout(header)
        layout.addLayout(cards)
        layout.addLayout(body, 1)

    def refresh(self) -> None:
        stats: UserStats = self._state.store.stats()
        self._total_label.setText(str(stats.total_words))
        self._mastered_label.setText(str(stats.mastered_words))
        self._learning_label.setText(str(stats.learning_words))
        self._chart.set_slices(chart_slices(stats))

        self._recent.clear()
        for session in self._state.recent_sessions():
            when = datetime.fromtimestamp(session.timestamp / 1000)
            item = QListWidgetItem(f"{session.title}  ·  {len(session.words)} words  ·  {when:%Y-%m-%d}")
            item.setData(Qt.UserRole, session.id)
            self._recent.addItem(item)

    def _on_recent_activated(self, item: QListWidgetItem) -> None:
        self.session_selected.emit(item.data(Qt.UserRole))
