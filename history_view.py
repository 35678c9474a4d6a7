"""Batch history screen."""

from __future__ import annotations

from datetime import datetime

from PySide6.QtCore import Qt, Signal
from PySide6.QtWidgets import (
    QHBoxLayout,
    QLabel,
    QListWidget,
    QListWidgetItem,
    QMessageBox,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from models import WordStatus
from navigation import AppState


class HistoryView(QWidget):
    session_selected = Signal(str)
    session_deleted = Signal(str)

    def __init__(self, state: AppState, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self._state = state

        title = QLabel("Batches")
        title.setStyleSheet("font-size: 24px; font-weight: 700;")
        self._list = QListWidget()
        self._list.itemActivated.connect(self._on_activated)

        open_button = QPushButton("Open")
        open_button.clicked.connect(self._open_selected)
        delete_button = QPushButton("Delete")
        delete_button.clicked.connect(self._delete_selected)

        actions = QHBoxLayout()
        actions.addStretch(1)
        actions.addWidget(open_button)
        actions.addWidget(delete_button)

        layout = QVBoxLayout(self)
        layout.addWidget(title)
        layout.addWidget(self._list, 1)
        layout.addLayout(actions)

    def refresh(self) -> None:
        self._list.clear()
        for session in self._state.store.sessions:
            mastered = sum(1 for w in session.words if w.status == WordStatus.MASTERED)
            when = datetime.fromtimestamp(session.timestamp / 1000)
            item = QListWidgetItem(
                f"{session.title}  ·  {mastered}/{len(session.words)} mastered  ·  {when:%Y-%m-%d %H:%M}"
            )
            item.setData(Qt.UserRole, session.id)
            self._list.addItem(item)

    def _selected_id(self) -> str | None:
        item = self._list.currentItem()
        return item.data(Qt.UserRole) if item is not None else None

    def _on_activated(self, item: QListWidgetItem) -> None:
        self.session_selected.emit(item.data(Qt.UserRole))

    def _open_selected(self) -> None:
        session_id = self._selected_id()
        if session_id:
            self.session_selected.emit(session_id)

    def _delete_selected(self) -> None:
        session_id = self._selected_id()
        if not session_id:
            return
        answer = QMessageBox.question(
            self, "Delete batch", "Are you sure you want to delete this batch?"
        )
        if answer == QMessageBox.Yes:
            self.session_deleted.emit(session_id)
