"""Study screen: word list of one batch with edit, add and remove."""

from __future__ import annotations

from typing import Callable

from PySide6.QtCore import Qt, Signal
from PySide6.QtWidgets import (
    QHBoxLayout,
    QLabel,
    QPlainTextEdit,
    QPushButton,
    QTableWidget,
    QTableWidgetItem,
    QVBoxLayout,
    QWidget,
)

from batches import append_words, fetch_new_words
from errors import PersistenceError
from interfaces import WordSource
from models import VocabularyWord
from navigation import AppState
from workers import TaskBridge, run_in_background

# column -> VocabularyWord field
_EDITABLE_COLUMNS = {0: "term", 1: "ipa", 2: "part_of_speech", 3: "meaning"}


class StudyView(QWidget):
    back_requested = Signal()
    quiz_requested = Signal()
    message = Signal(str, bool)

    def __init__(
        self,
        state: AppState,
        source_provider: Callable[[], WordSource],
        parent: QWidget | None = None,
    ) -> None:
        super().__init__(parent)
        self._state = state
        self._source_provider = source_provider
        self._task: TaskBridge | None = None
        self._pending_session_id = ""

        back = QPushButton("← Back")
        back.clicked.connect(self.back_requested.emit)
        self._title = QLabel("")
        self._title.setStyleSheet("font-size: 22px; font-weight: 700;")
        self._quiz_button = QPushButton("Start Quiz")
        self._quiz_button.clicked.connect(self.quiz_requested.emit)

        header = QHBoxLayout()
        header.addWidget(back)
        header.addWidget(self._title, 1)
        header.addWidget(self._quiz_button)

        self._table = QTableWidget(0, 5)
        self._table.setHorizontalHeaderLabels(["Word", "IPA", "Type", "Meaning", "Status"])
        self._table.horizontalHeader().setStretchLastSection(True)
        self._table.setSelectionBehavior(QTableWidget.SelectRows)
        self._table.itemChanged.connect(self._on_item_changed)

        remove = QPushButton("Remove Selected Word")
        remove.clicked.connect(self._remove_selected)

        self._new_words = QPlainTextEdit()
        self._new_words.setPlaceholderText("Add more words (one per line)")
        self._new_words.setMaximumHeight(90)
        self._add_button = QPushButton("Add Words")
        self._add_button.clicked.connect(self._add_words)

        add_row = QHBoxLayout()
        add_row.addWidget(self._new_words, 1)
        add_row.addWidget(self._add_button)

        layout = QVBoxLayout(self)
        layout.addLayout(header)
        layout.addWidget(self._table, 1)
        layout.addWidget(remove, 0, Qt.AlignRight)
        layout.addLayout(add_row)

    def refresh(self) -> None:
        session = self._state.active_session
        self._table.blockSignals(True)
        try:
            if session is None:
                self._title.setText("")
                self._table.setRowCount(0)
                return
            self._title.setText(session.title)
            self._table.setRowCount(len(session.words))
            for row, word in enumerate(session.words):
                values = (word.term, word.ipa, word.part_of_speech, word.meaning)
                for col, value in enumerate(values):
                    item = QTableWidgetItem(value)
                    item.setData(Qt.UserRole, word.id)
                    self._table.setItem(row, col, item)
                status = QTableWidgetItem(word.status.value.title())
                status.setFlags(status.flags() & ~Qt.ItemIsEditable)
                status.setData(Qt.UserRole, word.id)
                self._table.setItem(row, 4, status)
            self._quiz_button.setEnabled(bool(session.words))
        finally:
            self._table.blockSignals(False)

    def _on_item_changed(self, item: QTableWidgetItem) -> None:
        session = self._state.active_session
        field = _EDITABLE_COLUMNS.get(item.column())
        if session is None or field is None:
            return
        value = item.text().strip()
        if field == "term" and not value:
            self.message.emit("A word cannot be empty.", True)
            self.refresh()
            return
        self._persist(lambda: self._state.store.update_word(session.id, item.data(Qt.UserRole), **{field: value}))

    def _remove_selected(self) -> None:
        session = self._state.active_session
        item = self._table.currentItem()
        if session is None or item is None:
            return
        self._persist(lambda: self._state.store.remove_word(session.id, item.data(Qt.UserRole)))
        self.refresh()

    def _add_words(self) -> None:
        session = self._state.active_session
        text = self._new_words.toPlainText()
        if session is None or not text.strip():
            return
        source = self._source_provider()
        self._pending_session_id = session.id
        self._add_button.setEnabled(False)
        # Only the lookup runs off-thread; the store is mutated on the Qt thread.
        self._task = run_in_background(
            lambda: fetch_new_words(source, text),
            self._on_words_fetched,
            self._on_add_failed,
        )

    def _on_words_fetched(self, words: list[VocabularyWord]) -> None:
        self._task = None
        self._add_button.setEnabled(True)
        try:
            added = append_words(self._state.store, self._pending_session_id, words)
        except PersistenceError as exc:
            self.message.emit(str(exc), True)
            self.refresh()
            return
        if not added:
            self.message.emit("This batch no longer exists.", True)
            return
        self._new_words.clear()
        self.message.emit(f"Added {added} words.", False)
        self.refresh()

    def _on_add_failed(self, message: str) -> None:
        self._task = None
        self._add_button.setEnabled(True)
        self.message.emit(message, True)

    def _persist(self, fn: Callable[[], object]) -> None:
        try:
            fn()
        except PersistenceError as exc:
            self.message.emit(str(exc), True)
