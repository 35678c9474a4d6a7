"""Scanner screen: photo scan or typed word list, then review before saving."""

from __future__ import annotations

import mimetypes
from pathlib import Path
from typing import Callable

from PySide6.QtCore import Qt, Signal
from PySide6.QtGui import QPixmap
from PySide6.QtWidgets import (
    QButtonGroup,
    QFileDialog,
    QHBoxLayout,
    QLabel,
    QPlainTextEdit,
    QPushButton,
    QRadioButton,
    QStackedWidget,
    QTableWidget,
    QTableWidgetItem,
    QVBoxLayout,
    QWidget,
)

from batches import SOURCE_MANUAL, SOURCE_SCAN, build_session, lookup_words, scan_image
from interfaces import WordSource
from models import StudySession, WordDraft
from workers import TaskBridge, run_in_background


class ScannerView(QWidget):
    batch_ready = Signal(object)  # StudySession
    message = Signal(str, bool)  # text, is_error

    def __init__(self, source_provider: Callable[[], WordSource], parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self._source_provider = source_provider
        self._image_bytes: bytes | None = None
        self._image_mime = "image/jpeg"
        self._drafts: list[WordDraft] = []
        self._task: TaskBridge | None = None
        self._mode = SOURCE_SCAN

        self._pages = QStackedWidget()
        self._pages.addWidget(self._build_input_page())
        self._pages.addWidget(self._build_review_page())

        layout = QVBoxLayout(self)
        layout.addWidget(self._pages)

    # ------------------------------------------------------------------
    # Layout
    # ------------------------------------------------------------------

    def _build_input_page(self) -> QWidget:
        page = QWidget()
        title = QLabel("Add New Vocabulary")
        title.setStyleSheet("font-size: 24px; font-weight: 700;")

        scan_radio = QRadioButton("AI Scanner")
        manual_radio = QRadioButton("Direct Entry")
        scan_radio.setChecked(True)
        group = QButtonGroup(page)
        group.addButton(scan_radio)
        group.addButton(manual_radio)
        scan_radio.toggled.connect(self._on_mode_toggled)

        modes = QHBoxLayout()
        modes.addWidget(scan_radio)
        modes.addWidget(manual_radio)
        modes.addStretch(1)

        self._preview = QLabel("No image selected")
        self._preview.setAlignment(Qt.AlignCenter)
        self._preview.setMinimumHeight(240)
        self._preview.setStyleSheet("border: 2px dashed #cbd5e1; border-radius: 16px;")
        upload = QPushButton("Upload Photo")
        upload.clicked.connect(self._choose_image)

        self._manual_text = QPlainTextEdit()
        self._manual_text.setPlaceholderText("Enter English words (one per line)\nresilient\nephemeral\nserendipity")

        self._inputs = QStackedWidget()
        scan_page = QWidget()
        scan_layout = QVBoxLayout(scan_page)
        scan_layout.addWidget(self._preview, 1)
        scan_layout.addWidget(upload)
        self._inputs.addWidget(scan_page)
        self._inputs.addWidget(self._manual_text)

        self._process_button = QPushButton("Scan with AI")
        self._process_button.clicked.connect(self._process)
        self._status = QLabel("")
        self._status.setStyleSheet("color: #6366f1;")

        layout = QVBoxLayout(page)
        layout.addWidget(title)
        layout.addLayout(modes)
        layout.addWidget(self._inputs, 1)
        layout.addWidget(self._process_button)
        layout.addWidget(self._status)
        return page

    def _build_review_page(self) -> QWidget:
        page = QWidget()
        title = QLabel("Review Batch")
        title.setStyleSheet("font-size: 24px; font-weight: 700;")
        hint = QLabel("Check extracted definitions before saving.")

        self._table = QTableWidget(0, 4)
        self._table.setHorizontalHeaderLabels(["Word", "IPA", "Type", "Meaning"])
        self._table.horizontalHeader().setStretchLastSection(True)
        self._table.setEditTriggers(QTableWidget.NoEditTriggers)
        self._table.setSelectionBehavior(QTableWidget.SelectRows)

        remove = QPushButton("Remove Selected")
        remove.clicked.connect(self._remove_selected)
        discard = QPushButton("Discard")
        discard.clicked.connect(self.reset)
        self._save_button = QPushButton("Save to Library")
        self._save_button.clicked.connect(self._confirm)
        self._count_label = QLabel("")

        actions = QHBoxLayout()
        actions.addWidget(self._count_label)
        actions.addStretch(1)
        actions.addWidget(remove)
        actions.addWidget(discard)
        actions.addWidget(self._save_button)

        layout = QVBoxLayout(page)
        layout.addWidget(title)
        layout.addWidget(hint)
        layout.addWidget(self._table, 1)
        layout.addLayout(actions)
        return page

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def reset(self) -> None:
        self._drafts = []
        self._image_bytes = None
        self._preview.setPixmap(QPixmap())
        self._preview.setText("No image selected")
        self._manual_text.clear()
        self._status.clear()
        self._set_busy(False)
        self._pages.setCurrentIndex(0)

    def _on_mode_toggled(self, scan_checked: bool) -> None:
        self._mode = SOURCE_SCAN if scan_checked else SOURCE_MANUAL
        self._inputs.setCurrentIndex(0 if scan_checked else 1)
        self._process_button.setText("Scan with AI" if scan_checked else "Fetch Word Details")

    def _choose_image(self) -> None:
        path, _ = QFileDialog.getOpenFileName(self, "Choose photo", "", "Images (*.png *.jpg *.jpeg *.webp)")
        if not path:
            return
        data = Path(path).read_bytes()
        self._image_bytes = data
        self._image_mime = mimetypes.guess_type(path)[0] or "image/jpeg"
        pixmap = QPixmap()
        pixmap.loadFromData(data)
        self._preview.setPixmap(pixmap.scaled(self._preview.size(), Qt.KeepAspectRatio, Qt.SmoothTransformation))

    def _process(self) -> None:
        source = self._source_provider()
        if self._mode == SOURCE_SCAN:
            image, mime = self._image_bytes, self._image_mime
            if not image:
                self.message.emit("Please select an image first.", True)
                return
            job = lambda: scan_image(source, image, mime)  # noqa: E731
        else:
            text = self._manual_text.toPlainText()
            if not text.strip():
                self.message.emit("Please enter at least one word.", True)
                return
            job = lambda: lookup_words(source, text)  # noqa: E731

        self._set_busy(True)
        self._task = run_in_background(job, self._on_words, self._on_failed)

    def _on_words(self, drafts: list[WordDraft]) -> None:
        self._task = None
        self._set_busy(False)
        self._drafts = list(drafts)
        self._fill_table()
        self._pages.setCurrentIndex(1)

    def _on_failed(self, message: str) -> None:
        self._task = None
        self._set_busy(False)
        self.message.emit(message, True)

    def _fill_table(self) -> None:
        self._table.setRowCount(len(self._drafts))
        for row, draft in enumerate(self._drafts):
            for col, value in enumerate((draft.term, draft.ipa, draft.part_of_speech, draft.meaning)):
                self._table.setItem(row, col, QTableWidgetItem(value))
        self._count_label.setText(f"{len(self._drafts)} words analyzed")
        self._save_button.setEnabled(bool(self._drafts))

    def _remove_selected(self) -> None:
        rows = sorted({index.row() for index in self._table.selectedIndexes()}, reverse=True)
        for row in rows:
            del self._drafts[row]
        self._fill_table()

    def _confirm(self) -> None:
        if not self._drafts:
            return
        image = self._image_bytes if self._mode == SOURCE_SCAN else None
        session: StudySession = build_session(self._drafts, self._mode, image, self._image_mime)
        self.batch_ready.emit(session)
        self.reset()

    def _set_busy(self, busy: bool) -> None:
        self._process_button.setEnabled(not busy)
        self._status.setText("AI is generating definitions..." if busy else "")
