"""Quiz screen: spell each word by typing or holding the mic button."""

from __future__ import annotations

import logging
from typing import Callable

from PySide6.QtCore import QObject, Qt, Signal
from PySide6.QtWidgets import (
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QProgressBar,
    QPushButton,
    QStackedWidget,
    QVBoxLayout,
    QWidget,
)

from errors import PersistenceError, user_message
from models import Feedback, VocabularyWord, VoiceState
from navigation import AppState
from quiz import QuizRound
from voice_controller import VoiceCaptureController

log = logging.getLogger("smart_vocab.ui")

ControllerFactory = Callable[..., VoiceCaptureController]

_PLACEHOLDERS = {
    VoiceState.RECORDING: "Listening...",
    VoiceState.STOPPING: "Listening...",
    VoiceState.TRANSCRIBING: "AI Analyzing...",
}


class VoiceBridge(QObject):
    state_signal = Signal(str, str)  # from_state, to_state
    letters_signal = Signal(str)
    error_signal = Signal(str, str)  # code, message


class QuizView(QWidget):
    completed = Signal()
    message = Signal(str, bool)

    def __init__(
        self,
        state: AppState,
        controller_factory: ControllerFactory,
        parent: QWidget | None = None,
    ) -> None:
        super().__init__(parent)
        session = state.active_session
        if session is None:
            raise RuntimeError("quiz needs an active session")
        self._state = state
        self._session_id = session.id
        self._quiz = QuizRound(session.words, on_answer=self._record_answer)
        self._voice_state = VoiceState.IDLE

        # Controller callbacks arrive on timer/worker threads.
        self._bridge = VoiceBridge()
        self._bridge.state_signal.connect(self._on_voice_state_ui)
        self._bridge.letters_signal.connect(self._on_letters_ui)
        self._bridge.error_signal.connect(self._on_voice_error_ui)
        self._voice = controller_factory(
            on_state_change=lambda f, t: self._bridge.state_signal.emit(f.value, t.value),
            on_letters=self._bridge.letters_signal.emit,
            on_error=self._bridge.error_signal.emit,
        )

        self._pages = QStackedWidget()
        self._pages.addWidget(self._build_question_page())
        self._pages.addWidget(self._build_done_page())
        layout = QVBoxLayout(self)
        layout.addWidget(self._pages)

        self._show_current()

    # ------------------------------------------------------------------
    # Layout
    # ------------------------------------------------------------------

    def _build_question_page(self) -> QWidget:
        page = QWidget()
        self._left_label = QLabel("")
        self._progress = QProgressBar()
        self._progress.setTextVisible(False)

        self._ipa_label = QLabel("")
        self._ipa_label.setAlignment(Qt.AlignCenter)
        self._ipa_label.setStyleSheet("color: #94a3b8; font-family: monospace;")
        self._meaning_label = QLabel("")
        self._meaning_label.setAlignment(Qt.AlignCenter)
        self._meaning_label.setWordWrap(True)
        self._meaning_label.setStyleSheet("font-size: 34px; font-weight: 800;")

        self._answer = QLineEdit()
        self._answer.setAlignment(Qt.AlignCenter)
        self._answer.setPlaceholderText("Hold mic to spell")
        self._answer.setStyleSheet("font-size: 28px; font-weight: 700; letter-spacing: 4px;")
        self._answer.textEdited.connect(self._quiz.set_answer)
        self._answer.returnPressed.connect(self._submit_or_next)

        self._mic_button = QPushButton("🎙 Hold to spell")
        self._mic_button.pressed.connect(self._on_mic_pressed)
        self._mic_button.released.connect(self._on_mic_released)
        self._clear_button = QPushButton("Clear")
        self._clear_button.clicked.connect(self._on_clear_clicked)
        self._cancel_button = QPushButton("Cancel")
        self._cancel_button.clicked.connect(self._on_cancel_clicked)
        self._cancel_button.hide()

        controls = QHBoxLayout()
        controls.addWidget(self._answer, 1)
        controls.addWidget(self._clear_button)
        controls.addWidget(self._mic_button)

        self._processing_label = QLabel("")
        self._processing_label.setStyleSheet("color: #6366f1; font-weight: 600;")
        processing = QHBoxLayout()
        processing.addStretch(1)
        processing.addWidget(self._processing_label)
        processing.addWidget(self._cancel_button)
        processing.addStretch(1)

        self._submit_button = QPushButton("Check Answer")
        self._submit_button.clicked.connect(self._submit_or_next)
        self._feedback_label = QLabel("")
        self._feedback_label.setAlignment(Qt.AlignCenter)
        self._feedback_label.setWordWrap(True)

        layout = QVBoxLayout(page)
        layout.addWidget(self._left_label)
        layout.addWidget(self._progress)
        layout.addStretch(1)
        layout.addWidget(self._ipa_label)
        layout.addWidget(self._meaning_label)
        layout.addLayout(controls)
        layout.addLayout(processing)
        layout.addWidget(self._submit_button)
        layout.addWidget(self._feedback_label)
        layout.addStretch(1)
        return page

    def _build_done_page(self) -> QWidget:
        page = QWidget()
        title = QLabel("Quiz Completed!")
        title.setAlignment(Qt.AlignCenter)
        title.setStyleSheet("font-size: 28px; font-weight: 800;")
        hint = QLabel("You've successfully reviewed all words in this batch.")
        hint.setAlignment(Qt.AlignCenter)
        done = QPushButton("Return to Dashboard")
        done.clicked.connect(self.completed.emit)

        layout = QVBoxLayout(page)
        layout.addStretch(1)
        layout.addWidget(title)
        layout.addWidget(hint)
        layout.addWidget(done)
        layout.addStretch(1)
        return page

    # ------------------------------------------------------------------
    # Quiz flow
    # ------------------------------------------------------------------

    def close_quiz(self) -> None:
        self._voice.shutdown()

    def _show_current(self) -> None:
        word = self._quiz.current
        if word is None:
            self._voice.shutdown()
            self._pages.setCurrentIndex(1)
            return
        self._voice.begin_question(word.term)
        self._left_label.setText(f"Left: {self._quiz.remaining}")
        total = max(1, self._quiz.total)
        self._progress.setValue(int(100 * (1 - self._quiz.remaining / total)))
        self._ipa_label.setText(word.ipa)
        self._meaning_label.setText(word.meaning or word.part_of_speech)
        self._answer.setText(self._quiz.answer)
        self._feedback_label.clear()
        self._submit_button.setText("Check Answer")
        self._refresh_controls()
        self._answer.setFocus()

    def _submit_or_next(self) -> None:
        if self._voice.busy:
            return
        if self._quiz.answered:
            self._quiz.advance()
            self._show_current()
            return
        word = self._quiz.current
        if word is None or not self._quiz.answer.strip():
            return
        self._voice.mark_submitted()
        correct = self._quiz.submit()
        if correct:
            self._feedback_label.setText("✅ Correct!")
            self._feedback_label.setStyleSheet("color: #059669; font-size: 20px; font-weight: 700;")
        else:
            self._feedback_label.setText(f"Correct answer: {word.term.upper()}")
            self._feedback_label.setStyleSheet("color: #dc2626; font-size: 20px; font-weight: 700;")
        self._submit_button.setText("Next Word →")
        self._refresh_controls()

    def _record_answer(self, word: VocabularyWord, correct: bool) -> None:
        try:
            self._state.store.record_answer(self._session_id, word.id, correct)
        except PersistenceError as exc:
            self.message.emit(str(exc), True)

    # ------------------------------------------------------------------
    # Voice capture (Qt thread)
    # ------------------------------------------------------------------

    def _on_mic_pressed(self) -> None:
        self._voice.press()

    def _on_mic_released(self) -> None:
        self._voice.release()

    def _on_cancel_clicked(self) -> None:
        self._voice.cancel_transcription()

    def _on_voice_state_ui(self, from_state: str, to_state: str) -> None:
        self._voice_state = VoiceState(to_state)
        self._refresh_controls()

    def _on_letters_ui(self, letters: str) -> None:
        self._quiz.append_letters(letters)
        self._answer.setText(self._quiz.answer)

    def _on_clear_clicked(self) -> None:
        self._quiz.clear_answer()
        self._answer.setText(self._quiz.answer)

    def _on_voice_error_ui(self, code: str, message: str) -> None:
        log.info("voice capture unavailable (%s): %s", code, message)
        self.message.emit(user_message(code), True)

    def _refresh_controls(self) -> None:
        answered = self._quiz.feedback != Feedback.NONE
        busy = self._voice_state != VoiceState.IDLE
        transcribing = self._voice_state == VoiceState.TRANSCRIBING

        self._answer.setReadOnly(answered or busy)
        self._answer.setPlaceholderText(_PLACEHOLDERS.get(self._voice_state, "Hold mic to spell"))
        self._mic_button.setVisible(not answered)
        self._mic_button.setEnabled(not transcribing)
        self._clear_button.setVisible(not answered)
        self._clear_button.setEnabled(not busy)
        self._cancel_button.setVisible(transcribing)
        self._processing_label.setText("AI Recognition..." if transcribing else "")
        self._submit_button.setEnabled(not busy)
