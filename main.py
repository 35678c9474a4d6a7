"""Application entrypoint."""

from __future__ import annotations

import logging
import sys

from config import JsonConfigStore
from errors import CORRUPT_STORE, PersistenceError, user_message
from inference import DashscopeInferenceClient
from navigation import AppState, View
from recorder import SoundDeviceRecorder
from session_store import SessionStore
from storage import LocalStorage
from voice_controller import VoiceCaptureController

try:
    from PySide6.QtGui import QAction
    from PySide6.QtWidgets import (
        QApplication,
        QHBoxLayout,
        QInputDialog,
        QLabel,
        QLineEdit,
        QMainWindow,
        QMessageBox,
        QProgressBar,
        QPushButton,
        QStackedWidget,
        QVBoxLayout,
        QWidget,
    )
except Exception as exc:  # pragma: no cover
    raise SystemExit(f"PySide6 is required to run the desktop app: {exc}")

from dashboard_view import DashboardView
from history_view import HistoryView
from overlay import ToastOverlay
from quiz_view import QuizView
from scanner_view import ScannerView
from study_view import StudyView

log = logging.getLogger("smart_vocab.ui")


class App:
    def __init__(self) -> None:
        self.app = QApplication(sys.argv)
        self.config_store = JsonConfigStore()
        self.storage = LocalStorage(self.config_store.get_data_dir())
        self.store = SessionStore(self.storage)
        self.state = AppState(self.store, on_view_change=self._on_view_change)
        self.inference = self._build_inference()
        self.recorder = SoundDeviceRecorder()
        self._quiz_view: QuizView | None = None

        self.window = QMainWindow()
        self.window.setWindowTitle("SmartVocab AI")
        self.window.resize(1100, 760)
        self.toast = ToastOverlay(self.window)
        self._setup_menu()
        self._setup_layout()

    def _build_inference(self) -> DashscopeInferenceClient:
        return DashscopeInferenceClient(
            api_key=self.config_store.get_api_key(),
            vision_model=self.config_store.get_vision_model(),
            text_model=self.config_store.get_text_model(),
            speech_model=self.config_store.get_speech_model(),
        )

    def _current_inference(self) -> DashscopeInferenceClient:
        return self.inference

    def _setup_menu(self) -> None:
        menu = self.window.menuBar().addMenu("Settings")

        api_action = QAction("Set API Key", menu)
        api_action.triggered.connect(self._set_api_key)
        menu.addAction(api_action)

        menu.addSeparator()
        quit_action = QAction("Quit", menu)
        quit_action.triggered.connect(self.quit)
        menu.addAction(quit_action)

    def _setup_layout(self) -> None:
        sidebar = QVBoxLayout()
        title = QLabel("SmartVocab AI")
        title.setStyleSheet("font-size: 20px; font-weight: 800; color: #4f46e5;")
        sidebar.addWidget(title)
        for label, view in (("Dashboard", View.DASHBOARD), ("New Scan", View.SCANNER), ("Batches", View.HISTORY)):
            button = QPushButton(label)
            button.clicked.connect(lambda _=False, v=view: self.state.navigate(v))
            sidebar.addWidget(button)
        sidebar.addStretch(1)
        self._progress_label = QLabel("")
        self._progress_bar = QProgressBar()
        self._progress_bar.setTextVisible(False)
        sidebar.addWidget(QLabel("My Progress"))
        sidebar.addWidget(self._progress_label)
        sidebar.addWidget(self._progress_bar)

        self.dashboard = DashboardView(self.state)
        self.dashboard.scan_requested.connect(lambda: self.state.navigate(View.SCANNER))
        self.dashboard.history_requested.connect(lambda: self.state.navigate(View.HISTORY))
        self.dashboard.session_selected.connect(self.state.open_session)

        self.scanner = ScannerView(self._current_inference)
        self.scanner.batch_ready.connect(self._on_batch_ready)
        self.scanner.message.connect(self._show_message)

        self.study = StudyView(self.state, self._current_inference)
        self.study.back_requested.connect(lambda: self.state.navigate(View.DASHBOARD))
        self.study.quiz_requested.connect(self.state.start_quiz)
        self.study.message.connect(self._show_message)

        self.history = HistoryView(self.state)
        self.history.session_selected.connect(self.state.open_session)
        self.history.session_deleted.connect(self._on_session_deleted)

        self.quiz_host = QWidget()
        QVBoxLayout(self.quiz_host).setContentsMargins(0, 0, 0, 0)

        self.stack = QStackedWidget()
        self._pages = {
            View.DASHBOARD: self.dashboard,
            View.SCANNER: self.scanner,
            View.STUDY: self.study,
            View.QUIZ: self.quiz_host,
            View.HISTORY: self.history,
        }
        for page in self._pages.values():
            self.stack.addWidget(page)

        central = QWidget()
        root = QHBoxLayout(central)
        side = QWidget()
        side.setFixedWidth(220)
        side.setLayout(sidebar)
        root.addWidget(side)
        root.addWidget(self.stack, 1)
        self.window.setCentralWidget(central)

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def _on_view_change(self, view: View) -> None:
        if view != View.QUIZ:
            self._close_quiz()
        if view == View.QUIZ:
            self._open_quiz()
        page = self._pages[view]
        refresh = getattr(page, "refresh", None)
        if refresh is not None:
            refresh()
        self.stack.setCurrentWidget(page)
        self._refresh_progress()

    def _open_quiz(self) -> None:
        self._close_quiz()
        delay_s = self.config_store.get_stop_delay_ms() / 1000.0
        inference = self.inference

        def factory(**callbacks: object) -> VoiceCaptureController:
            return VoiceCaptureController(
                recorder=self.recorder,
                transcriber=inference,
                stop_delay_s=delay_s,
                **callbacks,
            )

        view = QuizView(self.state, factory)
        view.completed.connect(self.state.finish_quiz)
        view.message.connect(self._show_message)
        self.quiz_host.layout().addWidget(view)
        self._quiz_view = view

    def _close_quiz(self) -> None:
        view = self._quiz_view
        if view is None:
            return
        self._quiz_view = None
        view.close_quiz()
        self.quiz_host.layout().removeWidget(view)
        view.deleteLater()

    def _refresh_progress(self) -> None:
        stats = self.store.stats()
        self._progress_label.setText(f"Mastered {stats.mastered_words}/{stats.total_words}")
        self._progress_bar.setMaximum(max(1, stats.total_words))
        self._progress_bar.setValue(stats.mastered_words)

    # ------------------------------------------------------------------
    # Intents
    # ------------------------------------------------------------------

    def _on_batch_ready(self, session: object) -> None:
        try:
            self.state.add_session(session)
        except PersistenceError as exc:
            self._show_message(str(exc), True)

    def _on_session_deleted(self, session_id: str) -> None:
        try:
            self.state.delete_session(session_id)
        except PersistenceError as exc:
            self._show_message(str(exc), True)
        self.history.refresh()
        self._refresh_progress()

    def _show_message(self, text: str, is_error: bool) -> None:
        if is_error:
            self.toast.show_error(text)
        else:
            self.toast.show_message(text)

    def _set_api_key(self) -> None:
        value, ok = QInputDialog.getText(
            self.window, "API Key", "DashScope API Key", QLineEdit.Password
        )
        if not ok:
            return
        self.config_store.set_api_key(value)
        # Hot-swap the client; an open quiz keeps the one it started with.
        self.inference = self._build_inference()
        QMessageBox.information(self.window, "Saved", "API Key saved and applied.")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def run(self) -> int:
        try:
            self.store.load()
        except PersistenceError as exc:
            QMessageBox.critical(None, "SmartVocab AI", str(exc))
            return 1
        self.window.show()
        self._on_view_change(self.state.current_view)
        if self.store.load_error == CORRUPT_STORE:
            self.toast.show_error(user_message(CORRUPT_STORE), hide_after_ms=8000)
        self.app.aboutToQuit.connect(self._shutdown)
        return self.app.exec()

    def _shutdown(self) -> None:
        self._close_quiz()
        self.recorder.close()

    def quit(self) -> None:
        self.app.quit()


def main() -> int:
    logging.basicConfig(level=logging.INFO, format="%(name)s | %(message)s")
    app = App()
    return app.run()


if __name__ == "__main__":
    raise SystemExit(main())
