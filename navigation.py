"""Screen navigation and selection state, independent of Qt."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from models import StudySession, UserStats
from session_store import SessionStore

RECENT_SESSION_COUNT = 3


class View(str, Enum):
    DASHBOARD = "dashboard"
    SCANNER = "scanner"
    STUDY = "study"
    QUIZ = "quiz"
    HISTORY = "history"


@dataclass
class ChartSlice:
    name: str
    value: int
    color: str


def chart_slices(stats: UserStats) -> list[ChartSlice]:
    slices = [
        ChartSlice("Mastered", stats.mastered_words, "#4f46e5"),
        ChartSlice("Learning", stats.learning_words, "#6366f1"),
        ChartSlice("Remaining", stats.remaining_words, "#cbd5e1"),
    ]
    return [s for s in slices if s.value > 0]


ViewCallback = Callable[[View], None]


class AppState:
    def __init__(self, store: SessionStore, on_view_change: Optional[ViewCallback] = None) -> None:
        self.store = store
        self._on_view_change = on_view_change
        self.current_view = View.DASHBOARD
        self.active_session_id: str | None = None

    @property
    def active_session(self) -> StudySession | None:
        return self.store.get(self.active_session_id)

    def recent_sessions(self) -> tuple[StudySession, ...]:
        return self.store.sessions[:RECENT_SESSION_COUNT]

    def navigate(self, view: View) -> None:
        if view in (View.STUDY, View.QUIZ) and self.active_session is None:
            view = View.DASHBOARD
        if view == self.current_view:
            return
        self.current_view = view
        if self._on_view_change:
            self._on_view_change(view)

    def add_session(self, session: StudySession) -> None:
        self.store.add_session(session)
        self.open_session(session.id)

    def open_session(self, session_id: str) -> None:
        if self.store.get(session_id) is None:
            return
        self.active_session_id = session_id
        self.navigate(View.STUDY)

    def start_quiz(self) -> None:
        self.navigate(View.QUIZ)

    def finish_quiz(self) -> None:
        self.navigate(View.DASHBOARD)

    def delete_session(self, session_id: str) -> bool:
        deleted = self.store.delete_session(session_id)
        if deleted and self.active_session_id == session_id:
            self.active_session_id = None
            self.navigate(View.DASHBOARD)
        return deleted
