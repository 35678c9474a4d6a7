"""Study-session collection mirrored to local storage."""

from __future__ import annotations

import json
import logging
import time
from dataclasses import replace
from typing import Callable, Iterable, Optional

from errors import CORRUPT_STORE, PersistenceError
from interfaces import KeyValueStorage
from models import StudySession, UserStats, VocabularyWord, WordStatus

log = logging.getLogger("smart_vocab.store")

STORAGE_KEY = "smart-vocab-sessions"
CORRUPT_BACKUP_PREFIX = f"{STORAGE_KEY}.corrupt"

EDITABLE_WORD_FIELDS = frozenset(
    {"term", "ipa", "part_of_speech", "meaning", "attempts", "correct_count"}
)

ChangeCallback = Callable[[tuple[StudySession, ...]], None]


def serialize_sessions(sessions: Iterable[StudySession]) -> str:
    return json.dumps([s.to_dict() for s in sessions], ensure_ascii=False)


def deserialize_sessions(raw: str) -> list[StudySession]:
    """Decode a stored blob. Raises ``ValueError`` on malformed data."""
    try:
        data = json.loads(raw)
        if not isinstance(data, list):
            raise ValueError("stored sessions must be a JSON array")
        return [StudySession.from_dict(item) for item in data]
    except (KeyError, TypeError, AttributeError) as exc:
        raise ValueError(f"malformed session record: {exc}") from exc


class SessionStore:
    """Newest-first collection of study sessions.

    Every effective mutation replaces the collection and calls :meth:`flush`,
    which writes the whole collection under :data:`STORAGE_KEY`. Operations
    on unknown ids leave the collection unchanged and return ``False``/``None``.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        on_change: Optional[ChangeCallback] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._storage = storage
        self._on_change = on_change
        self._clock = clock
        self._sessions: tuple[StudySession, ...] = ()
        self.load_error = ""
        self.backup_key = ""

    @property
    def sessions(self) -> tuple[StudySession, ...]:
        return self._sessions

    def load(self) -> None:
        try:
            raw = self._storage.get_item(STORAGE_KEY)
        except UnicodeDecodeError as exc:
            self._quarantine(exc.object.decode("utf-8", errors="backslashreplace"), exc)
            return
        except OSError as exc:
            raise PersistenceError(f"could not read library: {exc}") from exc
        self.load_error = ""
        self.backup_key = ""
        if raw is None:
            self._sessions = ()
            return
        try:
            loaded = deserialize_sessions(raw)
        except ValueError as exc:
            self._quarantine(raw, exc)
            return

        seen: set[str] = set()
        unique: list[StudySession] = []
        for session in loaded:
            if session.id in seen:
                log.warning("dropping duplicate session id %s", session.id)
                continue
            seen.add(session.id)
            unique.append(session)
        self._sessions = tuple(unique)
        log.info("loaded %d sessions", len(self._sessions))

    def _quarantine(self, raw: str, reason: Exception) -> None:
        """Keep an unreadable blob under a fresh backup key and start empty."""
        key = self._free_backup_key()
        log.warning("stored library is malformed (%s); backing it up as %s and starting empty", reason, key)
        try:
            self._storage.set_item(key, raw)
        except OSError as exc:
            log.error("could not back up malformed library: %s", exc)
            raise PersistenceError(f"could not back up malformed library: {exc}") from exc
        self._sessions = ()
        self.load_error = CORRUPT_STORE
        self.backup_key = key

    def _free_backup_key(self) -> str:
        base = f"{CORRUPT_BACKUP_PREFIX}-{int(self._clock() * 1000)}"
        key = base
        suffix = 0
        while self._key_taken(key):
            suffix += 1
            key = f"{base}-{suffix}"
        return key

    def _key_taken(self, key: str) -> bool:
        try:
            return self._storage.get_item(key) is not None
        except (OSError, ValueError):
            return True

    def flush(self) -> None:
        try:
            self._storage.set_item(STORAGE_KEY, serialize_sessions(self._sessions))
        except OSError as exc:
            log.error("could not write library: %s", exc)
            raise PersistenceError(f"could not write library: {exc}") from exc

    def get(self, session_id: str | None) -> StudySession | None:
        if session_id is None:
            return None
        return next((s for s in self._sessions if s.id == session_id), None)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add_session(self, session: StudySession) -> None:
        if self.get(session.id) is not None:
            raise ValueError(f"duplicate session id: {session.id}")
        self._commit((session, *self._sessions))

    def delete_session(self, session_id: str) -> bool:
        remaining = tuple(s for s in self._sessions if s.id != session_id)
        if len(remaining) == len(self._sessions):
            return False
        self._commit(remaining)
        return True

    def add_words(self, session_id: str, words: Iterable[VocabularyWord]) -> bool:
        new_words = tuple(words)
        return self._replace_session(
            session_id, lambda s: replace(s, words=s.words + new_words)
        )

    def update_word(self, session_id: str, word_id: str, **changes: object) -> bool:
        if "status" in changes:
            raise ValueError("status is derived from correct_count and cannot be set")
        unknown = set(changes) - EDITABLE_WORD_FIELDS
        if unknown:
            raise ValueError(f"unknown word fields: {sorted(unknown)}")
        return self._replace_word(session_id, word_id, lambda w: replace(w, **changes))

    def remove_word(self, session_id: str, word_id: str) -> bool:
        session = self.get(session_id)
        if session is None or not any(w.id == word_id for w in session.words):
            return False
        return self._replace_session(
            session_id,
            lambda s: replace(s, words=tuple(w for w in s.words if w.id != word_id)),
        )

    def record_answer(self, session_id: str, word_id: str, correct: bool) -> VocabularyWord | None:
        """Count one quiz attempt; returns the updated word."""
        changed = self._replace_word(
            session_id,
            word_id,
            lambda w: replace(
                w,
                attempts=w.attempts + 1,
                correct_count=w.correct_count + (1 if correct else 0),
            ),
        )
        if not changed:
            return None
        session = self.get(session_id)
        return next(w for w in session.words if w.id == word_id)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def stats(self) -> UserStats:
        stats = UserStats()
        for session in self._sessions:
            for word in session.words:
                stats.total_words += 1
                if word.status == WordStatus.MASTERED:
                    stats.mastered_words += 1
                elif word.status == WordStatus.LEARNING:
                    stats.learning_words += 1
        return stats

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _replace_session(
        self, session_id: str, fn: Callable[[StudySession], StudySession]
    ) -> bool:
        if self.get(session_id) is None:
            return False
        self._commit(tuple(fn(s) if s.id == session_id else s for s in self._sessions))
        return True

    def _replace_word(
        self, session_id: str, word_id: str, fn: Callable[[VocabularyWord], VocabularyWord]
    ) -> bool:
        session = self.get(session_id)
        if session is None or not any(w.id == word_id for w in session.words):
            return False
        return self._replace_session(
            session_id,
            lambda s: replace(s, words=tuple(fn(w) if w.id == word_id else w for w in s.words)),
        )

    def _commit(self, sessions: tuple[StudySession, ...]) -> None:
        self._sessions = sessions
        self.flush()
        if self._on_change:
            self._on_change(self._sessions)
