"""Shared test fixtures."""

from __future__ import annotations

import pytest

from models import StudySession, VocabularyWord
from session_store import SessionStore


class MemoryStorage:
    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self.items: dict[str, str] = dict(initial or {})
        self.writes = 0

    def get_item(self, key: str) -> str | None:
        return self.items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self.writes += 1
        self.items[key] = value


class FailingStorage(MemoryStorage):
    def set_item(self, key: str, value: str) -> None:
        raise OSError("disk full")


@pytest.fixture
def memory_storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def sample_words() -> list[VocabularyWord]:
    return [
        VocabularyWord("w1", "resilient", "/rɪˈzɪliənt/", "adj.", "有弹性的"),
        VocabularyWord("w2", "ephemeral", "/ɪˈfemərəl/", "adj.", "短暂的", attempts=2, correct_count=1),
        VocabularyWord("w3", "serendipity", "/ˌserənˈdɪpəti/", "n.", "意外发现", attempts=4, correct_count=3),
    ]


@pytest.fixture
def sample_session(sample_words) -> StudySession:
    return StudySession(
        id="s1",
        timestamp=1_700_000_000_000,
        title="Manual Batch 2023-11-14",
        words=tuple(sample_words),
    )


@pytest.fixture
def store(memory_storage) -> SessionStore:
    store = SessionStore(memory_storage)
    store.load()
    return store


@pytest.fixture
def failing_storage() -> FailingStorage:
    return FailingStorage()
