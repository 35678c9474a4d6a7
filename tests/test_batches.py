from __future__ import annotations

from datetime import datetime

import pytest

from batches import (
    ADD_WORDS_FAILED,
    SOURCE_MANUAL,
    SOURCE_SCAN,
    append_words,
    build_session,
    fetch_new_words,
    lookup_words,
    parse_word_list,
    scan_image,
)
from errors import AUTH_FAILED, INPUT_INVALID, NETWORK_ERROR, NO_WORDS_FOUND, InputValidationError, VocabError
from models import ExtractionResult, StudySession, VocabularyWord, WordDraft
from session_store import SessionStore


class FakeWordSource:
    def __init__(self, result: ExtractionResult | None = None) -> None:
        self.result = result or ExtractionResult(words=[WordDraft("cat", "/kæt/", "n.", "猫")])
        self.image_calls: list[tuple[bytes, str]] = []
        self.detail_calls: list[list[str]] = []

    def extract_words_from_image(self, image_bytes: bytes, mime_type: str = "image/jpeg") -> ExtractionResult:
        self.image_calls.append((image_bytes, mime_type))
        return self.result

    def fetch_word_details(self, terms) -> ExtractionResult:  # noqa: ANN001
        self.detail_calls.append(list(terms))
        return self.result


def test_parse_word_list_drops_blank_lines() -> None:
    assert parse_word_list(" apple \n\n  \nbanana\r\n") == ["apple", "banana"]


def test_scan_without_image_is_rejected() -> None:
    source = FakeWordSource()
    with pytest.raises(InputValidationError) as info:
        scan_image(source, None)
    assert info.value.code == INPUT_INVALID
    assert source.image_calls == []


def test_scan_returns_drafts() -> None:
    source = FakeWordSource()
    drafts = scan_image(source, b"img", "image/png")
    assert [d.term for d in drafts] == ["cat"]
    assert source.image_calls == [(b"img", "image/png")]


def test_scan_with_no_words_found() -> None:
    source = FakeWordSource(ExtractionResult())
    with pytest.raises(VocabError) as info:
        scan_image(source, b"img")
    assert info.value.code == NO_WORDS_FOUND


def test_scan_failure_carries_code() -> None:
    source = FakeWordSource(ExtractionResult(code=NETWORK_ERROR, message="timeout"))
    with pytest.raises(VocabError) as info:
        scan_image(source, b"img")
    assert info.value.code == NETWORK_ERROR
    assert str(info.value) == "Network failed, please retry."


def test_lookup_requires_a_word() -> None:
    source = FakeWordSource()
    with pytest.raises(InputValidationError):
        lookup_words(source, "\n  \n")
    assert source.detail_calls == []


def test_lookup_passes_trimmed_terms() -> None:
    source = FakeWordSource()
    lookup_words(source, "cat\n dog \n")
    assert source.detail_calls == [["cat", "dog"]]


def test_build_scan_session() -> None:
    drafts = [WordDraft("cat"), WordDraft("dog")]
    when = datetime(2024, 3, 5, 9, 30)
    session = build_session(drafts, SOURCE_SCAN, image_bytes=b"\x89PNG", mime_type="image/png", now=when)

    assert session.title == "Scan Batch 2024-03-05"
    assert session.timestamp == int(when.timestamp() * 1000)
    assert session.source_image.startswith("data:image/png;base64,")
    assert [w.term for w in session.words] == ["cat", "dog"]
    assert all(w.attempts == 0 and w.correct_count == 0 for w in session.words)
    assert len({w.id for w in session.words}) == 2


def test_build_manual_session_has_no_image() -> None:
    session = build_session([WordDraft("cat")], SOURCE_MANUAL, image_bytes=b"ignored", now=datetime(2024, 1, 2))
    assert session.title == "Manual Batch 2024-01-02"
    assert session.source_image is None


def test_build_session_needs_words() -> None:
    with pytest.raises(InputValidationError):
        build_session([], SOURCE_MANUAL)


def test_fetched_words_are_appended(store: SessionStore) -> None:
    store.add_session(StudySession(id="s", timestamp=1, title="t", words=(VocabularyWord("w", "dog"),)))
    words = fetch_new_words(FakeWordSource(), "cat\n")
    assert [(w.term, w.attempts, w.correct_count) for w in words] == [("cat", 0, 0)]

    assert append_words(store, "s", words) == 1
    assert [w.term for w in store.get("s").words] == ["dog", "cat"]


def test_append_to_missing_session_adds_nothing(store: SessionStore) -> None:
    words = fetch_new_words(FakeWordSource(), "cat")
    assert append_words(store, "missing", words) == 0
    assert store.sessions == ()


def test_fetch_failure_uses_add_words_message() -> None:
    source = FakeWordSource(ExtractionResult(code=AUTH_FAILED))
    with pytest.raises(VocabError) as info:
        fetch_new_words(source, "cat")
    assert str(info.value) == ADD_WORDS_FAILED
    assert info.value.code == AUTH_FAILED


def test_fetch_with_no_words_found() -> None:
    with pytest.raises(VocabError) as info:
        fetch_new_words(FakeWordSource(ExtractionResult()), "zzzz")
    assert info.value.code == NO_WORDS_FOUND
