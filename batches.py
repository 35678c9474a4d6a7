"""Turning scans and typed word lists into study sessions."""

from __future__ import annotations

import base64
import uuid
from datetime import datetime
from typing import Optional, Sequence

from errors import NO_WORDS_FOUND, InputValidationError, VocabError
from interfaces import WordSource
from models import StudySession, VocabularyWord, WordDraft
from session_store import SessionStore

SOURCE_SCAN = "scan"
SOURCE_MANUAL = "manual"

ADD_WORDS_FAILED = "Failed to fetch word details. Please try again."


def new_id() -> str:
    return uuid.uuid4().hex[:12]


def parse_word_list(text: str) -> list[str]:
    """One word per line; blank lines dropped."""
    return [line.strip() for line in text.splitlines() if line.strip()]


def new_word(draft: WordDraft) -> VocabularyWord:
    return VocabularyWord(
        id=new_id(),
        term=draft.term,
        ipa=draft.ipa,
        part_of_speech=draft.part_of_speech,
        meaning=draft.meaning,
    )


def scan_image(source: WordSource, image_bytes: bytes | None, mime_type: str = "image/jpeg") -> list[WordDraft]:
    if not image_bytes:
        raise InputValidationError("Please select an image first.")
    result = source.extract_words_from_image(image_bytes, mime_type)
    if not result.ok:
        raise VocabError(code=result.code)
    if not result.words:
        raise VocabError(code=NO_WORDS_FOUND)
    return result.words


def lookup_words(source: WordSource, text: str) -> list[WordDraft]:
    terms = parse_word_list(text)
    if not terms:
        raise InputValidationError("Please enter at least one word.")
    result = source.fetch_word_details(terms)
    if not result.ok:
        raise VocabError(code=result.code)
    if not result.words:
        raise VocabError(code=NO_WORDS_FOUND)
    return result.words


def build_session(
    drafts: Sequence[WordDraft],
    source: str,
    image_bytes: Optional[bytes] = None,
    mime_type: str = "image/jpeg",
    now: Optional[datetime] = None,
) -> StudySession:
    if not drafts:
        raise InputValidationError("A batch needs at least one word.")
    when = now or datetime.now()
    label = "Scan" if source == SOURCE_SCAN else "Manual"
    image = None
    if source == SOURCE_SCAN and image_bytes:
        image = f"data:{mime_type};base64,{base64.b64encode(image_bytes).decode('ascii')}"
    return StudySession(
        id=new_id(),
        timestamp=int(when.timestamp() * 1000),
        title=f"{label} Batch {when:%Y-%m-%d}",
        words=tuple(new_word(d) for d in drafts),
        source_image=image,
    )


def fetch_new_words(source: WordSource, text: str) -> list[VocabularyWord]:
    terms = parse_word_list(text)
    if not terms:
        raise InputValidationError("Please enter at least one word.")
    result = source.fetch_word_details(terms)
    if not result.ok:
        raise VocabError(ADD_WORDS_FAILED, code=result.code)
    if not result.words:
        raise VocabError(code=NO_WORDS_FOUND)
    return [new_word(d) for d in result.words]


def append_words(store: SessionStore, session_id: str, words: Sequence[VocabularyWord]) -> int:
    """Append looked-up words to a session. Returns how many were added.

    Returns 0 when the session no longer exists.
    """
    if not words or not store.add_words(session_id, words):
        return 0
    return len(words)
