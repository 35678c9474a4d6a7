"""Core data models for the app."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

MASTERY_THRESHOLD = 3


class WordStatus(str, Enum):
    UNLEARNED = "UNLEARNED"
    LEARNING = "LEARNING"
    MASTERED = "MASTERED"


class VoiceState(str, Enum):
    IDLE = "IDLE"
    RECORDING = "RECORDING"
    STOPPING = "STOPPING"
    TRANSCRIBING = "TRANSCRIBING"
    CANCELLED = "CANCELLED"


class Feedback(str, Enum):
    NONE = "none"
    CORRECT = "correct"
    INCORRECT = "incorrect"


def status_for(correct_count: int) -> WordStatus:
    if correct_count >= MASTERY_THRESHOLD:
        return WordStatus.MASTERED
    if correct_count > 0:
        return WordStatus.LEARNING
    return WordStatus.UNLEARNED


@dataclass(frozen=True)
class VocabularyWord:
    id: str
    term: str
    ipa: str = ""
    part_of_speech: str = ""
    meaning: str = ""
    attempts: int = 0
    correct_count: int = 0

    @property
    def status(self) -> WordStatus:
        # Derived from correct_count only.
        return status_for(self.correct_count)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "term": self.term,
            "ipa": self.ipa,
            "partOfSpeech": self.part_of_speech,
            "meaning": self.meaning,
            "status": self.status.value,
            "attempts": self.attempts,
            "correctCount": self.correct_count,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "VocabularyWord":
        return cls(
            id=str(raw["id"]),
            term=str(raw["term"]),
            ipa=str(raw.get("ipa", "")),
            part_of_speech=str(raw.get("partOfSpeech", "")),
            meaning=str(raw.get("meaning", "")),
            attempts=int(raw.get("attempts", 0)),
            correct_count=int(raw.get("correctCount", 0)),
        )


@dataclass(frozen=True)
class StudySession:
    id: str
    timestamp: int
    title: str
    words: tuple[VocabularyWord, ...] = ()
    source_image: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "timestamp": self.timestamp,
            "title": self.title,
            "words": [w.to_dict() for w in self.words],
        }
        if self.source_image is not None:
            data["sourceImage"] = self.source_image
        return data

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "StudySession":
        return cls(
            id=str(raw["id"]),
            timestamp=int(raw["timestamp"]),
            title=str(raw.get("title", "")),
            words=tuple(VocabularyWord.from_dict(w) for w in raw.get("words", [])),
            source_image=raw.get("sourceImage"),
        )


@dataclass
class WordDraft:
    """A word record as returned by the inference service, before ids are assigned."""

    term: str
    ipa: str = ""
    part_of_speech: str = ""
    meaning: str = ""


@dataclass
class ExtractionResult:
    words: list[WordDraft] = field(default_factory=list)
    code: str = ""
    message: str = ""

    @property
    def ok(self) -> bool:
        return not self.code


@dataclass
class UserStats:
    total_words: int = 0
    mastered_words: int = 0
    learning_words: int = 0

    @property
    def remaining_words(self) -> int:
        return self.total_words - self.mastered_words - self.learning_words


@dataclass
class AudioFrame:
    pcm16_bytes: bytes
    sample_rate: int = 16000
    channels: int = 1
    timestamp_ms: int = 0
