"""Protocol interfaces used by the controllers and the store."""

from __future__ import annotations

from queue import Queue
from typing import Protocol, Sequence

from cancellation import CancellationScope
from models import AudioFrame, ExtractionResult


class Recorder(Protocol):
    def start(self, audio_queue: Queue[AudioFrame | None]) -> None: ...

    def stop(self) -> None: ...

    def close(self) -> None: ...


class SpellingTranscriber(Protocol):
    def transcribe_spelling(
        self,
        audio_b64: str,
        mime_type: str,
        anchor_word: str,
        scope: CancellationScope,
    ) -> str: ...


class WordSource(Protocol):
    def extract_words_from_image(
        self, image_bytes: bytes, mime_type: str = "image/jpeg"
    ) -> ExtractionResult: ...

    def fetch_word_details(self, terms: Sequence[str]) -> ExtractionResult: ...


class KeyValueStorage(Protocol):
    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

