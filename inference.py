"""Remote inference client backed by DashScope hosted models.

Three calls are made against DashScope:

* ``extract_words_from_image`` sends a photo to a Qwen-VL model and asks for
  the vocabulary printed on it.
* ``fetch_word_details`` asks a Qwen text model for IPA, part of speech and
  meaning of a list of terms.
* ``transcribe_spelling`` streams a short WAV clip of someone spelling a word
  letter by letter to the ASR model. The target word is only turned into a
  context hint; the transcript is returned as heard.

No call raises for a recoverable failure. Word lookups return an
``ExtractionResult`` with ``code`` set; transcription returns ``""``.
Nothing is retried here.
"""

from __future__ import annotations

import base64
import json
import logging
import os
import re
from typing import Any, Callable, Sequence

from cancellation import CancellationScope
from errors import AUTH_FAILED, INFERENCE_PROTOCOL_ERROR, NETWORK_ERROR
from models import ExtractionResult, WordDraft

try:
    import dashscope
except Exception:  # pragma: no cover
    dashscope = None  # type: ignore

log = logging.getLogger("smart_vocab.inference")

WORD_FIELDS_PROMPT = (
    "For each word provide:\n"
    "1. The English word itself (\"term\").\n"
    "2. Its IPA phonetic transcription (\"ipa\").\n"
    "3. Its primary part of speech, e.g. n., v., adj. (\"partOfSpeech\").\n"
    "4. Its primary Chinese meaning (\"meaning\").\n"
    "Return only JSON of the form "
    '{"words": [{"term": "", "ipa": "", "partOfSpeech": "", "meaning": ""}]}.'
)

IMAGE_PROMPT = (
    "Extract English vocabulary words from this image. "
    "Only include standard English words.\n" + WORD_FIELDS_PROMPT
)

WORD_DETAILS_PROMPT = "For the following English words: {words}.\n" + WORD_FIELDS_PROMPT

SPELLING_PROMPT = (
    "The user is spelling a word letter by letter (e.g. \"C... A... T...\"). "
    "Transcribe every single letter heard. "
    "Output ONLY the letters separated by spaces (e.g. \"C A T\"). "
    "Map \"double U\" to \"W\". If the user says \"space\", output a space. "
    "Be tolerant of background noise. If the audio ends abruptly, transcribe "
    "exactly what was heard up to that point. Never return the whole word, "
    "only the spaced letters."
)

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


def spelling_context(anchor_word: str) -> str:
    """System context for the ASR call, biased toward the anchor's letters."""
    letters = sorted({ch.upper() for ch in anchor_word if ch.isalpha()})
    if not letters:
        return SPELLING_PROMPT
    return (
        f"{SPELLING_PROMPT} When a letter is ambiguous (B/D/E/P/T/V, M/N, F/S), "
        f"prefer one of: {' '.join(letters)}."
    )


def parse_word_records(text: str) -> list[WordDraft]:
    """Parse the model's JSON reply into drafts.

    Accepts a bare array or an object wrapping one, optionally inside a
    Markdown code fence. Raises ``ValueError`` when no array can be found.
    """
    cleaned = _FENCE_RE.sub("", text.strip())
    if not cleaned:
        return []
    data = json.loads(cleaned)
    if isinstance(data, dict):
        items = data.get("words")
        if items is None:
            items = next((v for v in data.values() if isinstance(v, list)), None)
        data = items
    if not isinstance(data, list):
        raise ValueError("expected a JSON array of word records")

    drafts: list[WordDraft] = []
    for item in data:
        if not isinstance(item, dict):
            continue
        term = str(item.get("term", "")).strip()
        if not term:
            continue
        drafts.append(
            WordDraft(
                term=term,
                ipa=str(item.get("ipa", "")).strip(),
                part_of_speech=str(
                    item.get("partOfSpeech", item.get("part_of_speech", ""))
                ).strip(),
                meaning=str(item.get("meaning", item.get("chineseMeaning", ""))).strip(),
            )
        )
    return drafts


def classify_error(exc: Exception) -> str:
    """Map an SDK/network exception to an error code."""
    low = str(exc).lower()
    if "401" in low or "auth" in low or "api key" in low:
        return AUTH_FAILED
    if (
        isinstance(exc, (ConnectionError, TimeoutError))
        or "timeout" in low
        or "network" in low
        or "connection" in low
    ):
        return NETWORK_ERROR
    return INFERENCE_PROTOCOL_ERROR


class DashscopeInferenceClient:
    def __init__(
        self,
        api_key: str,
        vision_model: str = "qwen-vl-max",
        text_model: str = "qwen-plus",
        speech_model: str = "qwen3-asr-flash",
        request_timeout_s: float = 20.0,
    ) -> None:
        self._api_key = api_key
        self._vision_model = vision_model
        self._text_model = text_model
        self._speech_model = speech_model
        self._request_timeout_s = request_timeout_s

    # ------------------------------------------------------------------
    # Word lookups
    # ------------------------------------------------------------------

    def extract_words_from_image(
        self, image_bytes: bytes, mime_type: str = "image/jpeg"
    ) -> ExtractionResult:
        if not image_bytes:
            return ExtractionResult()
        data_uri = f"data:{mime_type};base64,{base64.b64encode(image_bytes).decode('ascii')}"
        messages = [
            {"role": "user", "content": [{"image": data_uri}, {"text": IMAGE_PROMPT}]},
        ]

        def call(api_key: str) -> Any:
            return dashscope.MultiModalConversation.call(
                api_key=api_key,
                model=self._vision_model,
                messages=messages,
                result_format="message",
                timeout=self._request_timeout_s,
            )

        return self._request_words("image", call)

    def fetch_word_details(self, terms: Sequence[str]) -> ExtractionResult:
        cleaned = [t.strip() for t in terms if t and t.strip()]
        if not cleaned:
            return ExtractionResult()
        prompt = WORD_DETAILS_PROMPT.format(words=", ".join(cleaned))

        def call(api_key: str) -> Any:
            return dashscope.Generation.call(
                api_key=api_key,
                model=self._text_model,
                messages=[{"role": "user", "content": prompt}],
                result_format="message",
                response_format={"type": "json_object"},
                timeout=self._request_timeout_s,
            )

        return self._request_words("details", call)

    def _request_words(self, kind: str, call: Callable[[str], Any]) -> ExtractionResult:
        if dashscope is None:
            return ExtractionResult(code=INFERENCE_PROTOCOL_ERROR, message="dashscope is not installed")
        api_key = self._resolve_api_key()
        if not api_key:
            return ExtractionResult(code=AUTH_FAILED, message="No API key configured")

        try:
            response = call(api_key)
        except Exception as exc:
            code = classify_error(exc)
            log.warning("%s request failed (%s): %s", kind, code, exc)
            return ExtractionResult(code=code, message=str(exc))

        error = self._response_error(response)
        if error is not None:
            log.warning("%s request rejected (%s): %s", kind, error.code, error.message)
            return error

        text = self._extract_text(response)
        try:
            words = parse_word_records(text)
        except ValueError as exc:  # JSONDecodeError included
            log.warning("%s response unparseable: %s | %r", kind, exc, text[:200])
            return ExtractionResult(code=INFERENCE_PROTOCOL_ERROR, message=str(exc))
        log.info("%s request returned %d words", kind, len(words))
        return ExtractionResult(words=words)

    # ------------------------------------------------------------------
    # Spelling transcription
    # ------------------------------------------------------------------

    def transcribe_spelling(
        self,
        audio_b64: str,
        mime_type: str,
        anchor_word: str,
        scope: CancellationScope,
    ) -> str:
        if scope.cancelled or not audio_b64:
            return ""
        if dashscope is None:
            log.warning("transcription skipped: dashscope is not installed")
            return ""
        api_key = self._resolve_api_key()
        if not api_key:
            log.warning("transcription skipped: no API key configured")
            return ""

        try:
            response = dashscope.MultiModalConversation.call(
                api_key=api_key,
                model=self._speech_model,
                messages=[
                    {"role": "system", "content": [{"text": spelling_context(anchor_word)}]},
                    {"role": "user", "content": [{"audio": f"data:{mime_type};base64,{audio_b64}"}]},
                ],
                result_format="message",
                asr_options={"enable_itn": False},
                stream=True,
                timeout=self._request_timeout_s,
            )
        except Exception as exc:
            log.warning("transcription failed (%s): %s", classify_error(exc), exc)
            return ""

        latest_text = ""
        try:
            for chunk in response:
                if scope.cancelled:
                    log.info("transcription %r cancelled mid-stream", scope)
                    return ""
                error = self._response_error(chunk)
                if error is not None:
                    log.warning("transcription rejected (%s): %s", error.code, error.message)
                    return ""
                text = self._extract_text(chunk)
                if text:
                    latest_text = text
        except Exception as exc:
            log.warning("transcription stream broke (%s): %s", classify_error(exc), exc)
            return ""

        if scope.cancelled:
            return ""
        return latest_text.strip()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _resolve_api_key(self) -> str:
        return self._api_key or os.getenv("DASHSCOPE_API_KEY", "")

    def _response_error(self, response: object) -> ExtractionResult | None:
        if not isinstance(response, dict):
            return None
        status = response.get("status_code", 200)
        if status in (None, 200):
            return None
        code = AUTH_FAILED if status in (401, 403) else INFERENCE_PROTOCOL_ERROR
        message = str(response.get("message") or response.get("code") or f"HTTP {status}")
        return ExtractionResult(code=code, message=message)

    def _extract_text(self, chunk: object) -> str:
        """Pull text from a DashScope message-format response or stream chunk."""
        if not isinstance(chunk, dict):
            return ""
        output = chunk.get("output") or {}
        choices = output.get("choices") or []
        if not choices:
            return str(output.get("text") or "")
        message = choices[0].get("message") or {}
        content = message.get("content")
        if isinstance(content, str):
            return content
        if not content:
            return ""
        return "".join(
            str(part.get("text", "")) for part in content if isinstance(part, dict)
        )
