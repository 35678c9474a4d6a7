"""State-machine based press-to-talk spelling capture.

One controller lives for one visit of the quiz screen. For every question
the screen calls :meth:`VoiceCaptureController.begin_question` with the
target term; the capture button calls :meth:`press` / :meth:`release`.

States::

    IDLE -> RECORDING -> STOPPING -> TRANSCRIBING -> IDLE
                            |             |
                            |             +-> CANCELLED -> IDLE
                            +-> RECORDING (pressed again before the stop fired)

Transcription results are applied only if the request's cancellation scope
is still the controller's current scope.
"""

from __future__ import annotations

import logging
import threading
from queue import Empty, Queue
from typing import Callable, Optional, Protocol

from cancellation import CancellationScope
from errors import PERMISSION_DENIED
from interfaces import Recorder, SpellingTranscriber
from models import AudioFrame, VoiceState
from recorder import WAV_MIME_TYPE, pcm_to_wav_base64

log = logging.getLogger("smart_vocab.voice")

StateCallback = Callable[[VoiceState, VoiceState], None]
LettersCallback = Callable[[str], None]
ErrorCallback = Callable[[str, str], None]


class Timer(Protocol):
    def start(self) -> None: ...

    def cancel(self) -> None: ...


TimerFactory = Callable[[float, Callable[[], None]], Timer]
Spawn = Callable[[Callable[[], None]], None]


def _daemon_timer(delay_s: float, fn: Callable[[], None]) -> Timer:
    timer = threading.Timer(delay_s, fn)
    timer.daemon = True
    return timer


def _spawn_daemon(fn: Callable[[], None]) -> None:
    threading.Thread(target=fn, daemon=True).start()


def clean_letters(text: str) -> str:
    return "".join(ch for ch in text if ch.isascii() and ch.isalpha()).upper()


class VoiceCaptureController:
    def __init__(
        self,
        recorder: Recorder,
        transcriber: SpellingTranscriber,
        stop_delay_s: float = 0.4,
        queue_maxsize: int = 600,
        on_state_change: Optional[StateCallback] = None,
        on_letters: Optional[LettersCallback] = None,
        on_error: Optional[ErrorCallback] = None,
        timer_factory: TimerFactory = _daemon_timer,
        spawn: Spawn = _spawn_daemon,
    ) -> None:
        self._recorder = recorder
        self._transcriber = transcriber
        self._stop_delay_s = stop_delay_s
        self._on_state_change = on_state_change
        self._on_letters = on_letters
        self._on_error = on_error
        self._timer_factory = timer_factory
        self._spawn = spawn

        self._lock = threading.RLock()
        self._state = VoiceState.IDLE
        self._audio_queue: Queue[AudioFrame | None] = Queue(maxsize=queue_maxsize)
        self._stop_timer: Timer | None = None
        self._scope: CancellationScope | None = None
        self._anchor = ""
        self._answer_submitted = False
        self._closed = False
        self._mic_error_reported = False

    @property
    def state(self) -> VoiceState:
        return self._state

    @property
    def busy(self) -> bool:
        return self._state != VoiceState.IDLE

    # ------------------------------------------------------------------
    # Question lifecycle
    # ------------------------------------------------------------------

    def begin_question(self, anchor_word: str) -> None:
        """Reset per-word state for a new question."""
        with self._lock:
            self._abort_capture()
            self._anchor = anchor_word
            self._answer_submitted = False
            self._transition(VoiceState.IDLE)

    def mark_submitted(self) -> None:
        with self._lock:
            self._answer_submitted = True

    # ------------------------------------------------------------------
    # Capture control
    # ------------------------------------------------------------------

    def press(self) -> None:
        with self._lock:
            if self._closed or not self._anchor or self._answer_submitted:
                return
            if self._state == VoiceState.STOPPING:
                self._cancel_stop_timer()
                self._transition(VoiceState.RECORDING)
                return
            if self._state != VoiceState.IDLE:
                return
            self._audio_queue = Queue(maxsize=self._audio_queue.maxsize)
            try:
                self._recorder.start(self._audio_queue)
            except Exception as exc:
                log.warning("microphone unavailable: %s", exc)
                if not self._mic_error_reported:
                    self._mic_error_reported = True
                    self._emit_error(PERMISSION_DENIED, str(exc))
                return
            self._transition(VoiceState.RECORDING)

    def release(self) -> None:
        with self._lock:
            if self._state != VoiceState.RECORDING:
                return
            self._transition(VoiceState.STOPPING)
            timer = self._timer_factory(self._stop_delay_s, lambda: self._finish_recording(timer))
            self._stop_timer = timer
            timer.start()

    def cancel_transcription(self) -> None:
        with self._lock:
            if self._state != VoiceState.TRANSCRIBING:
                return
            self._invalidate_scope()
            self._transition(VoiceState.CANCELLED)
            self._transition(VoiceState.IDLE)

    def shutdown(self) -> None:
        """Tear down on leaving the quiz screen."""
        with self._lock:
            self._abort_capture()
            self._closed = True
            self._safe_close_recorder()
            self._transition(VoiceState.IDLE)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _finish_recording(self, timer: Timer) -> None:
        with self._lock:
            if timer is not self._stop_timer or self._state != VoiceState.STOPPING:
                return
            self._stop_timer = None
            self._safe_stop_recorder()
            pcm, sample_rate, channels = self._drain_audio()
            if not pcm:
                log.info("no audio captured, skipping transcription")
                self._transition(VoiceState.IDLE)
                return

            scope = CancellationScope()
            self._scope = scope
            anchor = self._anchor
            audio_b64 = pcm_to_wav_base64(pcm, sample_rate, channels)
            self._transition(VoiceState.TRANSCRIBING)

        self._spawn(lambda: self._run_transcription(scope, audio_b64, anchor))

    def _run_transcription(self, scope: CancellationScope, audio_b64: str, anchor: str) -> None:
        try:
            text = self._transcriber.transcribe_spelling(audio_b64, WAV_MIME_TYPE, anchor, scope)
        except Exception as exc:
            log.warning("transcriber raised: %s", exc)
            text = ""
        self._apply_transcription(scope, text)

    def _apply_transcription(self, scope: CancellationScope, text: str) -> None:
        with self._lock:
            if scope is not self._scope:
                log.info("dropping stale transcription result for %r", scope)
                return
            self._scope = None
            letters = clean_letters(text)
            self._transition(VoiceState.IDLE)
            if letters and self._on_letters:
                self._on_letters(letters)

    def _drain_audio(self) -> tuple[bytes, int, int]:
        pcm = bytearray()
        sample_rate = 16000
        channels = 1
        while True:
            try:
                frame = self._audio_queue.get_nowait()
            except Empty:
                break
            if frame is None:  # Sentinel
                break
            pcm.extend(frame.pcm16_bytes)
            sample_rate = frame.sample_rate
            channels = frame.channels
        return bytes(pcm), sample_rate, channels

    def _abort_capture(self) -> None:
        self._cancel_stop_timer()
        if self._state in (VoiceState.RECORDING, VoiceState.STOPPING):
            self._safe_stop_recorder()
            self._drain_audio()
        self._invalidate_scope()

    def _invalidate_scope(self) -> None:
        scope = self._scope
        self._scope = None
        if scope is not None:
            scope.cancel()

    def _cancel_stop_timer(self) -> None:
        timer = self._stop_timer
        self._stop_timer = None
        if timer is not None:
            timer.cancel()

    def _emit_error(self, code: str, message: str) -> None:
        if self._on_error:
            self._on_error(code, message)

    def _safe_stop_recorder(self) -> None:
        try:
            self._recorder.stop()
        except Exception as exc:  # pragma: no cover
            log.warning("recorder stop failed: %s", exc)

    def _safe_close_recorder(self) -> None:
        try:
            self._recorder.close()
        except Exception as exc:  # pragma: no cover
            log.warning("recorder close failed: %s", exc)

    def _transition(self, to_state: VoiceState) -> None:
        from_state = self._state
        if from_state == to_state:
            return
        self._state = to_state
        if self._on_state_change:
            self._on_state_change(from_state, to_state)
