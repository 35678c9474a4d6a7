"""Microphone recorder adapter."""

from __future__ import annotations

import base64
import io
import threading
import time
import wave
from queue import Full, Queue
from typing import Any

from models import AudioFrame

try:
    import numpy as np
except Exception:  # pragma: no cover
    np = None  # type: ignore

try:
    import sounddevice as sd
except Exception:  # pragma: no cover
    sd = None  # type: ignore

WAV_MIME_TYPE = "audio/wav"


def pcm_to_wav_base64(
    pcm: bytes,
    sample_rate: int = 16000,
    channels: int = 1,
    sample_width: int = 2,
) -> str:
    """Convert raw PCM bytes to a base64-encoded WAV string."""
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wf:
        wf.setnchannels(channels)
        wf.setsampwidth(sample_width)
        wf.setframerate(sample_rate)
        wf.writeframes(pcm)
    return base64.b64encode(buf.getvalue()).decode("ascii")


class SoundDeviceRecorder:
    """Push-to-talk recorder.

    The input stream is opened lazily on the first ``start()`` and kept open
    between recordings so the microphone is not re-acquired for every
    question. Frames are only forwarded while a recording is running.
    ``close()`` releases the device.
    """

    def __init__(
        self,
        sample_rate: int = 16000,
        channels: int = 1,
        chunk_ms: int = 100,
    ) -> None:
        self.sample_rate = sample_rate
        self.channels = channels
        self.chunk_ms = chunk_ms
        self._stream: Any = None
        self._running = False
        self._lock = threading.Lock()
        self.dropped_chunks = 0
        self._audio_queue: Queue[AudioFrame | None] | None = None

    def start(self, audio_queue: Queue[AudioFrame | None]) -> None:
        with self._lock:
            if self._running:
                return
            if sd is None:
                raise RuntimeError("sounddevice is not installed")
            if self._stream is None or not self._stream.active:
                self._open_stream()
            self._audio_queue = audio_queue
            self._running = True

    def stop(self) -> None:
        with self._lock:
            self._running = False
            self._emit_sentinel_if_needed()
            self._audio_queue = None

    def close(self) -> None:
        with self._lock:
            if self._running:
                self._running = False
                self._emit_sentinel_if_needed()
                self._audio_queue = None
            self._close_stream()

    @property
    def is_open(self) -> bool:
        return self._stream is not None

    def _open_stream(self) -> None:
        self._close_stream()
        blocksize = int(self.sample_rate * (self.chunk_ms / 1000.0))
        stream = sd.InputStream(
            samplerate=self.sample_rate,
            channels=self.channels,
            dtype="int16",
            blocksize=blocksize,
            callback=self._on_audio,
        )
        stream.start()
        self._stream = stream

    def _close_stream(self) -> None:
        stream = self._stream
        self._stream = None
        if stream is None:
            return
        try:
            stream.stop()
        finally:
            stream.close()

    def _on_audio(self, indata: Any, frames: int, time_info: Any, status: Any) -> None:
        audio_queue = self._audio_queue
        if not self._running or audio_queue is None:
            return
        if np is None:
            return
        payload = np.asarray(indata, dtype=np.int16).tobytes()
        frame = AudioFrame(
            pcm16_bytes=payload,
            sample_rate=self.sample_rate,
            channels=self.channels,
            timestamp_ms=int(time.time() * 1000),
        )
        try:
            audio_queue.put_nowait(frame)
        except Full:
            self.dropped_chunks += 1

    def _emit_sentinel_if_needed(self) -> None:
        if self._audio_queue is None:
            return
        try:
            self._audio_queue.put_nowait(None)
        except Full:
            pass
