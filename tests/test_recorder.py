"""Tests for SoundDeviceRecorder."""

from __future__ import annotations

import base64
import io
import wave
from queue import Queue
from unittest.mock import MagicMock, patch

import pytest

from models import AudioFrame
from recorder import SoundDeviceRecorder, pcm_to_wav_base64


# ---------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------

class _FakeNp:
    """Minimal numpy stand-in so recorder._on_audio doesn't bail."""

    class int16:
        pass

    @staticmethod
    def asarray(data, dtype=None):
        return data


class _FakeAudioInput:
    """Fake audio input similar to what sounddevice callback provides."""

    def __init__(self, n_samples: int = 1600) -> None:
        self._data = b"\x00\x00" * n_samples

    def tobytes(self) -> bytes:
        return self._data


# ---------------------------------------------------------------
# WAV encoding
# ---------------------------------------------------------------

def test_pcm_to_wav_base64_produces_riff() -> None:
    pcm = b"\x00\x00" * 1600
    decoded = base64.b64decode(pcm_to_wav_base64(pcm, sample_rate=16000, channels=1))
    assert decoded[:4] == b"RIFF"

    with wave.open(io.BytesIO(decoded), "rb") as wf:
        assert wf.getframerate() == 16000
        assert wf.getnchannels() == 1
        assert wf.getnframes() == 1600


# ---------------------------------------------------------------
# Stream lifecycle
# ---------------------------------------------------------------

@patch("recorder.sd")
def test_start_opens_stream_once(mock_sd: MagicMock) -> None:
    mock_stream = MagicMock()
    mock_sd.InputStream.return_value = mock_stream

    recorder = SoundDeviceRecorder()
    q: Queue[AudioFrame | None] = Queue()
    recorder.start(q)
    recorder.start(q)  # second call is a no-op

    assert mock_sd.InputStream.call_count == 1
    mock_stream.start.assert_called_once()
    assert recorder.is_open


@patch("recorder.sd")
def test_stop_emits_sentinel_and_keeps_stream_open(mock_sd: MagicMock) -> None:
    mock_stream = MagicMock()
    mock_sd.InputStream.return_value = mock_stream

    recorder = SoundDeviceRecorder()
    q: Queue[AudioFrame | None] = Queue()
    recorder.start(q)
    recorder.stop()
    recorder.stop()  # second stop must not raise

    assert q.get_nowait() is None
    assert q.empty()
    mock_stream.close.assert_not_called()
    assert recorder.is_open


@patch("recorder.sd")
def test_restart_reuses_open_stream(mock_sd: MagicMock) -> None:
    mock_stream = MagicMock()
    mock_stream.active = True
    mock_sd.InputStream.return_value = mock_stream

    recorder = SoundDeviceRecorder()
    recorder.start(Queue())
    recorder.stop()
    recorder.start(Queue())

    assert mock_sd.InputStream.call_count == 1


@patch("recorder.sd")
def test_inactive_stream_is_reopened(mock_sd: MagicMock) -> None:
    dead = MagicMock()
    dead.active = False
    fresh = MagicMock()
    mock_sd.InputStream.side_effect = [dead, fresh]

    recorder = SoundDeviceRecorder()
    recorder.start(Queue())
    recorder.stop()
    recorder.start(Queue())

    assert mock_sd.InputStream.call_count == 2
    dead.close.assert_called_once()


@patch("recorder.sd")
def test_close_releases_device(mock_sd: MagicMock) -> None:
    mock_stream = MagicMock()
    mock_sd.InputStream.return_value = mock_stream

    recorder = SoundDeviceRecorder()
    q: Queue[AudioFrame | None] = Queue()
    recorder.start(q)
    recorder.close()

    mock_stream.stop.assert_called_once()
    mock_stream.close.assert_called_once()
    assert not recorder.is_open
    assert q.get_nowait() is None


# ---------------------------------------------------------------
# Audio callback
# ---------------------------------------------------------------

@patch("recorder.np", _FakeNp())
@patch("recorder.sd")
def test_callback_pushes_audio_frames(mock_sd: MagicMock) -> None:
    mock_sd.InputStream.return_value = MagicMock()

    recorder = SoundDeviceRecorder(sample_rate=16000, channels=1, chunk_ms=100)
    q: Queue[AudioFrame | None] = Queue(maxsize=50)
    recorder.start(q)

    recorder._on_audio(_FakeAudioInput(1600), frames=1600, time_info=None, status=None)

    frame = q.get_nowait()
    assert isinstance(frame, AudioFrame)
    assert frame.sample_rate == 16000
    assert frame.channels == 1
    assert len(frame.pcm16_bytes) == 1600 * 2


@patch("recorder.np", _FakeNp())
@patch("recorder.sd")
def test_queue_full_increments_dropped_chunks(mock_sd: MagicMock) -> None:
    mock_sd.InputStream.return_value = MagicMock()

    recorder = SoundDeviceRecorder()
    q: Queue[AudioFrame | None] = Queue(maxsize=1)
    recorder.start(q)

    data = _FakeAudioInput(1600)
    recorder._on_audio(data, frames=1600, time_info=None, status=None)
    assert recorder.dropped_chunks == 0
    recorder._on_audio(data, frames=1600, time_info=None, status=None)
    assert recorder.dropped_chunks == 1


@patch("recorder.np", _FakeNp())
@patch("recorder.sd")
def test_callback_between_recordings_is_dropped(mock_sd: MagicMock) -> None:
    mock_sd.InputStream.return_value = MagicMock()

    recorder = SoundDeviceRecorder()
    q: Queue[AudioFrame | None] = Queue()
    recorder.start(q)
    recorder.stop()
    q.get_nowait()  # sentinel

    recorder._on_audio(_FakeAudioInput(1600), frames=1600, time_info=None, status=None)
    assert q.empty()


def test_start_raises_without_sounddevice(monkeypatch) -> None:  # noqa: ANN001
    import recorder as rec_mod
    monkeypatch.setattr(rec_mod, "sd", None)

    recorder = SoundDeviceRecorder()
    with pytest.raises(RuntimeError, match="sounddevice is not installed"):
        recorder.start(Queue())
