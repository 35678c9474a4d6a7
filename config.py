"""Simple JSON-based config store."""

from __future__ import annotations

import json
from pathlib import Path

DEFAULT_VISION_MODEL = "qwen-vl-max"
DEFAULT_TEXT_MODEL = "qwen-plus"
DEFAULT_SPEECH_MODEL = "qwen3-asr-flash"
DEFAULT_STOP_DELAY_MS = 400


class JsonConfigStore:
    def __init__(self, path: Path | None = None) -> None:
        self._path = path or Path.home() / ".config" / "smart_vocab" / "config.json"
        self._path.parent.mkdir(parents=True, exist_ok=True)

    def get_api_key(self) -> str:
        data = self._read_all()
        return str(data.get("api_key", ""))

    def set_api_key(self, key: str) -> None:
        data = self._read_all()
        data["api_key"] = key
        self._write_all(data)

    def get_vision_model(self) -> str:
        return str(self._read_all().get("vision_model", DEFAULT_VISION_MODEL))

    def get_text_model(self) -> str:
        return str(self._read_all().get("text_model", DEFAULT_TEXT_MODEL))

    def get_speech_model(self) -> str:
        return str(self._read_all().get("speech_model", DEFAULT_SPEECH_MODEL))

    def get_stop_delay_ms(self) -> int:
        value = self._read_all().get("stop_delay_ms", DEFAULT_STOP_DELAY_MS)
        try:
            return max(0, int(value))
        except (TypeError, ValueError):
            return DEFAULT_STOP_DELAY_MS

    def get_data_dir(self) -> Path:
        raw = self._read_all().get("data_dir")
        if raw:
            return Path(str(raw)).expanduser()
        return Path.home() / ".local" / "share" / "smart_vocab"

    def _read_all(self) -> dict:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError):
            return {}
        return data if isinstance(data, dict) else {}

    def _write_all(self, data: dict) -> None:
        self._path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
