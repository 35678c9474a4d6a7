from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from storage import LocalStorage


def test_missing_key_reads_none(tmp_path: Path) -> None:
    assert LocalStorage(tmp_path).get_item("nothing") is None


def test_set_and_get(tmp_path: Path) -> None:
    storage = LocalStorage(tmp_path / "data")
    storage.set_item("smart-vocab-sessions", '[{"id": "a"}]')
    storage.set_item("smart-vocab-sessions", "[]")

    assert storage.get_item("smart-vocab-sessions") == "[]"
    assert (tmp_path / "data" / "smart-vocab-sessions.json").exists()


def test_failed_write_keeps_previous_value(tmp_path: Path) -> None:
    storage = LocalStorage(tmp_path)
    storage.set_item("k", "old")

    with patch("storage.os.replace", side_effect=OSError("disk full")):
        with pytest.raises(OSError):
            storage.set_item("k", "new")

    assert storage.get_item("k") == "old"
    assert sorted(p.name for p in tmp_path.iterdir()) == ["k.json"]


@pytest.mark.parametrize("key", ["../escape", "a/b", ""])
def test_unsafe_keys_are_rejected(tmp_path: Path, key: str) -> None:
    with pytest.raises(ValueError):
        LocalStorage(tmp_path).get_item(key)
