"""Run blocking calls off the Qt thread and deliver results through signals."""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable

from errors import INFERENCE_PROTOCOL_ERROR, VocabError, user_message

try:
    from PySide6.QtCore import QObject, Signal
except Exception as exc:  # pragma: no cover
    raise SystemExit(f"PySide6 is required to run the desktop app: {exc}")

log = logging.getLogger("smart_vocab.ui")


class TaskBridge(QObject):
    succeeded = Signal(object)
    failed = Signal(str)


def run_in_background(
    fn: Callable[[], Any],
    on_success: Callable[[Any], None],
    on_failure: Callable[[str], None],
) -> TaskBridge:
    """Call ``fn`` on a worker thread.

    Connect bound methods of widgets so the callbacks run on the Qt thread.
    Keep the returned bridge referenced until one of the signals fired.
    """
    bridge = TaskBridge()
    bridge.succeeded.connect(on_success)
    bridge.failed.connect(on_failure)

    def _worker() -> None:
        try:
            result = fn()
        except VocabError as exc:
            bridge.failed.emit(str(exc))
            return
        except Exception:
            log.exception("background task failed")
            bridge.failed.emit(user_message(INFERENCE_PROTOCOL_ERROR))
            return
        bridge.succeeded.emit(result)

    threading.Thread(target=_worker, daemon=True).start()
    return bridge
