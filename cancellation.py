"""Per-request cancellation scope."""

from __future__ import annotations

import itertools
import threading

_ids = itertools.count(1)


class CancellationScope:
    """One scope per transcription request.

    ``cancel()`` is advisory for the request itself. Whoever applies the
    result must additionally check that the scope is still the current one
    (identity, not a flag), so a late response from an abandoned request is
    dropped even if it never noticed the cancel.
    """

    def __init__(self) -> None:
        self.id = next(_ids)
        self._event = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    def __repr__(self) -> str:
        state = "cancelled" if self.cancelled else "active"
        return f"<CancellationScope #{self.id} {state}>"
