from __future__ import annotations

import threading
import time
from typing import Optional

from .errors import OperationCancelled


class Cancellation:
    """Cooperative cancellation token with an optional deadline.

    A token created with ``parent`` is cancelled whenever its parent is, but
    cancelling the child leaves the parent untouched. The aggregator uses this
    to stop sibling work after a failure without touching the caller's token.
    """

    def __init__(self, timeout: Optional[float] = None, parent: Optional["Cancellation"] = None) -> None:
        self._event = threading.Event()
        self._deadline = time.monotonic() + timeout if timeout is not None else None
        self._parent = parent

    def child(self) -> "Cancellation":
        return Cancellation(parent=self)

    def cancel(self) -> None:
        self._event.set()

    @property
    def deadline_exceeded(self) -> bool:
        if self._deadline is not None and time.monotonic() >= self._deadline:
            return True
        return self._parent.deadline_exceeded if self._parent else False

    @property
    def cancelled(self) -> bool:
        if self._event.is_set() or self.deadline_exceeded:
            return True
        return self._parent.cancelled if self._parent else False

    def remaining(self) -> Optional[float]:
        """Seconds left before the nearest deadline, or ``None`` when unbounded."""

        candidates = []
        if self._deadline is not None:
            candidates.append(max(0.0, self._deadline - time.monotonic()))
        if self._parent is not None:
            parent_remaining = self._parent.remaining()
            if parent_remaining is not None:
                candidates.append(parent_remaining)
        return min(candidates) if candidates else None

    def raise_if_cancelled(self) -> None:
        if not self.cancelled:
            return
        if self.deadline_exceeded:
            raise OperationCancelled("deadline exceeded")
        raise OperationCancelled("operation cancelled")
