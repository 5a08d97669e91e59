"""
Cancellable execution context threaded through every module run
"""

import threading
import time
from typing import Optional

from .errors import RunCancelledError


class RunContext:
    """Cancellation flag plus an optional deadline.

    The engine never inspects the context itself; modules and their
    collaborators call check() between steps and bound their external
    calls with timeout_for().
    """

    def __init__(self, timeout: Optional[float] = None):
        self._cancelled = threading.Event()
        self.deadline: Optional[float] = None
        if timeout is not None:
            self.deadline = time.monotonic() + timeout

    def cancel(self):
        self._cancelled.set()

    @property
    def expired(self) -> bool:
        return self.deadline is not None and time.monotonic() >= self.deadline

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set() or self.expired

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or None when there is none"""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def timeout_for(self, default: float) -> float:
        """Bound a per-call timeout by the time left on the context"""
        remaining = self.remaining()
        if remaining is None:
            return default
        return min(default, remaining)

    def check(self):
        """Raise RunCancelledError if the context is no longer live"""
        if self._cancelled.is_set():
            raise RunCancelledError("run cancelled")
        if self.expired:
            raise RunCancelledError("deadline exceeded")
