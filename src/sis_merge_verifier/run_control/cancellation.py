"""Run-level deadline and operator cancellation."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable


class RunCancelledError(Exception):
    """Raised at a suspension point once the run deadline passed or the operator aborted."""


class RunDeadline:
    """Cancellation token shared by every suspension point of a run."""

    def __init__(
        self,
        timeout_seconds: float | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._clock = clock
        self._expires_at = None if timeout_seconds is None else clock() + timeout_seconds
        self._cancel_reason: str | None = None
        self._lock = threading.Lock()

    @property
    def cancelled(self) -> bool:
        return self._reason() is not None

    def cancel(self, reason: str = "run aborted by operator") -> None:
        with self._lock:
            if self._cancel_reason is None:
                self._cancel_reason = reason

    def remaining(self) -> float | None:
        """Seconds left before the deadline, or None when unbounded."""
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - self._clock())

    def check(self) -> None:
        reason = self._reason()
        if reason is not None:
            raise RunCancelledError(reason)

    def sleep(self, seconds: float, sleeper: Callable[[float], None] = time.sleep) -> None:
        """Sleep for up to `seconds`, waking early and raising if the run is cancelled."""
        self.check()
        remaining = self.remaining()
        sleeper(seconds if remaining is None else min(seconds, remaining))
        self.check()

    def _reason(self) -> str | None:
        with self._lock:
            if self._cancel_reason is not None:
                return self._cancel_reason
        remaining = self.remaining()
        if remaining is not None and remaining <= 0:
            return "run timeout exceeded"
        return None
