"""Bounded races between named UI observers."""

from __future__ import annotations

import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from sis_merge_verifier.run_control import RunDeadline

from .driver_protocol import BrowserDriver


@dataclass(frozen=True)
class SignalObserver:
    """A named UI condition, satisfied when its selector becomes visible."""

    name: str
    selector: str


# pylint: disable=too-many-arguments
def race_signals(
    driver: BrowserDriver,
    observers: Sequence[SignalObserver],
    *,
    timeout_seconds: float,
    poll_interval_seconds: float = 0.25,
    deadline: RunDeadline | None = None,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> str | None:
    """Return the name of the first observer to fire, or None when the timeout elapses.

    Observers are probed in the given order on every tick, so when several
    conditions are visible at once the earlier observer wins.
    """
    signals = {observer.name: observer.selector for observer in observers}
    expires_at = clock() + timeout_seconds
    while True:
        if deadline is not None:
            deadline.check()
        winner = driver.first_visible(signals)
        if winner is not None:
            return winner
        if clock() >= expires_at:
            return None
        if deadline is not None:
            deadline.sleep(poll_interval_seconds, sleep)
        else:
            sleep(poll_interval_seconds)


# pylint: enable=too-many-arguments
