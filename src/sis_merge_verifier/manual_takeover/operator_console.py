"""Terminal console used to talk to the operator during a takeover."""

from __future__ import annotations

import queue
import sys
import threading
import time
from collections.abc import Callable
from typing import Protocol, TextIO

import click

from sis_merge_verifier.run_control import RunDeadline

_POLL_SLICE_SECONDS = 0.5


class OperatorConsole(Protocol):
    """Prompts the operator and waits a bounded time for a line of input."""

    def is_interactive(self) -> bool: ...

    def show(self, message: str) -> None: ...

    def ask(
        self,
        prompt: str,
        *,
        timeout_seconds: float | None,
        deadline: RunDeadline | None = None,
    ) -> str | None: ...


class TerminalOperatorConsole:
    """OperatorConsole backed by a TTY stream.

    A daemon thread reads lines into a queue so that waits can time out and
    observe run cancellation. `ask` returns None on timeout and "" on EOF.
    """

    def __init__(
        self,
        stream: TextIO | None = None,
        *,
        echo: Callable[[str], None] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._stream = stream if stream is not None else sys.stdin
        self._echo = echo or (lambda message: click.echo(message, err=True))
        self._clock = clock
        self._lines: queue.Queue[str | None] = queue.Queue()
        self._reader: threading.Thread | None = None

    def is_interactive(self) -> bool:
        isatty = getattr(self._stream, "isatty", None)
        return bool(isatty and isatty())

    def show(self, message: str) -> None:
        self._echo(message)

    def ask(
        self,
        prompt: str,
        *,
        timeout_seconds: float | None,
        deadline: RunDeadline | None = None,
    ) -> str | None:
        self._echo(prompt)
        self._ensure_reader()
        expires_at = None if timeout_seconds is None else self._clock() + timeout_seconds
        while True:
            if deadline is not None:
                deadline.check()
            wait = _POLL_SLICE_SECONDS
            if expires_at is not None:
                left = expires_at - self._clock()
                if left <= 0:
                    return None
                wait = min(wait, left)
            try:
                line = self._lines.get(timeout=wait)
            except queue.Empty:
                continue
            return "" if line is None else line.strip()

    def _ensure_reader(self) -> None:
        if self._reader is not None and self._reader.is_alive():
            return
        self._reader = threading.Thread(
            target=self._read_lines, name="operator-console", daemon=True
        )
        self._reader.start()

    def _read_lines(self) -> None:
        for line in self._stream:
            self._lines.put(line)
        self._lines.put(None)
