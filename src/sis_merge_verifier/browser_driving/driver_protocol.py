"""Browser-driving capability consumed by the engine."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from enum import Enum
from pathlib import Path
from typing import Any, Protocol


class BrowserActionError(Exception):
    """Raised when the browser cannot perform a requested interaction."""


class ViewportMode(str, Enum):
    """Viewport presets for automated and human-operated phases."""

    AUTOMATED = "automated"
    HUMAN = "human"

    @property
    def size(self) -> dict[str, int]:
        if self is ViewportMode.AUTOMATED:
            return {"width": 1280, "height": 9000}
        return {"width": 1280, "height": 800}


class BrowserDriver(Protocol):
    """Selector-based browser operations; implementations own the underlying page."""

    @property
    def headless(self) -> bool:
        """True when no window is shown, so an operator cannot act in the page."""

    def navigate(self, url: str) -> None: ...

    def current_url(self) -> str: ...

    def count(self, selector: str) -> int: ...

    def is_present(self, selector: str) -> bool: ...

    def is_enabled(self, selector: str) -> bool: ...

    def read_text(self, selector: str) -> str | None: ...

    def read_value(self, selector: str) -> str | None: ...

    def fill(self, selector: str, value: str) -> None: ...

    def click(self, selector: str) -> None: ...

    def choose_option(self, selector: str, *, label: str | None = None) -> str | None: ...

    def screenshot(self, path: Path, *, region: str | None = None) -> Path: ...

    def first_visible(self, signals: Mapping[str, str]) -> str | None: ...

    def set_viewport(self, mode: ViewportMode) -> None: ...

    def add_cookies(self, cookies: Sequence[Mapping[str, Any]]) -> None: ...

    def add_init_script(self, script: str) -> None: ...

    def close(self) -> None: ...
