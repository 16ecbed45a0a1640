"""Browser-driving exports."""

from .driver_protocol import BrowserActionError, BrowserDriver, ViewportMode
from .ui_signals import SignalObserver, race_signals

__all__ = [
    "BrowserActionError",
    "BrowserDriver",
    "ViewportMode",
    "SignalObserver",
    "race_signals",
]
