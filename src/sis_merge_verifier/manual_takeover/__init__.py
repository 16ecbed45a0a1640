"""Manual takeover domain exports."""

from .operator_console import OperatorConsole, TerminalOperatorConsole
from .takeover_coordinator import ManualTakeoverCoordinator
from .takeover_state import (
    ALLOWED_TRANSITIONS,
    TakeoverResult,
    TakeoverState,
    TakeoverStateError,
    TakeoverStateMachine,
)

__all__ = [
    "ALLOWED_TRANSITIONS",
    "ManualTakeoverCoordinator",
    "OperatorConsole",
    "TakeoverResult",
    "TakeoverState",
    "TakeoverStateError",
    "TakeoverStateMachine",
    "TerminalOperatorConsole",
]
