"""Manual-takeover state machine."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class TakeoverStateError(Exception):
    """Raised on a transition the takeover state machine does not allow."""


class TakeoverState(str, Enum):
    """Phases of one hand-over from automation to an operator and back."""

    AUTOMATED = "automated"
    HANDOFF_PENDING = "handoff_pending"
    HUMAN_ACTING = "human_acting"
    TIMED_OUT = "timed_out"
    VERIFYING = "verifying"
    RESUMED = "resumed"
    RESTARTED = "restarted"
    ABANDONED = "abandoned"

    @property
    def terminal(self) -> bool:
        return self in _TERMINAL_STATES


_TERMINAL_STATES = frozenset(
    {TakeoverState.RESUMED, TakeoverState.RESTARTED, TakeoverState.ABANDONED}
)

ALLOWED_TRANSITIONS: dict[TakeoverState, frozenset[TakeoverState]] = {
    TakeoverState.AUTOMATED: frozenset({TakeoverState.HANDOFF_PENDING}),
    TakeoverState.HANDOFF_PENDING: frozenset(
        {TakeoverState.HUMAN_ACTING, TakeoverState.TIMED_OUT, TakeoverState.ABANDONED}
    ),
    TakeoverState.HUMAN_ACTING: frozenset({TakeoverState.VERIFYING, TakeoverState.ABANDONED}),
    TakeoverState.TIMED_OUT: frozenset({TakeoverState.ABANDONED}),
    TakeoverState.VERIFYING: frozenset(
        {TakeoverState.RESUMED, TakeoverState.RESTARTED, TakeoverState.ABANDONED}
    ),
    TakeoverState.RESUMED: frozenset(),
    TakeoverState.RESTARTED: frozenset(),
    TakeoverState.ABANDONED: frozenset(),
}


class TakeoverStateMachine:
    """Validated transitions with the visited-state history kept for evidence."""

    def __init__(self) -> None:
        self._history: list[TakeoverState] = [TakeoverState.AUTOMATED]

    @property
    def state(self) -> TakeoverState:
        return self._history[-1]

    @property
    def history(self) -> tuple[TakeoverState, ...]:
        return tuple(self._history)

    def advance(self, target: TakeoverState) -> TakeoverState:
        if target not in ALLOWED_TRANSITIONS[self.state]:
            raise TakeoverStateError(
                f"Illegal takeover transition: {self.state.value} -> {target.value}"
            )
        self._history.append(target)
        return target


@dataclass(frozen=True)
class TakeoverResult:
    """Terminal result of a hand-over."""

    state: TakeoverState
    error_kind: str
    cause: str
    entity_id: str | None = None
    saved_by_operator: bool = False
    history: tuple[TakeoverState, ...] = ()

    @property
    def abandoned(self) -> bool:
        return self.state is TakeoverState.ABANDONED
