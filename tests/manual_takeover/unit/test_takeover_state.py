"""Manual-takeover state machine tests."""

from __future__ import annotations

import pytest
from sis_merge_verifier.manual_takeover import (
    ALLOWED_TRANSITIONS,
    TakeoverResult,
    TakeoverState,
    TakeoverStateError,
    TakeoverStateMachine,
)


def test_machine_starts_automated_and_records_history() -> None:
    machine = TakeoverStateMachine()

    machine.advance(TakeoverState.HANDOFF_PENDING)
    machine.advance(TakeoverState.HUMAN_ACTING)
    machine.advance(TakeoverState.VERIFYING)
    final = machine.advance(TakeoverState.RESUMED)

    assert final is TakeoverState.RESUMED
    assert machine.state is TakeoverState.RESUMED
    assert machine.history == (
        TakeoverState.AUTOMATED,
        TakeoverState.HANDOFF_PENDING,
        TakeoverState.HUMAN_ACTING,
        TakeoverState.VERIFYING,
        TakeoverState.RESUMED,
    )


def test_timed_out_handoff_can_only_be_abandoned() -> None:
    machine = TakeoverStateMachine()
    machine.advance(TakeoverState.HANDOFF_PENDING)
    machine.advance(TakeoverState.TIMED_OUT)

    with pytest.raises(TakeoverStateError, match="timed_out -> human_acting"):
        machine.advance(TakeoverState.HUMAN_ACTING)

    assert machine.advance(TakeoverState.ABANDONED) is TakeoverState.ABANDONED


def test_skipping_straight_to_resumed_is_illegal() -> None:
    machine = TakeoverStateMachine()
    machine.advance(TakeoverState.HANDOFF_PENDING)

    with pytest.raises(TakeoverStateError, match="Illegal takeover transition"):
        machine.advance(TakeoverState.RESUMED)


@pytest.mark.parametrize(
    "state", [TakeoverState.RESUMED, TakeoverState.RESTARTED, TakeoverState.ABANDONED]
)
def test_terminal_states_have_no_outgoing_transitions(state: TakeoverState) -> None:
    assert state.terminal is True
    assert ALLOWED_TRANSITIONS[state] == frozenset()


def test_result_reports_abandonment() -> None:
    result = TakeoverResult(TakeoverState.ABANDONED, "validation", "HTTP 422")

    assert result.abandoned is True
    assert TakeoverResult(TakeoverState.RESUMED, "timeout", "x").abandoned is False
