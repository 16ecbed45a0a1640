"""UI signal race and selector tests."""

from __future__ import annotations

from collections.abc import Mapping

import pytest
from sis_merge_verifier.browser_driving import SignalObserver, ViewportMode, race_signals
from sis_merge_verifier.browser_driving import ui_selectors as selectors
from sis_merge_verifier.case_catalog import EntityKind
from sis_merge_verifier.run_control import RunCancelledError, RunDeadline


class _FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.now += seconds


class _ScriptedDriver:
    """Reveals selectors once the fake clock reaches their appearance time."""

    def __init__(self, clock: _FakeClock, appearances: Mapping[str, float]) -> None:
        self._clock = clock
        self._appearances = appearances
        self.probes = 0

    def first_visible(self, signals: Mapping[str, str]) -> str | None:
        self.probes += 1
        for name, selector in signals.items():
            appears_at = self._appearances.get(selector)
            if appears_at is not None and self._clock.now >= appears_at:
                return name
        return None


def test_race_returns_first_observer_to_appear() -> None:
    clock = _FakeClock()
    driver = _ScriptedDriver(clock, {"#success": 2.0, "#conflict": 5.0})

    winner = race_signals(
        driver,  # type: ignore[arg-type]
        (SignalObserver("conflict", "#conflict"), SignalObserver("success", "#success")),
        timeout_seconds=10,
        clock=clock,
        sleep=clock.sleep,
    )

    assert winner == "success"


def test_race_prefers_earlier_observer_when_both_visible() -> None:
    clock = _FakeClock()
    driver = _ScriptedDriver(clock, {"#success": 0.0, "#conflict": 0.0})

    winner = race_signals(
        driver,  # type: ignore[arg-type]
        (SignalObserver("conflict", "#conflict"), SignalObserver("success", "#success")),
        timeout_seconds=10,
        clock=clock,
        sleep=clock.sleep,
    )

    assert winner == "conflict"


def test_race_returns_none_after_timeout() -> None:
    clock = _FakeClock()
    driver = _ScriptedDriver(clock, {})

    winner = race_signals(
        driver,  # type: ignore[arg-type]
        (SignalObserver("success", "#success"),),
        timeout_seconds=1,
        poll_interval_seconds=0.25,
        clock=clock,
        sleep=clock.sleep,
    )

    assert winner is None
    assert clock.now == pytest.approx(1.0)


def test_race_probes_once_with_zero_timeout() -> None:
    clock = _FakeClock()
    driver = _ScriptedDriver(clock, {})

    assert (
        race_signals(
            driver,  # type: ignore[arg-type]
            (SignalObserver("success", "#success"),),
            timeout_seconds=0,
            clock=clock,
            sleep=clock.sleep,
        )
        is None
    )
    assert driver.probes == 1


def test_race_honours_cancelled_deadline() -> None:
    clock = _FakeClock()
    deadline = RunDeadline()
    deadline.cancel()

    with pytest.raises(RunCancelledError):
        race_signals(
            _ScriptedDriver(clock, {"#success": 0.0}),  # type: ignore[arg-type]
            (SignalObserver("success", "#success"),),
            timeout_seconds=5,
            deadline=deadline,
            clock=clock,
            sleep=clock.sleep,
        )


def test_field_selectors_escape_dotted_question_ids() -> None:
    assert selectors.field_container("specializations.0.name") == (
        "#field-specializations\\.0\\.name"
    )
    assert selectors.field_input("title") == "#field-title input, #field-title textarea"
    assert selectors.field_yes_button("splitOwnership").endswith('button[data-test="YesBtn"]')
    assert selectors.field_no_button("splitOwnership").endswith('button[data-test="NoBtn"]')


def test_every_entity_kind_has_a_surface() -> None:
    assert set(selectors.SURFACES) == set(EntityKind)


def test_viewport_sizes() -> None:
    assert ViewportMode.AUTOMATED.size == {"width": 1280, "height": 9000}
    assert ViewportMode.HUMAN.size == {"width": 1280, "height": 800}
