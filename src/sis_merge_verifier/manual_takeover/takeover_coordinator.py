"""Manual-takeover coordinator service."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime

from sis_merge_verifier.action_execution import ActionContext
from sis_merge_verifier.browser_driving import BrowserActionError, BrowserDriver, ViewportMode
from sis_merge_verifier.browser_driving import ui_selectors as selectors
from sis_merge_verifier.run_control import RunCancelledError, RunDeadline

from .operator_console import OperatorConsole
from .takeover_state import TakeoverResult, TakeoverState, TakeoverStateMachine

logger = logging.getLogger(__name__)

_YES_ANSWERS = frozenset({"y", "yes"})
_ABORT_ANSWERS = frozenset({"a", "abort", "skip"})


class ManualTakeoverCoordinator:
    """Hands a failed test case to the operator and decides how automation continues."""

    # pylint: disable=too-many-arguments
    def __init__(
        self,
        driver: BrowserDriver,
        console: OperatorConsole,
        *,
        school_id: str,
        timeout_seconds: float = 300,
        deadline: RunDeadline | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._driver = driver
        self._console = console
        self._school_id = school_id
        self._timeout = timeout_seconds
        self._deadline = deadline
        self._clock = clock or (lambda: datetime.now(UTC))

    # pylint: enable=too-many-arguments

    def hand_over(self, context: ActionContext, error_kind: str, cause: str) -> TakeoverResult:
        """Offer the failure to the operator and verify the entity once they are done.

        Raises:
          RunCancelledError: The run was cancelled while waiting on the operator.
        """
        machine = TakeoverStateMachine()
        machine.advance(TakeoverState.HANDOFF_PENDING)
        logger.warning("Automation failure (%s) on %s: %s", error_kind, context.action, cause)
        self._capture(context, f"{error_kind}-error")
        try:
            return self._run(machine, context, error_kind, cause)
        except RunCancelledError:
            self._capture(context, f"{error_kind}-cancelled")
            raise

    def _run(
        self,
        machine: TakeoverStateMachine,
        context: ActionContext,
        error_kind: str,
        cause: str,
    ) -> TakeoverResult:
        if not self._console.is_interactive():
            logger.info("Console is not interactive; manual takeover declined")
            return self._abandon(machine, error_kind, f"{cause} (manual takeover unavailable)")
        if self._driver.headless:
            logger.info("Browser is headless; rerun with --headed to allow manual takeover")
            return self._abandon(
                machine, error_kind, f"{cause} (manual takeover unavailable: headless browser)"
            )

        self._set_viewport(ViewportMode.HUMAN)
        self._console.show(
            f"Automation failure ({error_kind}) while running {context.action}: {cause}\n"
            f"Browser URL: {self._driver.current_url()}"
        )
        answer = self._console.ask(
            f"Take manual control to fix this? [y/N] (auto-skip in {self._timeout:g}s)",
            timeout_seconds=self._timeout,
            deadline=self._deadline,
        )
        if answer is None:
            machine.advance(TakeoverState.TIMED_OUT)
            return self._abandon(
                machine, error_kind, f"{cause} (manual takeover timed out after {self._timeout:g}s)"
            )
        if answer.lower() not in _YES_ANSWERS:
            declined = f"{cause} (operator declined manual takeover)"
            return self._abandon(machine, error_kind, declined)

        machine.advance(TakeoverState.HUMAN_ACTING)
        original_id = self._driver.read_text(selectors.ENTITY_HEADER_ID)
        done = self._console.ask(
            "Fix the issue in the browser and click Save, then press Enter "
            "(type 'abort' to skip this test case).",
            timeout_seconds=self._timeout,
            deadline=self._deadline,
        )
        if done is None or done.lower() in _ABORT_ANSWERS:
            reason = "manual intervention timed out" if done is None else "operator aborted"
            return self._abandon(machine, error_kind, f"{cause} ({reason})")

        machine.advance(TakeoverState.VERIFYING)
        return self._verify(machine, context, error_kind, cause, original_id)

    # pylint: disable=too-many-arguments
    def _verify(
        self,
        machine: TakeoverStateMachine,
        context: ActionContext,
        error_kind: str,
        cause: str,
        original_id: str | None,
    ) -> TakeoverResult:
        displayed_id = self._driver.read_text(selectors.ENTITY_HEADER_ID)
        expected_id = context.target_entity_id or original_id
        self._set_viewport(ViewportMode.AUTOMATED)

        if displayed_id is None and expected_id is not None:
            logger.info("Editor closed after intervention; entity %s treated as saved", expected_id)
            state = machine.advance(TakeoverState.RESUMED)
            self._capture(context, f"{error_kind}-afterUserIntervention")
            return self._result(machine, state, error_kind, cause, expected_id, saved=True)
        if displayed_id != expected_id:
            logger.info("Entity changed during intervention: %s -> %s", expected_id, displayed_id)
            state = machine.advance(TakeoverState.RESTARTED)
            return self._result(machine, state, error_kind, cause, displayed_id, saved=False)

        state = machine.advance(TakeoverState.RESUMED)
        saved = self._driver.is_present(selectors.SAVE_SUCCESS_NOTIFICATION)
        self._capture(context, f"{error_kind}-afterUserIntervention")
        return self._result(machine, state, error_kind, cause, displayed_id, saved=saved)

    # pylint: enable=too-many-arguments

    def _abandon(
        self, machine: TakeoverStateMachine, error_kind: str, cause: str
    ) -> TakeoverResult:
        state = machine.advance(TakeoverState.ABANDONED)
        self._set_viewport(ViewportMode.AUTOMATED)
        logger.info("Manual takeover abandoned: %s", cause)
        return self._result(machine, state, error_kind, cause, None, saved=False)

    # pylint: disable=too-many-arguments
    @staticmethod
    def _result(
        machine: TakeoverStateMachine,
        state: TakeoverState,
        error_kind: str,
        cause: str,
        entity_id: str | None,
        *,
        saved: bool,
    ) -> TakeoverResult:
        return TakeoverResult(
            state=state,
            error_kind=error_kind,
            cause=cause,
            entity_id=entity_id,
            saved_by_operator=saved,
            history=machine.history,
        )

    # pylint: enable=too-many-arguments

    def _capture(self, context: ActionContext, suffix: str) -> None:
        path = context.evidence_dir / f"{self._school_id}-{context.action}-{suffix}.png"
        try:
            self._driver.screenshot(path)
        except BrowserActionError as exc:
            logger.warning("Could not capture %s: %s", path.name, exc)
            return
        context.add_screenshot(suffix, path, self._clock())

    def _set_viewport(self, mode: ViewportMode) -> None:
        try:
            self._driver.set_viewport(mode)
        except BrowserActionError as exc:
            logger.warning("Could not switch viewport to %s: %s", mode.value, exc)
