"""Action executor service."""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Any

from sis_merge_verifier.browser_driving import (
    BrowserActionError,
    BrowserDriver,
    SignalObserver,
    race_signals,
)
from sis_merge_verifier.browser_driving import ui_selectors as selectors
from sis_merge_verifier.case_catalog import EntityKind, FormKind, TestCase
from sis_merge_verifier.configuration import ConflictResolutionPolicy, OwnershipSplitPolicy
from sis_merge_verifier.run_control import RunDeadline
from sis_merge_verifier.sis_profiles import ProgramOwnershipRule, SisProfile

from .action_context import ActionContext, ErrorDetail, FieldStatus, FillResult
from .action_errors import (
    ActionTimeoutError,
    ConflictError,
    NavigationError,
    ValidationError,
)
from .field_differences import compute_field_differences
from .template_fill import FieldKind, FillPlan, FillStep, balance_ownership, build_fill_plan

logger = logging.getLogger(__name__)

_STATUS_PATTERN = re.compile(r"Response Status:\s*(\d+)")
_DATA_PATTERN = re.compile(r"Response Data:\s*(.+?)\s*(?:\n\s*\n|\n[A-Z][\w ]*:|$)", re.DOTALL)

SAVE_OBSERVERS = (
    SignalObserver("conflict", selectors.CONFLICT_SAVE_ANYWAY),
    SignalObserver("api_error", selectors.API_ERROR_NOTIFICATION),
    SignalObserver("success", selectors.SAVE_SUCCESS_NOTIFICATION),
)

TemplateSource = Callable[[EntityKind], Mapping[str, Any]]


class ActionExecutor:  # pylint: disable=too-many-instance-attributes
    """Performs one test case against the application through a browser driver."""

    # pylint: disable=too-many-arguments
    def __init__(
        self,
        driver: BrowserDriver,
        *,
        base_url: str,
        school_id: str,
        profile: SisProfile,
        template_source: TemplateSource,
        conflict_policy: ConflictResolutionPolicy = ConflictResolutionPolicy.PREFER_INCOMING,
        ownership_policy: OwnershipSplitPolicy = OwnershipSplitPolicy.EVEN,
        save_signal_timeout_seconds: float = 30.0,
        form_names: Mapping[FormKind, str] | None = None,
        deadline: RunDeadline | None = None,
        clock: Callable[[], datetime] | None = None,
        monotonic: Callable[[], float] | None = None,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        self._driver = driver
        self._base_url = base_url.rstrip("/")
        self._school_id = school_id
        self._profile = profile
        self._template_source = template_source
        self._conflict_policy = conflict_policy
        self._ownership_policy = ownership_policy
        self._save_timeout = save_signal_timeout_seconds
        self._form_names = dict(form_names or {})
        self._deadline = deadline
        self._clock = clock or (lambda: datetime.now(UTC))
        self._race_options: dict[str, Any] = {}
        if monotonic is not None:
            self._race_options["clock"] = monotonic
        if sleep is not None:
            self._race_options["sleep"] = sleep

    # pylint: enable=too-many-arguments

    def execute(self, test_case: TestCase, context: ActionContext) -> ActionContext:
        """Open the target, capture the before state, fill the template, and save.

        Raises:
          NavigationError: The list surface or target entity is unavailable or the
            browser failed while opening it.
          ConflictError: A conflict persisted after one retry or the policy is manual.
          ValidationError: The application reported an API/validation error, or the
            browser failed while filling or saving.
          ActionTimeoutError: No save outcome was observed in time.
        """
        logger.info("Executing %s for %s", test_case.action, self._school_id)
        try:
            self._open_target(test_case, context)
            self._capture_set(context, "before")
        except BrowserActionError as exc:
            raise NavigationError(
                f"The {test_case.entity_kind.value} could not be opened: {exc}"
            ) from exc
        self._fill_and_save(test_case, context)
        return context

    def restart(self, test_case: TestCase, context: ActionContext, entity_id: str | None) -> None:
        """Re-run the template fill against the entity now on screen."""
        context.restarts += 1
        context.target_entity_id = entity_id
        context.conflict_detected = False
        context.api_error_detected = None
        context.clear_failure()
        logger.info("Restarting %s against entity %s", test_case.action, entity_id)
        self._fill_and_save(test_case, context, label=f"before-restart-{context.restarts}")

    def retry_save(self, test_case: TestCase, context: ActionContext) -> None:
        """Save again after an operator fixed the form in place."""
        context.clear_failure()
        context.api_error_detected = None
        with _browser_step("saving"):
            self._save(test_case, context)
            self._finish_success(test_case, context)

    def complete_after_manual_save(self, test_case: TestCase, context: ActionContext) -> None:
        """Record success when the operator saved the entity themselves."""
        context.clear_failure()
        with _browser_step("recording the saved state"):
            self._finish_success(test_case, context)

    def capture(self, context: ActionContext, label: str, *, region: str | None = None) -> None:
        path = context.evidence_dir / f"{context.action}-{label}.png"
        self._driver.screenshot(path, region=region)
        context.add_screenshot(label, path, self._clock())

    def _open_target(self, test_case: TestCase, context: ActionContext) -> None:
        kind = test_case.entity_kind
        surface = selectors.SURFACES[kind]
        self._driver.navigate(f"{self._base_url}/#/{self._school_id}/{kind.surface_path}")
        if kind is EntityKind.RELATIONSHIP and self._wait_for(selectors.RELATIONSHIPS_NAV_LINK):
            self._driver.click(selectors.RELATIONSHIPS_NAV_LINK)
        if not self._wait_for(surface.list_ready):
            raise NavigationError(f"The {kind.value} list did not load for {self._school_id}.")

        if test_case.creates_entity:
            self._driver.click(surface.create_button)
            form_name = self._form_name(test_case)
            if surface.create_form_select and form_name:
                if self._driver.choose_option(surface.create_form_select, label=form_name) is None:
                    raise NavigationError(f'Form "{form_name}" is not available.')
            if surface.create_pick_first:
                if not self._wait_for(surface.create_pick_first):
                    raise NavigationError(f"No course is available to create a {kind.value}.")
                self._driver.click(surface.create_pick_first)
            self._driver.click(surface.create_submit)
        else:
            existing = next(
                (item for item in surface.open_existing if self._driver.is_present(item)), None
            )
            if existing is None:
                raise NavigationError(
                    f"No {kind.value}s available for {self._school_id}. "
                    "Run a merge for the current term and try again."
                )
            self._driver.click(existing)
            if surface.edit_button:
                if not self._wait_for(surface.edit_button):
                    raise NavigationError(f"The {kind.value} cannot be edited right now.")
                self._driver.click(surface.edit_button)

        if not self._wait_for(surface.editor_ready):
            raise NavigationError(f"The {kind.value} editor did not open.")
        context.target_entity_id = self._driver.read_text(selectors.ENTITY_HEADER_ID)

    def _fill_and_save(
        self, test_case: TestCase, context: ActionContext, *, label: str | None = None
    ) -> None:
        with _browser_step("filling and saving the form"):
            if label is not None:
                self.capture(context, label)
            self._fill_and_save_steps(test_case, context)

    def _fill_and_save_steps(self, test_case: TestCase, context: ActionContext) -> None:
        now = self._clock()
        plan = build_fill_plan(
            test_case,
            self._template_source(test_case.entity_kind),
            self._profile,
            stamp=now.strftime("%Y%m%d%H%M%S"),
            today=now.date(),
            ownership_policy=self._ownership_policy,
        )
        context.fill_plan = plan
        context.template_fields_before = self._read_fields(plan.field_ids)

        if plan.ownership is not None:
            self._enforce_ownership(plan.ownership, plan)
        if plan.trim_instructional_methods:
            self._trim_instructional_methods()
        context.fill_results = {step.qid: self._apply(step, context) for step in plan.steps}
        context.template_fields_after = self._read_fields(plan.field_ids)

        self._save(test_case, context)
        self._finish_success(test_case, context)

    def _finish_success(self, test_case: TestCase, context: ActionContext) -> None:
        context.saved = True
        context.triggered_at = self._clock()
        self._capture_set(context, "after")
        plan = context.fill_plan
        if plan is not None:
            context.field_differences = compute_field_differences(
                context.template_fields_before,
                context.template_fields_after,
                plan,
                context.fill_results,
            )
        logger.info(
            "%s saved (%s fields compared)", test_case.action, len(context.field_differences)
        )

    def _save(self, test_case: TestCase, context: ActionContext) -> None:
        surface = selectors.SURFACES[test_case.entity_kind]
        self._driver.click(surface.save_button)
        retried = False
        while True:
            winner = race_signals(
                self._driver,
                SAVE_OBSERVERS,
                timeout_seconds=self._save_timeout,
                deadline=self._deadline,
                **self._race_options,
            )
            if winner is None:
                raise ActionTimeoutError(
                    f"No save outcome observed within {self._save_timeout:g} seconds."
                )
            if winner == "success":
                return
            if winner == "api_error":
                detail = self._capture_api_error(context)
                context.api_error_detected = detail
                raise ValidationError(detail.message, detail)

            context.conflict_detected = True
            self.capture(context, "conflictModal")
            if self._conflict_policy is ConflictResolutionPolicy.MANUAL:
                raise ConflictError("Save conflict requires a manual decision.")
            if retried:
                raise ConflictError("Save conflict persisted after one retry.")
            logger.info("Conflict detected; keeping incoming values and saving again")
            retried = True
            self._driver.click(selectors.CONFLICT_SAVE_ANYWAY)

    def _capture_api_error(self, context: ActionContext) -> ErrorDetail:
        if self._driver.is_present(selectors.API_ERROR_DETAILS_BUTTON):
            self._driver.click(selectors.API_ERROR_DETAILS_BUTTON)
        self.capture(context, "api-error-modal")
        log_text = self._driver.read_value(selectors.API_ERROR_LOG) or self._driver.read_text(
            selectors.API_ERROR_LOG
        )
        return parse_error_log(log_text or "")

    def _apply(self, step: FillStep, context: ActionContext) -> FillResult:
        container = selectors.field_container(step.qid)
        if not self._driver.is_present(container):
            return FillResult(step.qid, False, FieldStatus.UNABLE, "Could not find field")
        try:
            if step.kind is FieldKind.CHOICE:
                chosen = self._driver.choose_option(container, label=step.value)
                if chosen is None:
                    return FillResult(step.qid, False, FieldStatus.UNABLE, "No selectable option")
                return FillResult(step.qid, True)
            if step.kind is FieldKind.YES_NO:
                current = (context.template_fields_before.get(step.qid) or "").strip().lower()
                target = (
                    selectors.field_no_button(step.qid)
                    if current in {"yes", "true"}
                    else selectors.field_yes_button(step.qid)
                )
                self._driver.click(target)
                return FillResult(step.qid, True)
            field_input = selectors.field_input(step.qid)
            if not self._driver.is_enabled(field_input):
                return FillResult(step.qid, False, FieldStatus.DISABLED, "Field is read-only")
            self._driver.fill(field_input, step.value or "")
        except BrowserActionError as exc:
            return FillResult(step.qid, False, FieldStatus.UNABLE, str(exc))
        return FillResult(step.qid, True)

    def _enforce_ownership(self, rule: ProgramOwnershipRule, plan: FillPlan) -> None:
        if not self._driver.is_present(selectors.DEPARTMENTS_FIELD):
            raise ValidationError("The program form has no departments field to split ownership.")
        if rule.split_ownership:
            for button in (selectors.SPLIT_OWNERSHIP_YES, selectors.DEPARTMENT_OWNERSHIP_YES):
                if self._driver.is_present(button):
                    self._driver.click(button)

        selected = self._driver.count(selectors.DEPARTMENT_TAGS)
        while selected < rule.department_count:
            added = self._driver.choose_option(selectors.DEPARTMENTS_FIELD)
            now_selected = self._driver.count(selectors.DEPARTMENT_TAGS)
            if added is None or now_selected <= selected:
                raise ValidationError(
                    f"Unable to select {rule.department_count} owning departments "
                    f"(only {selected} selected)."
                )
            selected = now_selected
        shares = balance_ownership(selected, plan.ownership_policy)
        for index, share in enumerate(shares):
            self._driver.fill(f"{selectors.OWNERSHIP_PERCENT_INPUT} >> nth={index}", str(share))
        logger.info("Department ownership set to %s", "/".join(str(share) for share in shares))

        if rule.require_specialization and self._driver.is_present(selectors.NO_SPECIALIZATIONS):
            self._driver.click(selectors.NEW_SPECIALIZATION_BUTTON)

    def _trim_instructional_methods(self) -> None:
        remaining = self._driver.count(selectors.BANNER_INSTRUCTIONAL_METHODS)
        attempts = remaining
        while remaining > 1 and attempts > 0:
            self._driver.click(selectors.BANNER_DELETE_LAST_METHOD)
            remaining = self._driver.count(selectors.BANNER_INSTRUCTIONAL_METHODS)
            attempts -= 1

    def _read_fields(self, qids: tuple[str, ...]) -> dict[str, str | None]:
        values: dict[str, str | None] = {}
        for qid in qids:
            value = self._driver.read_value(selectors.field_input(qid))
            if value is None:
                value = self._driver.read_text(selectors.field_container(qid))
            values[qid] = value
        return values

    def _capture_set(self, context: ActionContext, phase: str) -> None:
        self.capture(context, phase)
        for region in context.test_case.screenshot_regions:
            region_selector = selectors.REGION_SELECTORS[region]
            if not self._driver.is_present(region_selector):
                continue
            try:
                self.capture(context, f"{phase}-{region}", region=region_selector)
            except BrowserActionError as exc:
                logger.warning("Skipped %s screenshot: %s", region, exc)

    def _wait_for(self, selector: str) -> bool:
        winner = race_signals(
            self._driver,
            (SignalObserver("ready", selector),),
            timeout_seconds=self._save_timeout,
            deadline=self._deadline,
            **self._race_options,
        )
        return winner is not None

    def _form_name(self, test_case: TestCase) -> str | None:
        return self._form_names.get(test_case.definition.form_kind)


def parse_error_log(text: str) -> ErrorDetail:
    """Extract HTTP status and payload from an API error notification's log text."""
    status_match = _STATUS_PATTERN.search(text)
    data_match = _DATA_PATTERN.search(text)
    status_code = int(status_match.group(1)) if status_match else None
    payload = data_match.group(1).strip() if data_match else None
    message = payload or text.strip() or "The application reported an API error."
    if payload:
        try:
            decoded = json.loads(payload)
        except ValueError:
            decoded = None
        if isinstance(decoded, Mapping) and isinstance(decoded.get("error"), str):
            message = decoded["error"]
    if status_code is not None:
        message = f"HTTP {status_code}: {message}"
    return ErrorDetail(status_code=status_code, payload=payload, message=message)


@contextmanager
def _browser_step(activity: str) -> Iterator[None]:
    """Report a browser failure during editing as a validation error for the operator."""
    try:
        yield
    except BrowserActionError as exc:
        raise ValidationError(f"Browser interaction failed while {activity}: {exc}") from exc
