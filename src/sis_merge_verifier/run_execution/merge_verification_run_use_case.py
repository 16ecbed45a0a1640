"""Run execution use-case service."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from sis_merge_verifier.action_execution import (
    ActionContext,
    ActionError,
    ActionExecutor,
    ActionTimeoutError,
    NavigationError,
    ValidationError,
)
from sis_merge_verifier.browser_driving import BrowserDriver
from sis_merge_verifier.case_catalog import (
    CatalogError,
    EntityKind,
    FormKind,
    Product,
    TestCase,
    merge_entity_types_for,
    resolve_test_cases,
)
from sis_merge_verifier.configuration import (
    BrowserSettings,
    Configuration,
    ConfigurationError,
    load_configuration,
)
from sis_merge_verifier.credentials import (
    CredentialProvider,
    CredentialRefreshError,
    Session,
)
from sis_merge_verifier.manual_takeover import (
    ManualTakeoverCoordinator,
    OperatorConsole,
    TakeoverResult,
    TakeoverState,
    TerminalOperatorConsole,
)
from sis_merge_verifier.merge_api import AuthExpiredError, MergeApiClient, MergeApiError
from sis_merge_verifier.merge_verification import (
    Failed,
    MergeOutcome,
    MergeVerifier,
    Succeeded,
    TimedOut,
)
from sis_merge_verifier.preflight import PreflightAbort, PreflightGuard
from sis_merge_verifier.results_writing import (
    CaseStatus,
    EvidenceWriter,
    RunDirectories,
    RunMetadata,
    RunSummaryEntry,
    RunSummaryWriter,
)
from sis_merge_verifier.run_control import RunCancelledError, RunDeadline
from sis_merge_verifier.session_seeding import LoginError, SessionSeeder
from sis_merge_verifier.sis_profiles import resolve_sis_profile

from .run_contracts import RunArtifacts, RunOutcome, RunRequest

logger = logging.getLogger(__name__)

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

DriverFactory = Callable[..., BrowserDriver]


class RunExecutionError(Exception):
    """Raised when a run use case cannot be completed."""


@dataclass(frozen=True)
class _CaseResult:
    """What one test case contributes to the run summary."""

    status: CaseStatus
    detail: str = ""
    outcome: MergeOutcome | None = None


@dataclass(frozen=True)
class _RunCollaborators:  # pylint: disable=too-many-instance-attributes
    """Services shared by every test case of a run."""

    executor: ActionExecutor
    coordinator: ManualTakeoverCoordinator
    verifier: MergeVerifier
    evidence_writer: EvidenceWriter
    summary_writer: RunSummaryWriter
    directories: RunDirectories
    clock: Callable[[], datetime]


# pylint: disable=too-many-arguments,too-many-locals
def execute_merge_verification_run(
    request: RunRequest,
    *,
    api_client_cls=None,
    driver_factory: DriverFactory | None = None,
    console: OperatorConsole | None = None,
    clock: Callable[[], datetime] | None = None,
    monotonic: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> RunOutcome:
    """Execute the selected test cases for one school and return the run outcome.

    Raises:
      RunExecutionError: Configuration, pre-flight, or login failures.
    """
    resolved_api_client_cls = api_client_cls or MergeApiClient
    resolved_driver_factory = driver_factory or _launch_playwright_driver
    resolved_console = console or TerminalOperatorConsole()
    resolved_clock = clock or (lambda: datetime.now(UTC))

    artifacts = _load_run_artifacts(request)
    configuration = artifacts.configuration
    api = resolved_api_client_cls(configuration.environment.api_base_url)
    credentials = CredentialProvider(
        api, artifacts.email, artifacts.password, clock=resolved_clock
    )
    deadline = RunDeadline(configuration.run.timeout_seconds, clock=monotonic)

    _run_preflight(api, credentials, request.school_id, artifacts.test_cases)

    directories = RunDirectories(artifacts.output_dir, request.school_id, resolved_clock())
    directories.create_run_dir()
    log_handler = _attach_run_log(directories.log_path)
    logger.info(
        "Run started for %s: %s",
        request.school_id,
        ", ".join(case.action for case in artifacts.test_cases),
    )
    summary_writer = RunSummaryWriter(
        directories.summary_markdown_path,
        directories.summary_workbook_path,
        RunMetadata(
            run_start=directories.started_at,
            school_id=request.school_id,
            config_path=configuration.path,
            run_dir=directories.run_dir,
            base_url=configuration.environment.base_url,
            test_cases=artifacts.test_cases,
        ),
    )

    driver: BrowserDriver | None = None
    cancelled = False
    try:
        driver = resolved_driver_factory(
            configuration.browser,
            headless=configuration.browser.headless and not request.headed,
            video_dir=directories.video_dir if configuration.browser.record_video else None,
        )
        session = Session(request.school_id, artifacts.product, credentials)
        try:
            SessionSeeder(
                configuration.environment.base_url,
                deadline=deadline,
                clock=monotonic,
                sleep=sleep,
            ).seed(session, driver, password=artifacts.password)
        except LoginError as exc:
            raise RunExecutionError(str(exc)) from exc

        collaborators = _RunCollaborators(
            executor=ActionExecutor(
                driver,
                base_url=configuration.environment.base_url,
                school_id=request.school_id,
                profile=artifacts.profile,
                template_source=_template_source(api, credentials, request.school_id),
                conflict_policy=configuration.policies.conflict_resolution,
                ownership_policy=configuration.policies.ownership_split,
                save_signal_timeout_seconds=configuration.browser.save_signal_timeout_seconds,
                form_names=_form_names(request, configuration),
                deadline=deadline,
                clock=resolved_clock,
                monotonic=monotonic,
                sleep=sleep,
            ),
            coordinator=ManualTakeoverCoordinator(
                driver,
                resolved_console,
                school_id=request.school_id,
                timeout_seconds=configuration.takeover.timeout_seconds,
                deadline=deadline,
                clock=resolved_clock,
            ),
            verifier=MergeVerifier(
                api,
                credentials,
                school_id=request.school_id,
                app_base_url=configuration.environment.base_url,
                polling=configuration.polling,
                deadline=deadline,
                clock=resolved_clock,
                monotonic=monotonic,
                sleep=sleep,
            ),
            evidence_writer=EvidenceWriter(request.school_id, clock=resolved_clock),
            summary_writer=summary_writer,
            directories=directories,
            clock=resolved_clock,
        )
        cancelled = _run_test_cases(collaborators, artifacts.test_cases)
    finally:
        if driver is not None:
            driver.close()
        logger.info("Run finished; results in %s", directories.run_dir)
        _detach_run_log(log_handler)

    return RunOutcome(
        run_dir=directories.run_dir,
        summary_paths=summary_writer.paths,
        entries=summary_writer.entries,
        cancelled=cancelled,
    )


# pylint: enable=too-many-arguments,too-many-locals


def _load_run_artifacts(request: RunRequest) -> RunArtifacts:
    try:
        configuration = load_configuration(request.config_path)
        product = Product.from_slug(request.product) if request.product else None
        test_cases = resolve_test_cases(request.test_cases, product=product)
    except (ConfigurationError, CatalogError, OSError) as exc:
        raise RunExecutionError(str(exc)) from exc
    if not request.school_id.strip():
        raise RunExecutionError("A school id is required.")

    email = request.email or configuration.credentials.email
    password = request.password or configuration.credentials.password
    if not email or not password:
        raise RunExecutionError(
            "Credentials are required: pass --email/--password or set them in the config."
        )
    output_dir = Path(request.output_dir) if request.output_dir else configuration.run.output_dir
    return RunArtifacts(
        configuration=configuration,
        test_cases=test_cases,
        product=product,
        email=email,
        password=password,
        profile=resolve_sis_profile(request.school_id),
        output_dir=output_dir,
    )


def _run_preflight(
    api,
    credentials: CredentialProvider,
    school_id: str,
    test_cases: tuple[TestCase, ...],
) -> None:
    result = PreflightGuard(api, credentials).check(school_id, merge_entity_types_for(test_cases))
    if result.aborted:
        abort = PreflightAbort(result.reason)
        raise RunExecutionError(f"Pre-flight check failed: {abort.reason}") from abort


def _run_test_cases(collaborators: _RunCollaborators, test_cases: tuple[TestCase, ...]) -> bool:
    """Run the cases in order; returns True when the run was cancelled."""
    for test_case in test_cases:
        context = ActionContext(
            test_case=test_case,
            evidence_dir=collaborators.directories.evidence_dir(test_case),
        )
        try:
            result = _run_test_case(collaborators, test_case, context)
        except RunCancelledError as exc:
            collaborators.verifier.abandon()
            context.record_failure("cancelled", str(exc))
            _record(collaborators, context, _CaseResult(CaseStatus.FAILED, f"run cancelled: {exc}"))
            logger.error("Run cancelled during %s: %s", test_case.action, exc)
            return True
        except KeyboardInterrupt:
            collaborators.verifier.abandon()
            context.record_failure("cancelled", "aborted by operator")
            _record(
                collaborators,
                context,
                _CaseResult(CaseStatus.FAILED, "run cancelled: aborted by operator"),
            )
            raise
        _record(collaborators, context, result)
    return False


def _run_test_case(
    collaborators: _RunCollaborators,
    test_case: TestCase,
    context: ActionContext,
) -> _CaseResult:
    executor = collaborators.executor
    try:
        executor.execute(test_case, context)
    except NavigationError as exc:
        context.record_failure(exc.kind, str(exc))
        logger.warning("Skipping %s: %s", test_case.action, exc)
        return _CaseResult(CaseStatus.SKIPPED, str(exc))
    except ActionError as exc:
        cause = _failure_cause(exc)
        context.record_failure(exc.kind, cause)
        takeover = collaborators.coordinator.hand_over(context, exc.kind, cause)
        if takeover.abandoned:
            status = (
                CaseStatus.TIMED_OUT
                if isinstance(exc, ActionTimeoutError)
                else CaseStatus.SKIPPED
            )
            return _CaseResult(status, takeover.cause)
        try:
            _continue_after_takeover(executor, test_case, context, takeover)
        except ActionError as retry_exc:
            message = _failure_cause(retry_exc)
            context.record_failure(retry_exc.kind, message)
            return _CaseResult(CaseStatus.FAILED, f"failed after manual takeover: {message}")

    return _verify_merge(collaborators, test_case, context)


def _continue_after_takeover(
    executor: ActionExecutor,
    test_case: TestCase,
    context: ActionContext,
    takeover: TakeoverResult,
) -> None:
    if takeover.state is TakeoverState.RESTARTED:
        executor.restart(test_case, context, takeover.entity_id)
    elif takeover.saved_by_operator:
        executor.complete_after_manual_save(test_case, context)
    else:
        executor.retry_save(test_case, context)


def _verify_merge(
    collaborators: _RunCollaborators,
    test_case: TestCase,
    context: ActionContext,
) -> _CaseResult:
    verifier = collaborators.verifier
    ticket = verifier.issue(
        test_case.merge_entity_type, context.target_entity_id, context.triggered_at
    )
    try:
        outcome = verifier.verify(ticket)
    except CredentialRefreshError as exc:
        verifier.abandon()
        context.record_failure(ValidationError.kind, str(exc))
        return _CaseResult(CaseStatus.FAILED, str(exc))
    if isinstance(outcome, Succeeded):
        return _CaseResult(CaseStatus.PASSED, outcome=outcome)
    if isinstance(outcome, TimedOut):
        return _CaseResult(CaseStatus.TIMED_OUT, "merge report did not finish in time", outcome)
    assert isinstance(outcome, Failed)
    return _CaseResult(CaseStatus.FAILED, outcome.reason, outcome)


def _record(collaborators: _RunCollaborators, context: ActionContext, result: _CaseResult) -> None:
    artifacts = collaborators.evidence_writer.write(
        context, result.status, outcome=result.outcome, detail=result.detail
    )
    outcome = result.outcome
    digest = outcome.digest if outcome is not None else None
    recorded_at = collaborators.clock()
    errors = digest.first_error if digest is not None else None
    if errors is None and isinstance(outcome, Failed):
        errors = outcome.reason
    collaborators.summary_writer.append(
        RunSummaryEntry(
            entry_id=f"{context.action}-{recorded_at.strftime('%Y-%m-%dT%H-%M-%S')}",
            test_case=context.test_case,
            product=context.test_case.product,
            status=result.status,
            recorded_at=recorded_at,
            artifact_paths=artifacts,
            detail=result.detail,
            merge_report_url=outcome.history_url if outcome is not None else None,
            merge_report_status=digest.steps_status if digest is not None else None,
            errors=errors,
        )
    )


def _failure_cause(exc: ActionError) -> str:
    detail = exc.detail if isinstance(exc, ValidationError) else None
    if detail is not None and detail.payload:
        return f"{exc} Response Data: {detail.payload}"
    return str(exc)


def _template_source(
    api, credentials: CredentialProvider, school_id: str
) -> Callable[[EntityKind], Mapping[str, Any]]:
    def load(entity_kind: EntityKind) -> Mapping[str, Any]:
        snapshot = credentials.current()
        try:
            try:
                return api.get_form_template(school_id, entity_kind.value, snapshot.token)
            except AuthExpiredError:
                refreshed = credentials.refresh(snapshot)
                return api.get_form_template(school_id, entity_kind.value, refreshed.token)
        except CredentialRefreshError as exc:
            raise ValidationError(str(exc)) from exc
        except AuthExpiredError as exc:
            raise ValidationError(f"API token rejected again after refresh: {exc}") from exc
        except MergeApiError as exc:
            raise NavigationError(
                f"The {entity_kind.value} form template is unavailable: {exc}"
            ) from exc

    return load


def _form_names(request: RunRequest, configuration: Configuration) -> dict[FormKind, str]:
    return {
        FormKind.COURSE: request.form_name or configuration.forms.course_form_name,
        FormKind.PROGRAM: request.program_form_name or configuration.forms.program_form_name,
    }


def _launch_playwright_driver(
    browser: BrowserSettings,
    *,
    headless: bool,
    video_dir: Path | None,
) -> BrowserDriver:
    # Playwright is only imported once a browser is launched.
    # pylint: disable-next=import-outside-toplevel
    from sis_merge_verifier.browser_driving.playwright_driver import (
        PlaywrightBrowserDriver,
    )

    return PlaywrightBrowserDriver.launch(
        headless=headless,
        action_timeout_ms=browser.action_timeout_ms,
        video_dir=video_dir,
    )


def _attach_run_log(path: Path) -> logging.Handler:
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    handler.setLevel(logging.DEBUG)
    package_logger = logging.getLogger("sis_merge_verifier")
    # run.log always records progress, even when the caller never configured logging.
    if package_logger.getEffectiveLevel() > logging.INFO:
        package_logger.setLevel(logging.INFO)
    package_logger.addHandler(handler)
    return handler


def _detach_run_log(handler: logging.Handler) -> None:
    logging.getLogger("sis_merge_verifier").removeHandler(handler)
    handler.close()
