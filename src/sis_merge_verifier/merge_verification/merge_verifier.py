"""Merge verifier service."""

from __future__ import annotations

import logging
import threading
import time
import uuid
from collections.abc import Callable, Mapping
from datetime import UTC, datetime, timedelta
from typing import Any, Protocol, TypeVar

from sis_merge_verifier.configuration import PollingSettings
from sis_merge_verifier.credentials import CredentialProvider, CredentialRefreshError
from sis_merge_verifier.merge_api import (
    AuthExpiredError,
    MergeApiError,
    MergeApiTransientError,
    MergeState,
    MergeStatus,
)
from sis_merge_verifier.run_control import RunCancelledError, RunDeadline

from .merge_models import (
    Failed,
    MergeOutcome,
    MergeTicket,
    PollerBusyError,
    Succeeded,
    TimedOut,
)
from .merge_report_digest import MergeReportDigest, build_merge_report_digest

logger = logging.getLogger(__name__)

SUCCESS_REPORT_STATUSES = frozenset({"success", "successful", "completed", "complete", "done"})
STALE_REPORT_TOLERANCE = timedelta(seconds=60)

_T = TypeVar("_T")


class MergeStatusApi(Protocol):
    """Merge/report API calls used while verifying a ticket."""

    def get_merge_status(self, school_id: str, entity_type: str, token: str) -> MergeStatus: ...

    def get_merge_report(
        self, school_id: str, report_id: str, token: str
    ) -> Mapping[str, Any]: ...

    def get_entity(self, school_id: str, report_id: str, token: str) -> Any: ...


def merge_history_url(app_base_url: str, school_id: str, report_id: str) -> str:
    return f"{app_base_url.rstrip('/')}/#/int/{school_id}/merge-history/{report_id}"


class MergeVerifier:  # pylint: disable=too-many-instance-attributes
    """Polls the merge history until the merge triggered by a save is terminal.

    Outcomes are cached per ticket, so verifying a ticket twice returns the
    same outcome without touching the API. Only one ticket may be polled at a
    time; a ticket left active by an unexpected error must be released with
    `abandon()`.
    """

    # pylint: disable=too-many-arguments
    def __init__(
        self,
        api: MergeStatusApi,
        credentials: CredentialProvider,
        *,
        school_id: str,
        app_base_url: str,
        polling: PollingSettings,
        deadline: RunDeadline | None = None,
        clock: Callable[[], datetime] | None = None,
        monotonic: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._api = api
        self._credentials = credentials
        self._school_id = school_id
        self._app_base_url = app_base_url
        self._polling = polling
        self._deadline = deadline
        self._clock = clock or (lambda: datetime.now(UTC))
        self._monotonic = monotonic
        self._sleep = sleep
        self._lock = threading.Lock()
        self._active: str | None = None
        self._outcomes: dict[str, MergeOutcome] = {}

    # pylint: enable=too-many-arguments

    @property
    def active_ticket_id(self) -> str | None:
        with self._lock:
            return self._active

    def issue(
        self,
        entity_type: str,
        entity_id: str | None,
        triggered_at: datetime | None = None,
    ) -> MergeTicket:
        """Create the ticket for a save that just succeeded."""
        ticket = MergeTicket(
            ticket_id=uuid.uuid4().hex,
            entity_type=entity_type,
            entity_id=entity_id,
            triggered_at=triggered_at or self._clock(),
            poll_token=self._credentials.current(),
        )
        logger.info("Merge ticket %s issued for %s %s", ticket.ticket_id, entity_type, entity_id)
        return ticket

    def verify(self, ticket: MergeTicket) -> MergeOutcome:
        """Poll until the ticket's merge is terminal or the polling budget is spent.

        Raises:
          PollerBusyError: Another ticket is still being polled.
          CredentialRefreshError: The token could not be refreshed or was rejected again.
          RunCancelledError: The run deadline passed or the operator aborted.
        """
        with self._lock:
            cached = self._outcomes.get(ticket.ticket_id)
            if cached is not None:
                return cached
            if self._active is not None and self._active != ticket.ticket_id:
                raise PollerBusyError(
                    f"Merge ticket {self._active} is still active; "
                    f"cannot poll {ticket.ticket_id}."
                )
            self._active = ticket.ticket_id

        try:
            outcome = self._poll(ticket)
        except RunCancelledError:
            self.abandon()
            raise
        with self._lock:
            self._outcomes[ticket.ticket_id] = outcome
            self._active = None
        logger.info("Merge ticket %s finished: %s", ticket.ticket_id, outcome.kind)
        return outcome

    def abandon(self) -> None:
        with self._lock:
            if self._active is not None:
                logger.info("Merge ticket %s abandoned", self._active)
            self._active = None

    def _poll(self, ticket: MergeTicket) -> MergeOutcome:
        expires_at = self._monotonic() + self._polling.timeout_seconds
        logger.info(
            "Waiting %ss before polling merge status for %s",
            self._polling.initial_delay_seconds,
            ticket.entity_type,
        )
        if not self._pause(self._polling.initial_delay_seconds, expires_at):
            return TimedOut()

        transient_errors = 0
        while True:
            try:
                status = self._authorized(
                    ticket,
                    lambda token: self._api.get_merge_status(
                        self._school_id, ticket.entity_type, token
                    ),
                )
            except MergeApiTransientError as exc:
                transient_errors += 1
                logger.warning(
                    "Merge status poll failed (%s/%s): %s",
                    transient_errors,
                    self._polling.max_transient_errors,
                    exc,
                )
                if transient_errors >= self._polling.max_transient_errors:
                    return Failed(f"Merge status unavailable: {exc}")
                if not self._pause(self._polling.error_backoff_seconds, expires_at):
                    return TimedOut()
                continue
            except MergeApiError as exc:
                return Failed(f"Merge status request failed: {exc}")

            outcome = self._interpret(ticket, status)
            if outcome is not None:
                return outcome
            if not self._pause(self._polling.interval_seconds, expires_at):
                return TimedOut()

    def _interpret(self, ticket: MergeTicket, status: MergeStatus) -> MergeOutcome | None:
        if status.state is MergeState.IN_PROGRESS:
            logger.info("Merge in progress (%s)", status.job_status)
            return None
        if status.state is MergeState.PENDING or status.report_id is None:
            logger.info("No merge report yet for %s", ticket.entity_type)
            return None
        if status.started_at is not None and (
            status.started_at < ticket.triggered_at - STALE_REPORT_TOLERANCE
        ):
            logger.info("Ignoring merge report %s that predates the save", status.report_id)
            return None
        if not status.report_status:
            return None

        report_id = status.report_id
        history_url = merge_history_url(self._app_base_url, self._school_id, report_id)
        digest = self._digest(ticket, status, history_url)
        report_status = digest.status or status.report_status
        if report_status.lower() in SUCCESS_REPORT_STATUSES and not digest.error_messages:
            return Succeeded(
                data_after_sync=self._data_after_sync(ticket, report_id),
                report_id=report_id,
                history_url=history_url,
                digest=digest,
            )
        reason = digest.first_error or f"Merge report status: {report_status}"
        return Failed(reason, report_id=report_id, history_url=history_url, digest=digest)

    def _digest(
        self, ticket: MergeTicket, status: MergeStatus, history_url: str
    ) -> MergeReportDigest:
        report_id = status.report_id or ""
        try:
            report = self._authorized(
                ticket, lambda token: self._api.get_merge_report(self._school_id, report_id, token)
            )
        except MergeApiError as exc:
            logger.warning("Could not fetch merge report %s: %s", report_id, exc)
            embedded = status.raw.get("mergeReport")
            report = embedded if isinstance(embedded, Mapping) else {"id": report_id}
        return build_merge_report_digest(report, history_url=history_url)

    def _data_after_sync(self, ticket: MergeTicket, report_id: str) -> Any:
        try:
            return self._authorized(
                ticket, lambda token: self._api.get_entity(self._school_id, report_id, token)
            )
        except MergeApiError as exc:
            logger.warning("Could not fetch resulting SIS data for %s: %s", report_id, exc)
            return None

    def _authorized(self, ticket: MergeTicket, call: Callable[[str], _T]) -> _T:
        try:
            return call(ticket.poll_token.token)
        except AuthExpiredError:
            logger.info("API token expired while polling; refreshing")
            ticket.poll_token = self._credentials.refresh(ticket.poll_token)
        try:
            return call(ticket.poll_token.token)
        except AuthExpiredError as exc:
            raise CredentialRefreshError(
                f"API token rejected again after refresh: {exc}"
            ) from exc

    def _pause(self, seconds: float, expires_at: float) -> bool:
        remaining = expires_at - self._monotonic()
        if remaining <= 0:
            return False
        wait = min(seconds, remaining)
        if self._deadline is not None:
            self._deadline.sleep(wait, self._sleep)
        else:
            self._sleep(wait)
        return True
