"""Merge verification entities."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, ClassVar

from sis_merge_verifier.credentials import TokenSnapshot

from .merge_report_digest import MergeReportDigest


class PollerBusyError(Exception):
    """Raised when a second ticket is polled while another one is still active."""


@dataclass
class MergeTicket:
    """Handle for the merge expected after one successful save.

    Only the verifier replaces `poll_token`, and only with a refreshed snapshot.
    """

    ticket_id: str
    entity_type: str
    entity_id: str | None
    triggered_at: datetime
    poll_token: TokenSnapshot


@dataclass(frozen=True)
class Succeeded:
    data_after_sync: Any
    report_id: str | None = None
    history_url: str | None = None
    digest: MergeReportDigest | None = None

    kind: ClassVar[str] = "succeeded"


@dataclass(frozen=True)
class Failed:
    reason: str
    report_id: str | None = None
    history_url: str | None = None
    digest: MergeReportDigest | None = None

    kind: ClassVar[str] = "failed"


@dataclass(frozen=True)
class TimedOut:
    report_id: str | None = None
    history_url: str | None = None
    digest: MergeReportDigest | None = None

    kind: ClassVar[str] = "timed_out"


MergeOutcome = Succeeded | Failed | TimedOut
