"""Merge verification domain exports."""

from .merge_models import (
    Failed,
    MergeOutcome,
    MergeTicket,
    PollerBusyError,
    Succeeded,
    TimedOut,
)
from .merge_report_digest import MergeReportDigest, build_merge_report_digest, steps_status
from .merge_verifier import (
    SUCCESS_REPORT_STATUSES,
    MergeStatusApi,
    MergeVerifier,
    merge_history_url,
)

__all__ = [
    "SUCCESS_REPORT_STATUSES",
    "Failed",
    "MergeOutcome",
    "MergeReportDigest",
    "MergeStatusApi",
    "MergeTicket",
    "MergeVerifier",
    "PollerBusyError",
    "Succeeded",
    "TimedOut",
    "build_merge_report_digest",
    "merge_history_url",
    "steps_status",
]
