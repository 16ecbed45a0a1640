"""Merge/report API entities."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

IN_PROGRESS_JOB_STATUSES = frozenset({"SUBMITTED", "RUNNABLE", "STARTING", "RUNNING"})


class MergeApiError(Exception):
    """Raised when the merge/report API answers with an unusable response."""

    def __init__(self, message: str, *, status_code: int | None = None, payload: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


class AuthExpiredError(MergeApiError):
    """Raised when the API rejects the bearer token (401/403)."""


class MergeApiTransientError(MergeApiError):
    """Raised for network failures and server-side (5xx) errors worth retrying."""


class MergeState(str, Enum):
    """Coarse merge state derived from the latest merge history entry."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    FINISHED = "finished"


@dataclass(frozen=True)
class MergeSettings:
    """Merge settings relevant to one entity type."""

    sis_update_enabled: bool


@dataclass(frozen=True)
class MergeStatus:
    """Latest merge history entry for an entity type."""

    state: MergeState
    report_id: str | None = None
    report_status: str | None = None
    job_status: str | None = None
    started_at: datetime | None = None
    raw: Mapping[str, Any] = field(default_factory=dict)
