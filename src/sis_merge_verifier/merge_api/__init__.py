"""Merge/report API exports."""

from .api_models import (
    IN_PROGRESS_JOB_STATUSES,
    AuthExpiredError,
    MergeApiError,
    MergeApiTransientError,
    MergeSettings,
    MergeState,
    MergeStatus,
)
from .merge_api_client import MergeApiClient, parse_merge_status

__all__ = [
    "IN_PROGRESS_JOB_STATUSES",
    "AuthExpiredError",
    "MergeApiError",
    "MergeApiTransientError",
    "MergeSettings",
    "MergeState",
    "MergeStatus",
    "MergeApiClient",
    "parse_merge_status",
]
