"""Condensed view of a merge report used by the evidence and summary writers."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

SUMMARY_KEYS = ("id", "schoolName", "status", "date", "type", "termCode", "scheduleType")
_PRIORITY_STEP_STATUSES = ("unable to sync some changes", "failed", "error")


@dataclass(frozen=True)
class MergeReportDigest:  # pylint: disable=too-many-instance-attributes
    """What the reports need from a merge report: summary, posts, and errors."""

    report_id: str | None
    status: str | None
    summary: Mapping[str, Any]
    posts: tuple[Mapping[str, Any], ...]
    failed_sync_entity_ids: tuple[Any, ...]
    error_messages: tuple[str, ...]
    error_metadata_differences: tuple[Any, ...]
    error_details_fallback: tuple[Mapping[str, Any], ...]
    steps_status: str

    @property
    def first_error(self) -> str | None:
        return self.error_messages[0] if self.error_messages else None


def build_merge_report_digest(
    report: Mapping[str, Any],
    *,
    history_url: str | None = None,
) -> MergeReportDigest:
    """Extract the summary, executed posts, and error details of a merge report."""
    steps = [step for step in _list(report.get("steps")) if isinstance(step, Mapping)]
    summary: dict[str, Any] = {key: report[key] for key in SUMMARY_KEYS if key in report}
    configuration = report.get("configuration")
    if isinstance(configuration, Mapping) and "conflictHandlingMethod" in configuration:
        summary["conflictHandlingMethod"] = configuration["conflictHandlingMethod"]
    if history_url:
        summary["mergeReportURL"] = history_url

    report_id = report.get("id") or report.get("_id")
    status = report.get("status")
    return MergeReportDigest(
        report_id=str(report_id) if report_id else None,
        status=str(status) if status else None,
        summary=summary,
        posts=tuple(_executed_posts(steps)),
        failed_sync_entity_ids=tuple(
            entity_id
            for step in steps
            for entity_id in _list(_misc(step).get("failedSyncEntityIds"))
        ),
        error_messages=tuple(_error_messages(steps)),
        error_metadata_differences=tuple(
            entry["metadata"]["differences"]
            for entry in _error_detail_entries(steps)
            if isinstance(entry.get("metadata"), Mapping) and "differences" in entry["metadata"]
        ),
        error_details_fallback=tuple(_error_details_fallback(steps)),
        steps_status=steps_status(steps),
    )


def steps_status(steps: list[Mapping[str, Any]]) -> str:
    """Pick the most telling step status; failures outrank the first reported status."""
    if not steps:
        return "No steps data"
    statuses = [str(step["status"]) for step in steps if step.get("status")]
    for status in statuses:
        if status.lower() in _PRIORITY_STEP_STATUSES:
            return status
    return statuses[0] if statuses else "No status available"


def _executed_posts(steps: list[Mapping[str, Any]]) -> list[Mapping[str, Any]]:
    posts: list[Mapping[str, Any]] = []
    for step in steps:
        executed = _misc(step).get("executedUpdates")
        if not isinstance(executed, Mapping):
            continue
        for updates in executed.values():
            posts.extend(
                update
                for update in _list(updates)
                if isinstance(update, Mapping) and update.get("postType")
            )
    return posts


def _error_messages(steps: list[Mapping[str, Any]]) -> list[str]:
    messages: list[str] = []
    for step in steps:
        for error in _list(step.get("errors")):
            if isinstance(error, Mapping) and error.get("error"):
                messages.append(str(error["error"]))
    return messages


def _error_detail_entries(steps: list[Mapping[str, Any]]) -> list[Mapping[str, Any]]:
    entries: list[Mapping[str, Any]] = []
    for step in steps:
        for error in _list(step.get("errors")):
            details = error.get("errorDetails") if isinstance(error, Mapping) else None
            if not isinstance(details, Mapping):
                continue
            for values in details.values():
                entries.extend(entry for entry in _list(values) if isinstance(entry, Mapping))
    return entries


def _error_details_fallback(steps: list[Mapping[str, Any]]) -> list[Mapping[str, Any]]:
    fallback: list[Mapping[str, Any]] = []
    for entry in _error_detail_entries(steps):
        body = entry.get("body")
        body_errors = _list(body.get("errors")) if isinstance(body, Mapping) else []
        if entry.get("error") is not None or body_errors:
            fallback.append({"error": entry.get("error"), "bodyErrors": body_errors})
    return fallback


def _misc(step: Mapping[str, Any]) -> Mapping[str, Any]:
    misc = step.get("misc")
    return misc if isinstance(misc, Mapping) else {}


def _list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []
