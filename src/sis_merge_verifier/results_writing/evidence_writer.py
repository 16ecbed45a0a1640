"""Per-test-case evidence writer."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from sis_merge_verifier.action_execution import ActionContext, render_field_differences
from sis_merge_verifier.merge_verification import MergeOutcome, MergeReportDigest, Succeeded

from .report_models import CaseStatus

logger = logging.getLogger(__name__)

DATA_AFTER_SYNC_FILENAME = "dataAfterSync.json"


class EvidenceWriter:
    """Writes the field differences, resulting SIS data, and markdown report of a case."""

    def __init__(
        self,
        school_id: str,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._school_id = school_id
        self._clock = clock or (lambda: datetime.now(UTC))

    # pylint: disable=too-many-arguments
    def write(
        self,
        context: ActionContext,
        status: CaseStatus,
        *,
        outcome: MergeOutcome | None = None,
        detail: str = "",
    ) -> tuple[Path, ...]:
        """Write every evidence file the context supports and return their paths.

        Screenshots are already on disk; they are listed, not copied.
        """
        artifacts = [screenshot.path for screenshot in context.screenshots]
        diff_path = None
        if context.saved or context.field_differences:
            diff_path = self.write_field_differences(context)
            artifacts.append(diff_path)
        data_after_sync = outcome.data_after_sync if isinstance(outcome, Succeeded) else None
        if data_after_sync is not None:
            artifacts.append(self.write_data_after_sync(context.evidence_dir, data_after_sync))
        artifacts.append(self.write_action_report(context, status, outcome, detail, diff_path))
        return tuple(artifacts)

    # pylint: enable=too-many-arguments

    def write_field_differences(self, context: ActionContext) -> Path:
        timestamp = self._clock().strftime("%Y-%m-%d_%H-%M-%S")
        path = (
            context.evidence_dir
            / f"{self._school_id}-{context.action}-field-differences-{timestamp}.txt"
        )
        path.write_text(
            render_field_differences(
                context.field_differences, school_id=self._school_id, action=context.action
            ),
            encoding="utf-8",
        )
        logger.info("Field differences written to %s", path)
        return path

    def write_data_after_sync(self, evidence_dir: Path, data: Any) -> Path:
        path = evidence_dir / DATA_AFTER_SYNC_FILENAME
        path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
        return path

    # pylint: disable=too-many-arguments
    def write_action_report(
        self,
        context: ActionContext,
        status: CaseStatus,
        outcome: MergeOutcome | None,
        detail: str,
        diff_path: Path | None,
    ) -> Path:
        product = context.test_case.product
        path = (
            context.evidence_dir
            / f"{self._school_id}-{product.slug}-{context.action}-mergeReportSummary.md"
        )
        digest = outcome.digest if outcome is not None else None
        sections = [
            f"# {self._school_id} {product.value}: {context.action}\n",
            _outcome_section(context, status, outcome, detail),
            _summary_section(digest),
            _differences_section(diff_path),
            _posts_section(digest),
            _errors_section(digest),
            _data_after_sync_section(outcome),
            _screenshots_section(context),
        ]
        path.write_text("\n".join(sections), encoding="utf-8")
        logger.info("Merge report summary written to %s", path)
        return path

    # pylint: enable=too-many-arguments


def _outcome_section(
    context: ActionContext,
    status: CaseStatus,
    outcome: MergeOutcome | None,
    detail: str,
) -> str:
    lines = ["## Outcome\n", f"- Status: {status.value}"]
    if context.target_entity_id:
        lines.append(f"- Entity: {context.target_entity_id}")
    if outcome is not None:
        lines.append(f"- Merge outcome: {outcome.kind}")
        if outcome.history_url:
            lines.append(f"- Merge report: [View Report]({outcome.history_url})")
    if context.conflict_detected:
        lines.append("- Save conflict detected")
    if context.api_error_detected is not None:
        error = context.api_error_detected
        lines.append(f"- API error: {error.message}")
        if error.payload:
            lines.append(f"- API error payload: `{error.payload}`")
    if context.restarts:
        lines.append(f"- Restarts after manual takeover: {context.restarts}")
    if detail:
        lines.append(f"- Detail: {detail}")
    return "\n".join(lines) + "\n"


def _summary_section(digest: MergeReportDigest | None) -> str:
    if digest is None:
        return "## Merge Report Summary\n\n_No merge report available._\n"
    return "## Merge Report Summary\n\n" + _json_block(dict(digest.summary))


def _differences_section(diff_path: Path | None) -> str:
    if diff_path is None:
        return "## Differences\n\n_No differences file found._\n"
    return "## Differences\n\n" + diff_path.read_text(encoding="utf-8")


def _posts_section(digest: MergeReportDigest | None) -> str:
    if digest is None or not digest.posts:
        return "## Posts\n\n_No posts executed._\n"
    blocks = ["## Posts\n"]
    for post in digest.posts:
        blocks.append(f"- postType: {post.get('postType')}")
        if "postBody" in post:
            blocks.append(_json_block(post["postBody"]))
        else:
            blocks.append("_No postBody available._\n")
    return "\n".join(blocks)


def _errors_section(digest: MergeReportDigest | None) -> str:
    if digest is None:
        return "## Merge Report Errors\n\n_No merge report available._\n"
    metadata = list(digest.error_metadata_differences) or [
        dict(entry) for entry in digest.error_details_fallback
    ]
    return "\n".join(
        [
            "## Merge Report Errors\n",
            "### Failed Sync Entity Ids",
            _json_block(list(digest.failed_sync_entity_ids)),
            "### Error Messages",
            _json_block(list(digest.error_messages)),
            "### Error Metadata Differences",
            _json_block(metadata),
        ]
    )


def _data_after_sync_section(outcome: MergeOutcome | None) -> str:
    data = outcome.data_after_sync if isinstance(outcome, Succeeded) else None
    formatted = data.get("formattedData") if isinstance(data, dict) else None
    if not isinstance(formatted, dict) or not formatted:
        return "## GET after POST\n\n_No formattedData found in response._\n"
    blocks = ["## GET after POST\n"]
    for key, value in formatted.items():
        blocks.append(f"formattedData.{key}")
        blocks.append(_json_block(value))
    return "\n".join(blocks)


def _screenshots_section(context: ActionContext) -> str:
    if not context.screenshots:
        return "## Screenshots\n\n_No screenshots captured._\n"
    lines = ["## Screenshots\n"]
    for screenshot in context.screenshots:
        lines.append(f"- {screenshot.label}: ![{screenshot.label}]({screenshot.path.name})")
    return "\n".join(lines) + "\n"


def _json_block(value: Any) -> str:
    return "```json\n" + json.dumps(value, indent=2, ensure_ascii=False, default=str) + "\n```\n"
