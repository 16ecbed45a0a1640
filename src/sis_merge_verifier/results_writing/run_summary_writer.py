"""Cross-run summary writer service."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

from openpyxl import Workbook
from openpyxl.utils import get_column_letter

from sis_merge_verifier.case_catalog import Product

from .report_models import CaseStatus, RunMetadata, RunSummaryEntry

logger = logging.getLogger(__name__)

SUMMARY_COLUMNS = (
    "ID",
    "Merge Report URL",
    "Status",
    "Merge Report Status",
    "Date",
    "Test Case",
    "Errors",
)
SUMMARY_SHEET_NAME = "Summary"
RUN_INFO_SHEET_NAME = "RunInfo"


class RunSummaryWriter:
    """Append-only run summary, rewritten as markdown and workbook after every entry."""

    def __init__(
        self,
        markdown_path: Path,
        workbook_path: Path,
        metadata: RunMetadata,
    ) -> None:
        self._markdown_path = markdown_path
        self._workbook_path = workbook_path
        self._metadata = metadata
        self._entries: list[RunSummaryEntry] = []

    @property
    def entries(self) -> tuple[RunSummaryEntry, ...]:
        return tuple(self._entries)

    @property
    def paths(self) -> tuple[Path, Path]:
        return self._markdown_path, self._workbook_path

    def append(self, entry: RunSummaryEntry) -> None:
        self._entries.append(entry)
        self.flush()
        logger.info("Run summary updated: %s %s", entry.test_case.action, entry.status.value)

    def flush(self) -> None:
        self._markdown_path.parent.mkdir(parents=True, exist_ok=True)
        self._markdown_path.write_text(
            render_run_summary(self._metadata.school_id, self._entries), encoding="utf-8"
        )
        _write_summary_workbook(self._workbook_path, self._entries, self._metadata)


def render_run_summary(school_id: str, entries: Sequence[RunSummaryEntry]) -> str:
    """Render one table per product, in catalog order, for products with entries."""
    lines = [f"# Run Summary Report - {school_id}", ""]
    for product in Product:
        rows = [entry for entry in entries if entry.product is product]
        if not rows:
            continue
        lines.extend(
            [
                f"## {product.value} Test Cases",
                "",
                "| " + " | ".join(SUMMARY_COLUMNS) + " |",
                "|" + "|".join("---" for _ in SUMMARY_COLUMNS) + "|",
            ]
        )
        lines.extend(_markdown_row(entry) for entry in rows)
        lines.append("")
    if not entries:
        lines.append("_No test cases recorded._")
    return "\n".join(lines) + "\n"


def _markdown_row(entry: RunSummaryEntry) -> str:
    url = f"[View Report]({entry.merge_report_url})" if entry.merge_report_url else "N/A"
    cells = (
        entry.entry_id,
        url,
        entry.status.value,
        entry.merge_report_status or "N/A",
        entry.recorded_at.strftime("%Y-%m-%d %H:%M:%S"),
        entry.test_case.action,
        _errors_text(entry),
    )
    return "| " + " | ".join(_cell(value) for value in cells) + " |"


def _errors_text(entry: RunSummaryEntry) -> str:
    if entry.errors:
        return entry.errors
    if entry.status is not CaseStatus.PASSED and entry.detail:
        return entry.detail
    return "N/A"


def _cell(value: str) -> str:
    return value.replace("|", "\\|").replace("\n", " ")


def _write_summary_workbook(
    path: Path,
    entries: Sequence[RunSummaryEntry],
    metadata: RunMetadata,
) -> None:
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = SUMMARY_SHEET_NAME
    headers = ("Product",) + SUMMARY_COLUMNS + ("Detail", "Artifacts")
    for column, header in enumerate(headers, start=1):
        sheet.cell(row=1, column=column, value=header)
        sheet.cell(row=1, column=column).style = "Headline 1"
        sheet.column_dimensions[get_column_letter(column)].width = max(12, len(header) + 6)

    for row, entry in enumerate(entries, start=2):
        values = (
            entry.product.value,
            entry.entry_id,
            entry.merge_report_url or "N/A",
            entry.status.value,
            entry.merge_report_status or "N/A",
            entry.recorded_at.isoformat(),
            entry.test_case.action,
            _errors_text(entry),
            entry.detail,
            "\n".join(str(artifact) for artifact in entry.artifact_paths),
        )
        for column, value in enumerate(values, start=1):
            sheet.cell(row=row, column=column, value=value)

    _write_run_info_sheet(workbook, entries, metadata)
    path.parent.mkdir(parents=True, exist_ok=True)
    workbook.save(path)


def _write_run_info_sheet(
    workbook,
    entries: Sequence[RunSummaryEntry],
    metadata: RunMetadata,
) -> None:
    sheet = workbook.create_sheet(RUN_INFO_SHEET_NAME)
    counts = {status: 0 for status in CaseStatus}
    for entry in entries:
        counts[entry.status] += 1
    rows = (
        ("run_start", metadata.run_start.isoformat()),
        ("school_id", metadata.school_id),
        ("base_url", metadata.base_url),
        ("config_path", str(metadata.config_path)),
        ("run_dir", str(metadata.run_dir)),
        ("selected", ", ".join(case.action for case in metadata.test_cases)),
        ("total", len(metadata.test_cases)),
        ("recorded", len(entries)),
        ("passed", counts[CaseStatus.PASSED]),
        ("failed", counts[CaseStatus.FAILED]),
        ("skipped", counts[CaseStatus.SKIPPED]),
        ("timed_out", counts[CaseStatus.TIMED_OUT]),
    )
    for row, (key, value) in enumerate(rows, start=1):
        sheet.cell(row=row, column=1, value=key)
        sheet.cell(row=row, column=2, value=value)
