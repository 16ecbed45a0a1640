"""Run summary writer tests."""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

from openpyxl import load_workbook
from sis_merge_verifier.case_catalog import Product, TestCase
from sis_merge_verifier.results_writing import (
    RUN_INFO_SHEET_NAME,
    SUMMARY_SHEET_NAME,
    CaseStatus,
    RunMetadata,
    RunSummaryEntry,
    RunSummaryWriter,
    render_run_summary,
)

_NOW = datetime(2026, 5, 4, 12, 0, tzinfo=UTC)


def _entry(
    test_case: TestCase,
    status: CaseStatus,
    **kwargs: object,
) -> RunSummaryEntry:
    return RunSummaryEntry(
        entry_id=f"{test_case.action}-2026-05-04T12-00-00",
        test_case=test_case,
        product=test_case.product,
        status=status,
        recorded_at=_NOW,
        **kwargs,  # type: ignore[arg-type]
    )


def _writer(tmp_path: Path) -> RunSummaryWriter:
    metadata = RunMetadata(
        run_start=_NOW,
        school_id="school1",
        config_path=tmp_path / "config.yaml",
        run_dir=tmp_path,
        base_url="https://app.example.edu",
        test_cases=(TestCase.UPDATE, TestCase.CREATE, TestCase.UPDATE_COURSE),
    )
    return RunSummaryWriter(
        tmp_path / "RUN-SUMMARY-school1.md", tmp_path / "RUN-SUMMARY-school1.xlsx", metadata
    )


def test_render_groups_rows_by_product() -> None:
    rendered = render_run_summary(
        "school1",
        [
            _entry(
                TestCase.UPDATE,
                CaseStatus.PASSED,
                merge_report_url="https://app/#/int/school1/merge-history/r1",
                merge_report_status="success",
            ),
            _entry(TestCase.UPDATE_COURSE, CaseStatus.SKIPPED, detail="HTTP 422 | bad"),
        ],
    )

    assert rendered.startswith("# Run Summary Report - school1\n")
    assert "## Academic Scheduling Test Cases" in rendered
    assert "## Curriculum Management Test Cases" in rendered
    assert rendered.index("Academic Scheduling") < rendered.index("Curriculum Management")
    assert (
        "| update-2026-05-04T12-00-00 | [View Report](https://app/#/int/school1/merge-history/r1)"
        " | PASSED | success | 2026-05-04 12:00:00 | update | N/A |"
    ) in rendered
    assert "| SKIPPED | N/A | 2026-05-04 12:00:00 | updateCourse | HTTP 422 \\| bad |" in rendered


def test_render_omits_products_without_entries() -> None:
    rendered = render_run_summary("school1", [_entry(TestCase.UPDATE, CaseStatus.FAILED)])

    assert "Curriculum Management" not in rendered


def test_render_empty_summary() -> None:
    assert "_No test cases recorded._" in render_run_summary("school1", [])


def test_errors_column_prefers_merge_errors_over_detail() -> None:
    rendered = render_run_summary(
        "school1",
        [
            _entry(
                TestCase.CREATE,
                CaseStatus.FAILED,
                detail="merge failed",
                errors="SIS rejected title",
            )
        ],
    )

    assert "| SIS rejected title |" in rendered
    assert "merge failed" not in rendered


def test_append_rewrites_markdown_and_workbook_each_time(tmp_path: Path) -> None:
    writer = _writer(tmp_path)
    markdown_path, workbook_path = writer.paths

    writer.append(_entry(TestCase.UPDATE, CaseStatus.PASSED))
    first = markdown_path.read_text(encoding="utf-8")
    writer.append(
        _entry(
            TestCase.CREATE,
            CaseStatus.TIMED_OUT,
            detail="merge report did not finish in time",
            artifact_paths=(tmp_path / "a.png", tmp_path / "b.md"),
        )
    )

    assert "| create |" not in first
    assert "| create |" in markdown_path.read_text(encoding="utf-8")
    assert len(writer.entries) == 2

    workbook = load_workbook(workbook_path)
    summary = workbook[SUMMARY_SHEET_NAME]
    headers = [cell.value for cell in summary[1]]
    assert headers[:4] == ["Product", "ID", "Merge Report URL", "Status"]
    assert summary.cell(row=2, column=4).value == "PASSED"
    assert summary.cell(row=3, column=4).value == "TIMED_OUT"
    assert summary.cell(row=3, column=8).value == "merge report did not finish in time"
    assert summary.cell(row=3, column=10).value == (
        f"{tmp_path / 'a.png'}\n{tmp_path / 'b.md'}"
    )
    run_info = {
        row[0].value: row[1].value for row in workbook[RUN_INFO_SHEET_NAME].iter_rows()
    }
    assert run_info["school_id"] == "school1"
    assert run_info["total"] == 3
    assert run_info["recorded"] == 2
    assert run_info["passed"] == 1
    assert run_info["timed_out"] == 1
    assert run_info["selected"] == "update, create, updateCourse"


def test_entries_are_recorded_with_their_product() -> None:
    entry = _entry(TestCase.CREATE_PROGRAM, CaseStatus.PASSED)

    assert entry.product is Product.CURRICULUM_MANAGEMENT
