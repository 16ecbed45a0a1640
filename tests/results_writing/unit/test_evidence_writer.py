"""Evidence writer and run directory tests."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path

from sis_merge_verifier.action_execution import (
    ActionContext,
    ErrorDetail,
    FieldDifference,
    FieldStatus,
)
from sis_merge_verifier.case_catalog import TestCase
from sis_merge_verifier.merge_verification import (
    Failed,
    Succeeded,
    build_merge_report_digest,
)
from sis_merge_verifier.results_writing import (
    DATA_AFTER_SYNC_FILENAME,
    CaseStatus,
    EvidenceWriter,
    RunDirectories,
)

_NOW = datetime(2026, 5, 4, 12, 30, 15, tzinfo=UTC)


def _saved_context(evidence_dir: Path) -> ActionContext:
    context = ActionContext(
        test_case=TestCase.UPDATE, evidence_dir=evidence_dir, target_entity_id="sec-1"
    )
    screenshot = evidence_dir / "update-before.png"
    screenshot.write_bytes(b"png")
    context.add_screenshot("before", screenshot, _NOW)
    context.saved = True
    context.field_differences = (
        FieldDifference("title", "Old", "QA update", FieldStatus.UPDATED),
    )
    return context


def _writer() -> EvidenceWriter:
    return EvidenceWriter("school1", clock=lambda: _NOW)


def test_run_directories_layout(tmp_path: Path) -> None:
    directories = RunDirectories(tmp_path / "schools", "school1", _NOW)

    assert directories.run_dir == tmp_path / "schools" / "school1" / "Run-2026-05-04_12-30-15"
    assert not directories.run_dir.exists()
    assert directories.summary_markdown_path.name == "RUN-SUMMARY-school1.md"
    assert directories.summary_workbook_path.name == "RUN-SUMMARY-school1.xlsx"
    assert directories.log_path.name == "run.log"

    evidence_dir = directories.evidence_dir(TestCase.UPDATE_COURSE)

    assert evidence_dir == directories.run_dir / "CurriculumManagement" / "updateCourse"
    assert evidence_dir.is_dir()


def test_passed_case_writes_differences_data_and_report(tmp_path: Path) -> None:
    context = _saved_context(tmp_path)
    report = {
        "id": "rep-1",
        "status": "success",
        "steps": [
            {
                "status": "success",
                "misc": {
                    "executedUpdates": {
                        "sections": [{"postType": "update", "postBody": {"title": "QA update"}}]
                    }
                },
            }
        ],
    }
    outcome = Succeeded(
        data_after_sync={"formattedData": {"title": "QA update"}},
        report_id="rep-1",
        history_url="https://app.example.edu/#/int/school1/merge-history/rep-1",
        digest=build_merge_report_digest(report),
    )

    artifacts = _writer().write(context, CaseStatus.PASSED, outcome=outcome)

    names = [path.name for path in artifacts]
    assert names == [
        "update-before.png",
        "school1-update-field-differences-2026-05-04_12-30-15.txt",
        DATA_AFTER_SYNC_FILENAME,
        "school1-academic-scheduling-update-mergeReportSummary.md",
    ]
    assert json.loads((tmp_path / DATA_AFTER_SYNC_FILENAME).read_text(encoding="utf-8")) == {
        "formattedData": {"title": "QA update"}
    }
    summary = artifacts[-1].read_text(encoding="utf-8")
    assert summary.startswith("# school1 Academic Scheduling: update")
    assert "- Status: PASSED" in summary
    assert "- Entity: sec-1" in summary
    assert "[View Report](https://app.example.edu/#/int/school1/merge-history/rep-1)" in summary
    assert "- postType: update" in summary
    assert "formattedData.title" in summary
    assert "| title | Old | QA update | ✅ updated |" in summary
    assert "![before](update-before.png)" in summary


def test_unsaved_case_without_merge_writes_only_report(tmp_path: Path) -> None:
    context = ActionContext(test_case=TestCase.CREATE, evidence_dir=tmp_path)
    context.api_error_detected = ErrorDetail(422, '{"error": "bad"}', "HTTP 422: bad")

    artifacts = _writer().write(context, CaseStatus.SKIPPED, detail="operator declined")

    assert [path.name for path in artifacts] == [
        "school1-academic-scheduling-create-mergeReportSummary.md"
    ]
    summary = artifacts[0].read_text(encoding="utf-8")
    assert "- API error: HTTP 422: bad" in summary
    assert '- API error payload: `{"error": "bad"}`' in summary
    assert "- Detail: operator declined" in summary
    assert "_No merge report available._" in summary
    assert "_No differences file found._" in summary
    assert "_No posts executed._" in summary
    assert "_No formattedData found in response._" in summary
    assert "_No screenshots captured._" in summary


def test_failed_merge_lists_report_errors(tmp_path: Path) -> None:
    context = _saved_context(tmp_path)
    digest = build_merge_report_digest(
        {
            "id": "rep-2",
            "status": "failed",
            "steps": [
                {
                    "status": "failed",
                    "misc": {"failedSyncEntityIds": ["sec-1"]},
                    "errors": [{"error": "SIS rejected title"}],
                }
            ],
        }
    )
    outcome = Failed("SIS rejected title", report_id="rep-2", digest=digest)

    artifacts = _writer().write(context, CaseStatus.FAILED, outcome=outcome)

    assert DATA_AFTER_SYNC_FILENAME not in [path.name for path in artifacts]
    summary = artifacts[-1].read_text(encoding="utf-8")
    assert "- Merge outcome: failed" in summary
    assert "### Failed Sync Entity Ids" in summary
    assert '"sec-1"' in summary
    assert '"SIS rejected title"' in summary
