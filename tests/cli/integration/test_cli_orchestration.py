"""CLI orchestration integration tests."""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

import yaml
from click.testing import CliRunner
from sis_merge_verifier.case_catalog import TestCase
from sis_merge_verifier.cli import cli
from sis_merge_verifier.results_writing import CaseStatus, RunSummaryEntry
from sis_merge_verifier.run_execution import RunExecutionError, RunOutcome, RunRequest


def _entry(test_case: TestCase, status: CaseStatus, detail: str = "") -> RunSummaryEntry:
    return RunSummaryEntry(
        entry_id=f"{test_case.action}-2026-05-04T12-00-00",
        test_case=test_case,
        product=test_case.product,
        status=status,
        recorded_at=datetime(2026, 5, 4, 12, 0, tzinfo=UTC),
        detail=detail,
    )


def test_generate_config_command_writes_placeholder_file_with_default_name(tmp_path: Path) -> None:
    runner = CliRunner()
    with runner.isolated_filesystem(temp_dir=str(tmp_path)):
        result = runner.invoke(cli, ["generate-config"])
        output_path = Path("config.yaml").resolve()

        assert result.exit_code == 0
        assert output_path.exists()
        content = output_path.read_text(encoding="utf-8")
        assert "environment:" in content
        assert "<REQUIRED>" in content
        assert "# polling:" in content
        assert yaml.safe_load(content) == {"environment": {"base_url": "<REQUIRED>"}}
        assert str(output_path) in result.output


def test_generate_config_command_fails_when_output_file_already_exists(tmp_path: Path) -> None:
    runner = CliRunner()
    output_path = tmp_path / "config.yaml"
    output_path.write_text("already-there", encoding="utf-8")

    result = runner.invoke(cli, ["generate-config", "--output", str(output_path)])

    assert result.exit_code != 0
    assert "already exists" in str(result.exception).lower()
    assert output_path.read_text(encoding="utf-8") == "already-there"


def test_list_test_cases_prints_catalog_and_groups() -> None:
    runner = CliRunner()

    result = runner.invoke(cli, ["list-test-cases"])

    assert result.exit_code == 0
    assert "Academic Scheduling (academic-scheduling):" in result.output
    assert "Curriculum Management (curriculum):" in result.output
    assert "updateCourse" in result.output
    assert "Groups:" in result.output
    assert "courseAll" in result.output


def test_list_test_cases_filters_by_product() -> None:
    runner = CliRunner()

    result = runner.invoke(cli, ["list-test-cases", "--product", "curriculum"])

    assert result.exit_code == 0
    assert "Academic Scheduling (" not in result.output
    assert "updateCourse" in result.output


def test_run_command_passes_options_and_reports_entries(tmp_path: Path, monkeypatch) -> None:
    runner = CliRunner()
    captured: list[RunRequest] = []

    def fake_run(request: RunRequest) -> RunOutcome:
        captured.append(request)
        return RunOutcome(
            run_dir=tmp_path / "Run-2026-05-04_12-00-00",
            summary_paths=(),
            entries=(_entry(TestCase.UPDATE, CaseStatus.PASSED),),
        )

    monkeypatch.setattr("sis_merge_verifier.cli.execute_merge_verification_run", fake_run)

    result = runner.invoke(
        cli,
        [
            "run",
            "--config",
            "config.yaml",
            "--school",
            "school1",
            "--test-case",
            "update",
            "--test-case",
            "create",
            "--email",
            "qa@example.edu",
            "--headed",
        ],
    )

    assert result.exit_code == 0
    assert "PASSED" in result.output
    assert "Run-2026-05-04_12-00-00" in result.output
    request = captured[0]
    assert request.school_id == "school1"
    assert request.test_cases == ("update", "create")
    assert request.email == "qa@example.edu"
    assert request.password is None
    assert request.headed is True


def test_run_command_exits_non_zero_when_a_case_did_not_pass(
    tmp_path: Path, monkeypatch
) -> None:
    runner = CliRunner()

    def fake_run(request: RunRequest) -> RunOutcome:
        return RunOutcome(
            run_dir=tmp_path,
            summary_paths=(),
            entries=(
                _entry(TestCase.UPDATE, CaseStatus.PASSED),
                _entry(TestCase.CREATE, CaseStatus.SKIPPED, "HTTP 422: Title too long"),
            ),
            cancelled=True,
        )

    monkeypatch.setattr("sis_merge_verifier.cli.execute_merge_verification_run", fake_run)

    result = runner.invoke(cli, ["run", "--config", "c.yaml", "--school", "school1"])

    assert result.exit_code == 1
    assert "SKIPPED" in result.output
    assert "HTTP 422: Title too long" in result.output


def test_run_command_surfaces_run_execution_errors(monkeypatch) -> None:
    runner = CliRunner()

    def fake_run(request: RunRequest) -> RunOutcome:
        raise RunExecutionError("Pre-flight check failed: nightly merge in progress for school1")

    monkeypatch.setattr("sis_merge_verifier.cli.execute_merge_verification_run", fake_run)

    result = runner.invoke(cli, ["run", "--config", "c.yaml", "--school", "school1"])

    assert result.exit_code != 0
    assert "nightly merge in progress" in str(result.exception)
