"""CLI smoke tests."""

from click.testing import CliRunner
from sis_merge_verifier.cli import cli


def test_cli_displays_help() -> None:
    runner = CliRunner()
    result = runner.invoke(cli, ["--help"])

    assert result.exit_code == 0
    assert "generate-config" in result.output
    assert "list-test-cases" in result.output
    assert "run" in result.output


def test_run_help_lists_selection_options() -> None:
    runner = CliRunner()
    result = runner.invoke(cli, ["run", "--help"])

    assert result.exit_code == 0
    assert "--school" in result.output
    assert "--test-case" in result.output
    assert "--headed" in result.output
