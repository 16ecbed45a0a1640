"""Command line interface entry point."""

from __future__ import annotations

import logging
import sys

import click

from sis_merge_verifier.case_catalog import TEST_CASE_GROUPS, Product, TestCase
from sis_merge_verifier.configuration import (
    DEFAULT_CONFIG_FILENAME,
    write_placeholder_configuration,
)
from sis_merge_verifier.run_execution import (
    RunExecutionError,
    RunRequest,
    execute_merge_verification_run,
)

_PRODUCT_CHOICES = tuple(product.slug for product in Product)


class CliError(Exception):
    """Custom CLI error."""


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="sis-merge-verifier")
def cli() -> None:
    """Verify that application changes reach the SIS through real-time merges."""


@cli.command(name="generate-config")
@click.option(
    "--output",
    "output_path",
    required=False,
    default=DEFAULT_CONFIG_FILENAME,
    show_default=True,
    type=click.Path(path_type=str),
    help="Path to the YAML run configuration template to write",
)
def generate_config(output_path: str) -> None:
    """Generate a placeholder YAML run configuration with guidance comments."""
    try:
        resolved_output = write_placeholder_configuration(output_path)
    except (FileExistsError, OSError) as exc:
        raise CliError(str(exc)) from exc
    click.echo(str(resolved_output))


@cli.command(name="list-test-cases")
@click.option(
    "--product",
    "product",
    required=False,
    type=click.Choice(_PRODUCT_CHOICES, case_sensitive=False),
    help="Only list test cases of this product",
)
def list_test_cases(product: str | None) -> None:
    """List the available test cases and test case groups."""
    selected_product = Product.from_slug(product) if product else None
    for candidate in Product:
        if selected_product is not None and candidate is not selected_product:
            continue
        click.echo(f"{candidate.value} ({candidate.slug}):")
        for test_case in TestCase:
            if test_case.product is candidate:
                click.echo(f"  {test_case.action:<20} {test_case.merge_entity_type}")
    click.echo("Groups:")
    for name, members in TEST_CASE_GROUPS.items():
        click.echo(f"  {name:<20} {', '.join(member.action for member in members)}")


@cli.command(name="run")
@click.option(
    "--config",
    "config_path",
    required=True,
    type=click.Path(path_type=str),
    help="Path to the YAML run configuration file",
)
@click.option("--school", "school_id", required=True, help="School id to run against")
@click.option(
    "--product",
    "product",
    required=False,
    type=click.Choice(_PRODUCT_CHOICES, case_sensitive=False),
    help="Product area; selects all of its test cases when no --test-case is given",
)
@click.option(
    "--test-case",
    "test_cases",
    multiple=True,
    help="Test case action or group name (all, courseAll, programAll, both); repeatable",
)
@click.option("--email", "email", required=False, help="Operator email (overrides config)")
@click.option(
    "--password",
    "password",
    required=False,
    help="Operator password (overrides config)",
)
@click.option(
    "--output-dir",
    "output_dir",
    required=False,
    type=click.Path(path_type=str),
    help="Optional directory for run folders (overrides config)",
)
@click.option("--form-name", "form_name", required=False, help="Course form name override")
@click.option(
    "--program-form-name",
    "program_form_name",
    required=False,
    help="Program form name override",
)
@click.option("--headed", is_flag=True, default=False, help="Show the browser window.")
@click.option("--verbose", is_flag=True, default=False, help="Enable debug logging.")
@click.pass_context
# pylint: disable-next=too-many-arguments
def run_tests(
    ctx: click.Context,
    config_path: str,
    school_id: str,
    product: str | None,
    test_cases: tuple[str, ...],
    email: str | None,
    password: str | None,
    output_dir: str | None,
    form_name: str | None,
    program_form_name: str | None,
    headed: bool,
    verbose: bool,
) -> None:
    """Execute the selected test cases and verify their merges."""
    _configure_logging(verbose)
    try:
        outcome = execute_merge_verification_run(
            RunRequest(
                config_path=config_path,
                school_id=school_id,
                test_cases=test_cases,
                product=product,
                email=email,
                password=password,
                output_dir=output_dir,
                form_name=form_name,
                program_form_name=program_form_name,
                headed=headed,
            )
        )
    except RunExecutionError as exc:
        raise CliError(str(exc)) from exc

    for entry in outcome.entries:
        line = f"{entry.status.value:<10} {entry.test_case.action}"
        click.echo(f"{line}  {entry.detail}" if entry.detail else line)
    click.echo(str(outcome.run_dir))
    if outcome.cancelled:
        click.echo("Run cancelled before all test cases finished.", err=True)
    if not outcome.all_passed:
        ctx.exit(1)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger("sis_merge_verifier").setLevel(logging.DEBUG if verbose else logging.INFO)


def main(argv: list[str] | None = None) -> int:
    """CLI entry point for console_scripts wiring."""
    argv = argv if argv is not None else sys.argv[1:]
    try:
        exit_code = cli.main(args=list(argv), standalone_mode=False)
    except CliError as exc:
        click.echo(str(exc), err=True)
        return 1
    except click.ClickException as exc:
        exc.show()
        return exc.exit_code
    except click.Abort:
        click.echo("Aborted.", err=True)
        return 1
    return exit_code if isinstance(exit_code, int) else 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
