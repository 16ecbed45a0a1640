"""Configuration scaffold generation helpers."""

from __future__ import annotations

from pathlib import Path

DEFAULT_CONFIG_FILENAME = "config.yaml"

_CONFIG_SCAFFOLD_TEMPLATE = """# Run configuration template for sis-merge-verifier.
# Replace every <REQUIRED> placeholder before running run.
# Optional settings are commented out and show their default values.

environment:
  # Application URL, e.g. https://app.example.edu
  base_url: "<REQUIRED>"
  # api_base_url: "<OPTIONAL>"

# credentials:
#   # May also be supplied with --email/--password on the command line.
#   email: "<OPTIONAL>"
#   password: "<OPTIONAL>"

# polling:
#   initial_delay_seconds: 60
#   interval_seconds: 60
#   timeout_seconds: 1800
#   error_backoff_seconds: 15
#   max_transient_errors: 5

# takeover:
#   # Ceiling for waiting on a human operator.
#   timeout_seconds: 300

# browser:
#   # Manual takeover needs a visible browser: set false or pass --headed.
#   headless: true
#   action_timeout_ms: 60000
#   save_signal_timeout_seconds: 30
#   record_video: true

# policies:
#   # prefer_incoming clicks "Save Anyway" on a conflict; manual hands over to the operator.
#   conflict_resolution: prefer_incoming
#   ownership_split: even

# run:
#   output_dir: schools
#   # Overall run timeout; unbounded when unset.
#   timeout_seconds: 7200

# forms:
#   course_form_name: Propose New Course
#   program_form_name: Propose New Program
"""


def build_placeholder_configuration() -> str:
    """Build a YAML run configuration template with placeholders and inline guidance."""
    return _CONFIG_SCAFFOLD_TEMPLATE


def write_placeholder_configuration(output_path: Path | str) -> Path:
    """Write the placeholder run configuration template to the requested output path.

    Args:
      output_path: Destination file path for the scaffold.

    Returns:
      The resolved destination path.

    Raises:
      FileExistsError: If the destination file already exists.
      OSError: If writing the scaffold fails.
    """
    destination = Path(output_path)
    if destination.exists():
        raise FileExistsError(f"Run configuration file already exists: {destination.resolve()}")
    destination.write_text(build_placeholder_configuration(), encoding="utf-8")
    return destination.resolve()
