"""Configuration loader service."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from .runtime_settings import (
    BrowserSettings,
    ConflictResolutionPolicy,
    Configuration,
    CredentialSettings,
    EnvironmentSettings,
    FormSettings,
    OwnershipSplitPolicy,
    PolicySettings,
    PollingSettings,
    RunSettings,
    TakeoverSettings,
)

DEFAULT_COURSE_FORM_NAME = "Propose New Course"
DEFAULT_PROGRAM_FORM_NAME = "Propose New Program"


class ConfigurationError(Exception):
    """Raised when the configuration file is invalid."""


def load_configuration(config_path: Path | str) -> Configuration:
    """Load and validate the configuration file."""
    path = Path(config_path)
    if not path.exists():
        raise ConfigurationError(f"Configuration file not found: {path}")

    text = path.read_text(encoding="utf-8")
    try:
        parsed = yaml.safe_load(text)
    except yaml.YAMLError as exc:  # pragma: no cover - exercised indirectly
        raise ConfigurationError(f"Failed to parse configuration file: {exc}") from exc

    if parsed is None:
        parsed = {}

    if not isinstance(parsed, Mapping):
        raise ConfigurationError("Configuration root must be a mapping.")

    return Configuration(
        path=path,
        environment=_parse_environment_section(parsed.get("environment")),
        credentials=_parse_credentials_section(parsed.get("credentials")),
        polling=_parse_polling_section(parsed.get("polling")),
        takeover=_parse_takeover_section(parsed.get("takeover")),
        browser=_parse_browser_section(parsed.get("browser")),
        policies=_parse_policies_section(parsed.get("policies")),
        run=_parse_run_section(parsed.get("run"), path.parent),
        forms=_parse_forms_section(parsed.get("forms")),
    )


def _parse_environment_section(value: Any) -> EnvironmentSettings:
    section = _require_mapping(value, "environment")
    base_url = _require_url(section.get("base_url"), "environment.base_url")
    api_base_url = _optional_string(section.get("api_base_url"), "environment.api_base_url")
    if api_base_url is not None:
        api_base_url = _require_url(api_base_url, "environment.api_base_url")
    return EnvironmentSettings(base_url=base_url, api_base_url=api_base_url or base_url)


def _parse_credentials_section(value: Any) -> CredentialSettings:
    section = _optional_mapping(value, "credentials")
    return CredentialSettings(
        email=_optional_string(section.get("email"), "credentials.email"),
        password=_optional_string(section.get("password"), "credentials.password"),
    )


def _parse_polling_section(value: Any) -> PollingSettings:
    section = _optional_mapping(value, "polling")
    initial_delay = _require_non_negative_int(
        section.get("initial_delay_seconds", 60), "polling.initial_delay_seconds"
    )
    interval = _require_positive_int(
        section.get("interval_seconds", 60), "polling.interval_seconds"
    )
    timeout = _require_positive_int(section.get("timeout_seconds", 1800), "polling.timeout_seconds")
    if timeout < interval:
        raise ConfigurationError(
            "polling.timeout_seconds must be greater than or equal to polling.interval_seconds."
        )
    return PollingSettings(
        initial_delay_seconds=initial_delay,
        interval_seconds=interval,
        timeout_seconds=timeout,
        error_backoff_seconds=_require_non_negative_int(
            section.get("error_backoff_seconds", 15), "polling.error_backoff_seconds"
        ),
        max_transient_errors=_require_positive_int(
            section.get("max_transient_errors", 5), "polling.max_transient_errors"
        ),
    )


def _parse_takeover_section(value: Any) -> TakeoverSettings:
    section = _optional_mapping(value, "takeover")
    return TakeoverSettings(
        timeout_seconds=_require_positive_int(
            section.get("timeout_seconds", 300), "takeover.timeout_seconds"
        )
    )


def _parse_browser_section(value: Any) -> BrowserSettings:
    section = _optional_mapping(value, "browser")
    return BrowserSettings(
        headless=_require_bool(section.get("headless", True), "browser.headless"),
        action_timeout_ms=_require_positive_int(
            section.get("action_timeout_ms", 60000), "browser.action_timeout_ms"
        ),
        save_signal_timeout_seconds=_require_positive_int(
            section.get("save_signal_timeout_seconds", 30), "browser.save_signal_timeout_seconds"
        ),
        record_video=_require_bool(section.get("record_video", True), "browser.record_video"),
    )


def _parse_policies_section(value: Any) -> PolicySettings:
    section = _optional_mapping(value, "policies")
    conflict_raw = _require_non_empty_string(
        section.get("conflict_resolution", ConflictResolutionPolicy.PREFER_INCOMING.value),
        "policies.conflict_resolution",
    )
    split_raw = _require_non_empty_string(
        section.get("ownership_split", OwnershipSplitPolicy.EVEN.value),
        "policies.ownership_split",
    )
    try:
        conflict_resolution = ConflictResolutionPolicy(conflict_raw.lower())
    except ValueError as exc:
        allowed = ", ".join(policy.value for policy in ConflictResolutionPolicy)
        raise ConfigurationError(
            f"policies.conflict_resolution must be one of: {allowed}."
        ) from exc
    try:
        ownership_split = OwnershipSplitPolicy(split_raw.lower())
    except ValueError as exc:
        allowed = ", ".join(policy.value for policy in OwnershipSplitPolicy)
        raise ConfigurationError(f"policies.ownership_split must be one of: {allowed}.") from exc
    return PolicySettings(
        conflict_resolution=conflict_resolution,
        ownership_split=ownership_split,
    )


def _parse_run_section(value: Any, base_path: Path) -> RunSettings:
    section = _optional_mapping(value, "run")
    output_dir_raw = _optional_string(section.get("output_dir"), "run.output_dir") or "schools"
    timeout_raw = section.get("timeout_seconds")
    timeout = (
        None
        if timeout_raw is None
        else _require_positive_int(timeout_raw, "run.timeout_seconds")
    )
    return RunSettings(
        output_dir=_resolve_path(base_path, output_dir_raw),
        timeout_seconds=timeout,
    )


def _parse_forms_section(value: Any) -> FormSettings:
    section = _optional_mapping(value, "forms")
    course_form = _optional_string(section.get("course_form_name"), "forms.course_form_name")
    program_form = _optional_string(section.get("program_form_name"), "forms.program_form_name")
    return FormSettings(
        course_form_name=course_form or DEFAULT_COURSE_FORM_NAME,
        program_form_name=program_form or DEFAULT_PROGRAM_FORM_NAME,
    )


def _resolve_path(base_path: Path, value: str) -> Path:
    candidate = Path(value)
    return candidate if candidate.is_absolute() else (base_path / candidate).resolve()


def _require_mapping(value: Any, label: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise ConfigurationError(f"{label} section must be a mapping.")
    return value


def _optional_mapping(value: Any, label: str) -> Mapping[str, Any]:
    if value is None:
        return {}
    return _require_mapping(value, label)


def _require_non_empty_string(value: Any, label: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ConfigurationError(f"{label} must be a non-empty string.")
    return value.strip()


def _require_url(value: Any, label: str) -> str:
    text = _require_non_empty_string(value, label)
    if not text.startswith(("http://", "https://")):
        raise ConfigurationError(f"{label} must start with http:// or https://.")
    return text.rstrip("/")


def _optional_string(value: Any, label: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigurationError(f"{label} must be a string if provided.")
    stripped = value.strip()
    return stripped or None


def _require_positive_int(value: Any, label: str) -> int:
    number = _require_int(value, label)
    if number <= 0:
        raise ConfigurationError(f"{label} must be a positive integer.")
    return number


def _require_non_negative_int(value: Any, label: str) -> int:
    number = _require_int(value, label)
    if number < 0:
        raise ConfigurationError(f"{label} must not be negative.")
    return number


def _require_int(value: Any, label: str) -> int:
    if isinstance(value, bool):
        raise ConfigurationError(f"{label} must be an integer.")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"{label} must be an integer.") from exc


def _require_bool(value: Any, label: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in {"true", "false"}:
        return value.strip().lower() == "true"
    raise ConfigurationError(f"{label} must be true or false.")
