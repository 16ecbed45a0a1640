"""Configuration domain entities."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class ConflictResolutionPolicy(str, Enum):
    """How a save collision with another editor is resolved."""

    PREFER_INCOMING = "prefer_incoming"
    MANUAL = "manual"


class OwnershipSplitPolicy(str, Enum):
    """How department ownership percentages are balanced."""

    EVEN = "even"


@dataclass(frozen=True)
class EnvironmentSettings:
    """Application endpoints for the environment under test."""

    base_url: str
    api_base_url: str


@dataclass(frozen=True)
class CredentialSettings:
    """Operator credentials supplied through the configuration file."""

    email: str | None
    password: str | None


@dataclass(frozen=True)
class PollingSettings:
    """Merge report polling bounds."""

    initial_delay_seconds: int
    interval_seconds: int
    timeout_seconds: int
    error_backoff_seconds: int
    max_transient_errors: int


@dataclass(frozen=True)
class TakeoverSettings:
    """Manual takeover wait ceiling."""

    timeout_seconds: int


@dataclass(frozen=True)
class BrowserSettings:
    """Browser session behaviour."""

    headless: bool
    action_timeout_ms: int
    save_signal_timeout_seconds: int
    record_video: bool


@dataclass(frozen=True)
class PolicySettings:
    """Configurable resolution policies."""

    conflict_resolution: ConflictResolutionPolicy
    ownership_split: OwnershipSplitPolicy


@dataclass(frozen=True)
class RunSettings:
    """Run-level output and cancellation settings."""

    output_dir: Path
    timeout_seconds: int | None


@dataclass(frozen=True)
class FormSettings:
    """Default form names used by create and revision flows."""

    course_form_name: str
    program_form_name: str


@dataclass(frozen=True)
class Configuration:  # pylint: disable=too-many-instance-attributes
    """Top-level configuration aggregate."""

    path: Path
    environment: EnvironmentSettings
    credentials: CredentialSettings
    polling: PollingSettings
    takeover: TakeoverSettings
    browser: BrowserSettings
    policies: PolicySettings
    run: RunSettings
    forms: FormSettings
