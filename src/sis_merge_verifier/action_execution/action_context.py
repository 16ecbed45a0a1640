"""Action execution entities."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path

from sis_merge_verifier.case_catalog import TestCase

from .template_fill import FillPlan


class FieldStatus(str, Enum):
    """Per-field result recorded in the field-difference artifact."""

    UPDATED = "updated"
    UNABLE = "unable"
    SKIPPED = "skipped"
    DISABLED = "disabled"


@dataclass(frozen=True)
class ErrorDetail:
    """HTTP status and payload reported by an API error notification."""

    status_code: int | None
    payload: str | None
    message: str


@dataclass(frozen=True)
class Screenshot:
    """One captured image, in capture order."""

    label: str
    path: Path
    captured_at: datetime


@dataclass(frozen=True)
class FieldDifference:
    """Before/after comparison for one form field."""

    field: str
    original: str | None
    new: str | None
    status: FieldStatus
    comment: str = ""


@dataclass(frozen=True)
class FillResult:
    """What happened when the executor tried to set one field."""

    qid: str
    applied: bool
    status: FieldStatus | None = None
    comment: str = ""


@dataclass
class ActionContext:  # pylint: disable=too-many-instance-attributes
    """Mutable record threaded through one test-case execution."""

    test_case: TestCase
    evidence_dir: Path
    target_entity_id: str | None = None
    template_fields_before: dict[str, str | None] = field(default_factory=dict)
    template_fields_after: dict[str, str | None] = field(default_factory=dict)
    conflict_detected: bool = False
    api_error_detected: ErrorDetail | None = None
    saved: bool = False
    triggered_at: datetime | None = None
    failure_kind: str | None = None
    failure_message: str | None = None
    field_differences: tuple[FieldDifference, ...] = ()
    fill_results: dict[str, FillResult] = field(default_factory=dict)
    fill_plan: FillPlan | None = None
    restarts: int = 0
    _screenshots: list[Screenshot] = field(default_factory=list, repr=False)

    @property
    def action(self) -> str:
        return self.test_case.action

    @property
    def screenshots(self) -> tuple[Screenshot, ...]:
        return tuple(self._screenshots)

    @property
    def succeeded(self) -> bool:
        return self.saved and self.failure_kind is None

    def add_screenshot(self, label: str, path: Path, captured_at: datetime) -> Screenshot:
        """Append a screenshot; capture times must never go backwards."""
        if self._screenshots and captured_at < self._screenshots[-1].captured_at:
            raise ValueError("Screenshots must be appended in capture order.")
        screenshot = Screenshot(label=label, path=path, captured_at=captured_at)
        self._screenshots.append(screenshot)
        return screenshot

    def record_failure(self, kind: str, message: str) -> None:
        self.failure_kind = kind
        self.failure_message = message

    def clear_failure(self) -> None:
        self.failure_kind = None
        self.failure_message = None
