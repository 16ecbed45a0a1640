"""Results writing entities."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path

from sis_merge_verifier.case_catalog import Product, TestCase


class CaseStatus(str, Enum):
    """Rendered status of one test case in the run summary."""

    PASSED = "PASSED"
    FAILED = "FAILED"
    SKIPPED = "SKIPPED"
    TIMED_OUT = "TIMED_OUT"


@dataclass(frozen=True)
class RunSummaryEntry:  # pylint: disable=too-many-instance-attributes
    """One appended row of the cross-run summary."""

    entry_id: str
    test_case: TestCase
    product: Product
    status: CaseStatus
    recorded_at: datetime
    artifact_paths: tuple[Path, ...] = ()
    detail: str = ""
    merge_report_url: str | None = None
    merge_report_status: str | None = None
    errors: str | None = None


@dataclass(frozen=True)
class RunMetadata:
    """Metadata rendered into the RunInfo sheet."""

    run_start: datetime
    school_id: str
    config_path: Path
    run_dir: Path
    base_url: str
    test_cases: tuple[TestCase, ...]
