"""Run execution entities."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from sis_merge_verifier.case_catalog import Product, TestCase
from sis_merge_verifier.configuration import Configuration
from sis_merge_verifier.results_writing import CaseStatus, RunSummaryEntry
from sis_merge_verifier.sis_profiles import SisProfile


@dataclass(frozen=True)
class RunRequest:  # pylint: disable=too-many-instance-attributes
    """Input contract for executing one run."""

    config_path: str
    school_id: str
    test_cases: tuple[str, ...] = ()
    product: str | None = None
    email: str | None = None
    password: str | None = None
    output_dir: str | None = None
    form_name: str | None = None
    program_form_name: str | None = None
    headed: bool = False


@dataclass(frozen=True)
class RunOutcome:
    """Output contract for one completed run."""

    run_dir: Path
    summary_paths: tuple[Path, ...]
    entries: tuple[RunSummaryEntry, ...]
    cancelled: bool = False

    @property
    def all_passed(self) -> bool:
        return (
            not self.cancelled
            and bool(self.entries)
            and all(entry.status is CaseStatus.PASSED for entry in self.entries)
        )


@dataclass(frozen=True)
class RunArtifacts:
    """Loaded domain artifacts required during run execution."""

    configuration: Configuration
    test_cases: tuple[TestCase, ...]
    product: Product | None
    email: str
    password: str
    profile: SisProfile
    output_dir: Path
