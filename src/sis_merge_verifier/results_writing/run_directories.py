"""Run and evidence directory layout."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from sis_merge_verifier.case_catalog import TestCase

RUN_FOLDER_FORMAT = "Run-%Y-%m-%d_%H-%M-%S"
RUN_LOG_FILENAME = "run.log"
VIDEO_DIRNAME = "videos"


@dataclass(frozen=True)
class RunDirectories:
    """Paths of one run; nothing is created until a directory is requested."""

    output_dir: Path
    school_id: str
    started_at: datetime

    @property
    def run_dir(self) -> Path:
        return self.output_dir / self.school_id / self.started_at.strftime(RUN_FOLDER_FORMAT)

    @property
    def log_path(self) -> Path:
        return self.run_dir / RUN_LOG_FILENAME

    @property
    def video_dir(self) -> Path:
        return self.run_dir / VIDEO_DIRNAME

    @property
    def summary_markdown_path(self) -> Path:
        return self.run_dir / f"RUN-SUMMARY-{self.school_id}.md"

    @property
    def summary_workbook_path(self) -> Path:
        return self.run_dir / f"RUN-SUMMARY-{self.school_id}.xlsx"

    def create_run_dir(self) -> Path:
        self.run_dir.mkdir(parents=True, exist_ok=True)
        return self.run_dir

    def evidence_dir(self, test_case: TestCase) -> Path:
        """Create and return `{run_dir}/{Product}/{action}/`."""
        path = self.run_dir / test_case.product.folder_name / test_case.action
        path.mkdir(parents=True, exist_ok=True)
        return path
