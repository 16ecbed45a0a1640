"""Results writing domain exports."""

from .evidence_writer import DATA_AFTER_SYNC_FILENAME, EvidenceWriter
from .report_models import CaseStatus, RunMetadata, RunSummaryEntry
from .run_directories import RUN_FOLDER_FORMAT, RUN_LOG_FILENAME, RunDirectories
from .run_summary_writer import (
    RUN_INFO_SHEET_NAME,
    SUMMARY_COLUMNS,
    SUMMARY_SHEET_NAME,
    RunSummaryWriter,
    render_run_summary,
)

__all__ = [
    "DATA_AFTER_SYNC_FILENAME",
    "RUN_FOLDER_FORMAT",
    "RUN_INFO_SHEET_NAME",
    "RUN_LOG_FILENAME",
    "SUMMARY_COLUMNS",
    "SUMMARY_SHEET_NAME",
    "CaseStatus",
    "EvidenceWriter",
    "RunDirectories",
    "RunMetadata",
    "RunSummaryEntry",
    "RunSummaryWriter",
    "render_run_summary",
]
