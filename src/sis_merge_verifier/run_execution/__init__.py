"""Run execution domain exports."""

from .merge_verification_run_use_case import RunExecutionError, execute_merge_verification_run
from .run_contracts import RunArtifacts, RunOutcome, RunRequest

__all__ = [
    "RunRequest",
    "RunOutcome",
    "RunArtifacts",
    "RunExecutionError",
    "execute_merge_verification_run",
]
