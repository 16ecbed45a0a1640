"""Run control exports."""

from .cancellation import RunCancelledError, RunDeadline

__all__ = ["RunCancelledError", "RunDeadline"]
