"""Pre-flight guard exports."""

from .preflight_guard import (
    Abort,
    PreflightAbort,
    PreflightApi,
    PreflightGuard,
    PreflightResult,
    Proceed,
)

__all__ = [
    "Abort",
    "PreflightAbort",
    "PreflightApi",
    "PreflightGuard",
    "PreflightResult",
    "Proceed",
]
