"""Action execution domain exports."""

from .action_context import (
    ActionContext,
    ErrorDetail,
    FieldDifference,
    FieldStatus,
    FillResult,
    Screenshot,
)
from .action_errors import (
    ActionError,
    ActionTimeoutError,
    ConflictError,
    NavigationError,
    ValidationError,
)
from .action_executor import ActionExecutor, parse_error_log
from .field_differences import compute_field_differences, has_changes, render_field_differences
from .template_fill import (
    FieldKind,
    FillPlan,
    FillStep,
    SkippedField,
    balance_ownership,
    build_fill_plan,
)

__all__ = [
    "ActionContext",
    "ActionError",
    "ActionExecutor",
    "ActionTimeoutError",
    "ConflictError",
    "ErrorDetail",
    "FieldDifference",
    "FieldKind",
    "FieldStatus",
    "FillPlan",
    "FillResult",
    "FillStep",
    "NavigationError",
    "Screenshot",
    "SkippedField",
    "ValidationError",
    "balance_ownership",
    "build_fill_plan",
    "compute_field_differences",
    "has_changes",
    "parse_error_log",
    "render_field_differences",
]
