"""Action execution error taxonomy."""

from __future__ import annotations

from .action_context import ErrorDetail


class ActionError(Exception):
    """Base class for failures contained to one test case."""

    kind = "action"


class NavigationError(ActionError):
    """The target entity or its list surface is unavailable."""

    kind = "navigation"


class ConflictError(ActionError):
    """A save collided with another edit and could not be resolved automatically."""

    kind = "conflict"


class ValidationError(ActionError):
    """The application rejected the submitted data."""

    kind = "validation"

    def __init__(self, message: str, detail: ErrorDetail | None = None):
        super().__init__(message)
        self.detail = detail


class ActionTimeoutError(ActionError):
    """No save outcome was observed before the bounded wait elapsed."""

    kind = "timeout"
