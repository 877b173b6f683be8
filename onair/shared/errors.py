"""Error taxonomy for presence and engagement operations."""

from __future__ import annotations


class OnAirError(Exception):
    """Base class for domain errors."""


class ValidationError(OnAirError):
    """A submission is malformed: empty text, unknown stream type, foreign emoji."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class NotFound(OnAirError):
    """A mutation targets an id that does not exist."""

    def __init__(self, resource: str, resource_id: int) -> None:
        super().__init__(f"{resource} {resource_id} not found")
        self.resource = resource
        self.resource_id = resource_id


class StoreUnavailable(OnAirError):
    """Transient datastore failure or timeout. Callers may retry later."""

    def __init__(self, operation: str, cause: BaseException | None = None) -> None:
        reason = type(cause).__name__ if cause is not None else "unavailable"
        super().__init__(f"Store operation '{operation}' failed: {reason}")
        self.operation = operation
        self.cause = cause
