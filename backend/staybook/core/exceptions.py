"""Error taxonomy for the booking engine.

Every error carries a stable ``code`` so callers can tell the categories apart
without parsing messages. The API layer renders them through a single
exception handler registered in ``staybook.main``.
"""

from __future__ import annotations

from typing import Any


class BookingEngineError(Exception):
    """Base class for errors surfaced to callers of the engine."""

    code = "BOOKING_ENGINE_ERROR"
    status_code = 500

    def __init__(self, detail: str, *, context: dict[str, Any] | None = None) -> None:
        self.detail = detail
        self.context = context or {}
        super().__init__(detail)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"detail": self.detail, "code": self.code}
        if self.context:
            payload["context"] = self.context
        return payload


class ValidationError(BookingEngineError):
    """Malformed or out-of-constraint request."""

    code = "VALIDATION_ERROR"
    status_code = 400


class ResourceConflict(BookingEngineError):
    """Requested date range is not available."""

    code = "PROPERTY_NOT_AVAILABLE"
    status_code = 409


class NotFound(BookingEngineError):
    """Referenced property or booking does not exist."""

    code = "NOT_FOUND"
    status_code = 404


class PermissionDenied(BookingEngineError):
    """Caller is not allowed to act on the booking."""

    code = "PERMISSION_DENIED"
    status_code = 403


class IllegalTransition(BookingEngineError):
    """Lifecycle transition not permitted from the current state."""

    code = "ILLEGAL_TRANSITION"
    status_code = 409


class PersistenceFailure(BookingEngineError):
    """Storage transaction could not commit."""

    code = "PERSISTENCE_FAILURE"
    status_code = 503


__all__ = [
    "BookingEngineError",
    "IllegalTransition",
    "NotFound",
    "PermissionDenied",
    "PersistenceFailure",
    "ResourceConflict",
    "ValidationError",
]
