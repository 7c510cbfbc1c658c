"""Domain errors raised by the elective and teacher-assignment services.

Every error carries a machine ``code`` (upper snake case, shown to API
clients), a human ``message`` and optional ``details``. ``http_status`` is the
status the app-level error handler answers with.
"""
from __future__ import annotations
from typing import Any, Optional


class ServiceError(Exception):
    http_status = 400
    default_code = "SERVICE_ERROR"

    def __init__(self, message: str, code: Optional[str] = None, details: Optional[dict[str, Any]] = None):
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {"ok": False, "error": self.code, "message": self.message, "details": self.details}


class ValidationError(ServiceError):
    """Missing or malformed input; nothing was written."""
    http_status = 400
    default_code = "MISSING_FIELD"


class NotFoundError(ServiceError):
    http_status = 404
    default_code = "NOT_FOUND"


class CapacityError(ServiceError):
    """Elective subject has no room for the requested students."""
    http_status = 409
    default_code = "CAPACITY_EXCEEDED"


class ConflictError(ServiceError):
    """Duplicate assignment, time overlap or duplicate-subject enrollment."""
    http_status = 409
    default_code = "CONFLICT"


class UniquenessError(ServiceError):
    """Teacher assignment would break a one-per-tuple or one-supervisor rule."""
    http_status = 409
    default_code = "DUPLICATE_ASSIGNMENT"
