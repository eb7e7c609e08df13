"""Exception classes shared by services and the HTTP layer.

Every domain failure inherits from CollabException and carries:
- message: Human-readable error message
- error_code: Machine-readable error code (e.g., "NOT_FOUND")
- details: Optional dictionary with additional context
- status_code: HTTP status the error handlers respond with
"""

from typing import Any, Optional


class CollabException(Exception):
    """Base exception for all workspace collaboration errors."""

    status_code: int = 500
    default_error_code: str = "INTERNAL_ERROR"
    default_message: str = "An unexpected error occurred"

    def __init__(
        self,
        message: Optional[str] = None,
        error_code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        self.message = message or self.default_message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to the error part of the response envelope."""
        result: dict[str, Any] = {
            "code": self.error_code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


class NotFoundError(CollabException):
    """Referenced event, workspace, task, member or template does not exist (404)."""

    status_code = 404
    default_error_code = "NOT_FOUND"
    default_message = "Resource not found"


class ValidationError(CollabException):
    """Malformed input or a rule violation such as a dependency cycle (400).

    Pass ``field`` to attach field-level detail.
    """

    status_code = 400
    default_error_code = "VALIDATION_ERROR"
    default_message = "Validation failed"

    def __init__(
        self,
        message: Optional[str] = None,
        error_code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
        field: Optional[str] = None,
    ):
        details = dict(details or {})
        if field:
            details.setdefault("field", field)
        super().__init__(message, error_code, details)


class InvalidTransitionError(ValidationError):
    """Lifecycle transition outside the allowed table."""

    default_error_code = "INVALID_TRANSITION"
    default_message = "Invalid workspace status transition"


class AuthenticationError(CollabException):
    """Missing, invalid or expired credentials (401)."""

    status_code = 401
    default_error_code = "AUTHENTICATION_FAILED"
    default_message = "Authentication required"


class AccessDeniedError(CollabException):
    """Actor lacks the role or capability for the operation (403).

    The message stays generic so the permission table is never exposed.
    """

    status_code = 403
    default_error_code = "FORBIDDEN"
    default_message = "Access denied"


class ConflictError(CollabException):
    """Request conflicts with current state, e.g. duplicate workspace (409)."""

    status_code = 409
    default_error_code = "CONFLICT"
    default_message = "Resource already exists"


class ServiceUnavailableError(CollabException):
    """Underlying data store failure (503). Detail is only logged server-side."""

    status_code = 503
    default_error_code = "SERVICE_UNAVAILABLE"
    default_message = "Service temporarily unavailable"
