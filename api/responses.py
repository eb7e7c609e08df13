"""Response envelope models.

Success: ``{"success": true, "data": ...}``.
Failure: ``{"success": false, "error": {"code", "message", "timestamp", "details"?}}``.
The models document the envelope in OpenAPI; routes build it with ``ok()``.
"""

from datetime import datetime
from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, Field


T = TypeVar("T")


class ErrorContent(BaseModel):
    """Error information container."""

    code: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error message")
    timestamp: datetime = Field(description="When the error was produced")
    details: Optional[dict[str, Any]] = Field(
        default=None,
        description="Additional error context, e.g. per-field errors",
    )


class ErrorResponse(BaseModel):
    """Failure envelope."""

    success: bool = Field(default=False)
    error: ErrorContent

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "success": False,
                    "error": {
                        "code": "CONFLICT",
                        "message": "Workspace already exists for this event",
                        "timestamp": "2026-01-01T12:00:00+00:00",
                    },
                },
            ]
        }
    }


class ApiResponse(BaseModel, Generic[T]):
    """Success envelope, parameterized by the payload type."""

    success: bool = Field(default=True)
    data: Optional[T] = None


class Page(BaseModel, Generic[T]):
    """Offset-paginated list payload."""

    items: list[T] = Field(description="Items for the current page")
    total: int = Field(ge=0, description="Total number of matching items")
    limit: int = Field(ge=1, description="Page size")
    offset: int = Field(ge=0, description="Offset of the first item")


def ok(data: Any = None) -> dict[str, Any]:
    """Wrap a payload in the success envelope."""
    return {"success": True, "data": data}


ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    400: {"model": ErrorResponse, "description": "Validation error"},
    401: {"model": ErrorResponse, "description": "Authentication required"},
    403: {"model": ErrorResponse, "description": "Access denied"},
    404: {"model": ErrorResponse, "description": "Not found"},
    409: {"model": ErrorResponse, "description": "Conflict"},
    503: {"model": ErrorResponse, "description": "Service unavailable"},
}
