"""Exception handlers that render every failure in the response envelope.

Failure bodies look like
``{"success": false, "error": {"code", "message", "timestamp", "details"?}}``.
Unexpected exceptions are logged with their traceback; clients only ever see
a generic message.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.exceptions import CollabException
from collab.logging.structured import get_logger

logger = get_logger(__name__)

# Codes for errors raised by the framework itself (unknown routes, bad methods).
STATUS_CODE_MAP = {
    400: "BAD_REQUEST",
    401: "AUTHENTICATION_FAILED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    422: "UNPROCESSABLE_ENTITY",
    500: "INTERNAL_ERROR",
    503: "SERVICE_UNAVAILABLE",
}
FALLBACK_CODE = "ERROR"


def create_error_response(
    code: str,
    message: str,
    details: Optional[dict[str, Any]] = None,
) -> dict[str, Any]:
    """Build the failure envelope; ``details`` is omitted when empty."""
    body: dict[str, Any] = {
        "code": code,
        "message": message,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    if details:
        body["details"] = details
    return {"success": False, "error": body}


def _respond(
    status_code: int,
    code: str,
    message: str,
    details: Optional[dict[str, Any]] = None,
    headers: Optional[dict[str, str]] = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=create_error_response(code, message, details),
        headers=headers,
    )


def _field_errors(exc: RequestValidationError) -> list[dict[str, str]]:
    return [
        {
            "field": ".".join(str(part) for part in item.get("loc", ())),
            "message": item.get("msg", "Invalid value"),
            "type": item.get("type", "value_error"),
        }
        for item in exc.errors()
    ]


async def collab_exception_handler(
    request: Request, exc: CollabException
) -> JSONResponse:
    """Domain errors carry their own status and code."""
    emit = logger.error if exc.status_code >= 500 else logger.warning
    emit(
        "request_failed",
        path=request.url.path,
        status_code=exc.status_code,
        error_code=exc.error_code,
        reason=exc.message,
    )
    return _respond(exc.status_code, exc.error_code, exc.message, exc.details or None)


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Malformed input is a 400 listing each offending field."""
    errors = _field_errors(exc)
    logger.info("request_invalid", path=request.url.path, error_count=len(errors))
    return _respond(
        400,
        "VALIDATION_ERROR",
        "Request validation failed",
        {"errors": errors},
    )


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    code = STATUS_CODE_MAP.get(exc.status_code, FALLBACK_CODE)
    message = str(exc.detail) if exc.detail else "An error occurred"
    logger.info(
        "http_error", path=request.url.path, status_code=exc.status_code, reason=message
    )
    return _respond(
        exc.status_code, code, message, headers=getattr(exc, "headers", None)
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        exc_type=type(exc).__name__,
        exc_info=exc,
    )
    return _respond(500, "INTERNAL_ERROR", "An unexpected error occurred")


def register_error_handlers(app: FastAPI) -> None:
    handlers = (
        (CollabException, collab_exception_handler),
        (RequestValidationError, validation_exception_handler),
        (StarletteHTTPException, http_exception_handler),
        (Exception, unhandled_exception_handler),
    )
    for exc_class, handler in handlers:
        app.add_exception_handler(exc_class, handler)
