"""Health check API routes.

Provides endpoints for:
- GET /health - Basic liveness check
- GET /health/ready - Readiness check (DB connectivity)
"""

from fastapi import APIRouter
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from api.auth.dependencies import SessionDep
from api.exceptions import ServiceUnavailableError
from collab.logging.structured import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
def health() -> dict:
    """Basic liveness check. No authentication required."""
    return {"success": True, "data": {"status": "ok"}}


@router.get("/ready")
def ready(session: SessionDep) -> dict:
    """Readiness check: the database answers a trivial query."""
    try:
        session.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.error("readiness_check_failed", error=str(exc))
        raise ServiceUnavailableError("Service not ready: database unavailable") from exc
    return {"success": True, "data": {"status": "ok", "database": True}}
