"""Audit log recording and querying.

Provides:
- ``audited``: decorator every mutating service method passes through. It
  commits the method's rows and the audit entry as one transaction and
  records denied attempts.
- ``guarded_read``: the read-side counterpart; only denials are recorded.
- ``AuditService``: append-only writes and newest-first queries.

Decorated methods take ``session`` and the actor argument by name, and
describe what they did through ``current_audit_trail()``.
"""

import functools
import inspect
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Any, Callable, Optional
from uuid import UUID

from fastapi.encoders import jsonable_encoder
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, col, func, select

from api.auth.capabilities import Capability
from api.auth.workspace_access import load_workspace, require_read_access
from api.exceptions import (
    AccessDeniedError,
    CollabException,
    ConflictError,
    ServiceUnavailableError,
)
from collab.db.models import AuditAction, AuditLog, Workspace
from collab.logging.structured import get_logger

logger = get_logger(__name__)


@dataclass
class AuditTrail:
    """What an audited call did, filled in by the call itself.

    workspace_id starts as the call's ``workspace_id`` argument, if any.
    Setting ``skip`` suppresses the success entry (idempotent no-ops).
    """

    workspace_id: Optional[UUID] = None
    resource_id: Optional[UUID] = None
    old_value: Optional[dict[str, Any]] = None
    new_value: Optional[dict[str, Any]] = None
    description: Optional[str] = None
    action: Optional[AuditAction] = None
    skip: bool = False


_current_trail: ContextVar[Optional[AuditTrail]] = ContextVar(
    "audit_trail", default=None
)


def current_audit_trail() -> AuditTrail:
    """Trail of the audited call currently executing."""
    trail = _current_trail.get()
    if trail is None:
        raise RuntimeError("current_audit_trail() used outside an audited call")
    return trail


def _write_entry(
    session: Session,
    workspace_id: UUID,
    actor_id: Optional[UUID],
    action: AuditAction,
    resource_type: str,
    resource_id: Optional[UUID] = None,
    old_value: Optional[dict[str, Any]] = None,
    new_value: Optional[dict[str, Any]] = None,
    description: Optional[str] = None,
) -> AuditLog:
    entry = AuditLog(
        workspace_id=workspace_id,
        actor_id=actor_id,
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        old_value=jsonable_encoder(old_value) if old_value is not None else None,
        new_value=jsonable_encoder(new_value) if new_value is not None else None,
        description=description,
    )
    session.add(entry)
    session.flush()

    logger.info(
        "audit_entry_recorded",
        audit_id=str(entry.id),
        workspace_id=str(workspace_id),
        actor_id=str(actor_id) if actor_id else None,
        action=action.value,
        resource_type=resource_type,
        resource_id=str(resource_id) if resource_id else None,
    )
    return entry


def _record_denial(
    session: Session,
    trail: AuditTrail,
    actor_id: Optional[UUID],
    attempted: str,
    resource_type: str,
) -> None:
    """Record an access_denied entry in its own transaction."""
    logger.warning(
        "access_denied",
        workspace_id=str(trail.workspace_id) if trail.workspace_id else None,
        actor_id=str(actor_id) if actor_id else None,
        attempted=attempted,
        resource_type=resource_type,
    )
    if trail.workspace_id is None or session.get(Workspace, trail.workspace_id) is None:
        return
    try:
        _write_entry(
            session,
            workspace_id=trail.workspace_id,
            actor_id=actor_id,
            action=AuditAction.access_denied,
            resource_type=resource_type,
            resource_id=trail.resource_id,
            new_value={"attempted": attempted},
            description=f"Denied {attempted} on {resource_type}",
        )
        session.commit()
    except SQLAlchemyError:
        session.rollback()
        logger.error(
            "access_denied_not_recorded",
            workspace_id=str(trail.workspace_id),
            attempted=attempted,
            exc_info=True,
        )


def _run_guarded(
    func: Callable,
    signature: inspect.Signature,
    actor_arg: Optional[str],
    attempted: str,
    resource_type: str,
    on_success: Callable[[Session, AuditTrail, Optional[UUID]], None],
    conflict_message: Optional[str],
    args: tuple,
    kwargs: dict,
) -> Any:
    bound = signature.bind(*args, **kwargs)
    bound.apply_defaults()
    session: Session = bound.arguments["session"]
    actor_id = bound.arguments.get(actor_arg) if actor_arg else None

    trail = AuditTrail(workspace_id=bound.arguments.get("workspace_id"))
    token = _current_trail.set(trail)
    try:
        result = func(*args, **kwargs)
        on_success(session, trail, actor_id)
        return result
    except AccessDeniedError:
        session.rollback()
        _record_denial(session, trail, actor_id, attempted, resource_type)
        raise
    except IntegrityError as exc:
        session.rollback()
        logger.warning(
            "integrity_conflict",
            attempted=attempted,
            resource_type=resource_type,
            error=str(exc.orig),
        )
        raise ConflictError(conflict_message) from exc
    except SQLAlchemyError as exc:
        session.rollback()
        logger.error(
            "store_unavailable",
            attempted=attempted,
            resource_type=resource_type,
            exc_info=True,
        )
        raise ServiceUnavailableError() from exc
    except CollabException as exc:
        session.rollback()
        logger.info(
            "service_call_rejected",
            attempted=attempted,
            resource_type=resource_type,
            error_code=exc.error_code,
        )
        raise
    except Exception:
        session.rollback()
        raise
    finally:
        _current_trail.reset(token)


def audited(
    action: AuditAction,
    resource_type: str,
    actor_arg: Optional[str] = "actor_id",
    conflict_message: Optional[str] = None,
) -> Callable:
    """Wrap a mutating service method.

    On success the audit entry is added and the session committed, so
    business rows and the entry land together. Any failure rolls back.
    AccessDeniedError additionally records an ``access_denied`` entry,
    IntegrityError becomes ConflictError and other SQLAlchemy errors
    become ServiceUnavailableError.

    Args:
        action: Audit action recorded on success
        resource_type: Resource type recorded on the entry
        actor_arg: Name of the argument holding the acting user id,
            None for system-initiated calls
        conflict_message: Message for ConflictError raised from
            constraint violations
    """

    def on_success(session: Session, trail: AuditTrail, actor_id: Optional[UUID]) -> None:
        if not trail.skip and trail.workspace_id is not None:
            _write_entry(
                session,
                workspace_id=trail.workspace_id,
                actor_id=actor_id,
                action=trail.action or action,
                resource_type=resource_type,
                resource_id=trail.resource_id,
                old_value=trail.old_value,
                new_value=trail.new_value,
                description=trail.description,
            )
        session.commit()

    def decorator(func: Callable) -> Callable:
        signature = inspect.signature(func)

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            return _run_guarded(
                func,
                signature,
                actor_arg,
                action.value,
                resource_type,
                on_success,
                conflict_message,
                args,
                kwargs,
            )

        return wrapper

    return decorator


def guarded_read(resource_type: str, actor_arg: str = "actor_id") -> Callable:
    """Wrap a read-only service method so denied reads are audited."""

    def on_success(session: Session, trail: AuditTrail, actor_id: Optional[UUID]) -> None:
        return None

    def decorator(func: Callable) -> Callable:
        signature = inspect.signature(func)

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            return _run_guarded(
                func,
                signature,
                actor_arg,
                f"read:{func.__name__}",
                resource_type,
                on_success,
                None,
                args,
                kwargs,
            )

        return wrapper

    return decorator


class AuditService:
    """Append-only audit log.

    Entries are written through ``record_entry`` (or the ``audited``
    decorator); no update or delete path exists.
    """

    def record_entry(
        self,
        session: Session,
        workspace_id: UUID,
        actor_id: Optional[UUID],
        action: AuditAction,
        resource_type: str,
        resource_id: Optional[UUID] = None,
        old_value: Optional[dict[str, Any]] = None,
        new_value: Optional[dict[str, Any]] = None,
        description: Optional[str] = None,
    ) -> AuditLog:
        """Add an entry to the current transaction without committing it."""
        return _write_entry(
            session,
            workspace_id=workspace_id,
            actor_id=actor_id,
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            old_value=old_value,
            new_value=new_value,
            description=description,
        )

    @guarded_read("audit_log")
    def list_audit_log(
        self,
        session: Session,
        workspace_id: UUID,
        actor_id: UUID,
        action: Optional[AuditAction] = None,
        resource_type: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[AuditLog], int]:
        """List a workspace's audit entries, newest first.

        Requires VIEW_AUDIT_LOG. Only the owner can read the log of a
        DISSOLVED workspace.

        Returns:
            Tuple of (entries for the requested page, total matching entries)
        """
        workspace = load_workspace(session, workspace_id)
        require_read_access(session, workspace, actor_id, Capability.VIEW_AUDIT_LOG)

        statement = select(AuditLog).where(AuditLog.workspace_id == workspace_id)
        count_statement = (
            select(func.count())
            .select_from(AuditLog)
            .where(AuditLog.workspace_id == workspace_id)
        )
        if action:
            statement = statement.where(AuditLog.action == action)
            count_statement = count_statement.where(AuditLog.action == action)
        if resource_type:
            statement = statement.where(AuditLog.resource_type == resource_type)
            count_statement = count_statement.where(
                AuditLog.resource_type == resource_type
            )

        total = session.exec(count_statement).one()
        statement = (
            statement.order_by(col(AuditLog.created_at).desc(), col(AuditLog.id))
            .offset(offset)
            .limit(limit)
        )
        return list(session.exec(statement).all()), total
