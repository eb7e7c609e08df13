"""Workspace lifecycle: ACTIVE -> WINDING_DOWN -> DISSOLVED.

Dissolution starts once the event has concluded. The workspace winds down
immediately and is finalized after its retention period by
``process_scheduled_dissolutions``, which a cron or queue worker runs
through ``scripts/process_dissolutions.py``. Nothing is deleted: members,
tasks and audit entries stay, only access is narrowed to the owner.
"""

from datetime import datetime, timedelta
from typing import Optional
from uuid import UUID

from sqlmodel import Session

from api.auth.capabilities import Capability
from api.auth.workspace_access import load_workspace, require_capability, require_read_access
from api.exceptions import CollabException, ConflictError, InvalidTransitionError, NotFoundError
from api.services.audit_service import audited, current_audit_trail, guarded_read
from api.services.validators import coerce_enum
from api.services.workspace_service import WorkspaceService, validate_retention_period
from collab.config import DEFAULT_RETENTION_PERIOD_DAYS
from collab.db.models import (
    AuditAction,
    Event,
    EventStatus,
    Workspace,
    WorkspaceStatus,
    WorkspaceStatusRead,
    as_utc,
    utcnow,
)
from collab.logging.structured import get_logger
from collab.repositories import WorkspaceRepository

logger = get_logger(__name__)


ALLOWED_TRANSITIONS: dict[WorkspaceStatus, frozenset[WorkspaceStatus]] = {
    WorkspaceStatus.ACTIVE: frozenset([WorkspaceStatus.WINDING_DOWN]),
    WorkspaceStatus.WINDING_DOWN: frozenset([WorkspaceStatus.DISSOLVED]),
    WorkspaceStatus.DISSOLVED: frozenset(),
}


def can_transition(current: WorkspaceStatus, target: WorkspaceStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def check_transition(current: WorkspaceStatus, target: WorkspaceStatus) -> None:
    """Raise InvalidTransitionError unless current -> target is allowed."""
    if not can_transition(current, target):
        raise InvalidTransitionError(
            f"Cannot move workspace from {current.value} to {target.value}",
            details={"from": current.value, "to": target.value},
        )


def default_retention_period(workspace: Workspace) -> int:
    """Retention from the workspace settings, else the configured default."""
    settings = workspace.settings or {}
    return settings.get("retention_period_days", DEFAULT_RETENTION_PERIOD_DAYS)


class LifecycleService:
    """Service driving the workspace state machine."""

    def __init__(self, workspace_service: WorkspaceService):
        self.workspace_service = workspace_service

    # ==========================================================================
    # Transitions
    # ==========================================================================

    def _wind_down(self, workspace: Workspace, retention_period_days: int, now: datetime) -> None:
        check_transition(workspace.status, WorkspaceStatus.WINDING_DOWN)
        workspace.status = WorkspaceStatus.WINDING_DOWN
        workspace.wind_down_started_at = now
        workspace.retention_period_days = retention_period_days
        workspace.scheduled_dissolution_at = now + timedelta(days=retention_period_days)
        logger.info(
            "workspace_winding_down",
            workspace_id=str(workspace.id),
            retention_period_days=retention_period_days,
            scheduled_dissolution_at=workspace.scheduled_dissolution_at.isoformat(),
        )

    def _finalize(self, workspace: Workspace, now: datetime) -> None:
        check_transition(workspace.status, WorkspaceStatus.DISSOLVED)
        workspace.status = WorkspaceStatus.DISSOLVED
        workspace.dissolved_at = now
        logger.info("workspace_dissolved", workspace_id=str(workspace.id))

    @audited(AuditAction.dissolve, "workspace")
    def dissolve_workspace(
        self,
        session: Session,
        workspace_id: UUID,
        actor_id: UUID,
        retention_period_days: Optional[int] = None,
    ) -> Workspace:
        """Start dissolving a workspace whose event has concluded.

        The workspace goes to WINDING_DOWN now and is scheduled for
        DISSOLVED after the retention period; a retention of 0 dissolves it
        in the same transaction.

        Raises:
            AccessDeniedError: Actor lacks DISSOLVE_WORKSPACE
            InvalidTransitionError: Workspace not ACTIVE or event still running
            ValidationError: Retention outside 0-365 days
        """
        workspace = load_workspace(session, workspace_id)
        require_capability(session, workspace, actor_id, Capability.DISSOLVE_WORKSPACE)
        check_transition(workspace.status, WorkspaceStatus.WINDING_DOWN)

        now = utcnow()
        event = session.get(Event, workspace.event_id)
        if event is None or not event.has_concluded(now):
            raise InvalidTransitionError(
                "Workspace can only be dissolved after its event has concluded"
            )

        if retention_period_days is None:
            retention_period_days = default_retention_period(workspace)
        retention_period_days = validate_retention_period(retention_period_days)

        old_status = workspace.status
        self._wind_down(workspace, retention_period_days, now)
        if retention_period_days == 0:
            self._finalize(workspace, now)
        session.add(workspace)
        session.flush()

        trail = current_audit_trail()
        trail.resource_id = workspace.id
        trail.old_value = {"status": old_status}
        trail.new_value = {
            "status": workspace.status,
            "retention_period_days": retention_period_days,
            "scheduled_dissolution_at": workspace.scheduled_dissolution_at,
        }
        trail.description = f"Dissolution started with {retention_period_days} days retention"
        return workspace

    @audited(AuditAction.dissolution_completed, "workspace")
    def complete_dissolution(
        self,
        session: Session,
        workspace_id: UUID,
        actor_id: Optional[UUID] = None,
    ) -> Workspace:
        """Finalize a WINDING_DOWN workspace.

        Runs as the system when actor_id is None. Already DISSOLVED
        workspaces are returned unchanged.
        """
        workspace = load_workspace(session, workspace_id)
        if workspace.status == WorkspaceStatus.DISSOLVED:
            current_audit_trail().skip = True
            return workspace
        if actor_id is not None:
            require_capability(session, workspace, actor_id, Capability.DISSOLVE_WORKSPACE)

        self._finalize(workspace, utcnow())
        session.add(workspace)
        session.flush()

        trail = current_audit_trail()
        trail.resource_id = workspace.id
        trail.old_value = {"status": WorkspaceStatus.WINDING_DOWN}
        trail.new_value = {"status": WorkspaceStatus.DISSOLVED}
        trail.description = "Workspace dissolved"
        return workspace

    def process_scheduled_dissolutions(
        self, session: Session, now: Optional[datetime] = None
    ) -> list[UUID]:
        """Finalize every WINDING_DOWN workspace whose schedule has passed.

        Each workspace commits on its own; one that fails is logged and
        left for the next run.

        Returns:
            IDs of the workspaces dissolved by this run
        """
        now = as_utc(now) if now else utcnow()
        due = [w.id for w in WorkspaceRepository(session).list_due_for_dissolution(now)]
        dissolved = []
        for workspace_id in due:
            try:
                self.complete_dissolution(session, workspace_id)
            except CollabException as exc:
                logger.error(
                    "scheduled_dissolution_failed",
                    workspace_id=str(workspace_id),
                    error_code=exc.error_code,
                    error=exc.message,
                )
                continue
            dissolved.append(workspace_id)

        logger.info("scheduled_dissolutions_processed", due=len(due), dissolved=len(dissolved))
        return dissolved

    # ==========================================================================
    # Event hooks
    # ==========================================================================

    def on_event_created(
        self, session: Session, event_id: UUID, organizer_id: UUID
    ) -> Workspace:
        """Provision the workspace of a newly created event.

        Idempotent: when the event already has a workspace, including one
        provisioned concurrently, that workspace is returned unchanged.
        """
        repo = WorkspaceRepository(session)
        existing = repo.get_by_event(event_id)
        if existing is not None:
            logger.info(
                "workspace_already_provisioned",
                event_id=str(event_id),
                workspace_id=str(existing.id),
            )
            return existing

        try:
            return self.workspace_service.provision_workspace(session, event_id, organizer_id)
        except ConflictError:
            existing = repo.get_by_event(event_id)
            if existing is None:
                raise
            return existing

    @audited(AuditAction.dissolve, "workspace", actor_arg=None)
    def on_event_status_changed(
        self,
        session: Session,
        event_id: UUID,
        new_status: EventStatus,
    ) -> Optional[Workspace]:
        """Record an event status change and react to it.

        COMPLETED starts the wind-down with the default retention.
        CANCELLED winds down and dissolves at once. Other statuses only
        update the event.
        """
        event = session.get(Event, event_id)
        if event is None:
            raise NotFoundError("Event not found")
        new_status = coerce_enum(EventStatus, new_status, "status")
        event.status = new_status
        session.add(event)

        trail = current_audit_trail()
        workspace = WorkspaceRepository(session).get_by_event(event_id)
        if workspace is None or new_status not in (EventStatus.COMPLETED, EventStatus.CANCELLED):
            trail.skip = True
            session.flush()
            return workspace

        now = utcnow()
        old_status = workspace.status
        if workspace.status == WorkspaceStatus.ACTIVE:
            retention = 0 if new_status == EventStatus.CANCELLED else default_retention_period(workspace)
            self._wind_down(workspace, retention, now)
        if new_status == EventStatus.CANCELLED and workspace.status == WorkspaceStatus.WINDING_DOWN:
            self._finalize(workspace, now)
            trail.action = AuditAction.dissolution_completed

        if workspace.status == old_status:
            trail.skip = True
        session.add(workspace)
        session.flush()

        trail.workspace_id = workspace.id
        trail.resource_id = workspace.id
        trail.old_value = {"status": old_status}
        trail.new_value = {"status": workspace.status, "event_status": new_status}
        trail.description = f"Event {new_status.value.lower()}"
        return workspace

    # ==========================================================================
    # Status
    # ==========================================================================

    @guarded_read("workspace")
    def get_workspace_status(
        self, session: Session, workspace_id: UUID, actor_id: UUID
    ) -> WorkspaceStatusRead:
        """Lifecycle status with the statuses reachable from here."""
        workspace = load_workspace(session, workspace_id)
        require_read_access(session, workspace, actor_id)
        event = session.get(Event, workspace.event_id)

        days_until = None
        if (
            workspace.status == WorkspaceStatus.WINDING_DOWN
            and workspace.scheduled_dissolution_at is not None
        ):
            remaining = workspace.scheduled_dissolution_at - utcnow()
            days_until = max(0, remaining.days + (1 if remaining.seconds else 0))

        return WorkspaceStatusRead(
            workspace_id=workspace.id,
            status=workspace.status,
            can_transition_to=sorted(ALLOWED_TRANSITIONS[workspace.status], key=lambda s: s.value),
            retention_period_days=(
                workspace.retention_period_days
                if workspace.retention_period_days is not None
                else default_retention_period(workspace)
            ),
            wind_down_started_at=workspace.wind_down_started_at,
            scheduled_dissolution_at=workspace.scheduled_dissolution_at,
            days_until_dissolution=days_until,
            dissolved_at=workspace.dissolved_at,
            event_status=event.status.value if event else None,
            event_end_date=event.end_date if event else None,
        )
