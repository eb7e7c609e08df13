"""Service for workspace provisioning and management.

A workspace is provisioned once per event by the event's organizer and
starts with the organizer as WORKSPACE_OWNER plus the default channels.
"""

from typing import Any, Optional
from uuid import UUID

from sqlmodel import Session

from api.auth.capabilities import Capability, permission_snapshot
from api.auth.workspace_access import (
    ensure_mutable,
    load_workspace,
    require_capability,
    require_read_access,
)
from api.exceptions import AccessDeniedError, ConflictError, NotFoundError, ValidationError
from api.models.api_models import WorkspaceDetail
from api.services.audit_service import audited, current_audit_trail, guarded_read
from collab.config import (
    DEFAULT_CHANNELS,
    DEFAULT_RETENTION_PERIOD_DAYS,
    MAX_RETENTION_PERIOD_DAYS,
    MIN_RETENTION_PERIOD_DAYS,
)
from collab.db.models import (
    AuditAction,
    Event,
    MemberStatus,
    TaskCategory,
    TeamMember,
    TeamMemberRead,
    User,
    Workspace,
    WorkspaceChannel,
    WorkspaceChannelRead,
    WorkspaceRole,
    WorkspaceStatus,
    utcnow,
)
from collab.logging.structured import get_logger
from collab.repositories import TaskRepository, TeamMemberRepository, WorkspaceRepository

logger = get_logger(__name__)


def default_settings() -> dict[str, Any]:
    """Settings every new workspace starts with."""
    return {
        "default_channels": [name for name, _, _ in DEFAULT_CHANNELS],
        "task_categories": [category.value for category in TaskCategory],
        "retention_period_days": DEFAULT_RETENTION_PERIOD_DAYS,
        "allow_external_members": False,
    }


def validate_retention_period(days: Any) -> int:
    """Return the retention period if it is a whole number of days in range."""
    if isinstance(days, bool) or not isinstance(days, int):
        raise ValidationError(
            "Retention period must be a whole number of days",
            field="retention_period_days",
        )
    if not MIN_RETENTION_PERIOD_DAYS <= days <= MAX_RETENTION_PERIOD_DAYS:
        raise ValidationError(
            f"Retention period must be between {MIN_RETENTION_PERIOD_DAYS} "
            f"and {MAX_RETENTION_PERIOD_DAYS} days",
            field="retention_period_days",
        )
    return days


def _validate_settings(settings: dict[str, Any]) -> None:
    if "retention_period_days" in settings:
        validate_retention_period(settings["retention_period_days"])
    if "allow_external_members" in settings and not isinstance(
        settings["allow_external_members"], bool
    ):
        raise ValidationError(
            "allow_external_members must be a boolean",
            field="settings.allow_external_members",
        )
    if "task_categories" in settings:
        valid = {category.value for category in TaskCategory}
        categories = settings["task_categories"]
        if not isinstance(categories, list) or any(c not in valid for c in categories):
            raise ValidationError(
                "task_categories must be a list of task categories",
                field="settings.task_categories",
            )


class WorkspaceService:
    """Service for workspace provisioning, reads and settings updates."""

    # ==========================================================================
    # Provisioning
    # ==========================================================================

    @audited(
        AuditAction.provision,
        "workspace",
        actor_arg="requester_id",
        conflict_message="Workspace already exists for this event",
    )
    def provision_workspace(
        self,
        session: Session,
        event_id: UUID,
        requester_id: UUID,
    ) -> Workspace:
        """Create the workspace of an event.

        The workspace, its owner membership, the three default channels and
        the audit entry are committed together.

        Raises:
            NotFoundError: Event does not exist
            AccessDeniedError: Requester is not the event's organizer
            ConflictError: The event already has a workspace
        """
        event = session.get(Event, event_id)
        if event is None:
            raise NotFoundError("Event not found")
        if event.organizer_id != requester_id:
            raise AccessDeniedError()

        workspace_repo = WorkspaceRepository(session)
        if workspace_repo.get_by_event(event_id) is not None:
            raise ConflictError("Workspace already exists for this event")

        requester = session.get(User, requester_id)
        if requester is None:
            raise NotFoundError("User not found")

        workspace = workspace_repo.add(
            Workspace(
                event_id=event_id,
                name=f"{event.name} Workspace",
                description=f"Collaborative workspace for {event.name}",
                settings=default_settings(),
            )
        )
        owner = TeamMemberRepository(session).add(
            TeamMember(
                workspace_id=workspace.id,
                user_id=requester_id,
                email=requester.email.lower(),
                role=WorkspaceRole.WORKSPACE_OWNER,
                status=MemberStatus.ACTIVE,
                permissions=permission_snapshot(WorkspaceRole.WORKSPACE_OWNER),
                joined_at=utcnow(),
            )
        )
        channels = workspace_repo.create_default_channels(workspace.id)

        trail = current_audit_trail()
        trail.workspace_id = workspace.id
        trail.resource_id = workspace.id
        trail.new_value = {
            "event_id": event_id,
            "name": workspace.name,
            "owner_member_id": owner.id,
            "channels": [channel.name for channel in channels],
        }
        trail.description = f"Provisioned workspace for event {event.name}"

        logger.info(
            "workspace_provisioned",
            workspace_id=str(workspace.id),
            event_id=str(event_id),
            owner_id=str(requester_id),
        )
        return workspace

    # ==========================================================================
    # Reads
    # ==========================================================================

    @guarded_read("workspace")
    def get_workspace(
        self, session: Session, workspace_id: UUID, actor_id: UUID
    ) -> Workspace:
        """Get a workspace the actor may read."""
        workspace = load_workspace(session, workspace_id)
        require_read_access(session, workspace, actor_id)
        return workspace

    @guarded_read("workspace")
    def get_workspace_by_event(
        self, session: Session, event_id: UUID, actor_id: UUID
    ) -> Workspace:
        """Get the workspace of an event."""
        workspace = WorkspaceRepository(session).get_by_event(event_id)
        if workspace is None:
            raise NotFoundError("Workspace not found")
        current_audit_trail().workspace_id = workspace.id
        require_read_access(session, workspace, actor_id)
        return workspace

    def list_user_workspaces(self, session: Session, user_id: UUID) -> list[Workspace]:
        """Workspaces the user can currently open.

        DISSOLVED workspaces are only listed for their owner.
        """
        member_repo = TeamMemberRepository(session)
        visible = []
        for workspace in WorkspaceRepository(session).list_by_user(user_id):
            if workspace.status == WorkspaceStatus.DISSOLVED:
                member = member_repo.get_active(workspace.id, user_id)
                if member is None or member.role != WorkspaceRole.WORKSPACE_OWNER:
                    continue
            visible.append(workspace)
        return visible

    @guarded_read("channel")
    def list_channels(
        self, session: Session, workspace_id: UUID, actor_id: UUID
    ) -> list[WorkspaceChannel]:
        """Channels of a workspace."""
        workspace = load_workspace(session, workspace_id)
        require_read_access(session, workspace, actor_id)
        return WorkspaceRepository(session).list_channels(workspace_id)

    def build_detail(self, session: Session, workspace: Workspace) -> WorkspaceDetail:
        """Workspace with its members, channels and task summary."""
        members = TeamMemberRepository(session).list_by_workspace(
            workspace.id, statuses=(MemberStatus.ACTIVE, MemberStatus.PENDING)
        )
        channels = WorkspaceRepository(session).list_channels(workspace.id)
        return WorkspaceDetail(
            **workspace.model_dump(),
            team_members=[TeamMemberRead.model_validate(m) for m in members],
            channels=[WorkspaceChannelRead.model_validate(c) for c in channels],
            task_summary=TaskRepository(session).summarize(workspace.id, utcnow()),
        )

    # ==========================================================================
    # Updates
    # ==========================================================================

    @audited(AuditAction.update, "workspace")
    def update_workspace(
        self,
        session: Session,
        workspace_id: UUID,
        actor_id: UUID,
        name: Optional[str] = None,
        description: Optional[str] = None,
        settings: Optional[dict[str, Any]] = None,
    ) -> Workspace:
        """Update name, description or settings (merged into existing settings).

        Raises:
            AccessDeniedError: Actor lacks MANAGE_WORKSPACE
            ConflictError: Workspace is DISSOLVED
            ValidationError: Nothing to update or invalid settings
        """
        workspace = load_workspace(session, workspace_id)
        require_capability(session, workspace, actor_id, Capability.MANAGE_WORKSPACE)
        ensure_mutable(workspace)

        if name is None and description is None and settings is None:
            raise ValidationError("No fields to update")
        if name is not None and not name.strip():
            raise ValidationError("Workspace name cannot be empty", field="name")
        if settings is not None:
            _validate_settings(settings)

        old_value: dict[str, Any] = {}
        new_value: dict[str, Any] = {}
        if name is not None:
            old_value["name"], new_value["name"] = workspace.name, name.strip()
            workspace.name = name.strip()
        if description is not None:
            old_value["description"], new_value["description"] = (
                workspace.description,
                description,
            )
            workspace.description = description
        if settings is not None:
            old_value["settings"] = dict(workspace.settings or {})
            workspace.settings = {**(workspace.settings or {}), **settings}
            new_value["settings"] = dict(workspace.settings)

        session.add(workspace)
        session.flush()

        trail = current_audit_trail()
        trail.resource_id = workspace.id
        trail.old_value = old_value
        trail.new_value = new_value
        trail.description = "Updated workspace"
        return workspace
