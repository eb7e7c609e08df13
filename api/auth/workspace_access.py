"""Workspace authorization checks used by the services.

Every check re-reads the actor's ACTIVE membership in the caller's
session, so a role change or removal takes effect on the next call.
Denials never say which capability was missing.
"""

from typing import Optional
from uuid import UUID

from sqlmodel import Session

from api.auth.capabilities import Capability, has_capability
from api.exceptions import AccessDeniedError, ConflictError, NotFoundError
from collab.db.models import TeamMember, Workspace, WorkspaceRole, WorkspaceStatus
from collab.repositories import TeamMemberRepository


def load_workspace(session: Session, workspace_id: UUID) -> Workspace:
    """Load a workspace or raise NotFoundError."""
    workspace = session.get(Workspace, workspace_id)
    if workspace is None:
        raise NotFoundError("Workspace not found")
    return workspace


def get_active_membership(
    session: Session, workspace_id: UUID, user_id: Optional[UUID]
) -> Optional[TeamMember]:
    """Current ACTIVE membership of a user, if any."""
    if user_id is None:
        return None
    return TeamMemberRepository(session).get_active(workspace_id, user_id)


def require_capability(
    session: Session,
    workspace: Workspace,
    actor_id: Optional[UUID],
    capability: Capability,
) -> TeamMember:
    """Return the actor's membership if their role grants the capability."""
    member = get_active_membership(session, workspace.id, actor_id)
    if member is None or not has_capability(member.role, capability):
        raise AccessDeniedError()
    return member


def require_read_access(
    session: Session,
    workspace: Workspace,
    actor_id: Optional[UUID],
    capability: Optional[Capability] = None,
) -> TeamMember:
    """Allow ACTIVE members to read; a DISSOLVED workspace is owner-only."""
    member = get_active_membership(session, workspace.id, actor_id)
    if member is None:
        raise AccessDeniedError()
    if (
        workspace.status == WorkspaceStatus.DISSOLVED
        and member.role != WorkspaceRole.WORKSPACE_OWNER
    ):
        raise AccessDeniedError()
    if capability is not None and not has_capability(member.role, capability):
        raise AccessDeniedError()
    return member


def ensure_mutable(workspace: Workspace) -> None:
    """Reject mutations of a DISSOLVED workspace."""
    if workspace.status == WorkspaceStatus.DISSOLVED:
        raise ConflictError("Workspace has been dissolved")
