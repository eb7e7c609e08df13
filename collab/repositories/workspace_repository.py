"""Repository classes for Workspace and TeamMember.

These repositories handle the workspace side of collaboration:
- Workspace lookup and channel seeding
- Membership queries (active members, pending invitations)
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlmodel import Session, col, select

from collab.config import DEFAULT_CHANNELS
from collab.db.models import (
    ChannelType,
    MemberStatus,
    TeamMember,
    Workspace,
    WorkspaceChannel,
    WorkspaceRole,
    WorkspaceStatus,
)


# =============================================================================
# Workspace Repository
# =============================================================================


class WorkspaceRepository:
    """Repository for Workspace operations."""

    def __init__(self, session: Session):
        self.session = session

    def add(self, workspace: Workspace) -> Workspace:
        """Stage a new workspace and assign its primary key."""
        self.session.add(workspace)
        self.session.flush()
        return workspace

    def get(self, workspace_id: UUID) -> Optional[Workspace]:
        """Get a workspace by ID."""
        return self.session.get(Workspace, workspace_id)

    def get_by_event(self, event_id: UUID) -> Optional[Workspace]:
        """Get the workspace of an event."""
        statement = select(Workspace).where(Workspace.event_id == event_id)
        return self.session.exec(statement).first()

    def list_by_user(self, user_id: UUID) -> list[Workspace]:
        """List workspaces where the user holds an ACTIVE membership."""
        statement = (
            select(Workspace)
            .join(TeamMember, Workspace.id == TeamMember.workspace_id)
            .where(
                TeamMember.user_id == user_id,
                TeamMember.status == MemberStatus.ACTIVE,
            )
            .order_by(col(Workspace.created_at).desc())
        )
        return list(self.session.exec(statement).all())

    def list_due_for_dissolution(self, now: datetime) -> list[Workspace]:
        """List WINDING_DOWN workspaces whose retention window has elapsed."""
        statement = select(Workspace).where(
            Workspace.status == WorkspaceStatus.WINDING_DOWN,
            col(Workspace.scheduled_dissolution_at).is_not(None),
            col(Workspace.scheduled_dissolution_at) <= now,
        )
        return list(self.session.exec(statement).all())

    def create_default_channels(self, workspace_id: UUID) -> list[WorkspaceChannel]:
        """Create the general/announcements/tasks channels."""
        channels = [
            WorkspaceChannel(
                workspace_id=workspace_id,
                name=name,
                channel_type=ChannelType(channel_type),
                description=description,
            )
            for name, channel_type, description in DEFAULT_CHANNELS
        ]
        self.session.add_all(channels)
        self.session.flush()
        return channels

    def list_channels(self, workspace_id: UUID) -> list[WorkspaceChannel]:
        """List channels of a workspace in creation order."""
        statement = (
            select(WorkspaceChannel)
            .where(WorkspaceChannel.workspace_id == workspace_id)
            .order_by(col(WorkspaceChannel.created_at))
        )
        return list(self.session.exec(statement).all())


# =============================================================================
# Team Member Repository
# =============================================================================


class TeamMemberRepository:
    """Repository for TeamMember operations."""

    def __init__(self, session: Session):
        self.session = session

    def add(self, member: TeamMember) -> TeamMember:
        """Stage a new membership row."""
        self.session.add(member)
        self.session.flush()
        return member

    def get(self, member_id: UUID) -> Optional[TeamMember]:
        """Get a membership by ID."""
        return self.session.get(TeamMember, member_id)

    def get_active(self, workspace_id: UUID, user_id: UUID) -> Optional[TeamMember]:
        """Get the ACTIVE membership of a user in a workspace."""
        statement = select(TeamMember).where(
            TeamMember.workspace_id == workspace_id,
            TeamMember.user_id == user_id,
            TeamMember.status == MemberStatus.ACTIVE,
        )
        return self.session.exec(statement).first()

    def get_by_invite_token(self, invite_token: str) -> Optional[TeamMember]:
        """Get the invitation carrying a token; tokens are cleared once used."""
        statement = select(TeamMember).where(TeamMember.invite_token == invite_token)
        return self.session.exec(statement).first()

    def get_owner(self, workspace_id: UUID) -> Optional[TeamMember]:
        """Get the ACTIVE owner membership of a workspace."""
        statement = select(TeamMember).where(
            TeamMember.workspace_id == workspace_id,
            TeamMember.role == WorkspaceRole.WORKSPACE_OWNER,
            TeamMember.status == MemberStatus.ACTIVE,
        )
        return self.session.exec(statement).first()

    def get_pending_by_email(
        self, workspace_id: UUID, email: str
    ) -> Optional[TeamMember]:
        """Get a pending invitation for an email address."""
        statement = select(TeamMember).where(
            TeamMember.workspace_id == workspace_id,
            TeamMember.email == email.lower(),
            TeamMember.status == MemberStatus.PENDING,
        )
        return self.session.exec(statement).first()

    def get_active_by_email(
        self, workspace_id: UUID, email: str
    ) -> Optional[TeamMember]:
        """Get an ACTIVE membership by the member's email address."""
        statement = select(TeamMember).where(
            TeamMember.workspace_id == workspace_id,
            TeamMember.email == email.lower(),
            TeamMember.status == MemberStatus.ACTIVE,
        )
        return self.session.exec(statement).first()

    def list_by_workspace(
        self,
        workspace_id: UUID,
        statuses: Optional[tuple[MemberStatus, ...]] = None,
    ) -> list[TeamMember]:
        """List memberships of a workspace, optionally filtered by status."""
        statement = select(TeamMember).where(TeamMember.workspace_id == workspace_id)
        if statuses:
            statement = statement.where(col(TeamMember.status).in_(statuses))
        statement = statement.order_by(col(TeamMember.created_at))
        return list(self.session.exec(statement).all())
