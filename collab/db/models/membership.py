"""Team membership model for workspace RBAC.

Links users to workspaces with a role. A PENDING row doubles as the
invitation: it carries the invited email and token until a user accepts
it, at which point it becomes the ACTIVE membership.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from sqlalchemy import Index, JSON, text
from sqlmodel import Column, Field, SQLModel

from collab.db.custom_types import UTCDateTime
from collab.db.models.base import UUIDModel, TimestampMixin


class WorkspaceRole(str, Enum):
    """Roles within a workspace, from widest to narrowest permission set.

    Capabilities per role live in api.auth.capabilities.
    """

    WORKSPACE_OWNER = "WORKSPACE_OWNER"
    TEAM_LEAD = "TEAM_LEAD"
    EVENT_COORDINATOR = "EVENT_COORDINATOR"
    VOLUNTEER_MANAGER = "VOLUNTEER_MANAGER"
    TECHNICAL_SPECIALIST = "TECHNICAL_SPECIALIST"
    MARKETING_LEAD = "MARKETING_LEAD"
    GENERAL_VOLUNTEER = "GENERAL_VOLUNTEER"


class MemberStatus(str, Enum):
    """Status of a team membership."""

    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    REMOVED = "REMOVED"


class TeamMemberBase(SQLModel):
    """Base membership fields shared across Create/Read."""

    role: WorkspaceRole = Field(default=WorkspaceRole.GENERAL_VOLUNTEER)
    email: str = Field(index=True, max_length=320)


class TeamMember(UUIDModel, TeamMemberBase, TimestampMixin, table=True):
    """Team member table - binds a user to a workspace with a role."""

    __tablename__ = "team_members"

    workspace_id: UUID = Field(foreign_key="workspaces.id", index=True)
    user_id: Optional[UUID] = Field(
        default=None,
        foreign_key="users.id",
        index=True,
    )
    status: MemberStatus = Field(default=MemberStatus.PENDING, index=True)

    # Snapshot of the role's capability set, refreshed on role change
    permissions: list[str] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False),
    )
    invited_by: Optional[UUID] = Field(default=None, foreign_key="users.id")

    # Invitation tracking
    invite_token: Optional[str] = Field(default=None, index=True)
    invite_expires_at: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)
    joined_at: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)
    left_at: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)

    # At most one ACTIVE membership per user per workspace
    __table_args__ = (
        Index(
            "uq_team_members_active_user",
            "workspace_id",
            "user_id",
            unique=True,
            postgresql_where=text("status = 'ACTIVE'"),
            sqlite_where=text("status = 'ACTIVE'"),
        ),
    )


class TeamMemberRead(TeamMemberBase):
    """Schema for reading membership data."""

    id: UUID
    workspace_id: UUID
    user_id: Optional[UUID]
    status: MemberStatus
    permissions: list[str]
    invited_by: Optional[UUID]
    joined_at: Optional[datetime]
    left_at: Optional[datetime]
    created_at: datetime
