"""Workspace and channel models.

A workspace is the temporary collaboration space of exactly one event.
It is never physically deleted: dissolution only moves it through
ACTIVE -> WINDING_DOWN -> DISSOLVED while its history is retained.
"""

from datetime import datetime
from enum import Enum
from typing import Optional, Any
from uuid import UUID

from sqlmodel import Field, SQLModel, Column
from sqlalchemy import JSON

from collab.db.custom_types import UTCDateTime
from collab.db.models.base import UUIDModel, TimestampMixin


class WorkspaceStatus(str, Enum):
    """Lifecycle states of a workspace, in their only legal order."""

    ACTIVE = "ACTIVE"
    WINDING_DOWN = "WINDING_DOWN"
    DISSOLVED = "DISSOLVED"


class ChannelType(str, Enum):
    """Kinds of workspace communication channels."""

    GENERAL = "GENERAL"
    ANNOUNCEMENT = "ANNOUNCEMENT"
    TASK_SPECIFIC = "TASK_SPECIFIC"


class WorkspaceBase(SQLModel):
    """Base workspace fields shared across Create/Read/Update."""

    name: str = Field(index=True, max_length=200)
    description: Optional[str] = None


class Workspace(UUIDModel, WorkspaceBase, TimestampMixin, table=True):
    """Workspace table - one per event.

    The unique constraint on event_id is what ultimately rejects a
    second provisioning for the same event when two requests race.
    """

    __tablename__ = "workspaces"

    event_id: UUID = Field(foreign_key="events.id", unique=True, index=True)
    status: WorkspaceStatus = Field(default=WorkspaceStatus.ACTIVE, index=True)

    # Template this workspace was scaffolded from, if any
    template_id: Optional[UUID] = Field(
        default=None,
        foreign_key="workspace_templates.id",
        index=True,
    )

    # Example: {"default_channels": [...], "task_categories": [...],
    #           "retention_period_days": 30, "allow_external_members": false}
    settings: Optional[dict[str, Any]] = Field(
        default=None,
        sa_column=Column(JSON, nullable=True),
    )

    # Lifecycle bookkeeping
    retention_period_days: Optional[int] = None
    wind_down_started_at: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)
    scheduled_dissolution_at: Optional[datetime] = Field(
        default=None, index=True, sa_type=UTCDateTime
    )
    dissolved_at: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)


class WorkspaceRead(WorkspaceBase):
    """Schema for reading workspace data."""

    id: UUID
    event_id: UUID
    status: WorkspaceStatus
    template_id: Optional[UUID]
    settings: Optional[dict[str, Any]]
    retention_period_days: Optional[int]
    scheduled_dissolution_at: Optional[datetime]
    dissolved_at: Optional[datetime]
    created_at: datetime
    updated_at: Optional[datetime]


class WorkspaceChannel(UUIDModel, TimestampMixin, table=True):
    """Named communication surface scoped to a workspace."""

    __tablename__ = "workspace_channels"

    workspace_id: UUID = Field(foreign_key="workspaces.id", index=True)
    name: str = Field(max_length=100)
    channel_type: ChannelType = Field(default=ChannelType.GENERAL)
    description: Optional[str] = None
    is_private: bool = Field(default=False)


class WorkspaceChannelRead(SQLModel):
    """Schema for reading channel data."""

    id: UUID
    name: str
    channel_type: ChannelType
    description: Optional[str]
    is_private: bool


class WorkspaceUpdate(SQLModel):
    """Schema for updating workspace name, description and settings."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    settings: Optional[dict[str, Any]] = None


class WorkspaceStatusRead(SQLModel):
    """Lifecycle view of a workspace."""

    workspace_id: UUID
    status: WorkspaceStatus
    can_transition_to: list[WorkspaceStatus]
    retention_period_days: Optional[int]
    wind_down_started_at: Optional[datetime]
    scheduled_dissolution_at: Optional[datetime]
    days_until_dissolution: Optional[int]
    dissolved_at: Optional[datetime]
    event_status: Optional[str]
    event_end_date: Optional[datetime]
