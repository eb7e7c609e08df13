"""Pydantic models for API requests and composite responses."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from collab.db.models import (
    DependencyType,
    TaskStatus,
    TaskSummary,
    TeamMemberRead,
    WorkspaceChannelRead,
    WorkspaceRead,
    WorkspaceRole,
    WorkspaceTemplateCreate,
)


# =============================================================================
# Workspace
# =============================================================================


class ProvisionWorkspaceRequest(BaseModel):
    """Request to provision the workspace of an event."""

    event_id: UUID


class DissolveWorkspaceRequest(BaseModel):
    """Request to start dissolving a workspace.

    Omitting the retention period uses the workspace setting, then the
    service default.
    """

    retention_period_days: Optional[int] = None


class ApplyTemplateRequest(BaseModel):
    """Request to scaffold a workspace from a template."""

    template_id: UUID


class WorkspaceDetail(WorkspaceRead):
    """Workspace with its team, channels and task counters."""

    team_members: list[TeamMemberRead] = Field(default_factory=list)
    channels: list[WorkspaceChannelRead] = Field(default_factory=list)
    task_summary: TaskSummary = Field(default_factory=TaskSummary)


# =============================================================================
# Team
# =============================================================================


class InviteMemberRequest(BaseModel):
    """Request to invite someone to a workspace."""

    email: EmailStr
    role: WorkspaceRole = WorkspaceRole.GENERAL_VOLUNTEER


class InvitationRead(TeamMemberRead):
    """Pending membership returned to the inviter, including its handle."""

    invite_token: Optional[str]
    invite_expires_at: Optional[datetime]


class UpdateMemberRoleRequest(BaseModel):
    """Request to change a member's role."""

    role: WorkspaceRole


# =============================================================================
# Tasks
# =============================================================================


class UpdateTaskStatusRequest(BaseModel):
    """Request to move a task to a new status."""

    status: TaskStatus


class AssignTaskRequest(BaseModel):
    """Request to assign a task; null unassigns it."""

    assignee_id: Optional[UUID] = None


class AddDependencyRequest(BaseModel):
    """Request to make a task depend on another task."""

    depends_on_task_id: UUID
    dependency_type: DependencyType = DependencyType.FINISH_TO_START


# =============================================================================
# Templates
# =============================================================================


class CreateTemplateRequest(WorkspaceTemplateCreate):
    """Request to snapshot a workspace into a template."""

    workspace_id: UUID

