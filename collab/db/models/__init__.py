"""SQLModel table definitions.

This module exports all SQLModel table classes and their Create/Read variants.
All primary keys use UUID.

Model Categories:
- External mirrors: User, Event
- Workspace: Workspace, WorkspaceChannel
- Membership: TeamMember
- Tasks: WorkspaceTask, TaskDependency
- Templates: WorkspaceTemplate
- Audit: AuditLog
"""

# Base classes
from collab.db.models.base import UUIDModel, TimestampMixin, as_utc, utcnow

# External mirrors
from collab.db.models.user import (
    User, UserCreate, UserRead,
    Event, EventCreate, EventRead, EventStatus,
)

# Workspace
from collab.db.models.workspace import (
    Workspace, WorkspaceRead, WorkspaceStatus,
    WorkspaceChannel, WorkspaceChannelRead, ChannelType,
    WorkspaceUpdate, WorkspaceStatusRead,
)

# Membership
from collab.db.models.membership import (
    TeamMember, TeamMemberRead, WorkspaceRole, MemberStatus,
)

# Tasks
from collab.db.models.task import (
    WorkspaceTask, WorkspaceTaskCreate, WorkspaceTaskRead,
    WorkspaceTaskUpdate, TaskSummary,
    TaskDependency, TaskDependencyRead,
    TaskCategory, TaskPriority, TaskStatus, DependencyType,
)

# Templates
from collab.db.models.template import (
    WorkspaceTemplate, WorkspaceTemplateCreate, WorkspaceTemplateRead,
    TemplateComplexity,
)

# Audit
from collab.db.models.audit import AuditAction, AuditLog, AuditLogRead

__all__ = [
    # Base
    "UUIDModel", "TimestampMixin", "as_utc", "utcnow",
    # External mirrors
    "User", "UserCreate", "UserRead",
    "Event", "EventCreate", "EventRead", "EventStatus",
    # Workspace
    "Workspace", "WorkspaceRead", "WorkspaceStatus",
    "WorkspaceChannel", "WorkspaceChannelRead", "ChannelType",
    "WorkspaceUpdate", "WorkspaceStatusRead",
    # Membership
    "TeamMember", "TeamMemberRead", "WorkspaceRole", "MemberStatus",
    # Tasks
    "WorkspaceTask", "WorkspaceTaskCreate", "WorkspaceTaskRead",
    "WorkspaceTaskUpdate", "TaskSummary",
    "TaskDependency", "TaskDependencyRead",
    "TaskCategory", "TaskPriority", "TaskStatus", "DependencyType",
    # Templates
    "WorkspaceTemplate", "WorkspaceTemplateCreate", "WorkspaceTemplateRead",
    "TemplateComplexity",
    # Audit
    "AuditAction", "AuditLog", "AuditLogRead",
]
