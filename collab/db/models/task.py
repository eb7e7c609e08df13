"""Workspace task and task dependency models.

Tasks are soft-deleted (deleted_at) so history and template snapshots
stay consistent. Dependencies form a directed graph per workspace; the
engine keeps it acyclic.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from collab.db.custom_types import UTCDateTime
from collab.db.models.base import UUIDModel, TimestampMixin


class TaskCategory(str, Enum):
    """Functional area a task belongs to."""

    SETUP = "SETUP"
    MARKETING = "MARKETING"
    LOGISTICS = "LOGISTICS"
    TECHNICAL = "TECHNICAL"
    REGISTRATION = "REGISTRATION"
    POST_EVENT = "POST_EVENT"


class TaskPriority(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class TaskStatus(str, Enum):
    """Task progress states.

    BLOCKED is owned by the engine: it is set when a requested status is
    gated by an unsatisfied dependency and cleared once it is satisfied.
    """

    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    REVIEW_REQUIRED = "REVIEW_REQUIRED"
    COMPLETED = "COMPLETED"
    BLOCKED = "BLOCKED"


class DependencyType(str, Enum):
    """Scheduling semantics of a dependency edge."""

    FINISH_TO_START = "FINISH_TO_START"
    START_TO_START = "START_TO_START"
    FINISH_TO_FINISH = "FINISH_TO_FINISH"


class WorkspaceTaskBase(SQLModel):
    """Base task fields shared across Create/Read."""

    title: str = Field(max_length=200)
    description: Optional[str] = None
    category: TaskCategory = Field(index=True)
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM)
    due_date: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)


class WorkspaceTask(UUIDModel, WorkspaceTaskBase, TimestampMixin, table=True):
    """Task table - a unit of work inside a workspace."""

    __tablename__ = "workspace_tasks"

    workspace_id: UUID = Field(foreign_key="workspaces.id", index=True)
    assignee_id: Optional[UUID] = Field(
        default=None,
        foreign_key="team_members.id",
        index=True,
    )
    creator_id: UUID = Field(foreign_key="users.id")
    status: TaskStatus = Field(default=TaskStatus.NOT_STARTED, index=True)

    # Status the actor asked for while the task is BLOCKED
    requested_status: Optional[TaskStatus] = None

    deleted_at: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


class WorkspaceTaskCreate(SQLModel):
    """Schema for creating a task."""

    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    category: TaskCategory
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: Optional[datetime] = None
    assignee_id: Optional[UUID] = None


class WorkspaceTaskRead(WorkspaceTaskBase):
    """Schema for reading task data."""

    id: UUID
    workspace_id: UUID
    assignee_id: Optional[UUID]
    creator_id: UUID
    status: TaskStatus
    requested_status: Optional[TaskStatus]
    created_at: datetime
    updated_at: Optional[datetime]


class TaskDependency(UUIDModel, TimestampMixin, table=True):
    """Edge: task_id cannot progress past its gate until depends_on_task_id does.

    position keeps a task's prerequisites in the order they were added.
    """

    __tablename__ = "task_dependencies"

    task_id: UUID = Field(foreign_key="workspace_tasks.id", index=True)
    depends_on_task_id: UUID = Field(foreign_key="workspace_tasks.id", index=True)
    dependency_type: DependencyType = Field(default=DependencyType.FINISH_TO_START)
    position: int = Field(default=0)

    __table_args__ = (
        UniqueConstraint(
            "task_id", "depends_on_task_id", name="uq_task_dependencies_edge"
        ),
    )


class TaskDependencyRead(SQLModel):
    """Schema for reading dependency edges."""

    id: UUID
    task_id: UUID
    depends_on_task_id: UUID
    dependency_type: DependencyType
    position: int


class WorkspaceTaskUpdate(SQLModel):
    """Schema for editing task fields. Status has its own operation."""

    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    category: Optional[TaskCategory] = None
    priority: Optional[TaskPriority] = None
    due_date: Optional[datetime] = None


class TaskSummary(SQLModel):
    """Task counters shown with a workspace."""

    total: int = 0
    completed: int = 0
    in_progress: int = 0
    blocked: int = 0
    overdue: int = 0
