"""Workspace template model.

A template is a point-in-time copy of a workspace's structure. Nothing
in it references live rows of the source workspace.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import JSON
from sqlmodel import Column, Field, SQLModel

from collab.db.models.base import UUIDModel, TimestampMixin


class TemplateComplexity(str, Enum):
    SIMPLE = "SIMPLE"
    MODERATE = "MODERATE"
    COMPLEX = "COMPLEX"


class WorkspaceTemplateBase(SQLModel):
    """Template metadata supplied by the creator."""

    name: str = Field(max_length=200, index=True)
    description: Optional[str] = None
    category: str = Field(max_length=50, index=True)
    complexity: TemplateComplexity = Field(default=TemplateComplexity.MODERATE)
    is_public: bool = Field(default=False)


class WorkspaceTemplate(UUIDModel, WorkspaceTemplateBase, TimestampMixin, table=True):
    """Template table.

    structure holds:
    - roles: sorted distinct roles of the source's ACTIVE members
    - task_categories: sorted distinct categories of its non-deleted tasks
    - tasks: task skeletons (title, description, category, priority)
    """

    __tablename__ = "workspace_templates"

    tags: list[str] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False),
    )
    structure: dict[str, Any] = Field(
        default_factory=dict,
        sa_column=Column(JSON, nullable=False),
    )
    source_workspace_id: Optional[UUID] = Field(default=None, index=True)
    created_by: UUID = Field(foreign_key="users.id", index=True)
    usage_count: int = Field(default=0)


class WorkspaceTemplateCreate(WorkspaceTemplateBase):
    """Schema for template metadata on creation."""

    tags: list[str] = Field(default_factory=list)


class WorkspaceTemplateRead(WorkspaceTemplateBase):
    """Schema for reading template data."""

    id: UUID
    tags: list[str]
    structure: dict[str, Any]
    source_workspace_id: Optional[UUID]
    created_by: UUID
    usage_count: int
    created_at: datetime
