"""Audit log model for tracking workspace changes.

Audit entries are append-only: nothing in the service updates or
deletes them, including workspace dissolution.
"""

from datetime import datetime
from enum import Enum
from typing import Optional, Any
from uuid import UUID

from sqlmodel import Field, SQLModel, Column
from sqlalchemy import JSON, Text

from collab.db.custom_types import UTCDateTime
from collab.db.models.base import UUIDModel, utcnow


class AuditAction(str, Enum):
    """Action recorded on an audit entry, grouped by the service that writes it."""

    # Workspace lifecycle
    provision = "provision"
    update = "update"
    dissolve = "dissolve"
    dissolution_completed = "dissolution_completed"

    # Team membership
    member_invited = "member_invited"
    invitation_accepted = "invitation_accepted"
    invitation_revoked = "invitation_revoked"
    role_changed = "role_changed"
    member_removed = "member_removed"

    # Tasks
    task_created = "task_created"
    task_updated = "task_updated"
    task_status_changed = "task_status_changed"
    task_assigned = "task_assigned"
    task_deleted = "task_deleted"
    dependency_added = "dependency_added"
    dependency_removed = "dependency_removed"

    # Templates
    template_created = "template_created"
    template_applied = "template_applied"

    # Access control
    access_denied = "access_denied"


class AuditLogBase(SQLModel):
    """Columns common to the table and its read schema."""

    action: AuditAction = Field(index=True)
    resource_type: str = Field(max_length=100)
    resource_id: Optional[UUID] = None


class AuditLog(UUIDModel, AuditLogBase, table=True):
    """One recorded action.

    ``actor_id`` is None for entries written by the scheduled dissolution
    job. ``old_value`` and ``new_value`` hold JSON snapshots of the affected
    fields, and ``description`` is a short human-readable summary.
    """

    __tablename__ = "audit_logs"

    workspace_id: UUID = Field(foreign_key="workspaces.id", index=True)
    actor_id: Optional[UUID] = Field(default=None, foreign_key="users.id", index=True)

    old_value: Optional[dict[str, Any]] = Field(
        default=None,
        sa_column=Column(JSON, nullable=True),
    )
    new_value: Optional[dict[str, Any]] = Field(
        default=None,
        sa_column=Column(JSON, nullable=True),
    )

    description: Optional[str] = Field(
        default=None,
        sa_column=Column(Text, nullable=True),
    )

    # Append-only, so there is no updated_at
    created_at: datetime = Field(
        default_factory=utcnow,
        nullable=False,
        index=True,
        sa_type=UTCDateTime,
    )


class AuditLogRead(AuditLogBase):
    """Audit entry as returned by the audit log endpoint."""

    id: UUID
    workspace_id: UUID
    actor_id: Optional[UUID]
    old_value: Optional[dict[str, Any]]
    new_value: Optional[dict[str, Any]]
    description: Optional[str]
    created_at: datetime
