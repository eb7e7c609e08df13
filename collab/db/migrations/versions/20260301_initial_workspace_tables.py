"""Initial workspace collaboration tables.

Revision ID: 001_initial
Revises:
Create Date: 2026-03-01

Creates the mirrored users/events tables and the workspace, membership,
task, template and audit tables.
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "001_initial"
down_revision = None
branch_labels = None
depends_on = None


UUID = postgresql.UUID(as_uuid=True)

EVENT_STATUS = sa.Enum(
    "DRAFT", "PUBLISHED", "ONGOING", "COMPLETED", "CANCELLED", name="eventstatus"
)
WORKSPACE_STATUS = sa.Enum("ACTIVE", "WINDING_DOWN", "DISSOLVED", name="workspacestatus")
CHANNEL_TYPE = sa.Enum("GENERAL", "ANNOUNCEMENT", "TASK_SPECIFIC", name="channeltype")
WORKSPACE_ROLE = sa.Enum(
    "WORKSPACE_OWNER",
    "TEAM_LEAD",
    "EVENT_COORDINATOR",
    "VOLUNTEER_MANAGER",
    "TECHNICAL_SPECIALIST",
    "MARKETING_LEAD",
    "GENERAL_VOLUNTEER",
    name="workspacerole",
)
MEMBER_STATUS = sa.Enum("PENDING", "ACTIVE", "REMOVED", name="memberstatus")
TASK_CATEGORY = sa.Enum(
    "SETUP", "MARKETING", "LOGISTICS", "TECHNICAL", "REGISTRATION", "POST_EVENT",
    name="taskcategory",
)
TASK_PRIORITY = sa.Enum("HIGH", "MEDIUM", "LOW", name="taskpriority")
TASK_STATUS = sa.Enum(
    "NOT_STARTED", "IN_PROGRESS", "REVIEW_REQUIRED", "COMPLETED", "BLOCKED",
    name="taskstatus",
)
DEPENDENCY_TYPE = sa.Enum(
    "FINISH_TO_START", "START_TO_START", "FINISH_TO_FINISH", name="dependencytype"
)
TEMPLATE_COMPLEXITY = sa.Enum("SIMPLE", "MODERATE", "COMPLEX", name="templatecomplexity")
AUDIT_ACTION = sa.Enum(
    "provision",
    "update",
    "dissolve",
    "dissolution_completed",
    "member_invited",
    "invitation_accepted",
    "invitation_revoked",
    "role_changed",
    "member_removed",
    "task_created",
    "task_updated",
    "task_status_changed",
    "task_assigned",
    "task_deleted",
    "dependency_added",
    "dependency_removed",
    "template_created",
    "template_applied",
    "access_denied",
    name="auditaction",
)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    # ==========================================================================
    # Mirrored identities and events
    # ==========================================================================

    op.create_table(
        "users",
        sa.Column("id", UUID, nullable=False),
        sa.Column("full_name", sa.String(), nullable=True),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_full_name", "users", ["full_name"])

    op.create_table(
        "events",
        sa.Column("id", UUID, nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("category", sa.String(length=50), nullable=True),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", EVENT_STATUS, nullable=False),
        sa.Column("organizer_id", UUID, nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["organizer_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_events_name", "events", ["name"])
    op.create_index("ix_events_organizer_id", "events", ["organizer_id"])

    # ==========================================================================
    # Templates (referenced by workspaces)
    # ==========================================================================

    op.create_table(
        "workspace_templates",
        sa.Column("id", UUID, nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("category", sa.String(length=50), nullable=False),
        sa.Column("complexity", TEMPLATE_COMPLEXITY, nullable=False),
        sa.Column("is_public", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("structure", sa.JSON(), nullable=False),
        sa.Column("source_workspace_id", UUID, nullable=True),
        sa.Column("created_by", UUID, nullable=False),
        sa.Column("usage_count", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
        sa.ForeignKeyConstraint(["created_by"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_workspace_templates_name", "workspace_templates", ["name"])
    op.create_index("ix_workspace_templates_category", "workspace_templates", ["category"])
    op.create_index("ix_workspace_templates_created_by", "workspace_templates", ["created_by"])
    op.create_index(
        "ix_workspace_templates_source_workspace_id",
        "workspace_templates",
        ["source_workspace_id"],
    )

    # ==========================================================================
    # Workspaces and channels
    # ==========================================================================

    op.create_table(
        "workspaces",
        sa.Column("id", UUID, nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("event_id", UUID, nullable=False),
        sa.Column("status", WORKSPACE_STATUS, nullable=False),
        sa.Column("template_id", UUID, nullable=True),
        sa.Column("settings", sa.JSON(), nullable=True),
        sa.Column("retention_period_days", sa.Integer(), nullable=True),
        sa.Column("wind_down_started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("scheduled_dissolution_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("dissolved_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["event_id"], ["events.id"]),
        sa.ForeignKeyConstraint(["template_id"], ["workspace_templates.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_workspaces_event_id", "workspaces", ["event_id"], unique=True)
    op.create_index("ix_workspaces_name", "workspaces", ["name"])
    op.create_index("ix_workspaces_status", "workspaces", ["status"])
    op.create_index("ix_workspaces_template_id", "workspaces", ["template_id"])
    op.create_index(
        "ix_workspaces_scheduled_dissolution_at", "workspaces", ["scheduled_dissolution_at"]
    )

    op.create_table(
        "workspace_channels",
        sa.Column("id", UUID, nullable=False),
        sa.Column("workspace_id", UUID, nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("channel_type", CHANNEL_TYPE, nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("is_private", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.ForeignKeyConstraint(["workspace_id"], ["workspaces.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_workspace_channels_workspace_id", "workspace_channels", ["workspace_id"])

    # ==========================================================================
    # Team members
    # ==========================================================================

    op.create_table(
        "team_members",
        sa.Column("id", UUID, nullable=False),
        sa.Column("role", WORKSPACE_ROLE, nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("workspace_id", UUID, nullable=False),
        sa.Column("user_id", UUID, nullable=True),
        sa.Column("status", MEMBER_STATUS, nullable=False),
        sa.Column("permissions", sa.JSON(), nullable=False),
        sa.Column("invited_by", UUID, nullable=True),
        sa.Column("invite_token", sa.String(), nullable=True),
        sa.Column("invite_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("joined_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("left_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["workspace_id"], ["workspaces.id"]),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["invited_by"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_team_members_workspace_id", "team_members", ["workspace_id"])
    op.create_index("ix_team_members_user_id", "team_members", ["user_id"])
    op.create_index("ix_team_members_email", "team_members", ["email"])
    op.create_index("ix_team_members_status", "team_members", ["status"])
    op.create_index("ix_team_members_invite_token", "team_members", ["invite_token"])
    op.create_index(
        "uq_team_members_active_user",
        "team_members",
        ["workspace_id", "user_id"],
        unique=True,
        postgresql_where=sa.text("status = 'ACTIVE'"),
    )

    # ==========================================================================
    # Tasks and dependencies
    # ==========================================================================

    op.create_table(
        "workspace_tasks",
        sa.Column("id", UUID, nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("category", TASK_CATEGORY, nullable=False),
        sa.Column("priority", TASK_PRIORITY, nullable=False),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("workspace_id", UUID, nullable=False),
        sa.Column("assignee_id", UUID, nullable=True),
        sa.Column("creator_id", UUID, nullable=False),
        sa.Column("status", TASK_STATUS, nullable=False),
        sa.Column("requested_status", TASK_STATUS, nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["workspace_id"], ["workspaces.id"]),
        sa.ForeignKeyConstraint(["assignee_id"], ["team_members.id"]),
        sa.ForeignKeyConstraint(["creator_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_workspace_tasks_workspace_id", "workspace_tasks", ["workspace_id"])
    op.create_index("ix_workspace_tasks_assignee_id", "workspace_tasks", ["assignee_id"])
    op.create_index("ix_workspace_tasks_category", "workspace_tasks", ["category"])
    op.create_index("ix_workspace_tasks_status", "workspace_tasks", ["status"])

    op.create_table(
        "task_dependencies",
        sa.Column("id", UUID, nullable=False),
        sa.Column("task_id", UUID, nullable=False),
        sa.Column("depends_on_task_id", UUID, nullable=False),
        sa.Column("dependency_type", DEPENDENCY_TYPE, nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
        sa.ForeignKeyConstraint(["task_id"], ["workspace_tasks.id"]),
        sa.ForeignKeyConstraint(["depends_on_task_id"], ["workspace_tasks.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("task_id", "depends_on_task_id", name="uq_task_dependencies_edge"),
    )
    op.create_index("ix_task_dependencies_task_id", "task_dependencies", ["task_id"])
    op.create_index(
        "ix_task_dependencies_depends_on_task_id", "task_dependencies", ["depends_on_task_id"]
    )

    # ==========================================================================
    # Audit log (append-only)
    # ==========================================================================

    op.create_table(
        "audit_logs",
        sa.Column("id", UUID, nullable=False),
        sa.Column("action", AUDIT_ACTION, nullable=False),
        sa.Column("resource_type", sa.String(length=100), nullable=False),
        sa.Column("resource_id", UUID, nullable=True),
        sa.Column("workspace_id", UUID, nullable=False),
        sa.Column("actor_id", UUID, nullable=True),
        sa.Column("old_value", sa.JSON(), nullable=True),
        sa.Column("new_value", sa.JSON(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["workspace_id"], ["workspaces.id"]),
        sa.ForeignKeyConstraint(["actor_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_audit_logs_workspace_id", "audit_logs", ["workspace_id"])
    op.create_index("ix_audit_logs_actor_id", "audit_logs", ["actor_id"])
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"])
    op.create_index("ix_audit_logs_created_at", "audit_logs", ["created_at"])


def downgrade() -> None:
    op.drop_table("audit_logs")
    op.drop_table("task_dependencies")
    op.drop_table("workspace_tasks")
    op.drop_table("team_members")
    op.drop_table("workspace_channels")
    op.drop_table("workspaces")
    op.drop_table("workspace_templates")
    op.drop_table("events")
    op.drop_table("users")

    bind = op.get_bind()
    for enum in (
        AUDIT_ACTION,
        TEMPLATE_COMPLEXITY,
        DEPENDENCY_TYPE,
        TASK_STATUS,
        TASK_PRIORITY,
        TASK_CATEGORY,
        MEMBER_STATUS,
        WORKSPACE_ROLE,
        CHANNEL_TYPE,
        WORKSPACE_STATUS,
        EVENT_STATUS,
    ):
        enum.drop(bind, checkfirst=True)
