"""Workspace capabilities and the role-to-capability table.

Authorization never matches strings: callers ask ``has_capability(role, cap)``.
A member's ``permissions`` column is only a snapshot of the set below.
"""

from enum import Enum
from typing import FrozenSet

from collab.db.models import WorkspaceRole


class Capability(str, Enum):
    """Closed set of actions a workspace role may be granted."""

    # Workspace
    MANAGE_WORKSPACE = "MANAGE_WORKSPACE"
    DISSOLVE_WORKSPACE = "DISSOLVE_WORKSPACE"

    # Team
    MANAGE_TEAM = "MANAGE_TEAM"
    INVITE_MEMBERS = "INVITE_MEMBERS"
    MANAGE_PERMISSIONS = "MANAGE_PERMISSIONS"

    # Tasks
    CREATE_TASKS = "CREATE_TASKS"
    MANAGE_TASKS = "MANAGE_TASKS"
    VIEW_TASKS = "VIEW_TASKS"
    UPDATE_TASK_PROGRESS = "UPDATE_TASK_PROGRESS"

    # Communication and insight
    MANAGE_CHANNELS = "MANAGE_CHANNELS"
    VIEW_ANALYTICS = "VIEW_ANALYTICS"
    MANAGE_TEMPLATES = "MANAGE_TEMPLATES"
    VIEW_AUDIT_LOG = "VIEW_AUDIT_LOG"


_TASK_WORKER: FrozenSet[Capability] = frozenset(
    [
        Capability.CREATE_TASKS,
        Capability.MANAGE_TASKS,
        Capability.VIEW_TASKS,
        Capability.UPDATE_TASK_PROGRESS,
    ]
)

_OWNER_CAPABILITIES: FrozenSet[Capability] = frozenset(Capability)

_TEAM_LEAD_CAPABILITIES: FrozenSet[Capability] = _TASK_WORKER | frozenset(
    [
        Capability.MANAGE_TEAM,
        Capability.INVITE_MEMBERS,
        Capability.MANAGE_CHANNELS,
        Capability.VIEW_ANALYTICS,
        Capability.MANAGE_TEMPLATES,
        Capability.VIEW_AUDIT_LOG,
    ]
)

_EVENT_COORDINATOR_CAPABILITIES: FrozenSet[Capability] = _TASK_WORKER | frozenset(
    [
        Capability.VIEW_ANALYTICS,
        Capability.MANAGE_TEMPLATES,
    ]
)

_VOLUNTEER_MANAGER_CAPABILITIES: FrozenSet[Capability] = _TASK_WORKER | frozenset(
    [Capability.INVITE_MEMBERS]
)

_MARKETING_LEAD_CAPABILITIES: FrozenSet[Capability] = _TASK_WORKER | frozenset(
    [Capability.MANAGE_CHANNELS]
)

_GENERAL_VOLUNTEER_CAPABILITIES: FrozenSet[Capability] = frozenset(
    [
        Capability.VIEW_TASKS,
        Capability.UPDATE_TASK_PROGRESS,
    ]
)


ROLE_CAPABILITIES: dict[WorkspaceRole, FrozenSet[Capability]] = {
    WorkspaceRole.WORKSPACE_OWNER: _OWNER_CAPABILITIES,
    WorkspaceRole.TEAM_LEAD: _TEAM_LEAD_CAPABILITIES,
    WorkspaceRole.EVENT_COORDINATOR: _EVENT_COORDINATOR_CAPABILITIES,
    WorkspaceRole.VOLUNTEER_MANAGER: _VOLUNTEER_MANAGER_CAPABILITIES,
    WorkspaceRole.TECHNICAL_SPECIALIST: _TASK_WORKER,
    WorkspaceRole.MARKETING_LEAD: _MARKETING_LEAD_CAPABILITIES,
    WorkspaceRole.GENERAL_VOLUNTEER: _GENERAL_VOLUNTEER_CAPABILITIES,
}


def has_capability(role: WorkspaceRole, capability: Capability) -> bool:
    """Check if a role grants a specific capability."""
    return capability in ROLE_CAPABILITIES.get(role, frozenset())


def get_capabilities_for_role(role: WorkspaceRole) -> FrozenSet[Capability]:
    """Get all capabilities granted to a role."""
    return ROLE_CAPABILITIES.get(role, frozenset())


def permission_snapshot(role: WorkspaceRole) -> list[str]:
    """Sorted capability names stored on a TeamMember row."""
    return sorted(c.value for c in get_capabilities_for_role(role))
