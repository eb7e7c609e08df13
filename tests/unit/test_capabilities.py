"""Tests for the role-to-capability table."""

import pytest

from api.auth.capabilities import (
    ROLE_CAPABILITIES,
    Capability,
    get_capabilities_for_role,
    has_capability,
    permission_snapshot,
)
from collab.db.models import WorkspaceRole


class TestRoleCapabilities:
    """The table covers every role and nests as documented."""

    def test_every_role_has_an_entry(self):
        """Every role appears in the capability table."""
        assert set(ROLE_CAPABILITIES) == set(WorkspaceRole)

    def test_owner_has_everything(self):
        """The owner holds every capability."""
        assert get_capabilities_for_role(WorkspaceRole.WORKSPACE_OWNER) == frozenset(Capability)

    @pytest.mark.parametrize(
        "role",
        [r for r in WorkspaceRole if r != WorkspaceRole.WORKSPACE_OWNER],
    )
    def test_only_owner_dissolves_and_manages_workspace(self, role):
        """Dissolving and managing the workspace are owner-only."""
        assert not has_capability(role, Capability.DISSOLVE_WORKSPACE)
        assert not has_capability(role, Capability.MANAGE_WORKSPACE)
        assert not has_capability(role, Capability.MANAGE_PERMISSIONS)

    def test_team_lead(self):
        """Team leads manage team and tasks."""
        caps = get_capabilities_for_role(WorkspaceRole.TEAM_LEAD)
        assert Capability.MANAGE_TEAM in caps
        assert Capability.INVITE_MEMBERS in caps
        assert Capability.VIEW_AUDIT_LOG in caps
        assert Capability.MANAGE_TEMPLATES in caps

    def test_volunteer_manager_invites_but_does_not_manage_team(self):
        """Volunteer managers can invite but not change roles."""
        role = WorkspaceRole.VOLUNTEER_MANAGER
        assert has_capability(role, Capability.INVITE_MEMBERS)
        assert not has_capability(role, Capability.MANAGE_TEAM)

    def test_event_coordinator_manages_templates(self):
        """Event coordinators can manage templates."""
        role = WorkspaceRole.EVENT_COORDINATOR
        assert has_capability(role, Capability.MANAGE_TEMPLATES)
        assert has_capability(role, Capability.VIEW_ANALYTICS)
        assert not has_capability(role, Capability.INVITE_MEMBERS)

    def test_marketing_lead_manages_channels(self):
        """Marketing leads can manage channels."""
        assert has_capability(WorkspaceRole.MARKETING_LEAD, Capability.MANAGE_CHANNELS)
        assert not has_capability(WorkspaceRole.TECHNICAL_SPECIALIST, Capability.MANAGE_CHANNELS)

    def test_general_volunteer_is_minimal(self):
        """General volunteers can only view and progress tasks."""
        assert get_capabilities_for_role(WorkspaceRole.GENERAL_VOLUNTEER) == frozenset(
            [Capability.VIEW_TASKS, Capability.UPDATE_TASK_PROGRESS]
        )

    def test_unknown_role_has_nothing(self):
        """Unknown roles grant no capability."""
        assert not has_capability("NOT_A_ROLE", Capability.VIEW_TASKS)


class TestPermissionSnapshot:
    """Tests for permission snapshots."""

    def test_snapshot_is_sorted_names(self):
        """Permission snapshots are sorted capability names."""
        snapshot = permission_snapshot(WorkspaceRole.GENERAL_VOLUNTEER)
        assert snapshot == ["UPDATE_TASK_PROGRESS", "VIEW_TASKS"]

    def test_snapshot_matches_table(self):
        """Snapshots match the capability table."""
        snapshot = permission_snapshot(WorkspaceRole.TEAM_LEAD)
        assert set(snapshot) == {c.value for c in ROLE_CAPABILITIES[WorkspaceRole.TEAM_LEAD]}
