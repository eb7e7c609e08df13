"""Tests for the workspace lifecycle: wind-down, dissolution and access afterwards."""

from datetime import timedelta

import pytest
from sqlmodel import select

from api.exceptions import (
    AccessDeniedError,
    ConflictError,
    InvalidTransitionError,
    ValidationError,
)
from api.services.lifecycle_service import can_transition, check_transition
from collab.db.models import (
    AuditAction,
    AuditLog,
    EventStatus,
    TaskCategory,
    TeamMember,
    Workspace,
    WorkspaceRole,
    WorkspaceStatus,
    WorkspaceTaskCreate,
    utcnow,
)


@pytest.fixture
def ended_workspace(session, services, make_event, organizer):
    event = make_event(organizer, ended=True, name="Past Conf")
    return services.workspaces.provision_workspace(session, event.id, organizer.id)


def actions(session, workspace_id):
    statement = select(AuditLog.action).where(AuditLog.workspace_id == workspace_id)
    return list(session.exec(statement).all())


class TestTransitionTable:
    """Tests for the lifecycle transition table."""

    @pytest.mark.parametrize(
        "current,target,allowed",
        [
            (WorkspaceStatus.ACTIVE, WorkspaceStatus.WINDING_DOWN, True),
            (WorkspaceStatus.WINDING_DOWN, WorkspaceStatus.DISSOLVED, True),
            (WorkspaceStatus.ACTIVE, WorkspaceStatus.DISSOLVED, False),
            (WorkspaceStatus.WINDING_DOWN, WorkspaceStatus.ACTIVE, False),
            (WorkspaceStatus.DISSOLVED, WorkspaceStatus.ACTIVE, False),
            (WorkspaceStatus.DISSOLVED, WorkspaceStatus.WINDING_DOWN, False),
        ],
    )
    def test_allowed_transitions(self, current, target, allowed):
        """Only forward steps through the lifecycle are allowed."""
        assert can_transition(current, target) is allowed

    def test_check_transition_raises(self):
        """Invalid transitions name both statuses."""
        with pytest.raises(InvalidTransitionError) as exc_info:
            check_transition(WorkspaceStatus.DISSOLVED, WorkspaceStatus.ACTIVE)
        assert exc_info.value.details == {"from": "DISSOLVED", "to": "ACTIVE"}


class TestDissolveWorkspace:
    """Tests for starting dissolution."""

    def test_winds_down_with_default_retention(
        self, session, services, ended_workspace, organizer
    ):
        """Dissolving winds down and schedules the default 30 days out."""
        before = utcnow()
        workspace = services.lifecycle.dissolve_workspace(
            session, ended_workspace.id, organizer.id
        )

        assert workspace.status == WorkspaceStatus.WINDING_DOWN
        assert workspace.retention_period_days == 30
        assert workspace.wind_down_started_at >= before
        assert workspace.scheduled_dissolution_at - workspace.wind_down_started_at == timedelta(days=30)
        assert AuditAction.dissolve in actions(session, workspace.id)

    def test_event_must_have_concluded(self, session, services, workspace, organizer):
        """A running event's workspace cannot be dissolved."""
        with pytest.raises(InvalidTransitionError):
            services.lifecycle.dissolve_workspace(session, workspace.id, organizer.id)

        session.refresh(workspace)
        assert workspace.status == WorkspaceStatus.ACTIVE

    def test_completed_event_counts_as_concluded(
        self, session, services, make_event, organizer
    ):
        """A COMPLETED event has concluded even before its end date."""
        event = make_event(organizer, status=EventStatus.COMPLETED, name="Done Early")
        workspace = services.workspaces.provision_workspace(session, event.id, organizer.id)

        dissolved = services.lifecycle.dissolve_workspace(session, workspace.id, organizer.id)
        assert dissolved.status == WorkspaceStatus.WINDING_DOWN

    def test_second_dissolve_is_invalid(self, session, services, ended_workspace, organizer):
        """Dissolving twice is an invalid transition."""
        services.lifecycle.dissolve_workspace(session, ended_workspace.id, organizer.id)
        with pytest.raises(InvalidTransitionError):
            services.lifecycle.dissolve_workspace(session, ended_workspace.id, organizer.id)

    def test_only_owner_may_dissolve(
        self, session, services, ended_workspace, organizer, add_member
    ):
        """Non-owners are denied and the denial is audited."""
        lead, _ = add_member(ended_workspace, organizer, WorkspaceRole.TEAM_LEAD, name="lead")

        with pytest.raises(AccessDeniedError):
            services.lifecycle.dissolve_workspace(session, ended_workspace.id, lead.id)

        session.refresh(ended_workspace)
        assert ended_workspace.status == WorkspaceStatus.ACTIVE
        assert AuditAction.access_denied in actions(session, ended_workspace.id)

    def test_zero_retention_dissolves_immediately(
        self, session, services, ended_workspace, organizer
    ):
        """A retention of zero finalizes in the same call."""
        workspace = services.lifecycle.dissolve_workspace(
            session, ended_workspace.id, organizer.id, retention_period_days=0
        )
        assert workspace.status == WorkspaceStatus.DISSOLVED
        assert workspace.dissolved_at is not None

    def test_retention_out_of_range(self, session, services, ended_workspace, organizer):
        """Retention above 365 days is rejected."""
        with pytest.raises(ValidationError):
            services.lifecycle.dissolve_workspace(
                session, ended_workspace.id, organizer.id, retention_period_days=366
            )

    def test_retention_from_settings(self, session, services, ended_workspace, organizer):
        """Workspace settings override the default retention."""
        services.workspaces.update_workspace(
            session, ended_workspace.id, organizer.id, settings={"retention_period_days": 7}
        )
        workspace = services.lifecycle.dissolve_workspace(session, ended_workspace.id, organizer.id)
        assert workspace.retention_period_days == 7


class TestScheduledDissolution:
    """Tests for the scheduled dissolution run."""

    def test_due_workspaces_are_dissolved(self, session, services, ended_workspace, organizer):
        """The scheduled run finalizes only workspaces past their date."""
        services.lifecycle.dissolve_workspace(session, ended_workspace.id, organizer.id)

        assert services.lifecycle.process_scheduled_dissolutions(session) == []

        dissolved = services.lifecycle.process_scheduled_dissolutions(
            session, now=utcnow() + timedelta(days=31)
        )

        assert dissolved == [ended_workspace.id]
        session.refresh(ended_workspace)
        assert ended_workspace.status == WorkspaceStatus.DISSOLVED
        entry = session.exec(
            select(AuditLog).where(AuditLog.action == AuditAction.dissolution_completed)
        ).one()
        assert entry.actor_id is None

    def test_complete_dissolution_is_idempotent(
        self, session, services, ended_workspace, organizer
    ):
        """Finalizing an already dissolved workspace writes nothing."""
        services.lifecycle.dissolve_workspace(
            session, ended_workspace.id, organizer.id, retention_period_days=0
        )
        count = len(actions(session, ended_workspace.id))

        workspace = services.lifecycle.complete_dissolution(session, ended_workspace.id)

        assert workspace.status == WorkspaceStatus.DISSOLVED
        assert len(actions(session, ended_workspace.id)) == count


class TestDissolvedWorkspace:
    """Tests for what a dissolved workspace still allows."""

    @pytest.fixture
    def dissolved(self, session, services, ended_workspace, organizer, add_member):
        lead, _ = add_member(ended_workspace, organizer, WorkspaceRole.TEAM_LEAD, name="lead")
        services.tasks.create_task(
            session,
            ended_workspace.id,
            organizer.id,
            WorkspaceTaskCreate(title="Wrap up", category=TaskCategory.POST_EVENT),
        )
        services.lifecycle.dissolve_workspace(
            session, ended_workspace.id, organizer.id, retention_period_days=0
        )
        return ended_workspace, lead

    def test_history_is_preserved(self, session, services, dissolved, organizer):
        """Dissolution keeps tasks and the full audit trail."""
        workspace, _ = dissolved
        entries, total = services.audit.list_audit_log(session, workspace.id, organizer.id)
        assert total == len(entries)
        assert {e.action for e in entries} >= {
            AuditAction.provision,
            AuditAction.member_invited,
            AuditAction.invitation_accepted,
            AuditAction.task_created,
            AuditAction.dissolve,
        }
        assert len(services.tasks.list_tasks(session, workspace.id, organizer.id)) == 1

    def test_only_owner_can_read(self, session, services, dissolved, organizer):
        """Only the owner can still read a dissolved workspace."""
        workspace, lead = dissolved

        assert services.workspaces.get_workspace(session, workspace.id, organizer.id).id == workspace.id
        with pytest.raises(AccessDeniedError):
            services.workspaces.get_workspace(session, workspace.id, lead.id)
        assert services.workspaces.list_user_workspaces(session, lead.id) == []

    def test_mutations_rejected(self, session, services, dissolved, organizer):
        """Dissolved workspaces reject every mutation."""
        workspace, _ = dissolved

        with pytest.raises(ConflictError):
            services.workspaces.update_workspace(session, workspace.id, organizer.id, name="Again")
        with pytest.raises(ConflictError):
            services.membership.invite_member(session, workspace.id, organizer.id, "z@example.com")
        with pytest.raises(ConflictError):
            services.tasks.create_task(
                session,
                workspace.id,
                organizer.id,
                WorkspaceTaskCreate(title="Late", category=TaskCategory.SETUP),
            )


class TestEventCreated:
    """Tests for auto-provisioning when an event is created."""

    def test_provisions_workspace_for_new_event(self, session, services, event, organizer):
        """A new event gets a workspace owned by its organizer."""
        workspace = services.lifecycle.on_event_created(session, event.id, organizer.id)

        assert workspace.event_id == event.id
        assert workspace.status == WorkspaceStatus.ACTIVE
        owner = session.exec(
            select(TeamMember).where(TeamMember.workspace_id == workspace.id)
        ).one()
        assert owner.user_id == organizer.id
        assert owner.role == WorkspaceRole.WORKSPACE_OWNER
        assert actions(session, workspace.id) == [AuditAction.provision]

    def test_existing_workspace_is_returned(self, session, services, workspace, event, organizer):
        """Calling the hook again returns the same workspace without a conflict."""
        again = services.lifecycle.on_event_created(session, event.id, organizer.id)

        assert again.id == workspace.id
        assert len(session.exec(select(Workspace)).all()) == 1
        assert actions(session, workspace.id) == [AuditAction.provision]

    def test_non_organizer_is_denied(self, session, services, event, make_user):
        """Only the event organizer can be made owner."""
        with pytest.raises(AccessDeniedError):
            services.lifecycle.on_event_created(session, event.id, make_user("someone").id)
        assert session.exec(select(Workspace)).first() is None


class TestEventStatusChanges:
    """Tests for reacting to event status changes."""

    def test_unknown_status_is_a_validation_error(self, session, services, workspace, event):
        """Statuses outside EventStatus are rejected as bad input."""
        with pytest.raises(ValidationError) as exc_info:
            services.lifecycle.on_event_status_changed(session, event.id, "POSTPONED")
        assert exc_info.value.details == {"field": "status"}

    def test_completed_event_starts_wind_down(self, session, services, workspace, event):
        """A completed event winds the workspace down as the system."""
        updated = services.lifecycle.on_event_status_changed(
            session, event.id, EventStatus.COMPLETED
        )
        assert updated.status == WorkspaceStatus.WINDING_DOWN
        entry = session.exec(
            select(AuditLog).where(AuditLog.action == AuditAction.dissolve)
        ).one()
        assert entry.actor_id is None

    def test_cancelled_event_dissolves(self, session, services, workspace, event):
        """A cancelled event dissolves the workspace at once."""
        updated = services.lifecycle.on_event_status_changed(
            session, event.id, EventStatus.CANCELLED
        )
        assert updated.status == WorkspaceStatus.DISSOLVED
        assert AuditAction.dissolution_completed in actions(session, workspace.id)

    def test_other_statuses_do_nothing(self, session, services, workspace, event):
        """Other event statuses leave the workspace alone."""
        count = len(actions(session, workspace.id))
        updated = services.lifecycle.on_event_status_changed(
            session, event.id, EventStatus.ONGOING
        )
        assert updated.status == WorkspaceStatus.ACTIVE
        assert len(actions(session, workspace.id)) == count


class TestWorkspaceStatus:
    """Tests for the lifecycle status view."""

    def test_status_view(self, session, services, ended_workspace, organizer):
        """The status view reports reachable statuses and days left."""
        active = services.lifecycle.get_workspace_status(session, ended_workspace.id, organizer.id)
        assert active.status == WorkspaceStatus.ACTIVE
        assert active.can_transition_to == [WorkspaceStatus.WINDING_DOWN]
        assert active.days_until_dissolution is None

        services.lifecycle.dissolve_workspace(
            session, ended_workspace.id, organizer.id, retention_period_days=5
        )
        winding = services.lifecycle.get_workspace_status(session, ended_workspace.id, organizer.id)
        assert winding.status == WorkspaceStatus.WINDING_DOWN
        assert winding.can_transition_to == [WorkspaceStatus.DISSOLVED]
        assert winding.days_until_dissolution == 5
