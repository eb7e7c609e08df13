"""Shared fixtures for the workspace collaboration tests.

Sets up environment variables required for API module imports, then
provides an in-memory SQLite database and a service container.
"""

import os

# Set test environment variables before any imports
os.environ.setdefault("JWT_SECRET", "test-secret-for-unit-tests")
os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import timedelta
from uuid import uuid4

import pytest
from sqlmodel import Session

from api.services import build_services
from collab.db.engine import create_db_engine, drop_all_tables, init_db
from collab.db.models import Event, EventStatus, User, WorkspaceRole, utcnow


@pytest.fixture
def test_engine():
    """Fresh in-memory database per test."""
    engine = create_db_engine("sqlite://")
    init_db(engine)
    yield engine
    drop_all_tables(engine)
    engine.dispose()


@pytest.fixture
def session(test_engine):
    with Session(test_engine) as session:
        yield session


@pytest.fixture
def services():
    return build_services()


@pytest.fixture
def make_user(session):
    """Factory for users."""

    def _make(name: str = "user", email: str | None = None) -> User:
        user = User(full_name=name.title(), email=email or f"{name}-{uuid4().hex[:6]}@example.com")
        session.add(user)
        session.commit()
        session.refresh(user)
        return user

    return _make


@pytest.fixture
def make_event(session):
    """Factory for events; ``ended=True`` puts the end date in the past."""

    def _make(
        organizer: User,
        ended: bool = False,
        status: EventStatus = EventStatus.PUBLISHED,
        category: str | None = "conference",
        name: str = "Tech Summit",
    ) -> Event:
        now = utcnow()
        if ended:
            start, end = now - timedelta(days=3), now - timedelta(days=1)
        else:
            start, end = now + timedelta(days=10), now + timedelta(days=12)
        event = Event(
            name=name,
            category=category,
            start_date=start,
            end_date=end,
            status=status,
            organizer_id=organizer.id,
        )
        session.add(event)
        session.commit()
        session.refresh(event)
        return event

    return _make


@pytest.fixture
def organizer(make_user):
    return make_user("organizer", "organizer@example.com")


@pytest.fixture
def event(make_event, organizer):
    return make_event(organizer)


@pytest.fixture
def workspace(session, services, event, organizer):
    """Workspace provisioned by the event organizer."""
    return services.workspaces.provision_workspace(session, event.id, organizer.id)


@pytest.fixture
def add_member(session, services, make_user):
    """Invite a new user with a role and accept the invitation as them.

    Returns (user, member).
    """

    def _add(workspace, inviter, role: WorkspaceRole = WorkspaceRole.GENERAL_VOLUNTEER, name="member"):
        user = make_user(name)
        invitation = services.membership.invite_member(
            session, workspace.id, inviter.id, user.email, role
        )
        member = services.membership.accept_invitation(session, invitation.id, user.id)
        return user, member

    return _add
