"""Shared fixtures for HTTP-level tests."""

import asyncio
from dataclasses import dataclass
from datetime import timedelta
from typing import Any
from uuid import UUID

import pytest
from httpx import ASGITransport, AsyncClient
from sqlmodel import Session

from api.auth.jwt import create_access_token
from api.main import create_app
from api.services import build_services
from collab.db.engine import get_session_dependency
from collab.db.models import Event, EventStatus, User, utcnow


class SyncClient:
    """Synchronous wrapper around httpx AsyncClient for testing."""

    def __init__(self, app):
        self.app = app
        self.transport = ASGITransport(app=app)
        self.base_url = "http://testserver"

    def _run_async(self, coro):
        """Run async coroutine synchronously."""
        loop = asyncio.new_event_loop()
        try:
            return loop.run_until_complete(coro)
        finally:
            loop.close()

    async def _request(self, method: str, url: str, **kwargs) -> Any:
        async with AsyncClient(transport=self.transport, base_url=self.base_url) as client:
            return await client.request(method, url, **kwargs)

    def get(self, url: str, **kwargs):
        return self._run_async(self._request("GET", url, **kwargs))

    def post(self, url: str, **kwargs):
        return self._run_async(self._request("POST", url, **kwargs))

    def put(self, url: str, **kwargs):
        return self._run_async(self._request("PUT", url, **kwargs))

    def delete(self, url: str, **kwargs):
        return self._run_async(self._request("DELETE", url, **kwargs))


@dataclass
class Actor:
    id: UUID
    email: str

    @property
    def headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(self.id)}"}


@pytest.fixture
def client(test_engine):
    """Client for an app whose sessions are bound to the test database."""

    def override_session():
        with Session(test_engine) as session:
            yield session

    app = create_app(build_services())
    app.dependency_overrides[get_session_dependency] = override_session
    return SyncClient(app)


@pytest.fixture
def create_actor(test_engine):
    def _create(email: str) -> Actor:
        with Session(test_engine) as session:
            user = User(full_name=email.split("@")[0], email=email)
            session.add(user)
            session.commit()
            return Actor(id=user.id, email=user.email)

    return _create


@pytest.fixture
def create_event(test_engine):
    def _create(organizer: Actor, category: str = "CONFERENCE") -> UUID:
        now = utcnow()
        with Session(test_engine) as session:
            event = Event(
                name="Tech Summit",
                category=category,
                start_date=now + timedelta(days=10),
                end_date=now + timedelta(days=11),
                status=EventStatus.PUBLISHED,
                organizer_id=organizer.id,
            )
            session.add(event)
            session.commit()
            return event.id

    return _create


@pytest.fixture
def set_event_status(test_engine):
    """Update the mirrored event as the event service would."""

    def _set(event_id: UUID, status: EventStatus) -> None:
        with Session(test_engine) as session:
            event = session.get(Event, event_id)
            event.status = status
            session.add(event)
            session.commit()

    return _set


@pytest.fixture
def organizer(create_actor):
    return create_actor("organizer@test.com")


@pytest.fixture
def event_id(create_event, organizer):
    return create_event(organizer)


@pytest.fixture
def provisioned(client, organizer, event_id):
    """Workspace payload returned by provisioning."""
    response = client.post(
        "/api/workspace/provision", json={"event_id": str(event_id)}, headers=organizer.headers
    )
    assert response.status_code == 201
    return response.json()["data"]
