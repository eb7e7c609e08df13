"""End-to-end flows through the HTTP API."""

from datetime import timedelta

from collab.db.models import EventStatus, utcnow


def invite_and_accept(client, workspace_id, inviter, invitee, role):
    response = client.post(
        f"/api/team/{workspace_id}/invite",
        json={"email": invitee.email, "role": role},
        headers=inviter.headers,
    )
    assert response.status_code == 201
    invitation = response.json()["data"]
    assert invitation["status"] == "PENDING"

    response = client.post(
        f"/api/team/invitations/{invitation['id']}/accept", headers=invitee.headers
    )
    assert response.status_code == 200
    return response.json()["data"]


class TestAuthentication:
    """Tests for bearer token authentication."""

    def test_missing_token(self, client):
        """Requests without a token get 401."""
        response = client.get("/api/workspace/mine")
        assert response.status_code == 401
        assert response.json()["error"]["code"] == "AUTHENTICATION_FAILED"

    def test_garbage_token(self, client):
        """Malformed tokens get 401."""
        response = client.get(
            "/api/workspace/mine", headers={"Authorization": "Bearer not-a-jwt"}
        )
        assert response.status_code == 401

    def test_health_is_public(self, client):
        """The health check needs no token."""
        assert client.get("/api/health").json()["data"]["status"] == "ok"
        assert client.get("/api/health/ready").status_code == 200

    def test_request_id_is_echoed(self, client):
        """The request id header is echoed back."""
        response = client.get("/api/health", headers={"X-Request-ID": "abc123"})
        assert response.headers["X-Request-ID"] == "abc123"


class TestProvisioning:
    """Tests for provisioning over the API."""

    def test_provision_returns_owner_and_channels(self, provisioned, organizer):
        """Provisioning returns the owner and default channels."""
        assert provisioned["status"] == "ACTIVE"
        assert len(provisioned["team_members"]) == 1
        owner = provisioned["team_members"][0]
        assert owner["role"] == "WORKSPACE_OWNER"
        assert owner["status"] == "ACTIVE"
        assert owner["user_id"] == str(organizer.id)
        assert sorted(c["name"] for c in provisioned["channels"]) == [
            "announcements",
            "general",
            "tasks",
        ]

    def test_reprovision_conflicts(self, client, provisioned, organizer, event_id):
        """Provisioning the same event twice is 409."""
        response = client.post(
            "/api/workspace/provision", json={"event_id": str(event_id)}, headers=organizer.headers
        )
        assert response.status_code == 409
        assert response.json()["error"]["code"] == "CONFLICT"

        response = client.get(f"/api/workspace/{provisioned['id']}", headers=organizer.headers)
        assert response.json()["data"]["name"] == provisioned["name"]
        assert len(response.json()["data"]["team_members"]) == 1

    def test_non_organizer_cannot_provision(self, client, create_actor, event_id):
        """Only the organizer can provision."""
        stranger = create_actor("stranger@test.com")
        response = client.post(
            "/api/workspace/provision", json={"event_id": str(event_id)}, headers=stranger.headers
        )
        assert response.status_code == 403
        assert response.json()["error"]["message"] == "Access denied"

    def test_workspace_by_event_and_mine(self, client, provisioned, organizer, event_id):
        """Workspaces are found by event and in the user's list."""
        by_event = client.get(f"/api/workspace/event/{event_id}", headers=organizer.headers)
        assert by_event.json()["data"]["id"] == provisioned["id"]

        mine = client.get("/api/workspace/mine", headers=organizer.headers)
        assert [w["id"] for w in mine.json()["data"]] == [provisioned["id"]]


class TestTeam:
    """Tests for team management over the API."""

    def test_invite_accept_and_permissions(self, client, provisioned, organizer, create_actor):
        """Invited members join with their role's permissions."""
        workspace_id = provisioned["id"]
        coordinator = create_actor("member@test.com")
        volunteer = create_actor("volunteer@test.com")

        member = invite_and_accept(client, workspace_id, organizer, coordinator, "EVENT_COORDINATOR")
        assert member["status"] == "ACTIVE"
        invite_and_accept(client, workspace_id, organizer, volunteer, "GENERAL_VOLUNTEER")

        members = client.get(f"/api/team/{workspace_id}/members", headers=organizer.headers)
        active = [m for m in members.json()["data"] if m["status"] == "ACTIVE"]
        assert len(active) == 3

        response = client.put(
            f"/api/workspace/{workspace_id}", json={"name": "Hijacked"}, headers=volunteer.headers
        )
        assert response.status_code == 403
        detail = client.get(f"/api/workspace/{workspace_id}", headers=organizer.headers)
        assert detail.json()["data"]["name"] == provisioned["name"]

    def test_accepting_twice_is_not_found(self, client, provisioned, organizer, create_actor):
        """A used invitation is 404."""
        invitee = create_actor("member@test.com")
        response = client.post(
            f"/api/team/{provisioned['id']}/invite",
            json={"email": invitee.email, "role": "TEAM_LEAD"},
            headers=organizer.headers,
        )
        invitation_id = response.json()["data"]["id"]
        client.post(f"/api/team/invitations/{invitation_id}/accept", headers=invitee.headers)

        again = client.post(f"/api/team/invitations/{invitation_id}/accept", headers=invitee.headers)
        assert again.status_code == 404

    def test_accept_by_token(self, client, provisioned, organizer, create_actor):
        """The emailed token accepts the invitation once."""
        invitee = create_actor("token@test.com")
        response = client.post(
            f"/api/team/{provisioned['id']}/invite",
            json={"email": invitee.email, "role": "TEAM_LEAD"},
            headers=organizer.headers,
        )
        token = response.json()["data"]["invite_token"]

        accepted = client.post(f"/api/team/invites/{token}/accept", headers=invitee.headers)
        assert accepted.status_code == 200
        assert accepted.json()["data"]["status"] == "ACTIVE"
        assert accepted.json()["data"]["role"] == "TEAM_LEAD"

        again = client.post(f"/api/team/invites/{token}/accept", headers=invitee.headers)
        assert again.status_code == 404

    def test_invalid_email_is_400(self, client, provisioned, organizer):
        """Malformed emails are a 400 validation error."""
        response = client.post(
            f"/api/team/{provisioned['id']}/invite",
            json={"email": "not-an-email"},
            headers=organizer.headers,
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_role_change_and_removal(self, client, provisioned, organizer, create_actor):
        """Roles can be changed and members removed over the API."""
        workspace_id = provisioned["id"]
        person = create_actor("person@test.com")
        member = invite_and_accept(client, workspace_id, organizer, person, "GENERAL_VOLUNTEER")

        response = client.put(
            f"/api/team/{workspace_id}/members/{member['id']}/role",
            json={"role": "TECHNICAL_SPECIALIST"},
            headers=organizer.headers,
        )
        assert response.json()["data"]["role"] == "TECHNICAL_SPECIALIST"

        response = client.delete(
            f"/api/team/{workspace_id}/members/{member['id']}", headers=organizer.headers
        )
        assert response.json()["data"]["status"] == "REMOVED"
        assert client.get(f"/api/workspace/{workspace_id}", headers=person.headers).status_code == 403


class TestTasks:
    """Tests for tasks over the API."""

    def create_task(self, client, workspace_id, actor, **fields):
        body = {"title": "Task", "category": "LOGISTICS", **fields}
        response = client.post(f"/api/tasks/{workspace_id}", json=body, headers=actor.headers)
        assert response.status_code == 201
        return response.json()["data"]

    def test_create_task_and_summary(self, client, provisioned, organizer):
        """Created tasks show up in the summary."""
        workspace_id = provisioned["id"]
        due = (utcnow() + timedelta(days=7)).isoformat()
        task = self.create_task(client, workspace_id, organizer, title="Book chairs", due_date=due)

        assert task["workspace_id"] == workspace_id
        assert task["status"] == "NOT_STARTED"

        summary = client.get(f"/api/tasks/workspace/{workspace_id}/summary", headers=organizer.headers)
        assert summary.json()["data"]["total"] == 1
        assert summary.json()["data"]["in_progress"] == 0

    def test_dependency_blocks_and_releases(self, client, provisioned, organizer):
        """Dependencies block and release tasks over the API."""
        workspace_id = provisioned["id"]
        first = self.create_task(client, workspace_id, organizer, title="Venue")
        second = self.create_task(client, workspace_id, organizer, title="Stage")

        response = client.post(
            f"/api/tasks/{second['id']}/dependencies",
            json={"depends_on_task_id": first["id"], "dependency_type": "FINISH_TO_START"},
            headers=organizer.headers,
        )
        assert response.status_code == 201

        response = client.put(
            f"/api/tasks/{second['id']}/status", json={"status": "IN_PROGRESS"}, headers=organizer.headers
        )
        assert response.json()["data"]["status"] == "BLOCKED"

        client.put(
            f"/api/tasks/{first['id']}/status", json={"status": "COMPLETED"}, headers=organizer.headers
        )
        response = client.get(f"/api/tasks/{second['id']}", headers=organizer.headers)
        assert response.json()["data"]["status"] == "IN_PROGRESS"

    def test_cycle_is_rejected_without_edge(self, client, provisioned, organizer):
        """A cycle is rejected and no edge is stored."""
        workspace_id = provisioned["id"]
        a = self.create_task(client, workspace_id, organizer, title="A")
        b = self.create_task(client, workspace_id, organizer, title="B")
        client.post(
            f"/api/tasks/{a['id']}/dependencies",
            json={"depends_on_task_id": b["id"]},
            headers=organizer.headers,
        )

        response = client.post(
            f"/api/tasks/{b['id']}/dependencies",
            json={"depends_on_task_id": a["id"]},
            headers=organizer.headers,
        )
        assert response.status_code == 400
        edges = client.get(f"/api/tasks/{b['id']}/dependencies", headers=organizer.headers)
        assert edges.json()["data"] == []


class TestLifecycleAndTemplates:
    """Tests for dissolution, templates and the audit log over the API."""

    def test_dissolve_requires_owner_and_concluded_event(
        self, client, provisioned, organizer, create_actor, event_id, set_event_status
    ):
        """Dissolving needs the owner and a concluded event."""
        workspace_id = provisioned["id"]
        lead = create_actor("lead@test.com")
        invite_and_accept(client, workspace_id, organizer, lead, "TEAM_LEAD")

        early = client.post(
            f"/api/workspace/{workspace_id}/dissolve", json={}, headers=organizer.headers
        )
        assert early.status_code == 400
        assert early.json()["error"]["code"] == "INVALID_TRANSITION"

        set_event_status(event_id, EventStatus.COMPLETED)

        denied = client.post(
            f"/api/workspace/{workspace_id}/dissolve",
            json={"retention_period_days": 7},
            headers=lead.headers,
        )
        assert denied.status_code == 403

        response = client.post(
            f"/api/workspace/{workspace_id}/dissolve",
            json={"retention_period_days": 7},
            headers=organizer.headers,
        )
        assert response.status_code == 200
        status = response.json()["data"]
        assert status["status"] == "WINDING_DOWN"
        assert status["retention_period_days"] == 7
        assert status["can_transition_to"] == ["DISSOLVED"]

        again = client.post(
            f"/api/workspace/{workspace_id}/dissolve", json={}, headers=organizer.headers
        )
        assert again.status_code == 400

    def test_template_from_workspace(self, client, provisioned, organizer, create_actor):
        """A template can be saved from a workspace and listed."""
        workspace_id = provisioned["id"]
        coordinator = create_actor("coord@test.com")
        invite_and_accept(client, workspace_id, organizer, coordinator, "EVENT_COORDINATOR")
        for title in ("Chairs", "Tables"):
            client.post(
                f"/api/tasks/{workspace_id}",
                json={"title": title, "category": "LOGISTICS"},
                headers=organizer.headers,
            )

        response = client.post(
            "/api/templates/create-from-workspace",
            json={
                "workspace_id": workspace_id,
                "name": "Conference Template",
                "category": "CONFERENCE",
                "complexity": "MODERATE",
                "is_public": True,
                "tags": ["conference"],
            },
            headers=organizer.headers,
        )
        assert response.status_code == 201
        structure = response.json()["data"]["structure"]
        assert len(structure["roles"]) == 2
        assert structure["task_categories"] == ["LOGISTICS"]

    def test_audit_log_lists_provision(self, client, provisioned, organizer):
        """The audit log shows the provisioning entry."""
        response = client.get(
            f"/api/workspace/{provisioned['id']}/audit-logs", headers=organizer.headers
        )
        page = response.json()["data"]
        assert page["total"] == 1
        assert page["items"][0]["action"] == "provision"
        assert page["limit"] == 50
