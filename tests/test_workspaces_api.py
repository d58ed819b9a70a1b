from __future__ import annotations

from fastapi.testclient import TestClient

import workspace_hub.api.main as api_main
from tests.conftest import auth_headers, build_sqlite_session_factory, make_actor
from workspace_hub.storage.db import get_session, get_session_factory


def _client_for(tmp_path) -> TestClient:
    session_factory = build_sqlite_session_factory(tmp_path / "api.sqlite")

    def override_get_session():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    api_main.app.dependency_overrides[get_session] = override_get_session
    api_main.app.dependency_overrides[get_session_factory] = lambda: session_factory
    return TestClient(api_main.app)


def _token_from(invitation_url: str) -> str:
    return invitation_url.rsplit("/invite/", 1)[1]


def test_workspace_invitation_flow(tmp_path) -> None:
    alice = make_actor("alice@example.com")
    bob = make_actor("bob@example.com")
    try:
        client = _client_for(tmp_path)

        created = client.post(
            "/workspaces",
            json={"name": "Acme Rentals", "slug": "acme-rentals", "type": "team"},
            headers=auth_headers(alice),
        )
        assert created.status_code == 201
        workspace_id = created.json()["id"]
        assert created.json()["my_role"] == "owner"

        duplicate = client.post(
            "/workspaces",
            json={"name": "Acme Again", "slug": "acme-rentals", "type": "team"},
            headers=auth_headers(alice),
        )
        assert duplicate.status_code == 409

        invite = client.post(
            f"/workspaces/{workspace_id}/invitations",
            json={"email": "bob@example.com", "role": "manager"},
            headers=auth_headers(alice),
        )
        assert invite.status_code == 201
        token = _token_from(invite.json()["invitation_url"])

        pending = client.get(f"/workspaces/{workspace_id}/invitations", headers=auth_headers(alice))
        assert [item["email"] for item in pending.json()] == ["bob@example.com"]
        assert pending.json()[0]["expiration"]["urgency"] == "low"

        hidden = client.get(f"/workspaces/{workspace_id}", headers=auth_headers(bob))
        assert hidden.status_code == 404

        accepted = client.post("/invitations/accept", json={"token": token}, headers=auth_headers(bob))
        assert accepted.status_code == 200
        assert accepted.json() == {"accepted": True, "workspace_id": workspace_id}

        reused = client.post("/invitations/accept", json={"token": token}, headers=auth_headers(bob))
        assert reused.status_code == 410
        assert reused.json()["detail"] == "This invitation is no longer valid"

        workspace = client.get(f"/workspaces/{workspace_id}", headers=auth_headers(bob))
        assert workspace.status_code == 200
        assert workspace.json()["my_role"] == "manager"

        members = client.get(f"/workspaces/{workspace_id}/members", headers=auth_headers(bob))
        assert [(item["role"], item["user"]["email"]) for item in members.json()] == [
            ("owner", "alice@example.com"),
            ("manager", "bob@example.com"),
        ]
        alice_member_id = members.json()[0]["id"]
        bob_member_id = members.json()[1]["id"]

        too_high = client.post(
            f"/workspaces/{workspace_id}/invitations",
            json={"email": "carol@example.com", "role": "admin"},
            headers=auth_headers(bob),
        )
        assert too_high.status_code == 403

        carol_invite = client.post(
            f"/workspaces/{workspace_id}/invitations",
            json={"email": "carol@example.com", "role": "viewer"},
            headers=auth_headers(bob),
        )
        assert carol_invite.status_code == 201
        carol_token = _token_from(carol_invite.json()["invitation_url"])
        assert client.post("/invitations/decline", json={"token": carol_token}).status_code == 200
        assert client.post("/invitations/decline", json={"token": carol_token}).status_code == 410

        upward = client.patch(
            f"/workspaces/{workspace_id}/members/{alice_member_id}",
            json={"title": "Founder"},
            headers=auth_headers(bob),
        )
        assert upward.status_code == 403

        last_owner = client.delete(
            f"/workspaces/{workspace_id}/members/{alice_member_id}",
            headers=auth_headers(alice),
        )
        assert last_owner.status_code == 409

        demoted = client.patch(
            f"/workspaces/{workspace_id}/members/{bob_member_id}",
            json={"role": "member"},
            headers=auth_headers(alice),
        )
        assert demoted.status_code == 200
        assert demoted.json() == {"ok": True}

        forbidden = client.get(f"/workspaces/{workspace_id}/invitations", headers=auth_headers(bob))
        assert forbidden.status_code == 403

        permission = client.get(f"/workspaces/{workspace_id}/permissions/write", headers=auth_headers(bob))
        assert permission.json() == {"permission": "write", "allowed": True, "role": "member"}

        activity = client.get(f"/workspaces/{workspace_id}/activity?limit=2", headers=auth_headers(alice))
        assert activity.status_code == 200
        assert activity.json()["limit"] == 2
        assert [item["action"] for item in activity.json()["items"]] == ["member_role_changed", "invitation_declined"]

        dashboard = client.get(f"/workspaces/{workspace_id}/dashboard", headers=auth_headers(alice))
        assert dashboard.status_code == 200
        body = dashboard.json()
        assert body["workspace"]["my_role"] == "owner"
        assert body["stats"]["active_members"] == 2
        assert len(body["members"]) == 2
        assert body["pending_invitations"] == []

        listing = client.get("/workspaces", headers=auth_headers(bob))
        assert [(item["workspace_slug"], item["member_role"], item["member_count"]) for item in listing.json()] == [
            ("acme-rentals", "member", 2)
        ]

        deleted = client.delete(f"/workspaces/{workspace_id}", headers=auth_headers(bob))
        assert deleted.status_code == 403
        deleted = client.delete(f"/workspaces/{workspace_id}", headers=auth_headers(alice))
        assert deleted.json() == {"deleted": True}
        assert client.get(f"/workspaces/{workspace_id}", headers=auth_headers(bob)).status_code == 404
    finally:
        api_main.app.dependency_overrides.clear()


def test_requests_without_identity_are_rejected(tmp_path) -> None:
    try:
        client = _client_for(tmp_path)

        assert client.get("/workspaces").status_code == 401
        assert client.get("/workspaces", headers={"Authorization": "Bearer not-a-token"}).status_code == 401
        assert client.post("/invitations/accept", json={"token": "abc"}).status_code == 401
    finally:
        api_main.app.dependency_overrides.clear()


def test_session_cookie_authenticates(tmp_path) -> None:
    alice = make_actor("alice@example.com")
    try:
        client = _client_for(tmp_path)
        token = auth_headers(alice)["Authorization"].split(" ", 1)[1]

        response = client.get("/workspaces", headers={"Cookie": f"sb-access-token={token}"})
        assert response.status_code == 200
        assert response.json() == []
    finally:
        api_main.app.dependency_overrides.clear()


def test_preferences_routes(tmp_path) -> None:
    alice = make_actor("alice@example.com")
    bob = make_actor("bob@example.com")
    try:
        client = _client_for(tmp_path)
        created = client.post(
            "/workspaces",
            json={"name": "Acme Rentals", "slug": "acme-rentals", "type": "team"},
            headers=auth_headers(alice),
        )
        workspace_id = created.json()["id"]

        defaults = client.get("/me/preferences", headers=auth_headers(alice))
        assert defaults.json()["preferred_workspace_view"] == "grid"

        updated = client.put(
            "/me/preferences",
            json={"default_workspace_id": workspace_id, "preferred_workspace_view": "list"},
            headers=auth_headers(alice),
        )
        assert updated.status_code == 200
        assert updated.json()["default_workspace_id"] == workspace_id
        assert updated.json()["preferred_workspace_view"] == "list"

        invalid = client.put("/me/preferences", json={"preferred_workspace_view": "kanban"}, headers=auth_headers(alice))
        assert invalid.status_code == 422

        foreign = client.post(f"/me/workspaces/{workspace_id}/switch", headers=auth_headers(bob))
        assert foreign.status_code == 404

        switched = client.post(f"/me/workspaces/{workspace_id}/switch", headers=auth_headers(alice))
        assert switched.json()["last_workspace_id"] == workspace_id
    finally:
        api_main.app.dependency_overrides.clear()


def test_manager_cannot_grant_permissions_it_lacks(tmp_path) -> None:
    alice = make_actor("alice@example.com")
    bob = make_actor("bob@example.com")
    carol = make_actor("carol@example.com")
    try:
        client = _client_for(tmp_path)
        created = client.post(
            "/workspaces",
            json={"name": "Acme Rentals", "slug": "acme-rentals", "type": "team"},
            headers=auth_headers(alice),
        )
        workspace_id = created.json()["id"]

        for invitee, role in ((bob, "manager"), (carol, "viewer")):
            invite = client.post(
                f"/workspaces/{workspace_id}/invitations",
                json={"email": invitee.email, "role": role},
                headers=auth_headers(alice),
            )
            accepted = client.post(
                "/invitations/accept",
                json={"token": _token_from(invite.json()["invitation_url"])},
                headers=auth_headers(invitee),
            )
            assert accepted.status_code == 200

        members = client.get(f"/workspaces/{workspace_id}/members", headers=auth_headers(alice))
        carol_member_id = next(item["id"] for item in members.json() if item["user"]["email"] == carol.email)

        escalated = client.patch(
            f"/workspaces/{workspace_id}/members/{carol_member_id}",
            json={"permissions": {"delete_workspace": True, "manage_workspace": True}},
            headers=auth_headers(bob),
        )
        assert escalated.status_code == 403

        granted = client.patch(
            f"/workspaces/{workspace_id}/members/{carol_member_id}",
            json={"permissions": {"write": True}},
            headers=auth_headers(bob),
        )
        assert granted.status_code == 200

        assert client.delete(f"/workspaces/{workspace_id}", headers=auth_headers(carol)).status_code == 403
        assert client.get(f"/workspaces/{workspace_id}", headers=auth_headers(carol)).status_code == 200
    finally:
        api_main.app.dependency_overrides.clear()
