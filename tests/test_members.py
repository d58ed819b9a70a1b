from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select

from tests.conftest import add_user, build_session, make_actor, seed_workspace
from workspace_hub.storage.models import WorkspaceActivity, WorkspaceMember
from workspace_hub.workspaces.errors import NotFoundError, ValidationError
from workspace_hub.workspaces.members import (
    check_workspace_permission,
    count_active_owners,
    get_member_role,
    get_workspace_members,
    remove_member,
    update_member,
)
from workspace_hub.workspaces.service import delete_workspace


def _add_member(session, workspace_id: str, email: str, role: str, joined_at: datetime) -> WorkspaceMember:
    user = add_user(session, email)
    member = WorkspaceMember(workspace_id=workspace_id, user_id=user.user_id, role=role, joined_at=joined_at)
    session.add(member)
    session.commit()
    return member


def _actions(session, workspace_id: str) -> list[str]:
    return list(
        session.scalars(
            select(WorkspaceActivity.action)
            .where(WorkspaceActivity.workspace_id == workspace_id)
            .order_by(WorkspaceActivity.created_at.asc())
        ).all()
    )


def test_members_are_ordered_by_rank_then_join_time() -> None:
    session = build_session()
    try:
        workspace = seed_workspace(session, owner=make_actor("alice@example.com"))
        base = datetime(2026, 1, 1, tzinfo=timezone.utc)
        _add_member(session, workspace.id, "v@example.com", "viewer", base)
        _add_member(session, workspace.id, "m2@example.com", "member", base + timedelta(days=2))
        _add_member(session, workspace.id, "m1@example.com", "member", base + timedelta(days=1))
        _add_member(session, workspace.id, "admin@example.com", "admin", base + timedelta(days=3))
        gone = _add_member(session, workspace.id, "gone@example.com", "manager", base)
        gone.is_active = False
        session.commit()

        members = get_workspace_members(session, workspace_id=workspace.id)
        assert [(member.role, member.user.email) for member in members] == [
            ("owner", "alice@example.com"),
            ("admin", "admin@example.com"),
            ("member", "m1@example.com"),
            ("member", "m2@example.com"),
            ("viewer", "v@example.com"),
        ]
    finally:
        session.close()


def test_get_member_role_requires_active_membership_and_workspace() -> None:
    session = build_session()
    try:
        owner = make_actor("alice@example.com")
        workspace = seed_workspace(session, owner=owner)
        assert get_member_role(session, workspace_id=workspace.id, user_id=owner.user_id) == "owner"
        assert get_member_role(session, workspace_id=workspace.id, user_id="stranger") is None

        delete_workspace(session, workspace_id=workspace.id)
        assert get_member_role(session, workspace_id=workspace.id, user_id=owner.user_id) is None
    finally:
        session.close()


def test_update_member_changes_role_and_logs_transition() -> None:
    session = build_session()
    try:
        owner = make_actor("alice@example.com")
        workspace = seed_workspace(session, owner=owner)
        member = _add_member(session, workspace.id, "bob@example.com", "member", datetime.now(timezone.utc))

        assert update_member(
            session,
            actor_user_id=owner.user_id,
            workspace_id=workspace.id,
            member_id=member.id,
            changes={"role": "manager", "title": "Ops lead"},
        ) is True

        session.refresh(member)
        assert member.role == "manager"
        assert member.title == "Ops lead"
        entry = session.scalar(
            select(WorkspaceActivity).where(WorkspaceActivity.action == "member_role_changed")
        )
        assert entry.meta["from"] == "member"
        assert entry.meta["to"] == "manager"
        assert entry.entity_id == member.id
    finally:
        session.close()


def test_update_member_without_role_change_does_not_log_role_event() -> None:
    session = build_session()
    try:
        workspace = seed_workspace(session, owner=make_actor("alice@example.com"))
        member = _add_member(session, workspace.id, "bob@example.com", "member", datetime.now(timezone.utc))

        update_member(
            session,
            actor_user_id=None,
            workspace_id=workspace.id,
            member_id=member.id,
            changes={"permissions": {"manage_members": True}},
        )
        session.refresh(member)
        assert member.permissions == {"manage_members": True}
        assert "member_role_changed" not in _actions(session, workspace.id)
    finally:
        session.close()


def test_update_member_validates_input() -> None:
    session = build_session()
    try:
        workspace = seed_workspace(session, owner=make_actor("alice@example.com"))
        member = _add_member(session, workspace.id, "bob@example.com", "member", datetime.now(timezone.utc))
        with pytest.raises(ValidationError):
            update_member(
                session,
                actor_user_id=None,
                workspace_id=workspace.id,
                member_id=member.id,
                changes={"role": "emperor"},
            )
        with pytest.raises(ValidationError):
            update_member(
                session,
                actor_user_id=None,
                workspace_id=workspace.id,
                member_id=member.id,
                changes={"user_id": "someone-else"},
            )
        with pytest.raises(NotFoundError):
            update_member(
                session,
                actor_user_id=None,
                workspace_id=workspace.id,
                member_id="missing",
                changes={"role": "viewer"},
            )
    finally:
        session.close()


def test_remove_member_soft_deletes_once() -> None:
    session = build_session()
    try:
        owner = make_actor("alice@example.com")
        workspace = seed_workspace(session, owner=owner)
        member = _add_member(session, workspace.id, "bob@example.com", "member", datetime.now(timezone.utc))

        assert remove_member(session, actor_user_id=owner.user_id, workspace_id=workspace.id, member_id=member.id)
        assert remove_member(session, actor_user_id=owner.user_id, workspace_id=workspace.id, member_id=member.id)

        session.refresh(member)
        assert member.is_active is False
        assert _actions(session, workspace.id).count("member_removed") == 1
        assert member.id not in {m.id for m in get_workspace_members(session, workspace_id=workspace.id)}

        with pytest.raises(NotFoundError):
            remove_member(session, actor_user_id=None, workspace_id=workspace.id, member_id="missing")
    finally:
        session.close()


def test_check_workspace_permission_uses_role_and_overrides() -> None:
    session = build_session()
    try:
        owner = make_actor("alice@example.com")
        workspace = seed_workspace(session, owner=owner)
        member = _add_member(session, workspace.id, "bob@example.com", "member", datetime.now(timezone.utc))

        def allowed(user_id: str, permission: str) -> bool:
            return check_workspace_permission(
                session,
                workspace_id=workspace.id,
                user_id=user_id,
                permission=permission,
            )

        assert allowed(owner.user_id, "delete_workspace") is True
        assert allowed(member.user_id, "write") is True
        assert allowed(member.user_id, "manage_members") is False
        assert allowed(member.user_id, "not_a_permission") is False
        assert allowed("stranger", "read") is False

        member.permissions = {"manage_members": True, "write": False}
        session.commit()
        assert allowed(member.user_id, "manage_members") is True
        assert allowed(member.user_id, "write") is False

        member.is_active = False
        session.commit()
        assert allowed(member.user_id, "read") is False
    finally:
        session.close()


def test_count_active_owners() -> None:
    session = build_session()
    try:
        workspace = seed_workspace(session, owner=make_actor("alice@example.com"))
        assert count_active_owners(session, workspace_id=workspace.id) == 1
        co_owner = _add_member(session, workspace.id, "carol@example.com", "owner", datetime.now(timezone.utc))
        assert count_active_owners(session, workspace_id=workspace.id) == 2
        co_owner.is_active = False
        session.commit()
        assert count_active_owners(session, workspace_id=workspace.id) == 1
    finally:
        session.close()
