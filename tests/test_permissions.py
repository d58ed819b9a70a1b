from __future__ import annotations

import itertools

import pytest

from workspace_hub.workspaces.permissions import (
    PERMISSIONS,
    ROLE_HIERARCHY,
    ROLE_PERMISSIONS,
    can_manage_members,
    can_manage_workspace,
    can_perform_action,
    effective_permission,
    has_permission,
    is_workspace_owner,
    role_rank,
)


def test_role_permissions_are_monotonic_along_hierarchy() -> None:
    for lower, higher in zip(ROLE_HIERARCHY, ROLE_HIERARCHY[1:]):
        assert ROLE_PERMISSIONS[lower] <= ROLE_PERMISSIONS[higher], (lower, higher)


def test_role_permission_table() -> None:
    assert ROLE_PERMISSIONS["owner"] == frozenset(PERMISSIONS)
    assert ROLE_PERMISSIONS["admin"] == frozenset(PERMISSIONS) - {"delete_workspace"}
    assert ROLE_PERMISSIONS["manager"] == {"read", "write", "manage_members"}
    assert ROLE_PERMISSIONS["member"] == {"read", "write"}
    assert ROLE_PERMISSIONS["viewer"] == {"read"}


def test_every_role_can_read_and_only_owner_can_delete() -> None:
    for role in ROLE_HIERARCHY:
        assert has_permission(role, "read") is True
        assert has_permission(role, "delete_workspace") is (role == "owner")


@pytest.mark.parametrize("role", ["", "superuser", None, "Owner"])
def test_unknown_roles_have_no_permissions(role) -> None:
    assert has_permission(role, "read") is False
    assert role_rank(role) == -1
    assert can_perform_action(role, "viewer", "remove") is False


def test_unknown_permission_is_denied() -> None:
    assert has_permission("owner", "launch_rockets") is False


def test_invite_requires_manager_or_above() -> None:
    for role in ROLE_HIERARCHY:
        expected = role_rank(role) >= role_rank("manager")
        assert can_perform_action(role, "viewer", "invite") is expected


@pytest.mark.parametrize("action", ["remove", "change_role"])
def test_remove_and_change_role_need_strictly_higher_rank(action: str) -> None:
    for actor, target in itertools.product(ROLE_HIERARCHY, repeat=2):
        expected = role_rank(actor) > role_rank(target)
        assert can_perform_action(actor, target, action) is expected, (actor, target)


def test_peers_never_act_on_each_other() -> None:
    for role in ROLE_HIERARCHY:
        assert can_perform_action(role, role, "remove") is False
        assert can_perform_action(role, role, "change_role") is False


def test_unknown_action_is_denied() -> None:
    assert can_perform_action("owner", "viewer", "transfer") is False


def test_unknown_target_role_is_denied() -> None:
    assert can_perform_action("owner", "ghost", "remove") is False


def test_effective_permission_prefers_explicit_override() -> None:
    assert effective_permission("member", {"manage_members": True}, "manage_members") is True
    assert effective_permission("admin", {"manage_workspace": False}, "manage_workspace") is False
    assert effective_permission("member", {"manage_members": None}, "manage_members") is False
    assert effective_permission("member", {}, "write") is True
    assert effective_permission("ghost", {"read": True}, "read") is False


def test_role_helpers() -> None:
    assert can_manage_members("manager") is True
    assert can_manage_members("member") is False
    assert can_manage_workspace("admin") is True
    assert can_manage_workspace("manager") is False
    assert is_workspace_owner("owner") is True
    assert is_workspace_owner("admin") is False
