"""Role hierarchy and the static role-to-permission table."""

from __future__ import annotations

from typing import Any, Literal, Mapping, Optional


MemberRole = Literal["owner", "admin", "manager", "member", "viewer"]
WorkspacePermission = Literal["read", "write", "manage_members", "manage_workspace", "delete_workspace"]
MemberAction = Literal["invite", "remove", "change_role"]

# Lowest privilege first; index is the hierarchy level.
ROLE_HIERARCHY: tuple[str, ...] = ("viewer", "member", "manager", "admin", "owner")

PERMISSIONS: tuple[str, ...] = ("read", "write", "manage_members", "manage_workspace", "delete_workspace")

# Each role lists every permission of the roles below it.
ROLE_PERMISSIONS: dict[str, frozenset[str]] = {
    "owner": frozenset({"read", "write", "manage_members", "manage_workspace", "delete_workspace"}),
    "admin": frozenset({"read", "write", "manage_members", "manage_workspace"}),
    "manager": frozenset({"read", "write", "manage_members"}),
    "member": frozenset({"read", "write"}),
    "viewer": frozenset({"read"}),
}

INVITE_MIN_ROLE = "manager"


def is_valid_role(role: object) -> bool:
    return isinstance(role, str) and role in ROLE_PERMISSIONS


def role_rank(role: Optional[str]) -> int:
    """Hierarchy level of ``role``; -1 for anything unknown."""

    if not is_valid_role(role):
        return -1
    return ROLE_HIERARCHY.index(role)  # type: ignore[arg-type]


def has_permission(role: Optional[str], permission: str) -> bool:
    if not is_valid_role(role):
        return False
    return permission in ROLE_PERMISSIONS[role]  # type: ignore[index]


def effective_permission(
    role: Optional[str],
    overrides: Optional[Mapping[str, Any]],
    permission: str,
) -> bool:
    """Role table answer unless the member carries an explicit bool override."""

    if not is_valid_role(role):
        return False
    if overrides:
        override = overrides.get(permission)
        if isinstance(override, bool):
            return override
    return has_permission(role, permission)


def can_perform_action(actor_role: Optional[str], target_role: Optional[str], action: str) -> bool:
    """Member-management rule between an actor and a target role.

    ``invite`` only needs the actor at manager level or above. ``remove`` and
    ``change_role`` need the actor strictly above the target, so peers can
    never act on each other.
    """

    actor_level = role_rank(actor_role)
    if actor_level < 0:
        return False

    if action == "invite":
        return actor_level >= role_rank(INVITE_MIN_ROLE)
    if action in ("remove", "change_role"):
        target_level = role_rank(target_role)
        if target_level < 0:
            return False
        return actor_level > target_level
    return False


def can_manage_members(role: Optional[str]) -> bool:
    return has_permission(role, "manage_members")


def can_manage_workspace(role: Optional[str]) -> bool:
    return has_permission(role, "manage_workspace")


def is_workspace_owner(role: Optional[str]) -> bool:
    return role == "owner"
