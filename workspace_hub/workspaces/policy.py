"""Authorization checks run at the call boundary before any mutation."""

from __future__ import annotations

from typing import Any, Mapping, Optional

from sqlalchemy.orm import Session

from workspace_hub.storage.models import Workspace, WorkspaceMember
from workspace_hub.workspaces.errors import ConflictError, NotFoundError, PermissionDeniedError
from workspace_hub.workspaces.invitations import count_pending_invitations
from workspace_hub.workspaces.members import count_active_members, count_active_owners, get_active_membership
from workspace_hub.workspaces.permissions import can_perform_action, effective_permission, role_rank
from workspace_hub.workspaces.types import get_workspace_type_config


def require_membership(session: Session, *, workspace_id: str, user_id: str) -> WorkspaceMember:
    """Active membership or ``NotFoundError``, so outsiders cannot probe workspace ids."""

    membership = get_active_membership(session, workspace_id=workspace_id, user_id=user_id)
    if membership is None:
        raise NotFoundError("Workspace not found")
    return membership


def require_permission(session: Session, *, workspace_id: str, user_id: str, permission: str) -> WorkspaceMember:
    membership = require_membership(session, workspace_id=workspace_id, user_id=user_id)
    if not effective_permission(membership.role, membership.permissions, permission):
        raise PermissionDeniedError(f"Missing permission: {permission}")
    return membership


def authorize_invite(
    session: Session,
    *,
    workspace: Workspace,
    actor_member: WorkspaceMember,
    role: str,
    email: Optional[str] = None,
) -> None:
    if not can_perform_action(actor_member.role, role, "invite"):
        raise PermissionDeniedError("Only managers and above can invite members")
    if role_rank(role) > role_rank(actor_member.role):
        raise PermissionDeniedError("Cannot invite with a role above your own")

    settings = workspace.settings or {}
    if settings.get("allow_member_invites") is False and not effective_permission(
        actor_member.role, actor_member.permissions, "manage_workspace"
    ):
        raise PermissionDeniedError("Member invitations are disabled for this workspace")

    _ensure_seat_available(session, workspace=workspace, exclude_email=email)


def _ensure_seat_available(session: Session, *, workspace: Workspace, exclude_email: Optional[str] = None) -> None:
    """Active members plus pending invitations must stay below the type's limit."""

    type_config = get_workspace_type_config(workspace.type)
    if type_config.is_unlimited:
        return
    seats_used = count_active_members(session, workspace_id=workspace.id) + count_pending_invitations(
        session, workspace_id=workspace.id, exclude_email=exclude_email
    )
    if seats_used >= type_config.max_members:
        raise ConflictError(f"Workspace member limit reached ({type_config.max_members})")


def authorize_member_change(
    session: Session,
    *,
    actor_member: WorkspaceMember,
    target_member: WorkspaceMember,
    new_role: Optional[str] = None,
    deactivate: bool = False,
    reactivate: bool = False,
    permissions: Optional[Mapping[str, Any]] = None,
) -> None:
    """Guard a change to ``target_member`` by ``actor_member``.

    The last active owner is checked first: demoting or removing them is a
    conflict whoever asks, including the owner themselves. Permission
    overrides may only grant what the actor holds, and reactivating a removed
    member takes a seat like an invitation does.
    """

    demotes_owner = target_member.role == "owner" and new_role is not None and new_role != "owner"
    if target_member.is_active and (deactivate or demotes_owner) and target_member.role == "owner":
        if count_active_owners(session, workspace_id=target_member.workspace_id) <= 1:
            raise ConflictError("A workspace must keep at least one active owner")

    action = "remove" if deactivate else "change_role"
    if not can_perform_action(actor_member.role, target_member.role, action):
        raise PermissionDeniedError("Cannot manage a member at or above your role")
    if new_role is not None and new_role != target_member.role and role_rank(new_role) >= role_rank(actor_member.role):
        raise PermissionDeniedError("Cannot assign a role at or above your own")

    for permission, granted in (permissions or {}).items():
        if granted is True and not effective_permission(actor_member.role, actor_member.permissions, permission):
            raise PermissionDeniedError(f"Cannot grant a permission you do not hold: {permission}")

    if reactivate and not target_member.is_active:
        workspace = session.get(Workspace, target_member.workspace_id)
        if workspace is None:
            raise NotFoundError("Workspace not found")
        _ensure_seat_available(session, workspace=workspace)
