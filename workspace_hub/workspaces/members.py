"""Workspace membership store.

Hierarchy rules are not re-checked here; the policy layer
(``workspace_hub.workspaces.policy``) runs them before any call that mutates.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import case, func, select
from sqlalchemy.orm import Session, selectinload

from workspace_hub.schemas.member import MemberPermissions
from workspace_hub.storage.models import Workspace, WorkspaceMember, utcnow
from workspace_hub.workspaces.activity import log_activity
from workspace_hub.workspaces.errors import NotFoundError, ValidationError
from workspace_hub.workspaces.permissions import PERMISSIONS, ROLE_HIERARCHY, effective_permission, is_valid_role


MEMBER_UPDATABLE_FIELDS = frozenset({"role", "title", "permissions", "is_active"})

_ROLE_RANK = case(
    {role: level for level, role in enumerate(ROLE_HIERARCHY)},
    value=WorkspaceMember.role,
    else_=-1,
)


def get_workspace_members(session: Session, *, workspace_id: str) -> list[WorkspaceMember]:
    """Active members, owner first, then by rank; ties keep join order."""

    statement = (
        select(WorkspaceMember)
        .options(selectinload(WorkspaceMember.user))
        .where(
            WorkspaceMember.workspace_id == workspace_id,
            WorkspaceMember.is_active.is_(True),
        )
        .order_by(_ROLE_RANK.desc(), WorkspaceMember.joined_at.asc(), WorkspaceMember.id.asc())
    )
    return list(session.scalars(statement).all())


def get_member(session: Session, *, workspace_id: str, member_id: str) -> Optional[WorkspaceMember]:
    """Membership row by id regardless of its active flag."""

    return session.scalar(
        select(WorkspaceMember).where(
            WorkspaceMember.id == member_id,
            WorkspaceMember.workspace_id == workspace_id,
        )
    )


def get_active_membership(session: Session, *, workspace_id: str, user_id: str) -> Optional[WorkspaceMember]:
    """Active membership of ``user_id`` in an active workspace."""

    return session.scalar(
        select(WorkspaceMember)
        .join(Workspace, Workspace.id == WorkspaceMember.workspace_id)
        .where(
            WorkspaceMember.workspace_id == workspace_id,
            WorkspaceMember.user_id == user_id,
            WorkspaceMember.is_active.is_(True),
            Workspace.is_active.is_(True),
        )
    )


def get_member_role(session: Session, *, workspace_id: str, user_id: str) -> Optional[str]:
    membership = get_active_membership(session, workspace_id=workspace_id, user_id=user_id)
    return membership.role if membership is not None else None


def count_active_members(session: Session, *, workspace_id: str) -> int:
    return int(
        session.scalar(
            select(func.count(WorkspaceMember.id)).where(
                WorkspaceMember.workspace_id == workspace_id,
                WorkspaceMember.is_active.is_(True),
            )
        )
        or 0
    )


def count_active_owners(session: Session, *, workspace_id: str) -> int:
    return int(
        session.scalar(
            select(func.count(WorkspaceMember.id)).where(
                WorkspaceMember.workspace_id == workspace_id,
                WorkspaceMember.is_active.is_(True),
                WorkspaceMember.role == "owner",
            )
        )
        or 0
    )


def check_workspace_permission(
    session: Session,
    *,
    workspace_id: str,
    user_id: str,
    permission: str,
) -> bool:
    if permission not in PERMISSIONS:
        return False
    membership = get_active_membership(session, workspace_id=workspace_id, user_id=user_id)
    if membership is None:
        return False
    return effective_permission(membership.role, membership.permissions, permission)


def _normalize_member_changes(changes: Mapping[str, Any]) -> dict[str, Any]:
    unknown = set(changes) - MEMBER_UPDATABLE_FIELDS
    if unknown:
        raise ValidationError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")

    normalized: dict[str, Any] = {}
    for field, value in changes.items():
        if field == "role":
            if not is_valid_role(value):
                raise ValidationError(f"Unknown role: {value}")
            normalized[field] = value
        elif field == "permissions":
            try:
                normalized[field] = MemberPermissions.model_validate(value or {}).model_dump(exclude_none=True)
            except PydanticValidationError as exc:
                raise ValidationError(f"Invalid permissions: {exc.errors()[0]['msg']}") from exc
        elif field == "is_active":
            if not isinstance(value, bool):
                raise ValidationError("is_active must be a boolean")
            normalized[field] = value
        else:
            normalized[field] = value
    return normalized


def update_member(
    session: Session,
    *,
    actor_user_id: Optional[str],
    workspace_id: str,
    member_id: str,
    changes: Mapping[str, Any],
) -> bool:
    member = get_member(session, workspace_id=workspace_id, member_id=member_id)
    if member is None:
        raise NotFoundError("Member not found")

    normalized = _normalize_member_changes(changes)
    previous_role = member.role
    try:
        for field, value in normalized.items():
            setattr(member, field, value)
        member.updated_at = utcnow()
        session.commit()
    except Exception:
        session.rollback()
        raise

    if "role" in normalized and normalized["role"] != previous_role:
        log_activity(
            session,
            workspace_id=workspace_id,
            action="member_role_changed",
            user_id=actor_user_id,
            description="Member role updated",
            entity_type="member",
            entity_id=member_id,
            metadata={"user_id": member.user_id, "from": previous_role, "to": normalized["role"]},
        )
    return True


def remove_member(
    session: Session,
    *,
    actor_user_id: Optional[str],
    workspace_id: str,
    member_id: str,
) -> bool:
    """Deactivate a membership. Removing an inactive member is a successful no-op."""

    member = get_member(session, workspace_id=workspace_id, member_id=member_id)
    if member is None:
        raise NotFoundError("Member not found")
    if not member.is_active:
        return True

    member.is_active = False
    member.updated_at = utcnow()
    session.commit()

    log_activity(
        session,
        workspace_id=workspace_id,
        action="member_removed",
        user_id=actor_user_id,
        description="Member removed from workspace",
        entity_type="member",
        entity_id=member_id,
        metadata={"user_id": member.user_id, "role": member.role},
    )
    return True
