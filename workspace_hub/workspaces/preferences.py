"""Per-user workspace preferences: default and last-used workspace, view options."""

from __future__ import annotations

from typing import Any, Mapping, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from workspace_hub.storage.models import UserWorkspacePreferences, utcnow
from workspace_hub.workspaces.errors import ValidationError


PREFERENCE_FIELDS = frozenset(
    {"default_workspace_id", "last_workspace_id", "workspace_sidebar_collapsed", "preferred_workspace_view"}
)
WORKSPACE_VIEWS = ("grid", "list")


def get_user_preferences(session: Session, *, user_id: str) -> Optional[UserWorkspacePreferences]:
    return session.scalar(select(UserWorkspacePreferences).where(UserWorkspacePreferences.user_id == user_id))


def update_user_preferences(
    session: Session,
    *,
    user_id: str,
    changes: Mapping[str, Any],
) -> UserWorkspacePreferences:
    """Upsert the caller's preferences row with ``changes``.

    Workspace ids are stored as given; callers that accept ids from users
    check membership first.
    """

    unknown = set(changes) - PREFERENCE_FIELDS
    if unknown:
        raise ValidationError(f"Unknown preferences: {', '.join(sorted(unknown))}")
    view = changes.get("preferred_workspace_view")
    if view is not None and view not in WORKSPACE_VIEWS:
        raise ValidationError(f"preferred_workspace_view must be one of: {', '.join(WORKSPACE_VIEWS)}")

    try:
        preferences = get_user_preferences(session, user_id=user_id)
        if preferences is None:
            preferences = UserWorkspacePreferences(user_id=user_id)
            session.add(preferences)
        for field, value in changes.items():
            if field in ("workspace_sidebar_collapsed", "preferred_workspace_view") and value is None:
                continue
            setattr(preferences, field, value)
        preferences.updated_at = utcnow()
        session.commit()
    except Exception:
        session.rollback()
        raise
    return preferences


def switch_to_workspace(session: Session, *, user_id: str, workspace_id: str) -> UserWorkspacePreferences:
    return update_user_preferences(session, user_id=user_id, changes={"last_workspace_id": workspace_id})


def set_default_workspace(session: Session, *, user_id: str, workspace_id: str) -> UserWorkspacePreferences:
    return update_user_preferences(
        session,
        user_id=user_id,
        changes={"default_workspace_id": workspace_id, "last_workspace_id": workspace_id},
    )
