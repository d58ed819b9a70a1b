"""Append-only workspace activity log."""

from __future__ import annotations

from typing import Any, Mapping, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from workspace_hub.core.config import get_settings
from workspace_hub.core.logger import get_logger
from workspace_hub.core.metrics import record_activity_log_failure
from workspace_hub.storage.models import WorkspaceActivity, utcnow
from workspace_hub.workspaces.errors import ValidationError


ACTIVITY_ACTIONS = (
    "workspace_created",
    "workspace_updated",
    "workspace_deleted",
    "member_invited",
    "member_joined",
    "member_removed",
    "member_role_changed",
    "invitation_cancelled",
    "invitation_resent",
    "invitation_declined",
    "listing_created",
    "listing_updated",
    "booking_created",
    "booking_confirmed",
    "subscription_updated",
)

logger = get_logger("workspace_hub.activity")


def log_activity(
    session: Session,
    *,
    workspace_id: str,
    action: str,
    user_id: Optional[str] = None,
    description: Optional[str] = None,
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    metadata: Optional[Mapping[str, Any]] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> bool:
    """Persist one audit entry in its own transaction.

    Callers commit their primary change first. A failed write is rolled back,
    logged and reported as ``False``; it never undoes or blocks the action it
    describes.
    """

    entry = WorkspaceActivity(
        workspace_id=workspace_id,
        user_id=user_id,
        action=action,
        description=description,
        entity_type=entity_type,
        entity_id=entity_id,
        meta=dict(metadata or {}),
        ip_address=ip_address,
        user_agent=user_agent,
        created_at=utcnow(),
    )
    try:
        session.add(entry)
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        record_activity_log_failure(action=action)
        logger.warning(
            "activity_log_failed",
            workspace_id=workspace_id,
            action=action,
            error=str(exc),
        )
        return False
    return True


def get_workspace_activity(
    session: Session,
    *,
    workspace_id: str,
    limit: int = 50,
    offset: int = 0,
) -> list[WorkspaceActivity]:
    """Newest-first page of activity; ``limit`` is capped at ``ACTIVITY_PAGE_MAX``."""

    if limit < 1:
        raise ValidationError("limit must be at least 1")
    if offset < 0:
        raise ValidationError("offset must not be negative")

    page_size = min(limit, get_settings().activity_page_max)
    statement = (
        select(WorkspaceActivity)
        .where(WorkspaceActivity.workspace_id == workspace_id)
        .order_by(WorkspaceActivity.created_at.desc(), WorkspaceActivity.id.desc())
        .limit(page_size)
        .offset(offset)
    )
    return list(session.scalars(statement).all())
