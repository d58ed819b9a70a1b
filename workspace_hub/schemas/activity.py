"""Pydantic schemas for the workspace activity feed."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel

from workspace_hub.storage.models import WorkspaceActivity
from workspace_hub.workspaces.formatting import format_activity_description


class WorkspaceActivityResponse(BaseModel):
    id: str
    workspace_id: str
    user_id: Optional[str]
    action: str
    entity_type: Optional[str]
    entity_id: Optional[str]
    description: Optional[str]
    display_text: str
    metadata: dict[str, Any]
    created_at: datetime


class ActivityPageResponse(BaseModel):
    items: list[WorkspaceActivityResponse]
    limit: int
    offset: int


def activity_to_response(activity: WorkspaceActivity) -> WorkspaceActivityResponse:
    metadata = dict(activity.meta or {})
    return WorkspaceActivityResponse(
        id=activity.id,
        workspace_id=activity.workspace_id,
        user_id=activity.user_id,
        action=activity.action,
        entity_type=activity.entity_type,
        entity_id=activity.entity_id,
        description=activity.description,
        display_text=format_activity_description(activity.action, activity.description, metadata),
        metadata=metadata,
        created_at=activity.created_at,
    )
