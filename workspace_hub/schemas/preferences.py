"""Pydantic schemas for per-user workspace preferences."""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict

from workspace_hub.storage.models import UserWorkspacePreferences


class PreferencesUpdateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    default_workspace_id: Optional[str] = None
    workspace_sidebar_collapsed: Optional[bool] = None
    preferred_workspace_view: Optional[Literal["grid", "list"]] = None


class PreferencesResponse(BaseModel):
    user_id: str
    default_workspace_id: Optional[str] = None
    last_workspace_id: Optional[str] = None
    workspace_sidebar_collapsed: bool = False
    preferred_workspace_view: str = "grid"
    updated_at: Optional[datetime] = None


def preferences_to_response(
    preferences: Optional[UserWorkspacePreferences],
    *,
    user_id: str,
) -> PreferencesResponse:
    if preferences is None:
        return PreferencesResponse(user_id=user_id)
    return PreferencesResponse(
        user_id=preferences.user_id,
        default_workspace_id=preferences.default_workspace_id,
        last_workspace_id=preferences.last_workspace_id,
        workspace_sidebar_collapsed=preferences.workspace_sidebar_collapsed,
        preferred_workspace_view=preferences.preferred_workspace_view,
        updated_at=preferences.updated_at,
    )
