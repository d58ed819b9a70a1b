"""Pydantic schemas for workspace membership API."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from workspace_hub.storage.models import WorkspaceMember
from workspace_hub.workspaces.formatting import get_role_display_name
from workspace_hub.workspaces.permissions import MemberRole


class MemberPermissions(BaseModel):
    """Per-member overrides of the role table; ``None`` defers to the role."""

    model_config = ConfigDict(extra="allow")

    read: Optional[bool] = None
    write: Optional[bool] = None
    manage_members: Optional[bool] = None
    manage_workspace: Optional[bool] = None
    delete_workspace: Optional[bool] = None


class MemberUpdateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    role: Optional[MemberRole] = None
    title: Optional[str] = Field(default=None, max_length=120)
    permissions: Optional[MemberPermissions] = None
    is_active: Optional[bool] = None


class MemberActionResponse(BaseModel):
    ok: bool


class MemberUser(BaseModel):
    id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    image_url: Optional[str] = None


class WorkspaceMemberResponse(BaseModel):
    id: str
    workspace_id: str
    user_id: str
    role: str
    role_display_name: str
    title: Optional[str]
    permissions: dict[str, Any]
    is_active: bool
    joined_at: datetime
    invited_by: Optional[str]
    last_active_at: Optional[datetime]
    user: Optional[MemberUser] = None


def member_to_response(member: WorkspaceMember) -> WorkspaceMemberResponse:
    user = member.user
    return WorkspaceMemberResponse(
        id=member.id,
        workspace_id=member.workspace_id,
        user_id=member.user_id,
        role=member.role,
        role_display_name=get_role_display_name(member.role),
        title=member.title,
        permissions=dict(member.permissions or {}),
        is_active=member.is_active,
        joined_at=member.joined_at,
        invited_by=member.invited_by,
        last_active_at=member.last_active_at,
        user=(
            MemberUser(
                id=user.id,
                email=user.email,
                first_name=user.first_name,
                last_name=user.last_name,
                image_url=user.image_url,
            )
            if user is not None
            else None
        ),
    )
