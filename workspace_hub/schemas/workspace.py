"""Pydantic schemas for workspace management API."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from workspace_hub.storage.models import Workspace
from workspace_hub.workspaces.permissions import MemberRole
from workspace_hub.workspaces.types import WorkspaceType


class WorkspaceAddress(BaseModel):
    model_config = ConfigDict(extra="forbid")

    street: Optional[str] = Field(default=None, max_length=200)
    city: Optional[str] = Field(default=None, max_length=120)
    state: Optional[str] = Field(default=None, max_length=120)
    zip: Optional[str] = Field(default=None, max_length=20)
    country: Optional[str] = Field(default=None, max_length=2)


class WorkspaceSettings(BaseModel):
    """Known workspace settings; unknown keys are kept as extensions."""

    model_config = ConfigDict(extra="allow")

    allow_member_invites: bool = True
    require_invitation_approval: bool = False
    default_member_role: MemberRole = "member"
    notify_new_members: bool = True
    notify_member_activity: bool = False
    activity_digest_frequency: Literal["never", "daily", "weekly"] = "weekly"
    enable_public_listings: bool = True
    enable_booking_notifications: bool = True
    enable_analytics: bool = True
    custom_domain: Optional[str] = Field(default=None, max_length=253)
    hide_branding: bool = False
    integrations: dict[str, Any] = Field(default_factory=dict)


class WorkspaceCreateRequest(BaseModel):
    name: str = Field(min_length=2, max_length=50)
    slug: str = Field(min_length=1, max_length=128)
    type: WorkspaceType
    description: Optional[str] = Field(default=None, max_length=200)
    website_url: Optional[str] = Field(default=None, max_length=512)
    timezone: Optional[str] = Field(default=None, max_length=64)
    country: Optional[str] = Field(default=None, min_length=2, max_length=2)


class WorkspaceUpdateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(default=None, min_length=2, max_length=50)
    description: Optional[str] = Field(default=None, max_length=200)
    website_url: Optional[str] = Field(default=None, max_length=512)
    logo_url: Optional[str] = Field(default=None, max_length=512)
    primary_color: Optional[str] = Field(default=None, pattern=r"^#[0-9a-fA-F]{6}$")
    billing_email: Optional[EmailStr] = None
    timezone: Optional[str] = Field(default=None, max_length=64)
    country: Optional[str] = Field(default=None, min_length=2, max_length=2)
    address: Optional[WorkspaceAddress] = None
    settings: Optional[dict[str, Any]] = None


class WorkspaceResponse(BaseModel):
    id: str
    name: str
    slug: str
    description: Optional[str]
    type: str
    is_active: bool
    website_url: Optional[str]
    logo_url: Optional[str]
    primary_color: str
    subscription_id: Optional[str]
    billing_email: Optional[str]
    timezone: str
    country: Optional[str]
    address: Optional[dict[str, Any]]
    settings: dict[str, Any]
    features: dict[str, Any]
    metadata: dict[str, Any]
    created_at: datetime
    updated_at: datetime
    my_role: Optional[str] = None


class UserWorkspaceResponse(BaseModel):
    workspace_id: str
    workspace_name: str
    workspace_slug: str
    workspace_type: str
    member_role: str
    is_default: bool
    member_count: int


class PermissionCheckResponse(BaseModel):
    permission: str
    allowed: bool
    role: Optional[str]


def workspace_to_response(workspace: Workspace, *, my_role: Optional[str] = None) -> WorkspaceResponse:
    return WorkspaceResponse(
        id=workspace.id,
        name=workspace.name,
        slug=workspace.slug,
        description=workspace.description,
        type=workspace.type,
        is_active=workspace.is_active,
        website_url=workspace.website_url,
        logo_url=workspace.logo_url,
        primary_color=workspace.primary_color,
        subscription_id=workspace.subscription_id,
        billing_email=workspace.billing_email,
        timezone=workspace.timezone,
        country=workspace.country,
        address=workspace.address,
        settings=dict(workspace.settings or {}),
        features=dict(workspace.features or {}),
        metadata=dict(workspace.meta or {}),
        created_at=workspace.created_at,
        updated_at=workspace.updated_at,
        my_role=my_role,
    )
