"""Pydantic schemas for invitation API."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from workspace_hub.storage.models import WorkspaceInvitation
from workspace_hub.workspaces.invitations import create_invitation_url, get_invitation_expiration_status
from workspace_hub.workspaces.permissions import MemberRole


class InviteMemberRequest(BaseModel):
    email: EmailStr
    role: MemberRole = "member"
    message: Optional[str] = Field(default=None, max_length=500)


class InvitationTokenRequest(BaseModel):
    token: str = Field(min_length=1, max_length=128)


class ExpirationStatusResponse(BaseModel):
    is_expired: bool
    expires_in: str
    urgency: str


class InvitationCreatedResponse(BaseModel):
    invitation_id: str
    expires_at: datetime
    invitation_url: str


class InvitationResponse(BaseModel):
    id: str
    workspace_id: str
    email: str
    role: str
    message: Optional[str]
    status: str
    invited_by: str
    accepted_by: Optional[str]
    expires_at: datetime
    created_at: datetime
    invitation_url: str
    expiration: ExpirationStatusResponse


class InvitationAcceptResponse(BaseModel):
    accepted: bool
    workspace_id: Optional[str] = None


class InvitationActionResponse(BaseModel):
    ok: bool


def invitation_to_response(invitation: WorkspaceInvitation) -> InvitationResponse:
    expiration = get_invitation_expiration_status(invitation.expires_at)
    return InvitationResponse(
        id=invitation.id,
        workspace_id=invitation.workspace_id,
        email=invitation.email,
        role=invitation.role,
        message=invitation.message,
        status=invitation.status,
        invited_by=invitation.invited_by,
        accepted_by=invitation.accepted_by,
        expires_at=invitation.expires_at,
        created_at=invitation.created_at,
        invitation_url=create_invitation_url(invitation.token),
        expiration=ExpirationStatusResponse(
            is_expired=expiration.is_expired,
            expires_in=expiration.expires_in,
            urgency=expiration.urgency,
        ),
    )
