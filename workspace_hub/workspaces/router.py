"""Workspace management API routes."""

from __future__ import annotations

from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session, sessionmaker

from workspace_hub.auth.dependencies import get_optional_auth_context, require_user
from workspace_hub.auth.jwt import AuthContext
from workspace_hub.core.config import get_settings
from workspace_hub.schemas.activity import ActivityPageResponse, activity_to_response
from workspace_hub.schemas.dashboard import (
    WorkspaceDashboardResponse,
    WorkspaceStatsResponse,
    dashboard_to_response,
    stats_to_response,
)
from workspace_hub.schemas.invitation import (
    InvitationAcceptResponse,
    InvitationActionResponse,
    InvitationCreatedResponse,
    InvitationResponse,
    InvitationTokenRequest,
    InviteMemberRequest,
    invitation_to_response,
)
from workspace_hub.schemas.member import (
    MemberActionResponse,
    MemberUpdateRequest,
    WorkspaceMemberResponse,
    member_to_response,
)
from workspace_hub.schemas.preferences import PreferencesResponse, PreferencesUpdateRequest, preferences_to_response
from workspace_hub.schemas.workspace import (
    PermissionCheckResponse,
    UserWorkspaceResponse,
    WorkspaceCreateRequest,
    WorkspaceResponse,
    WorkspaceUpdateRequest,
    workspace_to_response,
)
from workspace_hub.storage.db import get_session, get_session_factory
from workspace_hub.storage.models import Workspace, WorkspaceMember
from workspace_hub.storage.tenant import set_workspace_context
from workspace_hub.workspaces import invitations as invitation_service
from workspace_hub.workspaces import members as member_service
from workspace_hub.workspaces import preferences as preference_service
from workspace_hub.workspaces import service as workspace_service
from workspace_hub.workspaces.activity import get_workspace_activity
from workspace_hub.workspaces.dashboard import get_workspace_dashboard, get_workspace_stats
from workspace_hub.workspaces.errors import ConflictError, NotFoundError
from workspace_hub.workspaces.policy import (
    authorize_invite,
    authorize_member_change,
    require_membership,
    require_permission,
)


router = APIRouter(prefix="/workspaces", tags=["workspaces"])
invitations_router = APIRouter(prefix="/invitations", tags=["invitations"])
me_router = APIRouter(prefix="/me", tags=["preferences"])


def _scoped_member(
    session: Session,
    *,
    workspace_id: str,
    auth: AuthContext,
    permission: Optional[str] = None,
) -> WorkspaceMember:
    set_workspace_context(session, workspace_id)
    if permission is None:
        return require_membership(session, workspace_id=workspace_id, user_id=auth.user_id)
    return require_permission(session, workspace_id=workspace_id, user_id=auth.user_id, permission=permission)


def _load_workspace(session: Session, workspace_id: str) -> Workspace:
    workspace = workspace_service.get_workspace(session, workspace_id)
    if workspace is None:
        raise NotFoundError("Workspace not found")
    return workspace


@router.post("", response_model=WorkspaceResponse, status_code=201)
def create_workspace(
    payload: WorkspaceCreateRequest,
    auth: AuthContext = Depends(require_user),
    session: Session = Depends(get_session),
) -> WorkspaceResponse:
    workspace = workspace_service.create_workspace(
        session,
        actor=auth,
        name=payload.name,
        slug=payload.slug,
        workspace_type=payload.type,
        description=payload.description,
        website_url=payload.website_url,
        timezone=payload.timezone,
        country=payload.country,
    )
    return workspace_to_response(workspace, my_role="owner")


@router.get("", response_model=list[UserWorkspaceResponse])
def list_my_workspaces(
    auth: AuthContext = Depends(require_user),
    session: Session = Depends(get_session),
) -> list[UserWorkspaceResponse]:
    return [
        UserWorkspaceResponse(**asdict(item))
        for item in workspace_service.get_user_workspaces(session, user_id=auth.user_id)
    ]


@router.get("/{workspace_id}", response_model=WorkspaceResponse)
def get_workspace(
    workspace_id: str,
    auth: AuthContext = Depends(require_user),
    session: Session = Depends(get_session),
) -> WorkspaceResponse:
    member = _scoped_member(session, workspace_id=workspace_id, auth=auth, permission="read")
    return workspace_to_response(_load_workspace(session, workspace_id), my_role=member.role)


@router.patch("/{workspace_id}", response_model=WorkspaceResponse)
def update_workspace(
    workspace_id: str,
    payload: WorkspaceUpdateRequest,
    auth: AuthContext = Depends(require_user),
    session: Session = Depends(get_session),
) -> WorkspaceResponse:
    member = _scoped_member(session, workspace_id=workspace_id, auth=auth, permission="manage_workspace")
    workspace = workspace_service.update_workspace(
        session,
        actor_user_id=auth.user_id,
        workspace_id=workspace_id,
        changes=payload.model_dump(exclude_unset=True),
    )
    return workspace_to_response(workspace, my_role=member.role)


@router.delete("/{workspace_id}")
def delete_workspace(
    workspace_id: str,
    auth: AuthContext = Depends(require_user),
    session: Session = Depends(get_session),
) -> dict[str, bool]:
    _scoped_member(session, workspace_id=workspace_id, auth=auth, permission="delete_workspace")
    deleted = workspace_service.delete_workspace(session, workspace_id=workspace_id, actor_user_id=auth.user_id)
    return {"deleted": deleted}


@router.get("/{workspace_id}/members", response_model=list[WorkspaceMemberResponse])
def list_members(
    workspace_id: str,
    auth: AuthContext = Depends(require_user),
    session: Session = Depends(get_session),
) -> list[WorkspaceMemberResponse]:
    _scoped_member(session, workspace_id=workspace_id, auth=auth, permission="read")
    members = member_service.get_workspace_members(session, workspace_id=workspace_id)
    return [member_to_response(member) for member in members]


def _target_member(session: Session, *, workspace_id: str, member_id: str) -> WorkspaceMember:
    target = member_service.get_member(session, workspace_id=workspace_id, member_id=member_id)
    if target is None:
        raise NotFoundError("Member not found")
    return target


@router.patch("/{workspace_id}/members/{member_id}", response_model=MemberActionResponse)
def update_member(
    workspace_id: str,
    member_id: str,
    payload: MemberUpdateRequest,
    auth: AuthContext = Depends(require_user),
    session: Session = Depends(get_session),
) -> MemberActionResponse:
    actor = _scoped_member(session, workspace_id=workspace_id, auth=auth, permission="manage_members")
    target = _target_member(session, workspace_id=workspace_id, member_id=member_id)
    changes = payload.model_dump(exclude_unset=True)
    authorize_member_change(
        session,
        actor_member=actor,
        target_member=target,
        new_role=changes.get("role"),
        deactivate=changes.get("is_active") is False,
        reactivate=changes.get("is_active") is True,
        permissions=changes.get("permissions"),
    )
    updated = member_service.update_member(
        session,
        actor_user_id=auth.user_id,
        workspace_id=workspace_id,
        member_id=member_id,
        changes=changes,
    )
    return MemberActionResponse(ok=updated)


@router.delete("/{workspace_id}/members/{member_id}", response_model=MemberActionResponse)
def remove_member(
    workspace_id: str,
    member_id: str,
    auth: AuthContext = Depends(require_user),
    session: Session = Depends(get_session),
) -> MemberActionResponse:
    actor = _scoped_member(session, workspace_id=workspace_id, auth=auth, permission="manage_members")
    target = _target_member(session, workspace_id=workspace_id, member_id=member_id)
    authorize_member_change(session, actor_member=actor, target_member=target, deactivate=True)
    removed = member_service.remove_member(
        session,
        actor_user_id=auth.user_id,
        workspace_id=workspace_id,
        member_id=member_id,
    )
    return MemberActionResponse(ok=removed)


@router.get("/{workspace_id}/invitations", response_model=list[InvitationResponse])
def list_invitations(
    workspace_id: str,
    auth: AuthContext = Depends(require_user),
    session: Session = Depends(get_session),
) -> list[InvitationResponse]:
    _scoped_member(session, workspace_id=workspace_id, auth=auth, permission="manage_members")
    return [
        invitation_to_response(invitation)
        for invitation in invitation_service.get_workspace_invitations(session, workspace_id=workspace_id)
    ]


@router.post("/{workspace_id}/invitations", response_model=InvitationCreatedResponse, status_code=201)
def invite_member(
    workspace_id: str,
    payload: InviteMemberRequest,
    auth: AuthContext = Depends(require_user),
    session: Session = Depends(get_session),
) -> InvitationCreatedResponse:
    actor = _scoped_member(session, workspace_id=workspace_id, auth=auth)
    workspace = _load_workspace(session, workspace_id)
    email = invitation_service.normalize_email(payload.email)
    authorize_invite(session, workspace=workspace, actor_member=actor, role=payload.role, email=email)

    invitation_id = invitation_service.invite_member(
        session,
        actor_user_id=auth.user_id,
        workspace_id=workspace_id,
        email=email,
        role=payload.role,
        message=payload.message,
    )
    invitation = invitation_service.get_invitation(session, workspace_id=workspace_id, invitation_id=invitation_id)
    return InvitationCreatedResponse(
        invitation_id=invitation_id,
        expires_at=invitation.expires_at,
        invitation_url=invitation_service.create_invitation_url(invitation.token),
    )


@router.post("/{workspace_id}/invitations/{invitation_id}/cancel", response_model=InvitationActionResponse)
def cancel_invitation(
    workspace_id: str,
    invitation_id: str,
    auth: AuthContext = Depends(require_user),
    session: Session = Depends(get_session),
) -> InvitationActionResponse:
    _scoped_member(session, workspace_id=workspace_id, auth=auth, permission="manage_members")
    cancelled = invitation_service.cancel_invitation(
        session,
        workspace_id=workspace_id,
        invitation_id=invitation_id,
        actor_user_id=auth.user_id,
    )
    if not cancelled:
        raise ConflictError("Invitation is no longer pending")
    return InvitationActionResponse(ok=True)


@router.post("/{workspace_id}/invitations/{invitation_id}/resend", response_model=InvitationActionResponse)
def resend_invitation(
    workspace_id: str,
    invitation_id: str,
    auth: AuthContext = Depends(require_user),
    session: Session = Depends(get_session),
) -> InvitationActionResponse:
    _scoped_member(session, workspace_id=workspace_id, auth=auth, permission="manage_members")
    resent = invitation_service.resend_invitation(
        session,
        workspace_id=workspace_id,
        invitation_id=invitation_id,
        actor_user_id=auth.user_id,
    )
    if not resent:
        raise ConflictError("Invitation is no longer pending")
    return InvitationActionResponse(ok=True)


@router.get("/{workspace_id}/activity", response_model=ActivityPageResponse)
def list_activity(
    workspace_id: str,
    limit: int = Query(default=50, ge=1),
    offset: int = Query(default=0, ge=0),
    auth: AuthContext = Depends(require_user),
    session: Session = Depends(get_session),
) -> ActivityPageResponse:
    _scoped_member(session, workspace_id=workspace_id, auth=auth, permission="read")
    items = get_workspace_activity(session, workspace_id=workspace_id, limit=limit, offset=offset)
    return ActivityPageResponse(
        items=[activity_to_response(item) for item in items],
        limit=min(limit, get_settings().activity_page_max),
        offset=offset,
    )


@router.get("/{workspace_id}/stats", response_model=WorkspaceStatsResponse)
def workspace_stats(
    workspace_id: str,
    auth: AuthContext = Depends(require_user),
    session: Session = Depends(get_session),
) -> WorkspaceStatsResponse:
    _scoped_member(session, workspace_id=workspace_id, auth=auth, permission="read")
    return stats_to_response(get_workspace_stats(session, workspace_id=workspace_id))


@router.get("/{workspace_id}/dashboard", response_model=WorkspaceDashboardResponse)
def workspace_dashboard(
    workspace_id: str,
    auth: AuthContext = Depends(require_user),
    session: Session = Depends(get_session),
    session_factory: sessionmaker = Depends(get_session_factory),
) -> WorkspaceDashboardResponse:
    member = _scoped_member(session, workspace_id=workspace_id, auth=auth, permission="read")
    dashboard = get_workspace_dashboard(session_factory, workspace_id=workspace_id)
    return dashboard_to_response(dashboard, my_role=member.role)


@router.get("/{workspace_id}/permissions/{permission}", response_model=PermissionCheckResponse)
def check_permission(
    workspace_id: str,
    permission: str,
    auth: AuthContext = Depends(require_user),
    session: Session = Depends(get_session),
) -> PermissionCheckResponse:
    member = _scoped_member(session, workspace_id=workspace_id, auth=auth)
    allowed = member_service.check_workspace_permission(
        session,
        workspace_id=workspace_id,
        user_id=auth.user_id,
        permission=permission,
    )
    return PermissionCheckResponse(permission=permission, allowed=allowed, role=member.role)


@invitations_router.post("/accept", response_model=InvitationAcceptResponse)
def accept_invitation(
    payload: InvitationTokenRequest,
    auth: AuthContext = Depends(require_user),
    session: Session = Depends(get_session),
) -> InvitationAcceptResponse:
    if not invitation_service.accept_invitation(session, token=payload.token, actor=auth):
        raise HTTPException(status_code=status.HTTP_410_GONE, detail=invitation_service.INVALID_INVITATION_MESSAGE)
    invitation = invitation_service.get_invitation_by_token(session, payload.token)
    return InvitationAcceptResponse(accepted=True, workspace_id=invitation.workspace_id if invitation else None)


@invitations_router.post("/decline", response_model=InvitationActionResponse)
def decline_invitation(
    payload: InvitationTokenRequest,
    auth: Optional[AuthContext] = Depends(get_optional_auth_context),
    session: Session = Depends(get_session),
) -> InvitationActionResponse:
    declined = invitation_service.decline_invitation(
        session,
        token=payload.token,
        actor_user_id=auth.user_id if auth else None,
    )
    if not declined:
        raise HTTPException(status_code=status.HTTP_410_GONE, detail=invitation_service.INVALID_INVITATION_MESSAGE)
    return InvitationActionResponse(ok=True)


@me_router.get("/preferences", response_model=PreferencesResponse)
def get_preferences(
    auth: AuthContext = Depends(require_user),
    session: Session = Depends(get_session),
) -> PreferencesResponse:
    preferences = preference_service.get_user_preferences(session, user_id=auth.user_id)
    return preferences_to_response(preferences, user_id=auth.user_id)


@me_router.put("/preferences", response_model=PreferencesResponse)
def update_preferences(
    payload: PreferencesUpdateRequest,
    auth: AuthContext = Depends(require_user),
    session: Session = Depends(get_session),
) -> PreferencesResponse:
    changes = payload.model_dump(exclude_unset=True)
    default_workspace_id = changes.get("default_workspace_id")
    if default_workspace_id:
        require_membership(session, workspace_id=default_workspace_id, user_id=auth.user_id)
    preferences = preference_service.update_user_preferences(session, user_id=auth.user_id, changes=changes)
    return preferences_to_response(preferences, user_id=auth.user_id)


@me_router.post("/workspaces/{workspace_id}/switch", response_model=PreferencesResponse)
def switch_workspace(
    workspace_id: str,
    auth: AuthContext = Depends(require_user),
    session: Session = Depends(get_session),
) -> PreferencesResponse:
    require_membership(session, workspace_id=workspace_id, user_id=auth.user_id)
    preferences = preference_service.switch_to_workspace(session, user_id=auth.user_id, workspace_id=workspace_id)
    return preferences_to_response(preferences, user_id=auth.user_id)


@me_router.post("/workspaces/{workspace_id}/default", response_model=PreferencesResponse)
def set_default_workspace(
    workspace_id: str,
    auth: AuthContext = Depends(require_user),
    session: Session = Depends(get_session),
) -> PreferencesResponse:
    require_membership(session, workspace_id=workspace_id, user_id=auth.user_id)
    preferences = preference_service.set_default_workspace(session, user_id=auth.user_id, workspace_id=workspace_id)
    return preferences_to_response(preferences, user_id=auth.user_id)
