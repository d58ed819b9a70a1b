"""Invitation lifecycle: issue, accept, decline, cancel and resend.

State machine per invitation::

    pending -> accepted | declined | expired

Terminal states are sinks. Every transition out of ``pending`` is a single
conditional UPDATE so two concurrent callers can never both move the same row.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
import math
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from workspace_hub.auth.jwt import AuthContext
from workspace_hub.core.config import get_settings
from workspace_hub.core.logger import get_logger
from workspace_hub.core.metrics import record_invitation_accept, record_invitation_created
from workspace_hub.storage.models import User, WorkspaceInvitation, WorkspaceMember, ensure_utc, utcnow
from workspace_hub.storage.security import generate_invitation_token, token_fingerprint
from workspace_hub.workspaces.activity import log_activity
from workspace_hub.workspaces.errors import ConflictError, NotFoundError, ValidationError
from workspace_hub.workspaces.permissions import is_valid_role
from workspace_hub.workspaces.service import ensure_user, get_workspace


INVALID_INVITATION_MESSAGE = "This invitation is no longer valid"

INVITATION_STATUSES = ("pending", "accepted", "declined", "expired")

logger = get_logger("workspace_hub.invitations")


@dataclass(frozen=True)
class InvitationExpirationStatus:
    is_expired: bool
    expires_in: str
    urgency: str


def invitation_ttl() -> timedelta:
    return timedelta(days=get_settings().invitation_ttl_days)


def normalize_email(email: str) -> str:
    normalized = (email or "").strip().lower()
    local, _, domain = normalized.partition("@")
    if not local or not domain:
        raise ValidationError("A valid email address is required")
    return normalized


def get_invitation(session: Session, *, workspace_id: str, invitation_id: str) -> Optional[WorkspaceInvitation]:
    return session.scalar(
        select(WorkspaceInvitation).where(
            WorkspaceInvitation.id == invitation_id,
            WorkspaceInvitation.workspace_id == workspace_id,
        )
    )


def get_invitation_by_token(session: Session, token: str) -> Optional[WorkspaceInvitation]:
    if not token:
        return None
    return session.scalar(select(WorkspaceInvitation).where(WorkspaceInvitation.token == token))


def get_workspace_invitations(session: Session, *, workspace_id: str) -> list[WorkspaceInvitation]:
    """Pending invitations, newest first. Pending rows past their expiry are included."""

    statement = (
        select(WorkspaceInvitation)
        .where(
            WorkspaceInvitation.workspace_id == workspace_id,
            WorkspaceInvitation.status == "pending",
        )
        .order_by(WorkspaceInvitation.created_at.desc(), WorkspaceInvitation.id.desc())
    )
    return list(session.scalars(statement).all())


def count_pending_invitations(session: Session, *, workspace_id: str, exclude_email: Optional[str] = None) -> int:
    statement = select(func.count(WorkspaceInvitation.id)).where(
        WorkspaceInvitation.workspace_id == workspace_id,
        WorkspaceInvitation.status == "pending",
        WorkspaceInvitation.expires_at > utcnow(),
    )
    if exclude_email:
        statement = statement.where(WorkspaceInvitation.email != exclude_email)
    return int(session.scalar(statement) or 0)


def _is_active_member_email(session: Session, *, workspace_id: str, email: str) -> bool:
    member_id = session.scalar(
        select(WorkspaceMember.id)
        .join(User, User.id == WorkspaceMember.user_id)
        .where(
            WorkspaceMember.workspace_id == workspace_id,
            WorkspaceMember.is_active.is_(True),
            func.lower(User.email) == email,
        )
    )
    return member_id is not None


def invite_member(
    session: Session,
    *,
    actor_user_id: str,
    workspace_id: str,
    email: str,
    role: str,
    message: Optional[str] = None,
) -> str:
    """Issue a pending invitation and return its id.

    Authorization (invite rule, capacity) is the policy layer's job. A still
    pending invitation for the same address is superseded.
    """

    if not is_valid_role(role):
        raise ValidationError(f"Unknown role: {role}")
    email = normalize_email(email)

    workspace = get_workspace(session, workspace_id)
    if workspace is None:
        raise NotFoundError("Workspace not found")
    if _is_active_member_email(session, workspace_id=workspace_id, email=email):
        raise ConflictError("User is already a member of this workspace")

    now = utcnow()
    try:
        session.execute(
            update(WorkspaceInvitation)
            .where(
                WorkspaceInvitation.workspace_id == workspace_id,
                WorkspaceInvitation.email == email,
                WorkspaceInvitation.status == "pending",
            )
            .values(status="expired", updated_at=now)
            .execution_options(synchronize_session=False)
        )
        invitation = WorkspaceInvitation(
            workspace_id=workspace_id,
            email=email,
            role=role,
            message=message,
            status="pending",
            invited_by=actor_user_id,
            expires_at=now + invitation_ttl(),
            token=generate_invitation_token(),
            created_at=now,
            updated_at=now,
        )
        session.add(invitation)
        session.commit()
    except Exception:
        session.rollback()
        raise

    record_invitation_created(role=role)
    logger.info(
        "invitation_created",
        workspace_id=workspace_id,
        invitation_id=invitation.id,
        role=role,
        token_fp=token_fingerprint(invitation.token),
    )
    log_activity(
        session,
        workspace_id=workspace_id,
        action="member_invited",
        user_id=actor_user_id,
        entity_type="invitation",
        entity_id=invitation.id,
        metadata={"email": email, "role": role},
    )
    return invitation.id


def _reject_accept(reason: str, token: str) -> bool:
    record_invitation_accept(outcome="rejected")
    logger.info("invitation_accept_rejected", reason=reason, token_fp=token_fingerprint(token or ""))
    return False


def accept_invitation(session: Session, *, token: str, actor: AuthContext) -> bool:
    """Consume ``token`` for ``actor``. Never raises for an unusable token.

    The status flip and the membership write share one transaction; the flip
    only counts when the conditional UPDATE touched exactly one row. An already
    active member keeps their current role.
    """

    invitation = get_invitation_by_token(session, token)
    if invitation is None:
        return _reject_accept("unknown_token", token)
    if get_workspace(session, invitation.workspace_id) is None:
        return _reject_accept("workspace_inactive", token)

    now = utcnow()
    try:
        result = session.execute(
            update(WorkspaceInvitation)
            .where(
                WorkspaceInvitation.id == invitation.id,
                WorkspaceInvitation.token == token,
                WorkspaceInvitation.status == "pending",
                WorkspaceInvitation.expires_at > now,
            )
            .values(status="accepted", accepted_by=actor.user_id, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            session.rollback()
            return _reject_accept("not_pending", token)

        user = ensure_user(session, user_id=actor.user_id, email=actor.email)
        membership = session.scalar(
            select(WorkspaceMember).where(
                WorkspaceMember.workspace_id == invitation.workspace_id,
                WorkspaceMember.user_id == user.id,
            )
        )
        if membership is None:
            session.add(
                WorkspaceMember(
                    workspace_id=invitation.workspace_id,
                    user_id=user.id,
                    role=invitation.role,
                    invited_by=invitation.invited_by,
                    joined_at=now,
                )
            )
        elif not membership.is_active:
            membership.is_active = True
            membership.role = invitation.role
            membership.invited_by = invitation.invited_by
            membership.joined_at = now
            membership.updated_at = now
        session.commit()
    except IntegrityError:
        session.rollback()
        return _reject_accept("membership_conflict", token)
    except Exception:
        session.rollback()
        raise

    session.expire(invitation)
    record_invitation_accept(outcome="accepted")
    logger.info(
        "invitation_accepted",
        workspace_id=invitation.workspace_id,
        user_id=actor.user_id,
        token_fp=token_fingerprint(token),
    )
    log_activity(
        session,
        workspace_id=invitation.workspace_id,
        action="member_joined",
        user_id=actor.user_id,
        entity_type="invitation",
        entity_id=invitation.id,
        metadata={"role": invitation.role},
    )
    return True


def decline_invitation(session: Session, *, token: str, actor_user_id: Optional[str] = None) -> bool:
    invitation = get_invitation_by_token(session, token)
    if invitation is None:
        return False

    now = utcnow()
    try:
        result = session.execute(
            update(WorkspaceInvitation)
            .where(
                WorkspaceInvitation.id == invitation.id,
                WorkspaceInvitation.status == "pending",
                WorkspaceInvitation.expires_at > now,
            )
            .values(status="declined", updated_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            session.rollback()
            return False
        session.commit()
    except Exception:
        session.rollback()
        raise

    session.expire(invitation)
    log_activity(
        session,
        workspace_id=invitation.workspace_id,
        action="invitation_declined",
        user_id=actor_user_id,
        entity_type="invitation",
        entity_id=invitation.id,
    )
    return True


def cancel_invitation(
    session: Session,
    *,
    workspace_id: str,
    invitation_id: str,
    actor_user_id: Optional[str] = None,
) -> bool:
    """Revoke a pending invitation by marking it expired.

    Cancelling an expired invitation succeeds without change; accepted and
    declined invitations stay as they are and report ``False``.
    """

    invitation = get_invitation(session, workspace_id=workspace_id, invitation_id=invitation_id)
    if invitation is None:
        raise NotFoundError("Invitation not found")
    if invitation.status == "expired":
        return True
    if invitation.status != "pending":
        return False

    try:
        result = session.execute(
            update(WorkspaceInvitation)
            .where(WorkspaceInvitation.id == invitation_id, WorkspaceInvitation.status == "pending")
            .values(status="expired", updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            session.rollback()
            return False
        session.commit()
    except Exception:
        session.rollback()
        raise

    session.expire(invitation)
    log_activity(
        session,
        workspace_id=workspace_id,
        action="invitation_cancelled",
        user_id=actor_user_id,
        entity_type="invitation",
        entity_id=invitation_id,
    )
    return True


def resend_invitation(
    session: Session,
    *,
    workspace_id: str,
    invitation_id: str,
    actor_user_id: Optional[str] = None,
) -> bool:
    """Give a pending invitation a fresh expiry window. The token is kept."""

    invitation = get_invitation(session, workspace_id=workspace_id, invitation_id=invitation_id)
    if invitation is None:
        raise NotFoundError("Invitation not found")
    if invitation.status != "pending":
        return False

    now = utcnow()
    try:
        result = session.execute(
            update(WorkspaceInvitation)
            .where(WorkspaceInvitation.id == invitation_id, WorkspaceInvitation.status == "pending")
            .values(expires_at=now + invitation_ttl(), updated_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            session.rollback()
            return False
        session.commit()
    except Exception:
        session.rollback()
        raise

    session.expire(invitation)
    log_activity(
        session,
        workspace_id=workspace_id,
        action="invitation_resent",
        user_id=actor_user_id,
        entity_type="invitation",
        entity_id=invitation_id,
    )
    return True


def get_invitation_expiration_status(
    expires_at: datetime,
    now: Optional[datetime] = None,
) -> InvitationExpirationStatus:
    """Presentation bucket for an expiry: high within a day, medium within three."""

    current = ensure_utc(now) if now is not None else utcnow()
    remaining = ensure_utc(expires_at) - current
    if remaining <= timedelta(0):
        return InvitationExpirationStatus(is_expired=True, expires_in="Expired", urgency="high")

    hours = math.ceil(remaining.total_seconds() / 3600)
    if hours <= 24:
        return InvitationExpirationStatus(is_expired=False, expires_in=f"{hours}h remaining", urgency="high")

    days = math.ceil(hours / 24)
    urgency = "medium" if hours <= 72 else "low"
    return InvitationExpirationStatus(is_expired=False, expires_in=f"{days}d remaining", urgency=urgency)


def create_invitation_url(token: str, base_url: Optional[str] = None) -> str:
    """Shareable accept link; relative when no public base URL is configured."""

    base = base_url if base_url is not None else get_settings().app_public_base_url
    return f"{(base or '').rstrip('/')}/invite/{token}"
