"""Workspace entity store: create, read, update and soft-delete."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional
import uuid

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from workspace_hub.auth.jwt import AuthContext
from workspace_hub.core.logger import get_logger
from workspace_hub.core.metrics import record_workspace_created
from workspace_hub.schemas.workspace import WorkspaceAddress, WorkspaceSettings
from workspace_hub.storage.models import User, UserWorkspacePreferences, Workspace, WorkspaceMember, utcnow
from workspace_hub.workspaces.activity import log_activity
from workspace_hub.workspaces.errors import AuthError, ConflictError, NotFoundError, ValidationError
from workspace_hub.workspaces.slugs import validate_workspace_slug
from workspace_hub.workspaces.types import WORKSPACE_TYPES, get_workspace_type_config


NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 50
DESCRIPTION_MAX_LENGTH = 200

UPDATABLE_FIELDS = frozenset(
    {
        "name",
        "description",
        "website_url",
        "logo_url",
        "primary_color",
        "billing_email",
        "timezone",
        "country",
        "address",
        "settings",
    }
)

logger = get_logger("workspace_hub.workspaces")


@dataclass(frozen=True)
class UserWorkspace:
    workspace_id: str
    workspace_name: str
    workspace_slug: str
    workspace_type: str
    member_role: str
    is_default: bool
    member_count: int


def _validate_name(name: str) -> str:
    normalized = (name or "").strip()
    if not NAME_MIN_LENGTH <= len(normalized) <= NAME_MAX_LENGTH:
        raise ValidationError(
            f"Workspace name must be between {NAME_MIN_LENGTH} and {NAME_MAX_LENGTH} characters"
        )
    return normalized


def _validate_description(description: Optional[str]) -> Optional[str]:
    if description is None:
        return None
    if len(description) > DESCRIPTION_MAX_LENGTH:
        raise ValidationError(f"Description must be at most {DESCRIPTION_MAX_LENGTH} characters")
    return description


def ensure_user(session: Session, *, user_id: str, email: Optional[str]) -> User:
    """Return the local mirror of an authenticated identity, creating it on first sight.

    Flushes but does not commit, so the caller's transaction owns the insert.
    """

    user = session.get(User, user_id)
    if user is not None:
        if email and user.email != email.lower():
            user.email = email.lower()
        return user

    if not email:
        raise AuthError("Authenticated identity has no email address")
    user = User(id=user_id, email=email.lower())
    session.add(user)
    session.flush()
    return user


def create_workspace(
    session: Session,
    *,
    actor: Optional[AuthContext],
    name: str,
    slug: str,
    workspace_type: str,
    description: Optional[str] = None,
    website_url: Optional[str] = None,
    timezone: Optional[str] = None,
    country: Optional[str] = None,
) -> Workspace:
    """Create a workspace and its owner membership in one transaction."""

    if actor is None or not actor.user_id:
        raise AuthError("User not authenticated")

    name = _validate_name(name)
    description = _validate_description(description)
    if workspace_type not in WORKSPACE_TYPES:
        raise ValidationError(f"Unknown workspace type: {workspace_type}")
    if not validate_workspace_slug(slug):
        raise ValidationError(
            "Slug must be 2-63 lowercase letters, digits or hyphens and cannot start or end with a hyphen"
        )

    existing = session.scalar(select(Workspace.id).where(Workspace.slug == slug))
    if existing is not None:
        raise ConflictError("Workspace slug already taken")

    type_config = get_workspace_type_config(workspace_type)
    try:
        user = ensure_user(session, user_id=actor.user_id, email=actor.email)
        workspace = Workspace(
            id=str(uuid.uuid4()),
            name=name,
            slug=slug,
            description=description,
            type=workspace_type,
            website_url=website_url,
            timezone=timezone or "UTC",
            country=country.upper() if country else None,
            settings=WorkspaceSettings().model_dump(),
            features={feature: True for feature in type_config.features},
            meta={},
        )
        session.add(workspace)
        session.flush()

        session.add(
            WorkspaceMember(
                id=str(uuid.uuid4()),
                workspace_id=workspace.id,
                user_id=user.id,
                role="owner",
                joined_at=utcnow(),
            )
        )
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        raise ConflictError("Workspace slug already taken") from exc
    except Exception:
        session.rollback()
        raise

    record_workspace_created(workspace_type=workspace_type)
    logger.info("workspace_created", workspace_id=workspace.id, slug=slug, type=workspace_type)
    log_activity(
        session,
        workspace_id=workspace.id,
        action="workspace_created",
        user_id=actor.user_id,
        entity_type="workspace",
        entity_id=workspace.id,
        metadata={"name": name, "slug": slug, "type": workspace_type},
    )
    return workspace


def get_workspace(session: Session, workspace_id: str) -> Optional[Workspace]:
    """Active workspace by id; ``None`` covers both unknown and deactivated."""

    return session.scalar(
        select(Workspace).where(Workspace.id == workspace_id, Workspace.is_active.is_(True))
    )


def _normalize_changes(workspace: Workspace, changes: Mapping[str, Any]) -> dict[str, Any]:
    unknown = set(changes) - UPDATABLE_FIELDS
    if unknown:
        raise ValidationError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")

    normalized: dict[str, Any] = {}
    for field, value in changes.items():
        if field == "name":
            normalized[field] = _validate_name(value)
        elif field == "description":
            normalized[field] = _validate_description(value)
        elif field == "country" and value is not None:
            normalized[field] = str(value).upper()
        elif field == "settings":
            merged = {**(workspace.settings or {}), **(value or {})}
            try:
                normalized[field] = WorkspaceSettings.model_validate(merged).model_dump()
            except PydanticValidationError as exc:
                raise ValidationError(f"Invalid workspace settings: {exc.errors()[0]['msg']}") from exc
        elif field == "address" and value is not None:
            try:
                normalized[field] = WorkspaceAddress.model_validate(value).model_dump(exclude_none=True)
            except PydanticValidationError as exc:
                raise ValidationError(f"Invalid address: {exc.errors()[0]['msg']}") from exc
        elif field in ("timezone", "primary_color") and value is None:
            raise ValidationError(f"{field} cannot be cleared")
        else:
            normalized[field] = value
    return normalized


def update_workspace(
    session: Session,
    *,
    actor_user_id: Optional[str],
    workspace_id: str,
    changes: Mapping[str, Any],
) -> Workspace:
    workspace = get_workspace(session, workspace_id)
    if workspace is None:
        raise NotFoundError("Workspace not found")

    normalized = _normalize_changes(workspace, changes)
    try:
        for field, value in normalized.items():
            setattr(workspace, field, value)
        workspace.updated_at = utcnow()
        session.commit()
    except Exception:
        session.rollback()
        raise

    log_activity(
        session,
        workspace_id=workspace.id,
        action="workspace_updated",
        user_id=actor_user_id,
        description="Workspace settings updated",
        entity_type="workspace",
        entity_id=workspace.id,
        metadata={"fields": sorted(normalized)},
    )
    return workspace


def delete_workspace(session: Session, *, workspace_id: str, actor_user_id: Optional[str] = None) -> bool:
    """Deactivate a workspace. Members, invitations and activity stay for history."""

    workspace = session.get(Workspace, workspace_id)
    if workspace is None:
        raise NotFoundError("Workspace not found")
    if not workspace.is_active:
        return True

    workspace.is_active = False
    workspace.updated_at = utcnow()
    session.commit()

    logger.info("workspace_deactivated", workspace_id=workspace_id)
    log_activity(
        session,
        workspace_id=workspace_id,
        action="workspace_deleted",
        user_id=actor_user_id,
        entity_type="workspace",
        entity_id=workspace_id,
    )
    return True


def get_user_workspaces(session: Session, *, user_id: str) -> list[UserWorkspace]:
    member_counts = (
        select(
            WorkspaceMember.workspace_id.label("workspace_id"),
            func.count(WorkspaceMember.id).label("member_count"),
        )
        .where(WorkspaceMember.is_active.is_(True))
        .group_by(WorkspaceMember.workspace_id)
        .subquery()
    )
    default_workspace_id = session.scalar(
        select(UserWorkspacePreferences.default_workspace_id).where(UserWorkspacePreferences.user_id == user_id)
    )

    statement = (
        select(Workspace, WorkspaceMember.role, member_counts.c.member_count)
        .join(WorkspaceMember, WorkspaceMember.workspace_id == Workspace.id)
        .outerjoin(member_counts, member_counts.c.workspace_id == Workspace.id)
        .where(
            WorkspaceMember.user_id == user_id,
            WorkspaceMember.is_active.is_(True),
            Workspace.is_active.is_(True),
        )
        .order_by(Workspace.name.asc(), Workspace.id.asc())
    )

    return [
        UserWorkspace(
            workspace_id=workspace.id,
            workspace_name=workspace.name,
            workspace_slug=workspace.slug,
            workspace_type=workspace.type,
            member_role=role,
            is_default=workspace.id == default_workspace_id,
            member_count=int(member_count or 0),
        )
        for workspace, role, member_count in session.execute(statement).all()
    ]
