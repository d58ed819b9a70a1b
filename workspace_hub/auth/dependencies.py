"""FastAPI dependencies for the authenticated caller."""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from workspace_hub.auth.jwt import AuthContext
from workspace_hub.auth.middleware import AUTH_CONTEXT_KEY
from workspace_hub.storage.db import get_session
from workspace_hub.workspaces.service import ensure_user


def get_optional_auth_context(request: Request) -> Optional[AuthContext]:
    return getattr(request.state, AUTH_CONTEXT_KEY, None)


def require_auth_context(auth: Optional[AuthContext] = Depends(get_optional_auth_context)) -> AuthContext:
    if auth is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    return auth


def require_user(
    auth: AuthContext = Depends(require_auth_context),
    session: Session = Depends(get_session),
) -> AuthContext:
    """Authenticated caller whose local user row is guaranteed to exist."""

    try:
        ensure_user(session, user_id=auth.user_id, email=auth.email)
        if session.new or session.dirty:
            session.commit()
    except Exception:
        session.rollback()
        raise
    return auth
