"""Verify access tokens issued by the external identity provider."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt
from fastapi import HTTPException, status

from workspace_hub.core.config import get_settings


TOKEN_LEEWAY_SECONDS = 30


@dataclass(frozen=True)
class AuthContext:
    """Authenticated caller. Workspace roles are resolved per request from the store."""

    user_id: str
    email: str


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid or expired token",
    )


def create_access_token(context: AuthContext) -> tuple[str, int]:
    """Issue a token with the provider's claim layout, for tests and local tooling."""

    settings = get_settings()
    expires_in = settings.access_token_exp_minutes * 60
    issued_at = datetime.now(timezone.utc)
    claims: dict[str, Any] = {
        "sub": context.user_id,
        "email": context.email,
        "aud": settings.jwt_audience,
        "role": "authenticated",
        "iat": int(issued_at.timestamp()),
        "exp": int((issued_at + timedelta(seconds=expires_in)).timestamp()),
    }
    return jwt.encode(claims, settings.secret_key, algorithm=settings.jwt_algorithm), expires_in


def decode_access_token(token: str) -> AuthContext:
    settings = get_settings()
    try:
        claims = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            leeway=TOKEN_LEEWAY_SECONDS,
            options={"require": ["sub", "exp"]},
        )
    except jwt.PyJWTError as exc:
        raise _unauthorized() from exc

    user_id = str(claims["sub"]).strip()
    if not user_id:
        raise _unauthorized()
    return AuthContext(user_id=user_id, email=str(claims.get("email") or ""))
