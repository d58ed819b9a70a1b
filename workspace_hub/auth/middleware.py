"""Resolve the caller's identity from the bearer header or session cookie."""

from __future__ import annotations

from typing import Optional

from fastapi import HTTPException, Request

from workspace_hub.auth.jwt import AuthContext, decode_access_token
from workspace_hub.core.config import get_settings
from workspace_hub.core.logger import get_logger


AUTH_CONTEXT_KEY = "auth_context"

logger = get_logger("workspace_hub.auth")


def extract_access_token(request: Request) -> Optional[str]:
    authorization = request.headers.get("authorization")
    if authorization:
        scheme, _, credentials = authorization.partition(" ")
        if scheme.lower() == "bearer" and credentials.strip():
            return credentials.strip()
        return None

    cookie_name = get_settings().auth_cookie_name
    if cookie_name:
        return request.cookies.get(cookie_name) or None
    return None


def resolve_request_auth_context(request: Request) -> Optional[AuthContext]:
    token = extract_access_token(request)
    if not token:
        return None

    try:
        return decode_access_token(token)
    except HTTPException:
        logger.debug("access_token_rejected", path=request.url.path)
        return None
