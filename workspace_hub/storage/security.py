"""Invitation token helpers."""

from __future__ import annotations

import hashlib
import secrets


INVITATION_TOKEN_BYTES = 32


def generate_invitation_token() -> str:
    """Return an unguessable URL-safe token (43 characters for 32 bytes)."""

    return secrets.token_urlsafe(INVITATION_TOKEN_BYTES)


def token_fingerprint(token: str) -> str:
    """Short, non-reversible identifier that is safe to put in logs."""

    return hashlib.sha256(token.encode("utf-8")).hexdigest()[:12]
