"""Workspace slug validation and generation."""

from __future__ import annotations

import re
import unicodedata


SLUG_PATTERN = re.compile(r"^[a-z0-9]([a-z0-9-]*[a-z0-9])?$")
SLUG_MIN_LENGTH = 2
SLUG_MAX_LENGTH = 63

_DISALLOWED = re.compile(r"[^a-z0-9\s-]")
_WHITESPACE = re.compile(r"\s+")
_HYPHENS = re.compile(r"-+")


def validate_workspace_slug(slug: object) -> bool:
    if not isinstance(slug, str):
        return False
    if not SLUG_MIN_LENGTH <= len(slug) <= SLUG_MAX_LENGTH:
        return False
    return SLUG_PATTERN.fullmatch(slug) is not None


def generate_workspace_slug(name: str) -> str:
    """Derive a URL-safe slug from a display name.

    Accented letters are folded to ASCII first ("Café" -> "cafe"). The result
    may still be shorter than the minimum length for very short names, so
    callers validate before use. A name that is already a valid slug is
    returned as-is, hyphen runs included.
    """

    if validate_workspace_slug(name):
        return name

    folded = unicodedata.normalize("NFKD", name).encode("ascii", "ignore").decode("ascii")
    slug = _DISALLOWED.sub("", folded.lower())
    slug = _WHITESPACE.sub("-", slug.strip())
    slug = _HYPHENS.sub("-", slug).strip("-")
    return slug[:SLUG_MAX_LENGTH].rstrip("-")
