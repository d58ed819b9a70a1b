"""Human-readable labels for roles, member counts and activity entries."""

from __future__ import annotations

from typing import Any, Mapping, Optional


ROLE_DISPLAY_NAMES = {
    "owner": "Owner",
    "admin": "Admin",
    "manager": "Manager",
    "member": "Member",
    "viewer": "Viewer",
}


def get_role_display_name(role: str) -> str:
    return ROLE_DISPLAY_NAMES.get(role, role.replace("_", " ").title())


def format_member_count(count: int) -> str:
    if count == 1:
        return "1 member"
    return f"{count:,} members"


def format_activity_description(
    action: str,
    description: Optional[str] = None,
    metadata: Optional[Mapping[str, Any]] = None,
) -> str:
    if description:
        return description

    metadata = metadata or {}
    if action == "workspace_created":
        return "Created the workspace"
    if action == "member_invited":
        return f"Invited {metadata.get('email', 'someone')} as {metadata.get('role', 'member')}"
    if action == "member_joined":
        return "Joined the workspace"
    if action == "member_removed":
        return "Removed a member"
    if action == "member_role_changed" and "to" in metadata:
        return f"Changed a member's role from {metadata.get('from')} to {metadata['to']}"
    if action == "listing_created":
        return "Created a new listing"
    if action == "booking_created":
        return "Created a new booking"
    return action.replace("_", " ")
