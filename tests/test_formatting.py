from __future__ import annotations

from workspace_hub.workspaces.formatting import (
    format_activity_description,
    format_member_count,
    get_role_display_name,
)


def test_role_display_names() -> None:
    assert get_role_display_name("owner") == "Owner"
    assert get_role_display_name("viewer") == "Viewer"
    assert get_role_display_name("billing_admin") == "Billing Admin"


def test_format_member_count() -> None:
    assert format_member_count(0) == "0 members"
    assert format_member_count(1) == "1 member"
    assert format_member_count(2) == "2 members"
    assert format_member_count(12500) == "12,500 members"


def test_activity_description_prefers_stored_text() -> None:
    assert format_activity_description("member_joined", "Bob joined via link") == "Bob joined via link"


def test_activity_description_from_action_and_metadata() -> None:
    assert format_activity_description("workspace_created") == "Created the workspace"
    assert (
        format_activity_description("member_invited", metadata={"email": "bob@example.com", "role": "member"})
        == "Invited bob@example.com as member"
    )
    assert (
        format_activity_description("member_role_changed", metadata={"from": "member", "to": "manager"})
        == "Changed a member's role from member to manager"
    )
    assert format_activity_description("subscription_updated") == "subscription updated"
