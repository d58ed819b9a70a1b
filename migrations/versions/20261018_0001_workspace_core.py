"""workspace membership core

Revision ID: 20261018_0001
Revises:
Create Date: 2026-10-18

"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261018_0001"
down_revision = None
branch_labels = None
depends_on = None


WORKSPACE_SCOPED_TABLES = [
    "workspace_members",
    "workspace_invitations",
    "workspace_activity",
    "listings",
    "bookings",
]


def _is_postgresql() -> bool:
    return op.get_bind().dialect.name == "postgresql"


def _timestamp(name: str) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP"))


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("first_name", sa.String(length=120), nullable=True),
        sa.Column("last_name", sa.String(length=120), nullable=True),
        sa.Column("image_url", sa.String(length=512), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "workspaces",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=50), nullable=False),
        sa.Column("slug", sa.String(length=63), nullable=False),
        sa.Column("description", sa.String(length=200), nullable=True),
        sa.Column("type", sa.String(length=16), nullable=False, server_default="personal"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("website_url", sa.String(length=512), nullable=True),
        sa.Column("logo_url", sa.String(length=512), nullable=True),
        sa.Column("primary_color", sa.String(length=16), nullable=False, server_default="#3b82f6"),
        sa.Column("subscription_id", sa.String(length=128), nullable=True),
        sa.Column("billing_email", sa.String(length=255), nullable=True),
        sa.Column("timezone", sa.String(length=64), nullable=False, server_default="UTC"),
        sa.Column("country", sa.String(length=2), nullable=True),
        sa.Column("address", sa.JSON(), nullable=True),
        sa.Column("settings", sa.JSON(), nullable=False),
        sa.Column("features", sa.JSON(), nullable=False),
        sa.Column("metadata", sa.JSON(), nullable=False),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("slug", name="uq_workspaces_slug"),
        sa.CheckConstraint("type IN ('personal', 'team', 'business', 'enterprise')", name="ck_workspaces_type"),
    )

    op.create_table(
        "workspace_members",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("workspace_id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("role", sa.String(length=16), nullable=False, server_default="member"),
        sa.Column("title", sa.String(length=120), nullable=True),
        sa.Column("permissions", sa.JSON(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        _timestamp("joined_at"),
        sa.Column("invited_by", sa.String(length=36), nullable=True),
        sa.Column("last_active_at", sa.DateTime(timezone=True), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.ForeignKeyConstraint(["workspace_id"], ["workspaces.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["invited_by"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("workspace_id", "user_id", name="uq_workspace_members_workspace_user"),
        sa.CheckConstraint(
            "role IN ('owner', 'admin', 'manager', 'member', 'viewer')",
            name="ck_workspace_members_role",
        ),
    )
    op.create_index(
        "ix_workspace_members_workspace_active",
        "workspace_members",
        ["workspace_id", "is_active"],
        unique=False,
    )
    op.create_index("ix_workspace_members_user", "workspace_members", ["user_id"], unique=False)

    op.create_table(
        "workspace_invitations",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("workspace_id", sa.String(length=36), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("role", sa.String(length=16), nullable=False, server_default="member"),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="pending"),
        sa.Column("invited_by", sa.String(length=36), nullable=False),
        sa.Column("accepted_by", sa.String(length=36), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("token", sa.String(length=64), nullable=False),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.ForeignKeyConstraint(["workspace_id"], ["workspaces.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["invited_by"], ["users.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["accepted_by"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("token", name="uq_workspace_invitations_token"),
        sa.CheckConstraint(
            "status IN ('pending', 'accepted', 'declined', 'expired')",
            name="ck_workspace_invitations_status",
        ),
    )
    op.create_index(
        "ix_workspace_invitations_workspace_status",
        "workspace_invitations",
        ["workspace_id", "status"],
        unique=False,
    )
    op.create_index("ix_workspace_invitations_email", "workspace_invitations", ["email"], unique=False)

    op.create_table(
        "workspace_activity",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("workspace_id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=True),
        sa.Column("action", sa.String(length=64), nullable=False),
        sa.Column("entity_type", sa.String(length=64), nullable=True),
        sa.Column("entity_id", sa.String(length=64), nullable=True),
        sa.Column("description", sa.String(length=255), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=False),
        sa.Column("ip_address", sa.String(length=64), nullable=True),
        sa.Column("user_agent", sa.String(length=255), nullable=True),
        _timestamp("created_at"),
        sa.ForeignKeyConstraint(["workspace_id"], ["workspaces.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_workspace_activity_workspace_created_at",
        "workspace_activity",
        ["workspace_id", "created_at"],
        unique=False,
    )

    op.create_table(
        "user_workspace_preferences",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("default_workspace_id", sa.String(length=36), nullable=True),
        sa.Column("last_workspace_id", sa.String(length=36), nullable=True),
        sa.Column("workspace_sidebar_collapsed", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("preferred_workspace_view", sa.String(length=32), nullable=False, server_default="grid"),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["default_workspace_id"], ["workspaces.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["last_workspace_id"], ["workspaces.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", name="uq_user_workspace_preferences_user"),
    )

    op.create_table(
        "listings",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("workspace_id", sa.String(length=36), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        _timestamp("created_at"),
        sa.ForeignKeyConstraint(["workspace_id"], ["workspaces.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_listings_workspace_created_at", "listings", ["workspace_id", "created_at"], unique=False)

    op.create_table(
        "bookings",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("workspace_id", sa.String(length=36), nullable=False),
        sa.Column("listing_id", sa.String(length=36), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="pending"),
        sa.Column("total_amount", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("booking_date", sa.Date(), nullable=False),
        _timestamp("created_at"),
        sa.ForeignKeyConstraint(["workspace_id"], ["workspaces.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["listing_id"], ["listings.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_bookings_workspace_created_at", "bookings", ["workspace_id", "created_at"], unique=False)
    op.create_index(
        "ix_bookings_workspace_status_date",
        "bookings",
        ["workspace_id", "status", "booking_date"],
        unique=False,
    )

    if _is_postgresql():
        op.execute(
            """
            CREATE OR REPLACE FUNCTION app_current_workspace_id()
            RETURNS text
            LANGUAGE sql
            STABLE
            AS $$
                SELECT NULLIF(current_setting('app.current_workspace_id', true), '');
            $$;
            """
        )

        # An unset context stays permissive: token lookup and the caller's
        # workspace list run before a workspace is known.
        op.execute("ALTER TABLE workspaces ENABLE ROW LEVEL SECURITY;")
        op.execute("ALTER TABLE workspaces FORCE ROW LEVEL SECURITY;")
        op.execute(
            """
            CREATE POLICY workspaces_scope_policy ON workspaces
            USING (app_current_workspace_id() IS NULL OR id = app_current_workspace_id())
            WITH CHECK (app_current_workspace_id() IS NULL OR id = app_current_workspace_id());
            """
        )

        for table_name in WORKSPACE_SCOPED_TABLES:
            op.execute(f"ALTER TABLE {table_name} ENABLE ROW LEVEL SECURITY;")
            op.execute(f"ALTER TABLE {table_name} FORCE ROW LEVEL SECURITY;")
            op.execute(
                f"""
                CREATE POLICY {table_name}_scope_policy ON {table_name}
                USING (app_current_workspace_id() IS NULL OR workspace_id = app_current_workspace_id())
                WITH CHECK (app_current_workspace_id() IS NULL OR workspace_id = app_current_workspace_id());
                """
            )

        op.execute(
            """
            CREATE OR REPLACE FUNCTION workspace_activity_append_only()
            RETURNS trigger
            LANGUAGE plpgsql
            AS $$
            BEGIN
                RAISE EXCEPTION 'workspace_activity is append-only';
            END;
            $$;
            """
        )
        op.execute(
            """
            CREATE TRIGGER workspace_activity_append_only_trigger
            BEFORE UPDATE OR DELETE ON workspace_activity
            FOR EACH ROW EXECUTE FUNCTION workspace_activity_append_only();
            """
        )


def downgrade() -> None:
    if _is_postgresql():
        op.execute("DROP TRIGGER IF EXISTS workspace_activity_append_only_trigger ON workspace_activity;")
        op.execute("DROP FUNCTION IF EXISTS workspace_activity_append_only;")
        for table_name in reversed(WORKSPACE_SCOPED_TABLES):
            op.execute(f"DROP POLICY IF EXISTS {table_name}_scope_policy ON {table_name};")
        op.execute("DROP POLICY IF EXISTS workspaces_scope_policy ON workspaces;")
        op.execute("DROP FUNCTION IF EXISTS app_current_workspace_id;")

    op.drop_index("ix_bookings_workspace_status_date", table_name="bookings")
    op.drop_index("ix_bookings_workspace_created_at", table_name="bookings")
    op.drop_table("bookings")

    op.drop_index("ix_listings_workspace_created_at", table_name="listings")
    op.drop_table("listings")

    op.drop_table("user_workspace_preferences")

    op.drop_index("ix_workspace_activity_workspace_created_at", table_name="workspace_activity")
    op.drop_table("workspace_activity")

    op.drop_index("ix_workspace_invitations_email", table_name="workspace_invitations")
    op.drop_index("ix_workspace_invitations_workspace_status", table_name="workspace_invitations")
    op.drop_table("workspace_invitations")

    op.drop_index("ix_workspace_members_user", table_name="workspace_members")
    op.drop_index("ix_workspace_members_workspace_active", table_name="workspace_members")
    op.drop_table("workspace_members")

    op.drop_table("workspaces")

    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
