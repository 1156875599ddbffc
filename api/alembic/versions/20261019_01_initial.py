"""Initial schema: users, projects, comments, mentions, notifications, share links."""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "20261019_01_initial"
down_revision = None
branch_labels = None
depends_on = None


def _uuid_pk() -> sa.Column:
    return sa.Column(
        "id",
        postgresql.UUID(as_uuid=True),
        primary_key=True,
        server_default=sa.text("gen_random_uuid()"),
    )


def _created_at(name: str = "created_at") -> sa.Column:
    return sa.Column(
        name,
        sa.TIMESTAMP(timezone=True),
        server_default=sa.text("NOW()"),
    )


def upgrade() -> None:
    op.execute("CREATE EXTENSION IF NOT EXISTS pgcrypto")

    op.create_table(
        "users",
        _uuid_pk(),
        sa.Column("username", sa.String(64), nullable=False),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("display_name", sa.Text(), nullable=True),
        _created_at(),
        sa.UniqueConstraint("username", name="uq_users_username"),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )
    op.create_index("idx_users_username_lower", "users", [sa.text("lower(username)")], unique=True)

    op.create_table(
        "projects",
        _uuid_pk(),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column(
            "owner_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        _created_at(),
    )

    op.create_table(
        "project_members",
        _uuid_pk(),
        sa.Column(
            "project_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("projects.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("role", sa.String(32), nullable=False, server_default="viewer"),
        sa.Column(
            "added_by",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        _created_at("joined_at"),
        sa.UniqueConstraint("project_id", "user_id", name="uq_project_members_project_user"),
    )
    op.create_index("idx_project_members_user", "project_members", ["user_id"])

    op.create_table(
        "project_comments",
        _uuid_pk(),
        sa.Column(
            "project_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("projects.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "author_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "parent_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("project_comments.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("file_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("version_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("timestamp_ms", sa.Integer(), nullable=True),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("resolved", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("edited", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        _created_at(),
        _created_at("updated_at"),
        sa.CheckConstraint("length(body) <= 4000", name="ck_project_comment_body_length"),
    )
    op.create_index(
        "idx_project_comments_project",
        "project_comments",
        ["project_id", sa.text("created_at DESC")],
    )

    op.create_table(
        "comment_mentions",
        _uuid_pk(),
        sa.Column(
            "comment_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("project_comments.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "mentioned_user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        _created_at(),
        sa.UniqueConstraint(
            "comment_id",
            "mentioned_user_id",
            name="uq_comment_mentions_comment_user",
        ),
    )
    op.create_index("idx_comment_mentions_user", "comment_mentions", ["mentioned_user_id"])

    op.create_table(
        "notifications",
        _uuid_pk(),
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("type", sa.String(32), nullable=False),
        sa.Column(
            "comment_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("project_comments.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column(
            "project_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("projects.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        _created_at(),
        _created_at("updated_at"),
        sa.CheckConstraint(
            "type IN ('mention', 'comment', 'invitation')",
            name="ck_notifications_type",
        ),
    )
    op.create_index(
        "idx_notifications_user",
        "notifications",
        ["user_id", sa.text("created_at DESC")],
    )
    op.create_index(
        "idx_notifications_unread",
        "notifications",
        ["user_id", sa.text("created_at DESC")],
        postgresql_where=sa.text("is_read = false"),
    )

    op.create_table(
        "notification_preferences",
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "email_mentions_enabled",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("true"),
        ),
        sa.Column(
            "in_app_mentions_enabled",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("true"),
        ),
        sa.Column("email_frequency", sa.String(16), nullable=False, server_default="daily"),
        _created_at("updated_at"),
        sa.CheckConstraint(
            "email_frequency IN ('instant', 'daily')",
            name="ck_notification_preferences_frequency",
        ),
    )

    op.create_table(
        "project_share_links",
        _uuid_pk(),
        sa.Column(
            "project_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("projects.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("token", sa.String(128), nullable=False),
        sa.Column(
            "created_by",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("expires_at", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column(
            "used_by",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("used_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("revoked", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        _created_at(),
        sa.UniqueConstraint("token", name="uq_project_share_links_token"),
    )
    op.create_index(
        "idx_share_links_project_active",
        "project_share_links",
        ["project_id", "expires_at"],
    )


def downgrade() -> None:
    op.drop_index("idx_share_links_project_active", table_name="project_share_links")
    op.drop_table("project_share_links")
    op.drop_table("notification_preferences")
    op.drop_index("idx_notifications_unread", table_name="notifications")
    op.drop_index("idx_notifications_user", table_name="notifications")
    op.drop_table("notifications")
    op.drop_index("idx_comment_mentions_user", table_name="comment_mentions")
    op.drop_table("comment_mentions")
    op.drop_index("idx_project_comments_project", table_name="project_comments")
    op.drop_table("project_comments")
    op.drop_index("idx_project_members_user", table_name="project_members")
    op.drop_table("project_members")
    op.drop_table("projects")
    op.drop_index("idx_users_username_lower", table_name="users")
    op.drop_table("users")
