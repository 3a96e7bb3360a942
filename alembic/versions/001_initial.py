"""Initial schema: config, moderation logs, bans, ban history, content.

Revision ID: 001
Create Date: 2026-10-19
"""

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import JSONB

revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # -- app_config --
    op.create_table(
        "app_config",
        sa.Column("key", sa.String(100), primary_key=True),
        sa.Column("value", sa.Text, nullable=False),
        sa.Column("category", sa.String(50), nullable=False, server_default="general"),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )

    # -- moderation_config --
    op.create_table(
        "moderation_config",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("category", sa.String(64), nullable=False),
        sa.Column("threshold", sa.Float, nullable=False),
        sa.Column(
            "auto_action", sa.String(20), nullable=False, server_default="manual_review"
        ),
        sa.Column("applies_to", sa.String(10), nullable=False, server_default="both"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.UniqueConstraint("category", "applies_to", name="uq_moderation_config_scope"),
        sa.CheckConstraint(
            "threshold >= 0 AND threshold <= 1", name="ck_moderation_threshold"
        ),
    )

    # -- moderation_logs --
    op.create_table(
        "moderation_logs",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("content_type", sa.String(10), nullable=False),
        sa.Column("content_id", sa.BigInteger, nullable=False),
        sa.Column("content_text", sa.Text, nullable=False),
        sa.Column("classifier_response", JSONB, nullable=True),
        sa.Column("flagged", sa.Boolean, nullable=False),
        sa.Column("action_taken", sa.String(20), nullable=False),
        sa.Column(
            "processed_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index(
        "idx_moderation_logs_content", "moderation_logs", ["content_type", "content_id"]
    )
    op.create_index(
        "idx_moderation_logs_processed_at", "moderation_logs", ["processed_at"]
    )

    # -- user_bans --
    op.create_table(
        "user_bans",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("ban_type", sa.String(20), nullable=False),
        sa.Column("violation_count", sa.Integer, nullable=False, server_default="1"),
        sa.Column("ban_duration_days", sa.Integer, nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reason", sa.Text, nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("created_by", sa.String(64), nullable=True),
    )
    op.create_index("idx_user_bans_user", "user_bans", ["user_id"])
    op.create_index("idx_user_bans_expires_at", "user_bans", ["expires_at"])
    op.create_index(
        "idx_user_bans_active",
        "user_bans",
        ["is_active"],
        postgresql_where=sa.text("is_active = true"),
    )

    # -- user_ban_history --
    op.create_table(
        "user_ban_history",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("violation_type", sa.Text, nullable=False),
        sa.Column("ban_duration_days", sa.Integer, nullable=False),
        sa.Column("moderation_score", JSONB, nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index(
        "idx_user_ban_history_user_created",
        "user_ban_history",
        ["user_id", "created_at"],
    )

    # -- posts / comments --
    op.create_table(
        "posts",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("is_flagged", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("moderation_score", JSONB, nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index("idx_posts_user", "posts", ["user_id"])
    op.create_index(
        "idx_posts_flagged",
        "posts",
        ["is_flagged"],
        postgresql_where=sa.text("is_flagged = true"),
    )

    op.create_table(
        "comments",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column(
            "post_id",
            sa.BigInteger,
            sa.ForeignKey("posts.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("is_flagged", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("moderation_score", JSONB, nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index("idx_comments_post", "comments", ["post_id"])
    op.create_index("idx_comments_user", "comments", ["user_id"])


def downgrade() -> None:
    op.drop_index("idx_comments_user", table_name="comments")
    op.drop_index("idx_comments_post", table_name="comments")
    op.drop_table("comments")
    op.drop_index("idx_posts_flagged", table_name="posts")
    op.drop_index("idx_posts_user", table_name="posts")
    op.drop_table("posts")
    op.drop_index("idx_user_ban_history_user_created", table_name="user_ban_history")
    op.drop_table("user_ban_history")
    op.drop_index("idx_user_bans_active", table_name="user_bans")
    op.drop_index("idx_user_bans_expires_at", table_name="user_bans")
    op.drop_index("idx_user_bans_user", table_name="user_bans")
    op.drop_table("user_bans")
    op.drop_index("idx_moderation_logs_processed_at", table_name="moderation_logs")
    op.drop_index("idx_moderation_logs_content", table_name="moderation_logs")
    op.drop_table("moderation_logs")
    op.drop_table("moderation_config")
    op.drop_table("app_config")
