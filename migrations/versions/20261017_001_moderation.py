"""Moderation: content_flags, user_reports, admin_logs, user_moderation

Revision ID: 20261017_001
Revises:
Create Date: 2026-10-17

profiles, posts and comments belong to the feed service schema and are not
created here.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "20261017_001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

REASONS = "'nudity','violence','harassment','hate_speech','scam_fraud','spam','misinformation','other'"
STATUSES = "'pending','reviewed','actioned','dismissed'"
SOURCES = "'user_report','ai_moderation','admin_flag'"


def upgrade() -> None:
    # 1. content_flags: no FK to posts/comments, flags outlive the content they point at
    op.create_table(
        "content_flags",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("post_id", sa.Uuid(), nullable=True),
        sa.Column("comment_id", sa.Uuid(), nullable=True),
        sa.Column("user_id", sa.Uuid(), nullable=True),
        sa.Column("flagged_by", sa.Uuid(), nullable=True),
        sa.Column("source", sa.String(length=24), nullable=False),
        sa.Column("reason", sa.String(length=24), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("ai_category", sa.String(length=64), nullable=True),
        sa.Column("ai_confidence", sa.Float(), nullable=True),
        sa.Column("urgency_level", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(length=16), server_default="pending", nullable=False),
        sa.Column("reviewed_by", sa.Uuid(), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("action_taken", sa.String(length=24), nullable=True),
        sa.Column("action_notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "post_id IS NOT NULL OR comment_id IS NOT NULL OR user_id IS NOT NULL", name="chk_flag_has_target"
        ),
        sa.CheckConstraint(f"source IN ({SOURCES})", name="chk_flag_source"),
        sa.CheckConstraint(f"reason IN ({REASONS})", name="chk_flag_reason"),
        sa.CheckConstraint(f"status IN ({STATUSES})", name="chk_flag_status"),
        sa.CheckConstraint(
            "ai_confidence IS NULL OR (ai_confidence >= 0 AND ai_confidence <= 1)", name="chk_flag_conf"
        ),
    )
    op.create_index(op.f("ix_content_flags_post_id"), "content_flags", ["post_id"], unique=False)
    op.create_index(op.f("ix_content_flags_user_id"), "content_flags", ["user_id"], unique=False)
    op.create_index("idx_flags_queue", "content_flags", ["status", "urgency_level", "created_at"], unique=False)

    # 2. user_reports
    op.create_table(
        "user_reports",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("reporter_id", sa.Uuid(), nullable=False),
        sa.Column("reported_user_id", sa.Uuid(), nullable=True),
        sa.Column("reported_post_id", sa.Uuid(), nullable=True),
        sa.Column("reported_comment_id", sa.Uuid(), nullable=True),
        sa.Column("reason", sa.String(length=24), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=16), server_default="pending", nullable=False),
        sa.Column("content_flag_id", sa.Uuid(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["content_flag_id"], ["content_flags.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "reported_user_id IS NOT NULL OR reported_post_id IS NOT NULL OR reported_comment_id IS NOT NULL",
            name="chk_report_has_target",
        ),
        sa.CheckConstraint(f"reason IN ({REASONS})", name="chk_report_reason"),
        sa.CheckConstraint(f"status IN ({STATUSES})", name="chk_report_status"),
    )
    op.create_index(op.f("ix_user_reports_reporter_id"), "user_reports", ["reporter_id"], unique=False)
    op.create_index(op.f("ix_user_reports_content_flag_id"), "user_reports", ["content_flag_id"], unique=False)
    op.execute("CREATE INDEX IF NOT EXISTS idx_reports_open ON user_reports(status) WHERE status = 'pending'")

    # 3. admin_logs: append-only
    op.create_table(
        "admin_logs",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("admin_id", sa.Uuid(), nullable=False),
        sa.Column("action_type", sa.String(length=32), nullable=False),
        sa.Column("target_type", sa.String(length=16), nullable=False),
        sa.Column("target_id", sa.String(length=64), nullable=True),
        sa.Column("old_value", postgresql.JSONB(), nullable=True),
        sa.Column("new_value", postgresql.JSONB(), nullable=True),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("ip_address", sa.String(length=45), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_admin_logs_admin_id"), "admin_logs", ["admin_id"], unique=False)
    op.create_index("idx_admin_logs_action_created", "admin_logs", ["action_type", "created_at"], unique=False)
    op.execute(
        """
        CREATE OR REPLACE FUNCTION admin_logs_block_mutation() RETURNS trigger AS $$
        BEGIN
            RAISE EXCEPTION 'admin_logs is append-only';
        END;
        $$ LANGUAGE plpgsql
    """
    )
    op.execute(
        """
        CREATE TRIGGER trg_admin_logs_append_only
        BEFORE UPDATE OR DELETE ON admin_logs
        FOR EACH ROW EXECUTE FUNCTION admin_logs_block_mutation()
    """
    )

    # 4. user_moderation
    op.create_table(
        "user_moderation",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("is_suspended", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("suspension_reason", sa.Text(), nullable=True),
        sa.Column("suspended_until", sa.DateTime(timezone=True), nullable=True),
        sa.Column("suspended_by", sa.Uuid(), nullable=True),
        sa.Column("is_banned", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("banned_reason", sa.Text(), nullable=True),
        sa.Column("banned_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("banned_by", sa.Uuid(), nullable=True),
        sa.Column("warning_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("last_warning_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id"),
    )


def downgrade() -> None:
    op.drop_table("user_moderation")
    op.execute("DROP TRIGGER IF EXISTS trg_admin_logs_append_only ON admin_logs")
    op.execute("DROP FUNCTION IF EXISTS admin_logs_block_mutation()")
    op.drop_table("admin_logs")
    op.drop_table("user_reports")
    op.drop_table("content_flags")
