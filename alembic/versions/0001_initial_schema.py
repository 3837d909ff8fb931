"""Create users, notification preference and history tables"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("phone_number", sa.String(length=32), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("age", sa.Integer(), nullable=True),
        sa.Column("conditions", postgresql.ARRAY(sa.Text()), nullable=True),
        sa.Column("medications", postgresql.ARRAY(sa.Text()), nullable=True),
        sa.Column("allergies", postgresql.ARRAY(sa.Text()), nullable=True),
        sa.Column("notification_types", postgresql.ARRAY(sa.Text()), nullable=True),
        sa.Column("notification_methods", postgresql.ARRAY(sa.Text()), nullable=True),
        sa.Column("area_of_interest", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("timezone('utc', now())"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("timezone('utc', now())"), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
    )
    op.create_index("ix_users_phone_number", "users", ["phone_number"], unique=True)

    op.create_table(
        "notification_preferences",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("enabled", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("push_token", sa.String(length=512), nullable=True),
        sa.Column("notification_time", sa.String(length=5), server_default=sa.text("'08:00'"), nullable=False),
        sa.Column("threshold", sa.Integer(), server_default=sa.text("150"), nullable=False),
        sa.Column("sound_enabled", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("notify_on_threshold_crossed", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("notify_on_improvement", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("notify_on_worsening", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("daily_summary", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("timezone('utc', now())"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("timezone('utc', now())"), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_notification_preferences"),
    )
    op.create_index(
        "ix_notification_preferences_user_id", "notification_preferences", ["user_id"], unique=True
    )

    op.create_table(
        "notification_history",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("aqi", sa.Float(), nullable=False),
        sa.Column("category", sa.String(length=16), nullable=False),
        sa.Column("read", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("dispatch_key", sa.String(length=160), nullable=True),
        sa.Column("sent_at", sa.DateTime(timezone=True), server_default=sa.text("timezone('utc', now())"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("timezone('utc', now())"), nullable=False),
        sa.CheckConstraint(
            "category IN ('alert', 'improvement', 'worsening', 'summary')",
            name="ck_notification_history_category_allowed",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_notification_history"),
        sa.UniqueConstraint("dispatch_key", name="uq_notification_history_dispatch_key"),
    )
    op.create_index("ix_notification_history_user_id", "notification_history", ["user_id"], unique=False)
    op.create_index("ix_notification_history_sent_at", "notification_history", ["sent_at"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_notification_history_sent_at", table_name="notification_history")
    op.drop_index("ix_notification_history_user_id", table_name="notification_history")
    op.drop_table("notification_history")
    op.drop_index("ix_notification_preferences_user_id", table_name="notification_preferences")
    op.drop_table("notification_preferences")
    op.drop_index("ix_users_phone_number", table_name="users")
    op.drop_table("users")
