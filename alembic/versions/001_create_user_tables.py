"""Create users, user_profiles, notification_subscriptions and friend_connections.

Revision ID: 001_user_tables
Revises:
Create Date: 2026-10-18
"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID

from alembic import op

revision: str = "001_user_tables"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _uuid_pk() -> sa.Column:
    return sa.Column(
        "id", UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), primary_key=True
    )


def _user_fk(name: str = "user_id", **kwargs) -> sa.Column:
    return sa.Column(
        name,
        UUID(as_uuid=True),
        sa.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        **kwargs,
    )


def upgrade() -> None:
    op.execute("CREATE EXTENSION IF NOT EXISTS pgcrypto")

    op.create_table(
        "users",
        _uuid_pk(),
        sa.Column("email", sa.Text(), nullable=False, unique=True),
        sa.Column("display_name", sa.Text(), nullable=True),
        sa.Column("timezone", sa.Text(), nullable=False, server_default=sa.text("'UTC'")),
        sa.Column("locale", sa.Text(), nullable=False, server_default=sa.text("'en-US'")),
        sa.Column("token_version", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("TRUE")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
    )

    op.create_table(
        "user_profiles",
        _uuid_pk(),
        _user_fk(unique=True),
        sa.Column("birth_date", sa.Date(), nullable=True),
        sa.Column("birth_time", sa.Time(), nullable=True),
        sa.Column("birth_time_known", sa.Boolean(), nullable=False, server_default=sa.text("FALSE")),
        sa.Column("birth_location", sa.Text(), nullable=True),
        sa.Column("birth_latitude", sa.Float(), nullable=True),
        sa.Column("birth_longitude", sa.Float(), nullable=True),
        sa.Column("birth_timezone", sa.Text(), nullable=True),
        sa.Column("birth_chart_json", JSONB(), nullable=True),
        sa.Column("birth_chart_computed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
    )

    op.create_table(
        "notification_subscriptions",
        _uuid_pk(),
        _user_fk(),
        sa.Column("channel", sa.Text(), nullable=False),
        sa.Column("endpoint", sa.Text(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("TRUE")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
        sa.CheckConstraint("channel IN ('push','email')", name="ck_notification_channel"),
    )
    op.create_index(
        "idx_notification_subscriptions_user_active",
        "notification_subscriptions",
        ["user_id", "is_active"],
    )

    op.create_table(
        "friend_connections",
        _uuid_pk(),
        _user_fk(),
        _user_fk("friend_id"),
        sa.Column("synastry_score", sa.Float(), nullable=True),
        sa.Column("synastry_data", JSONB(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
        sa.UniqueConstraint("user_id", "friend_id", name="uq_friend_connection_pair"),
    )
    op.create_index("idx_friend_connections_friend", "friend_connections", ["friend_id"])


def downgrade() -> None:
    op.drop_index("idx_friend_connections_friend", table_name="friend_connections")
    op.drop_table("friend_connections")
    op.drop_index(
        "idx_notification_subscriptions_user_active", table_name="notification_subscriptions"
    )
    op.drop_table("notification_subscriptions")
    op.drop_table("user_profiles")
    op.drop_table("users")
