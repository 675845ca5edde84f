"""Create cosmic cache tables, chart-derived tables and batch_runs.

Revision ID: 002_cosmic_cache_tables
Revises: 001_user_tables
Create Date: 2026-10-18
"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID

from alembic import op

revision: str = "002_cosmic_cache_tables"
down_revision: str | None = "001_user_tables"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

DERIVED_TABLES = (
    "synastry_reports",
    "daily_horoscopes",
    "monthly_insights",
    "cosmic_reports",
    "journal_patterns",
    "pattern_analysis",
    "year_analysis",
)


def upgrade() -> None:
    op.create_table(
        "global_cosmic_data",
        sa.Column("data_date", sa.Date(), primary_key=True),
        sa.Column("moon_phase", JSONB(), nullable=False),
        sa.Column("planetary_positions", JSONB(), nullable=False),
        sa.Column("general_transits", JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("significant_events", JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("eclipse_flags", JSONB(), nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column("retrograde_flags", JSONB(), nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column("computed_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "cosmic_snapshots",
        sa.Column(
            "id", UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), primary_key=True
        ),
        sa.Column(
            "user_id",
            UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("snapshot_date", sa.Date(), nullable=False),
        sa.Column(
            "global_date",
            sa.Date(),
            sa.ForeignKey("global_cosmic_data.data_date", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("personal_transits", JSONB(), nullable=False),
        sa.Column("personal_aspects", JSONB(), nullable=False),
        sa.Column("highlights", JSONB(), nullable=False),
        sa.Column("display", JSONB(), nullable=True),
        sa.Column("computed_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("user_id", "snapshot_date", name="uq_cosmic_snapshot_user_date"),
    )
    op.create_index("idx_cosmic_snapshots_global_date", "cosmic_snapshots", ["global_date"])

    for table in DERIVED_TABLES:
        op.create_table(
            table,
            sa.Column(
                "id", UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), primary_key=True
            ),
            sa.Column(
                "user_id",
                UUID(as_uuid=True),
                sa.ForeignKey("users.id", ondelete="CASCADE"),
                nullable=False,
            ),
            sa.Column("content", JSONB(), nullable=False),
            sa.Column(
                "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")
            ),
        )
        op.create_index(f"ix_{table}_user_id", table, ["user_id"])

    op.create_table(
        "batch_runs",
        sa.Column(
            "id", UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), primary_key=True
        ),
        sa.Column("batch_type", sa.Text(), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("ended_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", sa.Text(), nullable=False, server_default=sa.text("'running'")),
        sa.Column("target_date", sa.Date(), nullable=True),
        sa.Column("eligible_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("processed_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("failed_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("summary_json", JSONB(), nullable=True),
        sa.Column("error_detail", sa.Text(), nullable=True),
        sa.CheckConstraint(
            "status IN ('running','completed','failed')",
            name="ck_batch_run_status",
        ),
    )
    op.create_index("idx_batch_runs_type_started", "batch_runs", ["batch_type", "started_at"])


def downgrade() -> None:
    op.drop_index("idx_batch_runs_type_started", table_name="batch_runs")
    op.drop_table("batch_runs")
    for table in reversed(DERIVED_TABLES):
        op.drop_index(f"ix_{table}_user_id", table_name=table)
        op.drop_table(table)
    op.drop_index("idx_cosmic_snapshots_global_date", table_name="cosmic_snapshots")
    op.drop_table("cosmic_snapshots")
    op.drop_table("global_cosmic_data")
