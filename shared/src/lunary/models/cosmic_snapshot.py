"""Per-user cosmic snapshot derived from global data and a birth chart."""

from __future__ import annotations

import uuid
from datetime import date, datetime

from sqlalchemy import Date, DateTime, ForeignKey, Index, UniqueConstraint, text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from lunary.models.base import Base


class CosmicSnapshot(Base):
    __tablename__ = "cosmic_snapshots"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, server_default=text("gen_random_uuid()")
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    snapshot_date: Mapped[date] = mapped_column(Date, nullable=False)
    global_date: Mapped[date] = mapped_column(
        Date, ForeignKey("global_cosmic_data.data_date", ondelete="CASCADE"), nullable=False
    )
    personal_transits: Mapped[list] = mapped_column(JSONB, nullable=False)
    personal_aspects: Mapped[list] = mapped_column(JSONB, nullable=False)
    highlights: Mapped[list] = mapped_column(JSONB, nullable=False)
    display: Mapped[dict | None] = mapped_column(JSONB)
    computed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "snapshot_date", name="uq_cosmic_snapshot_user_date"),
        Index("idx_cosmic_snapshots_global_date", "global_date"),
    )
