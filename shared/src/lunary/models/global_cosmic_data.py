"""Day-scoped cosmic data shared by every user."""

from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import Date, DateTime, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from lunary.models.base import Base


class GlobalCosmicData(Base):
    __tablename__ = "global_cosmic_data"

    data_date: Mapped[date] = mapped_column(Date, primary_key=True)
    moon_phase: Mapped[dict] = mapped_column(JSONB, nullable=False)
    planetary_positions: Mapped[dict] = mapped_column(JSONB, nullable=False)
    general_transits: Mapped[list] = mapped_column(
        JSONB, nullable=False, server_default=text("'[]'::jsonb")
    )
    significant_events: Mapped[list] = mapped_column(
        JSONB, nullable=False, server_default=text("'[]'::jsonb")
    )
    eclipse_flags: Mapped[dict] = mapped_column(
        JSONB, nullable=False, server_default=text("'{}'::jsonb")
    )
    retrograde_flags: Mapped[dict] = mapped_column(
        JSONB, nullable=False, server_default=text("'{}'::jsonb")
    )
    computed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
