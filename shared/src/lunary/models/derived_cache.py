"""Per-user tables whose content is derived from the birth chart.

Every row here can be regenerated from the chart, so they are deleted
wholesale when the chart changes.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, declared_attr, mapped_column

from lunary.models.base import Base


class _UserDerivedMixin:
    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, server_default=text("gen_random_uuid()")
    )
    content: Mapped[dict] = mapped_column(JSONB, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("NOW()")
    )

    @declared_attr
    def user_id(cls) -> Mapped[uuid.UUID]:
        return mapped_column(
            UUID(as_uuid=True),
            ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        )


class SynastryReport(_UserDerivedMixin, Base):
    __tablename__ = "synastry_reports"


class DailyHoroscope(_UserDerivedMixin, Base):
    __tablename__ = "daily_horoscopes"


class MonthlyInsight(_UserDerivedMixin, Base):
    __tablename__ = "monthly_insights"


class CosmicReport(_UserDerivedMixin, Base):
    __tablename__ = "cosmic_reports"


class JournalPattern(_UserDerivedMixin, Base):
    __tablename__ = "journal_patterns"


class PatternAnalysis(_UserDerivedMixin, Base):
    __tablename__ = "pattern_analysis"


class YearAnalysis(_UserDerivedMixin, Base):
    __tablename__ = "year_analysis"
