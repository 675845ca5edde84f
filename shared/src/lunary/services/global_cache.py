"""Day-scoped global cosmic cache backed by the global_cosmic_data table."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import date, datetime

from ephemeris import calculate_cosmic_day
from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from lunary.models import GlobalCosmicData
from lunary.schemas.cosmic import GlobalCosmicDay
from lunary.services.cache import get_or_build

logger = logging.getLogger(__name__)

_PAYLOAD_COLUMNS = (
    "moon_phase",
    "planetary_positions",
    "general_transits",
    "significant_events",
    "eclipse_flags",
    "retrograde_flags",
)


def _row_to_day(row: GlobalCosmicData) -> GlobalCosmicDay:
    return GlobalCosmicDay(
        data_date=row.data_date,
        moon_phase=row.moon_phase,
        planetary_positions=row.planetary_positions,
        general_transits=row.general_transits or [],
        significant_events=row.significant_events or [],
        eclipse_flags=row.eclipse_flags or {},
        retrograde_flags=row.retrograde_flags or {},
        computed_at=row.computed_at,
    )


async def get_global_cosmic_data(session: AsyncSession, data_date: date) -> GlobalCosmicDay | None:
    result = await session.execute(
        select(GlobalCosmicData).where(GlobalCosmicData.data_date == data_date)
    )
    row = result.scalars().first()
    return _row_to_day(row) if row is not None else None


async def save_global_cosmic_data(session: AsyncSession, day: GlobalCosmicDay) -> None:
    """Upsert on data_date; a concurrent writer for the same day wins last."""
    payload = day.model_dump(mode="json")
    values = {name: payload[name] for name in _PAYLOAD_COLUMNS}
    values["data_date"] = day.data_date
    values["computed_at"] = day.computed_at

    stmt = pg_insert(GlobalCosmicData).values(**values)
    stmt = stmt.on_conflict_do_update(
        index_elements=[GlobalCosmicData.data_date],
        set_={name: stmt.excluded[name] for name in (*_PAYLOAD_COLUMNS, "computed_at")},
    )
    await session.execute(stmt)
    await session.flush()


async def build_global_cosmic_data(
    session: AsyncSession,
    data_date: date,
    now: datetime,
    calculate: Callable[..., GlobalCosmicDay] = calculate_cosmic_day,
) -> GlobalCosmicDay:
    """Get-or-build the global row for a UTC date; now stamps computed_at on a build."""

    async def _build() -> GlobalCosmicDay:
        day = calculate(data_date, computed_at=now)
        logger.info("Built global cosmic data for %s", data_date.isoformat())
        return day

    return await get_or_build(
        ("global", data_date),
        load=lambda: get_global_cosmic_data(session, data_date),
        build=_build,
        store=lambda day: save_global_cosmic_data(session, day),
    )
