"""Public cosmic endpoints: global day data and retrograde status."""

from __future__ import annotations

import logging
from datetime import UTC, date, datetime

from ephemeris.adapter import EphemerisError
from ephemeris.retrograde import (
    RETROGRADE_TABLE_VERSION,
    get_active_retrograde_space_slug,
    get_current_retrograde_status,
    retrograde_periods_for,
    thresholds_from_settings,
)
from fastapi import APIRouter, Depends, HTTPException, Query
from lunary.services.global_cache import build_global_cosmic_data
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_db

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/global/{date_str}")
async def get_global_day(date_str: str, db: AsyncSession = Depends(get_db)):
    try:
        target = date.fromisoformat(date_str)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid date format")
    try:
        day = await build_global_cosmic_data(db, target, datetime.now(UTC))
    except EphemerisError as exc:
        logger.error("Global cosmic data unavailable for %s: %s", target, exc)
        raise HTTPException(status_code=503, detail="Ephemeris unavailable") from exc
    return day.model_dump(mode="json")


@router.get("/retrograde")
async def get_retrograde(planet: str = Query(default="mercury", min_length=1, max_length=32)):
    now = datetime.now(UTC)
    periods = retrograde_periods_for(planet)
    status = get_current_retrograde_status(now, periods, thresholds_from_settings())
    return {
        "planet": planet.strip().lower(),
        "table_version": RETROGRADE_TABLE_VERSION,
        "status": status.model_dump(mode="json"),
        "space_slug": get_active_retrograde_space_slug(now, periods),
        "periods": [p.model_dump(mode="json") for p in periods],
    }
