"""Per-user cosmic endpoints: snapshot read and eclipse relevance."""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from ephemeris.adapter import EphemerisError
from ephemeris.eclipses import check_eclipse_relevance, next_eclipse
from ephemeris.natal import natal_positions_from_birthday, normalize_chart_positions
from fastapi import APIRouter, Depends, HTTPException
from lunary.config import get_settings
from lunary.models import User
from lunary.schemas.cosmic import EclipseEvent
from lunary.services.snapshot_cache import get_or_build_snapshot, snapshot_source
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_current_public_user, get_db

logger = logging.getLogger(__name__)

router = APIRouter()


class EclipseRelevanceRequest(BaseModel):
    eclipse: EclipseEvent | None = None
    orb_degrees: float | None = Field(default=None, gt=0, le=30)


@router.get("/snapshot")
async def get_snapshot(
    user: User = Depends(get_current_public_user),
    db: AsyncSession = Depends(get_db),
):
    now = datetime.now(UTC)
    try:
        snapshot = await get_or_build_snapshot(db, user, now)
    except EphemerisError as exc:
        logger.error("Snapshot unavailable for user %s: %s", user.id, exc)
        raise HTTPException(status_code=503, detail="Ephemeris unavailable") from exc
    if snapshot is None:
        return {"has_snapshot": False, "highlights": []}
    return {"has_snapshot": True, **snapshot.model_dump(mode="json")}


@router.post("/eclipse-relevance")
async def get_eclipse_relevance(
    req: EclipseRelevanceRequest,
    user: User = Depends(get_current_public_user),
):
    source = snapshot_source(user)
    if source is None:
        raise HTTPException(status_code=400, detail="No birth data. Set birth data first.")

    try:
        eclipse = req.eclipse or next_eclipse(datetime.now(UTC))
        if isinstance(source, dict):
            natal = normalize_chart_positions(source.get("positions"))
        else:
            natal = natal_positions_from_birthday(source)
    except EphemerisError as exc:
        logger.error("Eclipse lookup failed: %s", exc)
        raise HTTPException(status_code=503, detail="Ephemeris unavailable") from exc

    orb = req.orb_degrees if req.orb_degrees is not None else get_settings().eclipse_orb_degrees
    relevance = check_eclipse_relevance(eclipse, natal, orb)
    return {
        "eclipse": eclipse.model_dump(mode="json"),
        "orb_degrees": orb,
        **relevance.model_dump(mode="json"),
    }
