"""User profile, birth chart and display preference endpoints."""

from __future__ import annotations

import logging
from datetime import UTC, date, datetime, time
from zoneinfo import ZoneInfo

from ephemeris.adapter import EphemerisError
from ephemeris.natal import calculate_natal_chart
from fastapi import APIRouter, Depends, HTTPException
from lunary.models import User, UserProfile
from lunary.services.invalidation import invalidate_derived_caches
from lunary.services.snapshot_cache import invalidate_snapshot
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_current_public_user, get_db

logger = logging.getLogger(__name__)

router = APIRouter()


def _validate_timezone(value: str) -> str:
    cleaned = value.strip()
    try:
        ZoneInfo(cleaned)
    except Exception as exc:
        raise ValueError("timezone must be a valid IANA timezone") from exc
    return cleaned


class BirthChartRequest(BaseModel):
    birth_date: date
    birth_time: str | None = None  # "HH:MM" or null
    birth_time_known: bool = False
    birth_location: str | None = Field(default=None, max_length=200)
    birth_latitude: float | None = Field(default=None, ge=-90, le=90)
    birth_longitude: float | None = Field(default=None, ge=-180, le=180)
    birth_timezone: str = Field(default="UTC", min_length=1, max_length=64)

    @field_validator("birth_time")
    @classmethod
    def validate_birth_time(cls, value: str | None) -> str | None:
        if value is None:
            return value
        _parse_time(value)
        return value

    @field_validator("birth_timezone")
    @classmethod
    def validate_birth_timezone(cls, value: str) -> str:
        return _validate_timezone(value)


class PreferencesRequest(BaseModel):
    timezone: str | None = Field(default=None, min_length=1, max_length=64)
    locale: str | None = Field(default=None, min_length=2, max_length=16)
    display_name: str | None = Field(default=None, max_length=100)

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str | None) -> str | None:
        if value is None:
            return value
        return _validate_timezone(value)


def _parse_time(time_str: str | None) -> time | None:
    if not time_str:
        return None
    try:
        parts = time_str.split(":")
        if len(parts) != 2:
            raise ValueError("Invalid time format")
        return time(int(parts[0]), int(parts[1]))
    except (ValueError, IndexError):
        raise ValueError("birth_time must use HH:MM 24-hour format")


def _profile_payload(profile: UserProfile) -> dict:
    return {
        "birth_date": profile.birth_date.isoformat() if profile.birth_date else None,
        "birth_time": profile.birth_time.strftime("%H:%M") if profile.birth_time else None,
        "birth_time_known": profile.birth_time_known,
        "birth_location": profile.birth_location,
        "birth_latitude": profile.birth_latitude,
        "birth_longitude": profile.birth_longitude,
        "birth_timezone": profile.birth_timezone,
        "birth_chart_computed_at": (
            profile.birth_chart_computed_at.isoformat() if profile.birth_chart_computed_at else None
        ),
    }


def _compute_and_cache(profile: UserProfile) -> dict:
    """Compute natal chart and cache in profile."""
    try:
        chart = calculate_natal_chart(
            birth_date=profile.birth_date,
            birth_time=profile.birth_time,
            birth_latitude=profile.birth_latitude,
            birth_longitude=profile.birth_longitude,
            birth_timezone=profile.birth_timezone,
        )
    except EphemerisError as exc:
        logger.error("Natal chart calculation failed: %s", exc)
        raise HTTPException(status_code=503, detail="Ephemeris unavailable") from exc
    profile.birth_chart_json = chart
    profile.birth_chart_computed_at = datetime.now(UTC)
    return chart


@router.get("/")
async def get_profile(
    user: User = Depends(get_current_public_user),
):
    if not user.profile:
        return {"has_profile": False}
    return {"has_profile": True, **_profile_payload(user.profile)}


@router.put("/birth-chart")
async def set_birth_chart(
    req: BirthChartRequest,
    user: User = Depends(get_current_public_user),
    db: AsyncSession = Depends(get_db),
):
    if req.birth_date > datetime.now(UTC).date():
        raise HTTPException(status_code=400, detail="Birth date cannot be in the future")
    if req.birth_time_known and not req.birth_time:
        raise HTTPException(
            status_code=400,
            detail="birth_time is required when birth_time_known is true",
        )
    if (req.birth_latitude is None) != (req.birth_longitude is None):
        raise HTTPException(
            status_code=400,
            detail="birth_latitude and birth_longitude must be provided together",
        )

    try:
        parsed_time = _parse_time(req.birth_time) if req.birth_time_known else None
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    profile = user.profile
    if not profile:
        profile = UserProfile(user_id=user.id)
        db.add(profile)

    profile.birth_date = req.birth_date
    profile.birth_time = parsed_time
    profile.birth_time_known = req.birth_time_known
    profile.birth_location = req.birth_location.strip() if req.birth_location else None
    profile.birth_latitude = req.birth_latitude
    profile.birth_longitude = req.birth_longitude
    profile.birth_timezone = req.birth_timezone
    profile.updated_at = datetime.now(UTC)

    _compute_and_cache(profile)
    # Derived caches are cleared only once the new chart is durable
    await db.commit()

    results = await invalidate_derived_caches(user.id)
    return {
        "detail": "Birth chart saved",
        **_profile_payload(profile),
        "invalidation": [
            {"target": r.target, "ok": r.ok, "error": r.error} for r in results
        ],
    }


@router.put("/preferences")
async def set_preferences(
    req: PreferencesRequest,
    user: User = Depends(get_current_public_user),
    db: AsyncSession = Depends(get_db),
):
    if req.timezone is not None:
        user.timezone = req.timezone
    if req.locale is not None:
        user.locale = req.locale.strip()
    if req.display_name is not None:
        user.display_name = req.display_name.strip() or None
    await db.commit()

    # Display labels changed; the snapshot is rebuilt on next read
    invalidated = await invalidate_snapshot(user.id)
    return {
        "detail": "Preferences saved",
        "timezone": user.timezone,
        "locale": user.locale,
        "display_name": user.display_name,
        "snapshot_invalidated": invalidated,
    }


@router.get("/natal-chart")
async def get_natal_chart(
    user: User = Depends(get_current_public_user),
):
    if not user.profile or not user.profile.birth_chart_json:
        raise HTTPException(status_code=400, detail="No birth chart. Set birth data first.")
    return user.profile.birth_chart_json
