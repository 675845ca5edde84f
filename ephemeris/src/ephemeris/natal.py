"""Natal chart calculator - birth chart positions and angles."""

from __future__ import annotations

import logging
from datetime import UTC, date, datetime, time
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import swisseph as swe

from ephemeris.adapter import EphemerisError, body_position, datetime_to_jd
from ephemeris.bodies import ALL_BODIES, SIGNS, longitude_to_sign, normalize_body

logger = logging.getLogger(__name__)

ZODIAC_MODE = "tropical"
HOUSE_SYSTEM_CODE = b"P"


def natal_longitude(entry: dict[str, Any]) -> float | None:
    """Longitude of a stored chart position, falling back to sign + degree."""
    raw = entry.get("longitude")
    if raw is not None:
        try:
            return float(raw) % 360.0
        except (TypeError, ValueError):
            return None
    sign = str(entry.get("sign", "")).strip().title()
    if sign not in SIGNS:
        return None
    try:
        degree = float(entry.get("degree", 0.0) or 0.0)
    except (TypeError, ValueError):
        return None
    return (SIGNS.index(sign) * 30.0 + degree) % 360.0


def normalize_chart_positions(positions: object) -> list[dict]:
    """Coerce stored chart positions to {body, sign, degree, longitude} dicts."""
    if not isinstance(positions, list):
        return []
    normalized: list[dict] = []
    for entry in positions:
        if not isinstance(entry, dict):
            continue
        body = normalize_body(entry.get("body"))
        longitude = natal_longitude(entry)
        if not body or longitude is None:
            continue
        sign, degree = longitude_to_sign(longitude)
        normalized.append({
            "body": body,
            "sign": sign,
            "degree": round(degree, 2),
            "longitude": round(longitude, 4),
        })
    return normalized


def _positions_at(instant: datetime) -> list[dict]:
    positions = []
    for body_name in ALL_BODIES:
        pos = body_position(body_name, instant)
        positions.append({
            "body": pos.body,
            "sign": pos.sign,
            "degree": round(pos.degree, 2),
            "longitude": round(pos.longitude, 4),
            "retrograde": pos.retrograde,
        })
    return positions


def natal_positions_from_birthday(birthday: date) -> list[dict]:
    """Approximate chart for users with only a birth date: noon UTC positions."""
    return _positions_at(datetime.combine(birthday, time(12, 0), tzinfo=UTC))


def calculate_natal_chart(
    birth_date: date,
    birth_time: time | None,
    birth_latitude: float | None,
    birth_longitude: float | None,
    birth_timezone: str | None,
) -> dict:
    """Calculate a birth chart.

    Returns positions for every body plus Ascendant/Midheaven when the birth
    time and coordinates are known, with calculation metadata.
    """
    warnings: list[str] = []
    tz_name = (birth_timezone or "UTC").strip() or "UTC"
    try:
        tz = ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        tz = UTC
        warnings.append(f"invalid timezone '{birth_timezone}', fallback to UTC")
        tz_name = "UTC"

    bt = birth_time or time(12, 0, 0)  # Noon if unknown
    birth_dt_local = datetime.combine(birth_date, bt, tzinfo=tz)
    birth_dt_utc = birth_dt_local.astimezone(UTC)

    positions = _positions_at(birth_dt_utc)

    angles: list[dict] = []
    has_location = birth_latitude is not None and birth_longitude is not None
    if birth_time is not None and has_location:
        jd = datetime_to_jd(birth_dt_utc)
        try:
            _, angle_result = swe.houses_ex(jd, birth_latitude, birth_longitude, HOUSE_SYSTEM_CODE)
        except swe.Error as exc:
            raise EphemerisError(f"house calculation failed: {exc}") from exc
        for name, longitude in (("ascendant", angle_result[0]), ("midheaven", angle_result[1])):
            sign, degree = longitude_to_sign(longitude)
            angles.append({
                "body": name,
                "sign": sign,
                "degree": round(degree, 2),
                "longitude": round(longitude % 360.0, 4),
            })
    elif birth_time is None:
        warnings.append("birth time unknown, angles omitted")

    return {
        "positions": positions,
        "angles": angles,
        "calculation_metadata": {
            "zodiac": ZODIAC_MODE,
            "birth_datetime_local": birth_dt_local.isoformat(),
            "birth_datetime_utc": birth_dt_utc.isoformat(),
            "timezone": tz_name,
            "time_known": birth_time is not None,
            "warnings": warnings,
        },
    }
