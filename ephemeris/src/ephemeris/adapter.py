"""Thin wrapper over pyswisseph: body positions at an instant."""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta

import swisseph as swe
from lunary.config import get_settings
from lunary.schemas.cosmic import CelestialPosition

from ephemeris.bodies import BODY_IDS, longitude_to_sign, normalize_body, normalize_longitude

logger = logging.getLogger(__name__)

_ephe_path_applied = False


class EphemerisError(RuntimeError):
    """Raised when neither Swiss nor Moshier ephemeris can place a body."""


def ensure_ephe_path() -> None:
    global _ephe_path_applied
    if _ephe_path_applied:
        return
    ephe_path = str(get_settings().swisseph_ephe_path or "").strip()
    swe.set_ephe_path(ephe_path if ephe_path else None)
    _ephe_path_applied = True


def datetime_to_jd(dt: datetime) -> float:
    """Convert an aware datetime to a Julian Day (UT)."""
    if dt.tzinfo is None:
        raise ValueError("instant must be timezone-aware")
    utc = dt.astimezone(UTC)
    hours = utc.hour + utc.minute / 60.0 + (utc.second + utc.microsecond / 1e6) / 3600.0
    return swe.julday(utc.year, utc.month, utc.day, hours)


def jd_to_datetime(jd: float) -> datetime:
    year, month, day, hours = swe.revjul(jd)
    whole_seconds = round(hours * 3600.0)
    hour, remainder = divmod(whole_seconds, 3600)
    minute, second = divmod(remainder, 60)
    base = datetime(year, month, day, tzinfo=UTC)
    return base + timedelta(hours=hour, minutes=minute, seconds=second)


def _calc(body: str, jd: float) -> tuple[float, float]:
    """Return (longitude, speed) for a body, Swiss files first then Moshier."""
    ensure_ephe_path()
    try:
        body_id = BODY_IDS[body]
    except KeyError:
        raise EphemerisError(f"unknown body '{body}'") from None

    try:
        result, _ = swe.calc_ut(jd, body_id, swe.FLG_SWIEPH | swe.FLG_SPEED)
    except swe.Error as exc:
        logger.debug("Swiss ephemeris failed for %s, retrying with Moshier: %s", body, exc)
        try:
            result, _ = swe.calc_ut(jd, body_id, swe.FLG_MOSEPH | swe.FLG_SPEED)
        except swe.Error as exc:
            raise EphemerisError(f"{body} unavailable at jd {jd}: {exc}") from exc
    return normalize_longitude(result[0]), result[3]


def ecliptic_longitude(body: str, instant: datetime) -> float:
    """Tropical geocentric ecliptic longitude in [0, 360)."""
    longitude, _ = _calc(normalize_body(body), datetime_to_jd(instant))
    return longitude


def body_position(body: str, instant: datetime) -> CelestialPosition:
    name = normalize_body(body)
    longitude, speed = _calc(name, datetime_to_jd(instant))
    sign, degree = longitude_to_sign(longitude)
    return CelestialPosition(
        body=name,
        longitude=longitude,
        sign=sign,
        degree=degree,
        speed_deg_day=speed,
        retrograde=speed < 0,
        computed_at=instant,
    )
