"""Eclipse lookup and natal relevance scoring."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

import swisseph as swe
from lunary.schemas.cosmic import ClosestAspect, EclipseEvent, EclipseRelevance

from ephemeris.adapter import (
    EphemerisError,
    ensure_ephe_path,
    datetime_to_jd,
    ecliptic_longitude,
    jd_to_datetime,
)
from ephemeris.aspects import angular_distance
from ephemeris.bodies import longitude_to_sign
from ephemeris.natal import natal_longitude

logger = logging.getLogger(__name__)

DEFAULT_ECLIPSE_ORB = 3.0


def _next_solar(jd: float) -> EclipseEvent:
    try:
        _, tret = swe.sol_eclipse_when_glob(jd, swe.FLG_SWIEPH, 0, False)
        peak_jd = tret[0]
        _, _, attr = swe.sol_eclipse_where(peak_jd, swe.FLG_SWIEPH)
    except swe.Error as exc:
        raise EphemerisError(f"solar eclipse search failed: {exc}") from exc
    peak = jd_to_datetime(peak_jd)
    longitude = ecliptic_longitude("sun", peak)
    return EclipseEvent(
        peak=peak,
        kind="solar",
        obscuration=round(float(attr[2]), 4),
        longitude=round(longitude, 4),
        sign=longitude_to_sign(longitude)[0],
    )


def _next_lunar(jd: float) -> EclipseEvent:
    try:
        _, tret = swe.lun_eclipse_when(jd, swe.FLG_SWIEPH, 0, False)
        peak_jd = tret[0]
        _, attr = swe.lun_eclipse_how(peak_jd, (0.0, 0.0, 0.0), swe.FLG_SWIEPH)
    except swe.Error as exc:
        raise EphemerisError(f"lunar eclipse search failed: {exc}") from exc
    peak = jd_to_datetime(peak_jd)
    longitude = ecliptic_longitude("moon", peak)
    return EclipseEvent(
        peak=peak,
        kind="lunar",
        obscuration=round(float(attr[0]), 4),
        longitude=round(longitude, 4),
        sign=longitude_to_sign(longitude)[0],
    )


def next_eclipse(after: datetime) -> EclipseEvent:
    """The first solar or lunar eclipse peaking after the given instant."""
    ensure_ephe_path()
    jd = datetime_to_jd(after)
    solar = _next_solar(jd)
    lunar = _next_lunar(jd)
    return solar if solar.peak <= lunar.peak else lunar


def find_eclipses(start: datetime, end: datetime) -> list[EclipseEvent]:
    """All eclipses peaking within [start, end), ordered by peak."""
    found: list[EclipseEvent] = []
    cursor = start
    while True:
        event = next_eclipse(cursor)
        if event.peak >= end:
            break
        if event.peak >= start:
            found.append(event)
        cursor = event.peak + timedelta(hours=1)
    return found


def check_eclipse_relevance(
    eclipse: EclipseEvent,
    natal_positions: list[dict],
    orb_degrees: float = DEFAULT_ECLIPSE_ORB,
) -> EclipseRelevance:
    """Report natal planets the eclipse degree falls within orb of.

    closest_aspect is the tightest affected planet, or None when the eclipse
    touches nothing.
    """
    affected: list[tuple[str, float]] = []
    for entry in natal_positions:
        longitude = natal_longitude(entry)
        if longitude is None:
            continue
        separation = angular_distance(eclipse.longitude, longitude)
        if separation <= orb_degrees:
            affected.append((str(entry.get("body", "")), round(separation, 4)))

    if not affected:
        return EclipseRelevance(is_relevant=False)

    planet, orb = min(affected, key=lambda item: item[1])
    return EclipseRelevance(
        is_relevant=True,
        affected_planets=[name for name, _ in affected],
        closest_aspect=ClosestAspect(planet=planet, orb=orb),
    )
