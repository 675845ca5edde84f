"""Daily cosmic calculator - calculate_cosmic_day() entry point."""

from __future__ import annotations

import logging
from datetime import UTC, date, datetime, time, timedelta

from lunary.config import get_settings
from lunary.schemas.cosmic import CosmicEvent, GlobalCosmicDay, PlanetPosition, SkyAspect

from ephemeris.adapter import body_position
from ephemeris.aspects import angular_distance, find_aspects
from ephemeris.bodies import ALL_BODIES, INGRESS_BODIES
from ephemeris.eclipses import find_eclipses, next_eclipse
from ephemeris.ingress import find_ingresses
from ephemeris.lunar import calculate_moon_phase
from ephemeris.retrograde import (
    RETROGRADE_PERIODS,
    RETROGRADE_TABLE_VERSION,
    get_current_retrograde_status,
    thresholds_from_settings,
)

logger = logging.getLogger(__name__)

# Sun longitude -> seasonal marker name
SEASONAL_MARKERS: dict[float, str] = {
    0.0: "Spring Equinox",
    90.0: "Summer Solstice",
    180.0: "Autumn Equinox",
    270.0: "Winter Solstice",
}
SEASONAL_ORB = 1.0

PRIORITY_SEASONAL = 10
PRIORITY_ECLIPSE = 10
PRIORITY_MOON_PHASE = 8
PRIORITY_INGRESS = 7


def _seasonal_events(sun_longitude: float, noon: datetime) -> list[CosmicEvent]:
    events = []
    for angle, name in SEASONAL_MARKERS.items():
        if angular_distance(sun_longitude, angle) <= SEASONAL_ORB:
            events.append(
                CosmicEvent(type="seasonal", name=name, body="sun", at=noon, priority=PRIORITY_SEASONAL)
            )
    return events


def _ingress_events(day_start: datetime, day_end: datetime) -> list[CosmicEvent]:
    events = []
    for body_name in INGRESS_BODIES:
        for segment in find_ingresses(body_name, day_start, day_end):
            events.append(
                CosmicEvent(
                    type="ingress",
                    name=f"{body_name.title()} enters {segment.sign}",
                    body=body_name,
                    sign=segment.sign,
                    at=segment.start,
                    priority=PRIORITY_INGRESS,
                )
            )
    return events


def _eclipse_flags(day_start: datetime, day_end: datetime, lookahead_days: int) -> dict:
    today = find_eclipses(day_start, day_end)
    upcoming = next_eclipse(day_start)
    days_until = (upcoming.peak.date() - day_start.date()).days
    within = days_until <= lookahead_days
    return {
        "eclipse_today": bool(today),
        "today": [e.model_dump(mode="json") for e in today],
        "upcoming": upcoming.model_dump(mode="json") if within else None,
        "days_until_next": days_until if within else None,
    }


def calculate_cosmic_day(target_date: date, computed_at: datetime) -> GlobalCosmicDay:
    """Calculate the user-independent sky for one UTC day.

    Positions and aspects are taken at noon UTC; ingress and eclipse searches
    cover the whole day [00:00, 24:00). Ephemeris failures propagate.
    """
    settings = get_settings()
    day_start = datetime.combine(target_date, time.min, tzinfo=UTC)
    day_end = day_start + timedelta(days=1)
    noon = day_start + timedelta(hours=12)

    positions_raw: dict[str, dict] = {}
    for body_name in ALL_BODIES:
        pos = body_position(body_name, noon)
        positions_raw[body_name] = {
            "sign": pos.sign,
            "degree": round(pos.degree, 2),
            "longitude": round(pos.longitude, 4),
            "speed_deg_day": round(pos.speed_deg_day, 4),
            "retrograde": pos.retrograde,
        }
    positions = {name: PlanetPosition(**data) for name, data in positions_raw.items()}

    moon_phase = calculate_moon_phase(
        positions_raw["sun"]["longitude"], positions_raw["moon"]["longitude"], target_date
    )
    transits = [SkyAspect(**a) for a in find_aspects(positions_raw)]

    events = _seasonal_events(positions_raw["sun"]["longitude"], noon)
    events.extend(_ingress_events(day_start, day_end))
    if moon_phase.is_significant:
        events.append(
            CosmicEvent(type="moon_phase", name=moon_phase.name, body="moon", at=noon, priority=PRIORITY_MOON_PHASE)
        )

    eclipse_flags = _eclipse_flags(day_start, day_end, settings.eclipse_lookahead_days)
    for entry in eclipse_flags["today"]:
        events.append(
            CosmicEvent(
                type="eclipse",
                name=f"{entry['kind'].title()} Eclipse in {entry['sign']}",
                sign=entry["sign"],
                at=entry["peak"],
                priority=PRIORITY_ECLIPSE,
            )
        )
    events.sort(key=lambda e: (-e.priority, e.at or noon))

    table_status = get_current_retrograde_status(
        day_start, RETROGRADE_PERIODS, thresholds_from_settings(settings)
    )
    retrograde_flags = {
        "retrograde_bodies": [name for name, p in positions.items() if p.retrograde],
        "table_version": RETROGRADE_TABLE_VERSION,
        "table_status": table_status.model_dump(mode="json"),
    }

    logger.info(
        "Cosmic day %s: %d aspects, %d events, moon %s",
        target_date.isoformat(),
        len(transits),
        len(events),
        moon_phase.name,
    )
    return GlobalCosmicDay(
        data_date=target_date,
        moon_phase=moon_phase,
        planetary_positions=positions,
        general_transits=transits,
        significant_events=events,
        eclipse_flags=eclipse_flags,
        retrograde_flags=retrograde_flags,
        computed_at=computed_at,
    )
