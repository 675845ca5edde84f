"""Per-user cosmic snapshot cache.

A snapshot combines the shared global row for a UTC day with one user's
birth chart. The batch job and the lazy read path both go through
build_snapshot_with_global_cache + save_snapshot, so a snapshot looks the
same no matter which side produced it.
"""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, date, datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ephemeris.aspects import find_transit_to_natal_aspects
from ephemeris.bodies import SIGNS
from ephemeris.eclipses import check_eclipse_relevance
from ephemeris.natal import natal_positions_from_birthday, normalize_chart_positions
from ephemeris.retrograde import get_current_retrograde_status, thresholds_from_settings
from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from lunary.config import get_settings
from lunary.database import get_session
from lunary.models import CosmicSnapshot, User
from lunary.schemas.cosmic import (
    CosmicSnapshotPayload,
    EclipseEvent,
    GlobalCosmicDay,
    Highlight,
    PersonalAspect,
    PersonalTransit,
)
from lunary.services.cache import get_or_build
from lunary.services.global_cache import build_global_cosmic_data

logger = logging.getLogger(__name__)

MAX_HIGHLIGHTS = 5
MAX_ASPECT_HIGHLIGHTS = 3
GLOBAL_EVENT_MIN_PRIORITY = 9

BirthdayOrChart = date | dict | list | None


def _natal_positions(birthday_or_chart: BirthdayOrChart) -> list[dict]:
    if isinstance(birthday_or_chart, dict):
        return normalize_chart_positions(birthday_or_chart.get("positions"))
    if isinstance(birthday_or_chart, list):
        return normalize_chart_positions(birthday_or_chart)
    if isinstance(birthday_or_chart, date):
        return natal_positions_from_birthday(birthday_or_chart)
    return []


def _solar_house(transit_sign: str, sun_sign: str | None) -> int | None:
    if sun_sign not in SIGNS or transit_sign not in SIGNS:
        return None
    return (SIGNS.index(transit_sign) - SIGNS.index(sun_sign)) % 12 + 1


def _resolve_zone(tz_name: str | None) -> ZoneInfo:
    try:
        return ZoneInfo((tz_name or "UTC").strip() or "UTC")
    except (ZoneInfoNotFoundError, ValueError):
        return ZoneInfo("UTC")


def _format_date(d: date, locale: str | None) -> str:
    month = d.strftime("%B")
    region = (locale or "").replace("_", "-").split("-")[-1].upper()
    if region == "US":
        return f"{month} {d.day}, {d.year}"
    return f"{d.day} {month} {d.year}"


def _format_time(dt: datetime, locale: str | None) -> str:
    region = (locale or "").replace("_", "-").split("-")[-1].upper()
    if region == "US":
        return dt.strftime("%I:%M %p").lstrip("0")
    return dt.strftime("%H:%M")


def _eclipse_events(global_data: GlobalCosmicDay) -> list[EclipseEvent]:
    flags = global_data.eclipse_flags or {}
    raw = list(flags.get("today") or [])
    if flags.get("upcoming"):
        raw.append(flags["upcoming"])
    events: list[EclipseEvent] = []
    seen: set[str] = set()
    for entry in raw:
        event = EclipseEvent.model_validate(entry)
        key = event.peak.isoformat()
        if key not in seen:
            seen.add(key)
            events.append(event)
    return events


def _build_highlights(
    global_data: GlobalCosmicDay,
    aspects: list[PersonalAspect],
    natal: list[dict],
    now: datetime,
) -> list[Highlight]:
    settings = get_settings()
    highlights: list[Highlight] = []

    for aspect in aspects[:MAX_ASPECT_HIGHLIGHTS]:
        highlights.append(
            Highlight(
                kind="aspect",
                title=(
                    f"{aspect.transit_body.title()} {aspect.type} "
                    f"your natal {aspect.natal_body.replace('_', ' ').title()}"
                ),
                priority=8 if aspect.significance == "major" else 6,
            )
        )

    if global_data.moon_phase.is_significant:
        highlights.append(Highlight(kind="moon_phase", title=global_data.moon_phase.name, priority=8))

    # Global events already covered by a personal highlight
    covered = {"moon_phase"}
    for eclipse in _eclipse_events(global_data):
        relevance = check_eclipse_relevance(eclipse, natal, settings.eclipse_orb_degrees)
        if relevance.is_relevant and relevance.closest_aspect is not None:
            covered.add("eclipse")
            planet = relevance.closest_aspect.planet.replace("_", " ").title()
            highlights.append(
                Highlight(
                    kind="eclipse",
                    title=f"{eclipse.kind.title()} eclipse in {eclipse.sign} touches your {planet}",
                    priority=10,
                )
            )

    status = get_current_retrograde_status(now, thresholds=thresholds_from_settings(settings))
    if status.period is not None:
        planet = status.period.planet.title()
        if status.is_active:
            title = f"{planet} retrograde in {status.period.sign}: day {status.survival_days}"
        else:
            title = f"You survived {planet} retrograde"
        highlights.append(Highlight(kind="retrograde", title=title, priority=7))

    for event in global_data.significant_events:
        if event.priority >= GLOBAL_EVENT_MIN_PRIORITY and event.type not in covered:
            highlights.append(Highlight(kind=event.type, title=event.name, priority=event.priority))

    # Stable sort keeps insertion order for equal priorities
    highlights.sort(key=lambda h: -h.priority)
    return highlights[:MAX_HIGHLIGHTS]


def build_snapshot_with_global_cache(
    user_id: uuid.UUID,
    global_data: GlobalCosmicDay,
    timezone: str | None,
    locale: str | None,
    display_name: str | None,
    birthday_or_chart: BirthdayOrChart,
    now: datetime,
) -> CosmicSnapshotPayload:
    """Combine the global day with one user's chart.

    Timezone, locale and display name only shape the display labels; the
    astronomical content depends on the global day and the chart alone.
    """
    natal = _natal_positions(birthday_or_chart)
    sun_sign = next((p["sign"] for p in natal if p["body"] == "sun"), None)

    transits = [
        PersonalTransit(
            body=body,
            sign=pos.sign,
            degree=pos.degree,
            retrograde=pos.retrograde,
            solar_house=_solar_house(pos.sign, sun_sign),
        )
        for body, pos in global_data.planetary_positions.items()
    ]

    transit_positions = {
        body: pos.model_dump() for body, pos in global_data.planetary_positions.items()
    }
    aspects = [
        PersonalAspect(**a) for a in find_transit_to_natal_aspects(transit_positions, natal)
    ]

    zone = _resolve_zone(timezone)
    local_now = now.astimezone(zone)
    display = {
        "greeting_name": (display_name or "").strip() or None,
        "timezone": zone.key,
        "locale": locale or "en-US",
        "date_label": _format_date(local_now.date(), locale),
        "time_label": _format_time(local_now, locale),
        "moon_label": f"{global_data.moon_phase.name} ({global_data.moon_phase.illumination:.0f}%)",
        "sun_sign": sun_sign,
    }

    return CosmicSnapshotPayload(
        user_id=user_id,
        snapshot_date=global_data.data_date,
        global_date=global_data.data_date,
        personal_transits=transits,
        personal_aspects=aspects,
        highlights=_build_highlights(global_data, aspects, natal, now),
        display=display,
        computed_at=now,
    )


async def save_snapshot(
    session: AsyncSession,
    user_id: uuid.UUID,
    snapshot_date: date,
    snapshot: CosmicSnapshotPayload,
) -> None:
    """Upsert by (user_id, snapshot_date)."""
    payload = snapshot.model_dump(mode="json")
    values = {
        "user_id": user_id,
        "snapshot_date": snapshot_date,
        "global_date": snapshot.global_date,
        "personal_transits": payload["personal_transits"],
        "personal_aspects": payload["personal_aspects"],
        "highlights": payload["highlights"],
        "display": payload["display"],
        "computed_at": snapshot.computed_at,
    }
    stmt = pg_insert(CosmicSnapshot).values(**values)
    stmt = stmt.on_conflict_do_update(
        constraint="uq_cosmic_snapshot_user_date",
        set_={
            name: stmt.excluded[name]
            for name in (
                "global_date",
                "personal_transits",
                "personal_aspects",
                "highlights",
                "display",
                "computed_at",
            )
        },
    )
    await session.execute(stmt)
    await session.flush()


async def get_snapshot(
    session: AsyncSession, user_id: uuid.UUID, snapshot_date: date
) -> CosmicSnapshotPayload | None:
    result = await session.execute(
        select(CosmicSnapshot).where(
            CosmicSnapshot.user_id == user_id,
            CosmicSnapshot.snapshot_date == snapshot_date,
        )
    )
    row = result.scalars().first()
    if row is None:
        return None
    return CosmicSnapshotPayload(
        user_id=row.user_id,
        snapshot_date=row.snapshot_date,
        global_date=row.global_date,
        personal_transits=row.personal_transits or [],
        personal_aspects=row.personal_aspects or [],
        highlights=row.highlights or [],
        display=row.display or {},
        computed_at=row.computed_at,
    )


async def delete_snapshots(session: AsyncSession, user_id: uuid.UUID) -> None:
    await session.execute(delete(CosmicSnapshot).where(CosmicSnapshot.user_id == user_id))


async def invalidate_snapshot(user_id: uuid.UUID) -> bool:
    """Best-effort removal of a user's snapshots. Logs failures, never raises."""
    try:
        async with get_session() as session:
            await delete_snapshots(session, user_id)
    except Exception:
        logger.warning("Could not invalidate cosmic snapshot for user %s", user_id, exc_info=True)
        return False
    logger.info("Invalidated cosmic snapshot for user %s", user_id)
    return True


def snapshot_source(user: User) -> BirthdayOrChart:
    """The stored chart when present, else the bare birthday, else None."""
    profile = user.profile
    if profile is None:
        return None
    chart = profile.birth_chart_json
    if isinstance(chart, dict) and chart.get("positions"):
        return chart
    return profile.birth_date


async def get_or_build_snapshot(
    session: AsyncSession, user: User, now: datetime
) -> CosmicSnapshotPayload | None:
    """Lazy read path: today's snapshot, built and stored on a miss.

    Returns None for users with no birth data at all.
    """
    source = snapshot_source(user)
    if source is None:
        return None
    day = now.astimezone(UTC).date()

    async def _build() -> CosmicSnapshotPayload:
        global_data = await build_global_cosmic_data(session, day, now)
        return build_snapshot_with_global_cache(
            user.id, global_data, user.timezone, user.locale, user.display_name, source, now
        )

    return await get_or_build(
        ("snapshot", user.id, day),
        load=lambda: get_snapshot(session, user.id, day),
        build=_build,
        store=lambda snapshot: save_snapshot(session, user.id, day, snapshot),
    )
