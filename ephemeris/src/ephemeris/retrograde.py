"""Retrograde survival status against the static retrograde calendar.

The calendar is hand-maintained reference data, versioned with
RETROGRADE_TABLE_VERSION. Nothing at runtime computes or writes it.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import UTC, date, datetime, time, timedelta

from lunary.config import get_settings
from lunary.schemas.cosmic import RetrogradePeriod, RetrogradeStatus

RETROGRADE_TABLE_VERSION = "2026.1"

RETROGRADE_PERIODS: tuple[RetrogradePeriod, ...] = tuple(
    RetrogradePeriod(planet=planet, sign=sign, start_date=date.fromisoformat(start), end_date=date.fromisoformat(end))
    for planet, sign, start, end in (
        ("mercury", "Aries", "2025-03-15", "2025-04-07"),
        ("mercury", "Leo", "2025-07-18", "2025-08-11"),
        ("mercury", "Sagittarius", "2025-11-09", "2025-11-29"),
        ("mercury", "Aquarius", "2026-01-15", "2026-02-04"),
        ("mercury", "Gemini", "2026-05-10", "2026-06-03"),
        ("mercury", "Virgo", "2026-09-09", "2026-09-30"),
        ("mercury", "Capricorn", "2026-12-29", "2027-01-18"),
    )
)

DAY = timedelta(days=1)


@dataclass(frozen=True)
class BadgeThresholds:
    """Survival-day thresholds for the retrograde badge ladder."""

    bronze_days: int = 3
    silver_days: int = 10
    completed_window_days: int = 3


def thresholds_from_settings(settings=None) -> BadgeThresholds:
    settings = settings or get_settings()
    return BadgeThresholds(
        bronze_days=settings.retrograde_bronze_days,
        silver_days=settings.retrograde_silver_days,
        completed_window_days=settings.retrograde_completed_window_days,
    )


def validate_periods(periods: Iterable[RetrogradePeriod]) -> None:
    """Reject tables where two periods of the same planet overlap."""
    by_planet: dict[str, list[RetrogradePeriod]] = {}
    for period in periods:
        by_planet.setdefault(period.planet, []).append(period)
    for planet, entries in by_planet.items():
        entries.sort(key=lambda p: p.start_date)
        for earlier, later in zip(entries, entries[1:]):
            if later.start_date <= earlier.end_date:
                raise ValueError(
                    f"overlapping {planet} retrograde periods: "
                    f"{earlier.start_date}..{earlier.end_date} and {later.start_date}..{later.end_date}"
                )


validate_periods(RETROGRADE_PERIODS)


def _midnight(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=UTC)


def _period_length_days(period: RetrogradePeriod) -> int:
    return (period.end_date - period.start_date).days + 1


def _badge_for(survival_days: int, thresholds: BadgeThresholds) -> str | None:
    if survival_days >= thresholds.silver_days:
        return "silver"
    if survival_days >= thresholds.bronze_days:
        return "bronze"
    return None


def retrograde_periods_for(
    planet: str, periods: Sequence[RetrogradePeriod] = RETROGRADE_PERIODS
) -> list[RetrogradePeriod]:
    wanted = planet.strip().lower()
    return sorted((p for p in periods if p.planet == wanted), key=lambda p: p.start_date)


def get_current_retrograde_status(
    now: datetime,
    periods: Sequence[RetrogradePeriod] = RETROGRADE_PERIODS,
    thresholds: BadgeThresholds = BadgeThresholds(),
) -> RetrogradeStatus:
    """Active period first, then a period that ended within the completed window."""
    if now.tzinfo is None:
        raise ValueError("now must be timezone-aware")

    for period in periods:
        start = _midnight(period.start_date)
        end = _midnight(period.end_date)
        if start <= now <= end:
            survival_days = min((now - start) // DAY + 1, _period_length_days(period))
            return RetrogradeStatus(
                is_active=True,
                survival_days=survival_days,
                badge_level=_badge_for(survival_days, thresholds),
                period=period,
            )

    window = timedelta(days=thresholds.completed_window_days)
    for period in periods:
        end = _midnight(period.end_date)
        if end < now <= end + window:
            return RetrogradeStatus(
                is_completed=True,
                survival_days=_period_length_days(period),
                badge_level="gold",
                period=period,
            )

    return RetrogradeStatus()


def get_active_retrograde_space_slug(
    now: datetime,
    periods: Sequence[RetrogradePeriod] = RETROGRADE_PERIODS,
) -> str | None:
    """Stable community-space id, keyed on the period's start month."""
    status = get_current_retrograde_status(now, periods)
    if not status.is_active or status.period is None:
        return None
    start = status.period.start_date
    return f"{status.period.planet}-retrograde-{start.year}-{start.month:02d}"
