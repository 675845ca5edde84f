"""Tests for retrograde survival status."""

from __future__ import annotations

from datetime import UTC, date, datetime, timedelta

import pytest
from lunary.schemas.cosmic import RetrogradePeriod

from ephemeris.retrograde import (
    RETROGRADE_PERIODS,
    BadgeThresholds,
    get_active_retrograde_space_slug,
    get_current_retrograde_status,
    retrograde_periods_for,
    validate_periods,
)


def _at(y: int, m: int, d: int, hour: int = 0, second: int = 0) -> datetime:
    return datetime(y, m, d, hour, 0, second, tzinfo=UTC)


def test_first_day_counts_as_day_one_without_badge():
    status = get_current_retrograde_status(_at(2026, 9, 9))
    assert status.is_active is True
    assert status.survival_days == 1
    assert status.badge_level is None
    assert status.period.sign == "Virgo"


def test_bronze_from_day_three():
    status = get_current_retrograde_status(_at(2026, 9, 11, hour=12))
    assert status.survival_days == 3
    assert status.badge_level == "bronze"


def test_silver_from_day_ten():
    status = get_current_retrograde_status(_at(2026, 9, 18))
    assert status.survival_days == 10
    assert status.badge_level == "silver"


def test_end_day_is_still_active_and_clamped_to_period_length():
    status = get_current_retrograde_status(_at(2026, 9, 30))
    assert status.is_active is True
    assert status.survival_days == 22


def test_completed_window_awards_gold():
    status = get_current_retrograde_status(_at(2026, 9, 30, hour=12))
    assert status.is_active is False
    assert status.is_completed is True
    assert status.badge_level == "gold"
    assert status.survival_days == 22


def test_completed_window_is_inclusive_of_three_days():
    assert get_current_retrograde_status(_at(2026, 10, 3)).is_completed is True
    after = get_current_retrograde_status(_at(2026, 10, 3, second=1))
    assert after.is_completed is False
    assert after.badge_level is None
    assert after.period is None


def test_outside_any_period_is_inactive():
    status = get_current_retrograde_status(_at(2026, 10, 18))
    assert status.is_active is False
    assert status.is_completed is False
    assert status.survival_days == 0


def test_badges_never_regress_while_active():
    rank = {None: 0, "bronze": 1, "silver": 2}
    previous = 0
    now = _at(2026, 5, 10)
    while now <= _at(2026, 6, 3):
        status = get_current_retrograde_status(now)
        assert status.is_active
        assert rank[status.badge_level] >= previous
        previous = rank[status.badge_level]
        now += timedelta(hours=6)


def test_custom_thresholds():
    thresholds = BadgeThresholds(bronze_days=1, silver_days=2)
    assert get_current_retrograde_status(_at(2026, 9, 9), thresholds=thresholds).badge_level == "bronze"
    assert get_current_retrograde_status(_at(2026, 9, 10), thresholds=thresholds).badge_level == "silver"


def test_short_period_survival_is_clamped():
    periods = [
        RetrogradePeriod(
            planet="mercury", sign="Aries", start_date=date(2030, 1, 1), end_date=date(2030, 1, 2)
        )
    ]
    status = get_current_retrograde_status(_at(2030, 1, 2), periods)
    assert status.survival_days == 2


def test_naive_now_is_rejected():
    with pytest.raises(ValueError):
        get_current_retrograde_status(datetime(2026, 9, 10))


def test_space_slug_uses_start_month():
    assert get_active_retrograde_space_slug(_at(2026, 12, 30)) == "mercury-retrograde-2026-12"
    assert get_active_retrograde_space_slug(_at(2027, 1, 10)) == "mercury-retrograde-2026-12"
    assert get_active_retrograde_space_slug(_at(2026, 10, 18)) is None


def test_space_slug_is_none_in_completed_window():
    assert get_active_retrograde_space_slug(_at(2026, 10, 1)) is None


def test_periods_for_planet():
    mercury = retrograde_periods_for("Mercury")
    assert len(mercury) == len(RETROGRADE_PERIODS)
    assert mercury == sorted(mercury, key=lambda p: p.start_date)
    assert retrograde_periods_for("venus") == []


def test_overlapping_periods_are_rejected():
    periods = [
        RetrogradePeriod(
            planet="mercury", sign="Aries", start_date=date(2030, 1, 1), end_date=date(2030, 1, 20)
        ),
        RetrogradePeriod(
            planet="mercury", sign="Pisces", start_date=date(2030, 1, 20), end_date=date(2030, 2, 5)
        ),
    ]
    with pytest.raises(ValueError):
        validate_periods(periods)


def test_period_must_start_before_it_ends():
    with pytest.raises(ValueError):
        RetrogradePeriod(
            planet="mercury", sign="Aries", start_date=date(2030, 1, 2), end_date=date(2030, 1, 2)
        )
