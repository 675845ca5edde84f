"""Tests for the daily cosmic calculator."""

from __future__ import annotations

from datetime import UTC, date, datetime

from ephemeris.bodies import ALL_BODIES
from ephemeris.calculator import calculate_cosmic_day

STAMP = datetime(2026, 10, 18, 4, 0, tzinfo=UTC)


def test_equinox_day_reports_seasonal_marker_first():
    day = calculate_cosmic_day(date(2026, 3, 20), STAMP)
    assert day.data_date == date(2026, 3, 20)
    assert set(day.planetary_positions) == set(ALL_BODIES)
    names = [e.name for e in day.significant_events]
    assert names[0] == "Spring Equinox"
    assert "Sun enters Aries" in names
    sun_ingress = next(e for e in day.significant_events if e.name == "Sun enters Aries")
    assert sun_ingress.at.date() == date(2026, 3, 20)
    assert sun_ingress.at.hour == 14


def test_events_are_ordered_by_priority():
    day = calculate_cosmic_day(date(2026, 3, 20), STAMP)
    priorities = [e.priority for e in day.significant_events]
    assert priorities == sorted(priorities, reverse=True)


def test_lunar_eclipse_day_is_flagged():
    day = calculate_cosmic_day(date(2026, 3, 3), STAMP)
    assert day.eclipse_flags["eclipse_today"] is True
    assert day.eclipse_flags["today"][0]["kind"] == "lunar"
    eclipse_events = [e for e in day.significant_events if e.type == "eclipse"]
    assert len(eclipse_events) == 1
    assert eclipse_events[0].name.startswith("Lunar Eclipse in ")
    assert day.moon_phase.is_significant is True


def test_upcoming_eclipse_within_lookahead():
    day = calculate_cosmic_day(date(2026, 2, 10), STAMP)
    assert day.eclipse_flags["eclipse_today"] is False
    assert day.eclipse_flags["upcoming"]["kind"] == "solar"
    assert day.eclipse_flags["days_until_next"] == 7


def test_no_upcoming_eclipse_outside_lookahead():
    day = calculate_cosmic_day(date(2026, 4, 15), STAMP)
    assert day.eclipse_flags["upcoming"] is None
    assert day.eclipse_flags["days_until_next"] is None


def test_retrograde_flags_carry_table_status():
    day = calculate_cosmic_day(date(2026, 9, 15), STAMP)
    flags = day.retrograde_flags
    assert flags["table_version"]
    assert flags["table_status"]["is_active"] is True
    assert flags["table_status"]["period"]["sign"] == "Virgo"
    assert isinstance(flags["retrograde_bodies"], list)


def test_computed_at_is_passed_through():
    stamp = datetime(2026, 10, 18, 4, 0, tzinfo=UTC)
    day = calculate_cosmic_day(date(2026, 10, 18), computed_at=stamp)
    assert day.computed_at == stamp


def test_same_date_gives_the_same_sky():
    first = calculate_cosmic_day(date(2020, 3, 4), STAMP)
    second = calculate_cosmic_day(date(2020, 3, 4), datetime(2020, 3, 5, tzinfo=UTC))
    assert first.planetary_positions == second.planetary_positions
    assert first.significant_events == second.significant_events
    assert first.moon_phase == second.moon_phase
    assert second.computed_at == datetime(2020, 3, 5, tzinfo=UTC)
