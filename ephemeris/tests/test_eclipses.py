"""Tests for eclipse lookup and natal relevance."""

from __future__ import annotations

from datetime import UTC, date, datetime

from lunary.schemas.cosmic import EclipseEvent

from ephemeris.eclipses import check_eclipse_relevance, find_eclipses, next_eclipse


def _eclipse(longitude: float) -> EclipseEvent:
    return EclipseEvent(
        peak=datetime(2026, 8, 12, 17, 46, tzinfo=UTC),
        kind="solar",
        obscuration=1.0,
        longitude=longitude,
        sign="Leo",
    )


def test_exact_hit_is_relevant_with_zero_orb():
    relevance = check_eclipse_relevance(_eclipse(140.0), [{"body": "sun", "longitude": 140.0}])
    assert relevance.is_relevant is True
    assert relevance.affected_planets == ["sun"]
    assert relevance.closest_aspect.planet == "sun"
    assert relevance.closest_aspect.orb == 0.0


def test_ten_degrees_away_is_not_relevant():
    relevance = check_eclipse_relevance(_eclipse(140.0), [{"body": "sun", "longitude": 150.0}])
    assert relevance.is_relevant is False
    assert relevance.affected_planets == []
    assert relevance.closest_aspect is None


def test_separation_wraps_across_zero_aries():
    relevance = check_eclipse_relevance(_eclipse(359.0), [{"body": "moon", "longitude": 1.0}])
    assert relevance.is_relevant is True
    assert relevance.closest_aspect.orb == 2.0


def test_empty_chart_is_not_relevant():
    relevance = check_eclipse_relevance(_eclipse(140.0), [])
    assert relevance.is_relevant is False
    assert relevance.closest_aspect is None


def test_sign_and_degree_entries_are_accepted():
    relevance = check_eclipse_relevance(_eclipse(16.0), [{"body": "venus", "sign": "Aries", "degree": 15.0}])
    assert relevance.affected_planets == ["venus"]
    assert relevance.closest_aspect.orb == 1.0


def test_closest_aspect_is_the_tightest_planet():
    natal = [
        {"body": "mars", "longitude": 142.5},
        {"body": "venus", "longitude": 139.0},
        {"body": "saturn", "longitude": 200.0},
    ]
    relevance = check_eclipse_relevance(_eclipse(140.0), natal)
    assert relevance.affected_planets == ["mars", "venus"]
    assert relevance.closest_aspect.planet == "venus"
    assert relevance.closest_aspect.orb == 1.0


def test_custom_orb():
    natal = [{"body": "mars", "longitude": 145.0}]
    assert check_eclipse_relevance(_eclipse(140.0), natal).is_relevant is False
    assert check_eclipse_relevance(_eclipse(140.0), natal, orb_degrees=5.0).is_relevant is True


def test_next_eclipse_after_new_year_2026_is_february_annular():
    event = next_eclipse(datetime(2026, 1, 1, tzinfo=UTC))
    assert event.kind == "solar"
    assert event.peak.date() == date(2026, 2, 17)
    assert 0.0 <= event.longitude < 360.0


def test_find_eclipses_in_range_is_ordered():
    events = find_eclipses(datetime(2026, 2, 1, tzinfo=UTC), datetime(2026, 4, 1, tzinfo=UTC))
    assert [e.kind for e in events] == ["solar", "lunar"]
    assert events[1].peak.date() == date(2026, 3, 3)
