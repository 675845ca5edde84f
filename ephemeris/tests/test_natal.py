"""Tests for natal chart calculation."""

from __future__ import annotations

from datetime import date, time

from ephemeris.bodies import ALL_BODIES
from ephemeris.natal import (
    calculate_natal_chart,
    natal_longitude,
    natal_positions_from_birthday,
    normalize_chart_positions,
)


def test_natal_longitude_prefers_longitude():
    assert natal_longitude({"longitude": 370.0, "sign": "Leo", "degree": 5}) == 10.0


def test_natal_longitude_from_sign_and_degree():
    assert natal_longitude({"sign": "leo", "degree": 5}) == 125.0


def test_natal_longitude_invalid_entries():
    assert natal_longitude({"sign": "Ophiuchus", "degree": 5}) is None
    assert natal_longitude({"longitude": "north"}) is None


def test_normalize_chart_positions_skips_bad_entries():
    positions = [
        {"body": "Sun", "longitude": 245.5},
        {"body": "moon", "sign": "Aries", "degree": 12.25},
        {"body": "", "longitude": 10.0},
        "mars",
        {"body": "venus"},
    ]
    normalized = normalize_chart_positions(positions)
    assert normalized == [
        {"body": "sun", "sign": "Sagittarius", "degree": 5.5, "longitude": 245.5},
        {"body": "moon", "sign": "Aries", "degree": 12.25, "longitude": 12.25},
    ]


def test_normalize_chart_positions_rejects_non_list():
    assert normalize_chart_positions(None) == []
    assert normalize_chart_positions({"positions": []}) == []


def test_chart_with_time_and_location_has_angles():
    chart = calculate_natal_chart(
        date(1992, 11, 25), time(15, 30), 40.7128, -74.006, "America/New_York"
    )
    assert [p["body"] for p in chart["positions"]] == ALL_BODIES
    sun = chart["positions"][0]
    assert sun["sign"] == "Sagittarius"
    assert [a["body"] for a in chart["angles"]] == ["ascendant", "midheaven"]
    for angle in chart["angles"]:
        assert 0.0 <= angle["longitude"] < 360.0
    meta = chart["calculation_metadata"]
    assert meta["zodiac"] == "tropical"
    assert meta["time_known"] is True
    assert meta["birth_datetime_utc"] == "1992-11-25T20:30:00+00:00"
    assert meta["warnings"] == []


def test_chart_without_time_omits_angles():
    chart = calculate_natal_chart(date(1990, 1, 1), None, 51.5, -0.12, "Europe/London")
    assert chart["angles"] == []
    assert chart["calculation_metadata"]["time_known"] is False
    assert "birth time unknown, angles omitted" in chart["calculation_metadata"]["warnings"]
    assert chart["positions"][0]["sign"] == "Capricorn"


def test_invalid_timezone_falls_back_to_utc():
    chart = calculate_natal_chart(date(1990, 1, 1), time(8, 0), None, None, "Mars/Olympus_Mons")
    meta = chart["calculation_metadata"]
    assert meta["timezone"] == "UTC"
    assert meta["birth_datetime_utc"] == "1990-01-01T08:00:00+00:00"
    assert "invalid timezone 'Mars/Olympus_Mons', fallback to UTC" in meta["warnings"]
    assert chart["angles"] == []


def test_positions_from_birthday_use_noon_utc():
    positions = natal_positions_from_birthday(date(1990, 1, 1))
    assert len(positions) == len(ALL_BODIES)
    assert positions[0]["body"] == "sun"
    assert positions[0]["sign"] == "Capricorn"
