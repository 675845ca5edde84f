"""Tests for the pyswisseph adapter."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest
import swisseph as swe

import ephemeris.adapter as adapter
from ephemeris.aspects import angular_distance


class FakeSwe:
    FLG_SWIEPH = 2
    FLG_MOSEPH = 4
    FLG_SPEED = 256
    Error = swe.Error

    def __init__(self, fail_moshier: bool = False):
        self.fail_moshier = fail_moshier
        self.calls: list[int] = []

    def calc_ut(self, jd: float, body_id: int, flags: int):
        self.calls.append(flags)
        if flags & self.FLG_SWIEPH:
            raise self.Error("SwissEph file 'sepl_18.se1' not found")
        if self.fail_moshier:
            raise self.Error("moshier failed")
        return (123.0, 0.0, 1.0, -0.5, 0.0, 0.0), flags


def test_ecliptic_longitude_rejects_naive_datetime():
    with pytest.raises(ValueError):
        adapter.ecliptic_longitude("sun", datetime(2026, 3, 20, 12, 0))


def test_sun_sits_at_zero_aries_on_march_equinox():
    longitude = adapter.ecliptic_longitude("sun", datetime(2026, 3, 20, 14, 46, tzinfo=UTC))
    assert 0.0 <= longitude < 360.0
    assert angular_distance(longitude, 0.0) < 0.1


def test_calc_falls_back_to_moshier(monkeypatch):
    fake = FakeSwe()
    monkeypatch.setattr(adapter, "swe", fake)
    monkeypatch.setattr(adapter, "_ephe_path_applied", True)

    longitude, speed = adapter._calc("mercury", 2460000.5)
    assert longitude == 123.0
    assert speed == -0.5
    assert fake.calls == [fake.FLG_SWIEPH | fake.FLG_SPEED, fake.FLG_MOSEPH | fake.FLG_SPEED]


def test_calc_raises_when_both_ephemerides_fail(monkeypatch):
    monkeypatch.setattr(adapter, "swe", FakeSwe(fail_moshier=True))
    monkeypatch.setattr(adapter, "_ephe_path_applied", True)

    with pytest.raises(adapter.EphemerisError):
        adapter._calc("mercury", 2460000.5)


def test_unknown_body_raises():
    with pytest.raises(adapter.EphemerisError):
        adapter.ecliptic_longitude("chiron", datetime(2026, 1, 1, tzinfo=UTC))


def test_jd_round_trip_keeps_the_instant():
    instant = datetime(2026, 10, 18, 7, 30, 15, tzinfo=UTC)
    assert adapter.jd_to_datetime(adapter.datetime_to_jd(instant)) == instant
