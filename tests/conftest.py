"""Shared fixtures for cache and invalidation tests."""

from __future__ import annotations

import uuid
from contextlib import asynccontextmanager
from datetime import UTC, date, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
from lunary.schemas.cosmic import (
    CosmicEvent,
    GlobalCosmicDay,
    MoonPhase,
    PlanetPosition,
)


class FakeSession:
    """Records executed statements; optionally returns a canned row."""

    def __init__(self, row=None, fail: Exception | None = None):
        self.row = row
        self.fail = fail
        self.statements: list = []
        self.flush = AsyncMock()

    async def execute(self, stmt):
        if self.fail is not None:
            raise self.fail
        self.statements.append(stmt)
        result = MagicMock()
        result.scalars.return_value.first.return_value = self.row
        return result


@pytest.fixture
def make_session():
    return FakeSession


@pytest.fixture
def session_factory():
    """A get_session replacement that hands out FakeSession instances."""
    sessions: list[FakeSession] = []

    @asynccontextmanager
    async def _get_session():
        session = FakeSession()
        sessions.append(session)
        yield session

    _get_session.sessions = sessions
    return _get_session


@pytest.fixture
def user_id():
    return uuid.UUID("00000000-0000-0000-0000-000000000042")


@pytest.fixture
def snapshot_now():
    return datetime(2026, 10, 18, 12, 0, tzinfo=UTC)


@pytest.fixture
def natal_chart():
    return {
        "positions": [
            {"body": "sun", "sign": "Sagittarius", "degree": 5.5, "longitude": 245.5},
            {"body": "moon", "sign": "Cancer", "degree": 10.0, "longitude": 100.0},
        ]
    }


@pytest.fixture
def global_day():
    """A hand-built sky: Mars sits on a Sagittarius Sun, a solar eclipse is upcoming."""
    return GlobalCosmicDay(
        data_date=date(2026, 10, 18),
        moon_phase=MoonPhase(
            name="Waxing Crescent",
            energy="Growing Energy",
            phase_angle=45.0,
            illumination=14.64,
            age_days=3.69,
            is_significant=False,
        ),
        planetary_positions={
            "sun": PlanetPosition(
                sign="Libra", degree=25.0, longitude=205.0, speed_deg_day=0.99, retrograde=False
            ),
            "mars": PlanetPosition(
                sign="Sagittarius", degree=5.0, longitude=245.0, speed_deg_day=0.7, retrograde=False
            ),
        },
        significant_events=[
            CosmicEvent(type="seasonal", name="Autumn Equinox", body="sun", priority=10),
            CosmicEvent(type="ingress", name="Venus enters Scorpio", body="venus", sign="Scorpio", priority=7),
        ],
        eclipse_flags={
            "eclipse_today": False,
            "today": [],
            "upcoming": {
                "peak": "2026-10-28T10:00:00+00:00",
                "kind": "solar",
                "obscuration": 0.9,
                "longitude": 245.0,
                "sign": "Sagittarius",
            },
            "days_until_next": 10,
        },
        retrograde_flags={"retrograde_bodies": [], "table_version": "2026.1"},
        computed_at=datetime(2026, 10, 18, 4, 0, tzinfo=UTC),
    )
