"""Tests for profile, birth chart and preference endpoints."""

from __future__ import annotations

from datetime import time

import api.routers.user_profile as user_profile
import pytest
from api.dependencies import get_current_public_user
from ephemeris.adapter import EphemerisError
from lunary.services.invalidation import InvalidationResult

CHART = {"positions": [{"body": "sun", "sign": "Sagittarius", "degree": 3.1, "longitude": 243.1}]}


@pytest.fixture
def calls(monkeypatch, mock_db):
    """Records commit and invalidation order."""
    order: list[str] = []

    async def _commit():
        order.append("commit")

    async def _invalidate(user_id):
        order.append("invalidate")
        return [
            InvalidationResult(target="daily_horoscopes", ok=True),
            InvalidationResult(target="year_analysis", ok=False, error="timeout"),
        ]

    async def _invalidate_snapshot(user_id):
        order.append("invalidate_snapshot")
        return True

    def _chart(**kwargs):
        order.append("chart")
        return CHART

    mock_db.commit.side_effect = _commit
    monkeypatch.setattr(user_profile, "invalidate_derived_caches", _invalidate)
    monkeypatch.setattr(user_profile, "invalidate_snapshot", _invalidate_snapshot)
    monkeypatch.setattr(user_profile, "calculate_natal_chart", _chart)
    return order


async def test_get_profile(user_client):
    resp = await user_client.get("/v1/user/profile/")
    assert resp.status_code == 200
    body = resp.json()
    assert body["has_profile"] is True
    assert body["birth_date"] == "1992-11-25"


async def test_birth_chart_update_invalidates_after_commit(user_client, public_user, calls):
    resp = await user_client.put(
        "/v1/user/profile/birth-chart",
        json={
            "birth_date": "1992-11-25",
            "birth_time": "15:30",
            "birth_time_known": True,
            "birth_latitude": 40.7128,
            "birth_longitude": -74.006,
            "birth_timezone": "America/New_York",
        },
    )
    assert resp.status_code == 200
    assert calls == ["chart", "commit", "invalidate"]
    body = resp.json()
    assert body["birth_time"] == "15:30"
    assert body["invalidation"] == [
        {"target": "daily_horoscopes", "ok": True, "error": None},
        {"target": "year_analysis", "ok": False, "error": "timeout"},
    ]
    assert public_user.profile.birth_chart_json == CHART
    assert public_user.profile.birth_time == time(15, 30)


async def test_birth_time_ignored_when_unknown(user_client, public_user, calls):
    resp = await user_client.put(
        "/v1/user/profile/birth-chart",
        json={"birth_date": "1992-11-25", "birth_time": "15:30", "birth_time_known": False},
    )
    assert resp.status_code == 200
    assert public_user.profile.birth_time is None


async def test_new_profile_is_added(user_client, app, make_user, mock_db, calls):
    app.dependency_overrides[get_current_public_user] = lambda: make_user(profile=None)
    resp = await user_client.put("/v1/user/profile/birth-chart", json={"birth_date": "1990-01-01"})
    assert resp.status_code == 200
    mock_db.add.assert_called_once()


@pytest.mark.parametrize(
    "payload",
    [
        {"birth_date": "2999-01-01"},
        {"birth_date": "1992-11-25", "birth_time_known": True},
        {"birth_date": "1992-11-25", "birth_latitude": 40.0},
    ],
)
async def test_birth_chart_rejects_inconsistent_input(user_client, calls, payload):
    resp = await user_client.put("/v1/user/profile/birth-chart", json=payload)
    assert resp.status_code == 400
    assert calls == []


@pytest.mark.parametrize(
    "payload",
    [
        {"birth_date": "1992-11-25", "birth_time": "3pm", "birth_time_known": True},
        {"birth_date": "1992-11-25", "birth_timezone": "Mars/Olympus_Mons"},
        {"birth_date": "1992-11-25", "birth_latitude": 91.0, "birth_longitude": 0.0},
    ],
)
async def test_birth_chart_validation_errors(user_client, calls, payload):
    resp = await user_client.put("/v1/user/profile/birth-chart", json=payload)
    assert resp.status_code == 422


async def test_ephemeris_failure_is_503(user_client, monkeypatch, calls):
    def _broken(**kwargs):
        raise EphemerisError("no ephemeris")

    monkeypatch.setattr(user_profile, "calculate_natal_chart", _broken)
    resp = await user_client.put("/v1/user/profile/birth-chart", json={"birth_date": "1992-11-25"})
    assert resp.status_code == 503
    assert "invalidate" not in calls


async def test_preferences_update_invalidates_snapshot(user_client, public_user, calls):
    resp = await user_client.put(
        "/v1/user/profile/preferences",
        json={"timezone": "Europe/London", "locale": "en-GB", "display_name": "  "},
    )
    assert resp.status_code == 200
    assert calls == ["commit", "invalidate_snapshot"]
    body = resp.json()
    assert body["timezone"] == "Europe/London"
    assert body["locale"] == "en-GB"
    assert body["display_name"] is None
    assert body["snapshot_invalidated"] is True


async def test_preferences_rejects_bad_timezone(user_client, calls):
    resp = await user_client.put("/v1/user/profile/preferences", json={"timezone": "Nowhere/Land"})
    assert resp.status_code == 422
    assert calls == []


async def test_natal_chart_read(user_client, natal_chart):
    resp = await user_client.get("/v1/user/profile/natal-chart")
    assert resp.status_code == 200
    assert resp.json() == natal_chart


async def test_natal_chart_missing(user_client, public_user):
    public_user.profile.birth_chart_json = None
    resp = await user_client.get("/v1/user/profile/natal-chart")
    assert resp.status_code == 400
