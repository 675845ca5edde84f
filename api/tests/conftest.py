"""API test configuration."""

import uuid
from datetime import date
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from api.dependencies import get_current_public_user, get_db
from api.main import create_app
from httpx import ASGITransport, AsyncClient

USER_ID = uuid.UUID("7d9f1c2e-0000-4000-8000-000000000001")


def _make_user(profile=None, **overrides):
    """Minimal stand-in for the User model."""
    values = {
        "id": USER_ID,
        "email": "ada@example.com",
        "display_name": "Ada",
        "timezone": "UTC",
        "locale": "en-US",
        "token_version": 0,
        "is_active": True,
        "profile": profile,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


@pytest.fixture
def natal_chart():
    return {
        "positions": [
            {"body": "sun", "sign": "Sagittarius", "degree": 5.5, "longitude": 245.5},
            {"body": "moon", "sign": "Cancer", "degree": 10.0, "longitude": 100.0},
        ],
        "angles": [],
        "calculation_metadata": {"zodiac": "tropical", "warnings": []},
    }


@pytest.fixture
def public_user(natal_chart):
    profile = SimpleNamespace(
        birth_date=date(1992, 11, 25),
        birth_time=None,
        birth_time_known=False,
        birth_location=None,
        birth_latitude=None,
        birth_longitude=None,
        birth_timezone="UTC",
        birth_chart_json=natal_chart,
        birth_chart_computed_at=None,
    )
    return _make_user(profile=profile)


@pytest.fixture
def app():
    return create_app()


@pytest.fixture
def mock_db():
    """Creates a mock AsyncSession with common patterns pre-configured."""
    session = AsyncMock()
    # AsyncSession.add() is synchronous; use MagicMock to avoid un-awaited coroutine warnings.
    session.add = MagicMock()
    # Default: execute returns empty result set
    empty_result = MagicMock()
    empty_result.scalars.return_value.all.return_value = []
    empty_result.scalars.return_value.first.return_value = None
    empty_result.all.return_value = []
    session.execute.return_value = empty_result
    # Default: get returns None
    session.get.return_value = None
    return session


@pytest.fixture
async def client(app, mock_db):
    async def _override_db():
        yield mock_db

    app.dependency_overrides[get_db] = _override_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def user_client(app, client, public_user):
    """Client authenticated as public_user."""
    app.dependency_overrides[get_current_public_user] = lambda: public_user
    yield client


@pytest.fixture
def make_user():
    return _make_user
