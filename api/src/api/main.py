"""FastAPI application factory."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from alembic.config import Config as AlembicConfig
from alembic.script import ScriptDirectory
from fastapi import FastAPI
from lunary.config import get_settings
from lunary.database import close_engine, get_engine
from sqlalchemy import text

from api.routers import cosmic, health, user_cosmic, user_profile

logger = logging.getLogger(__name__)


async def _assert_database_revision_current() -> None:
    settings = get_settings()
    if settings.skip_migration_check:
        return

    repo_root = Path(__file__).resolve().parents[3]
    alembic_ini = repo_root / "alembic.ini"
    if not alembic_ini.exists():
        logger.warning("alembic.ini not found; skipping migration revision check")
        return

    alembic_cfg = AlembicConfig(str(alembic_ini))
    alembic_cfg.set_main_option("script_location", str(repo_root / "alembic"))
    script = ScriptDirectory.from_config(alembic_cfg)
    expected_heads = set(script.get_heads())
    if not expected_heads:
        return

    engine = get_engine()
    try:
        async with engine.connect() as connection:
            result = await connection.execute(text("SELECT version_num FROM alembic_version"))
            current_revisions = {str(row[0]) for row in result.fetchall() if row and row[0]}
    except Exception as exc:
        raise RuntimeError(
            "Database migration revision check failed. "
            "Run `alembic upgrade head` before starting the API."
        ) from exc

    if current_revisions != expected_heads:
        raise RuntimeError(
            "Database schema revision mismatch: "
            f"db={sorted(current_revisions)} expected={sorted(expected_heads)}. "
            "Run `alembic upgrade head`."
        )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    try:
        await _assert_database_revision_current()
        yield
    finally:
        await close_engine()


def create_app() -> FastAPI:
    app = FastAPI(title="Lunary Cosmic API", version="0.1.0", lifespan=lifespan)
    if get_settings().secret_key == "change-me-in-production":
        logger.warning("SECRET_KEY uses insecure default value")
    app.include_router(health.router, tags=["health"])
    app.include_router(cosmic.router, prefix="/v1/cosmic", tags=["cosmic"])
    app.include_router(user_profile.router, prefix="/v1/user/profile", tags=["user-profile"])
    app.include_router(user_cosmic.router, prefix="/v1/user/cosmic", tags=["user-cosmic"])
    return app


app = create_app()
