"""Cascading invalidation of everything derived from a user's birth chart.

Each target runs in its own session so one failing table never rolls back
the others. Results are collected all-settled and reported per target.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass

from sqlalchemy import delete, or_, update
from sqlalchemy.ext.asyncio import AsyncSession

from lunary.database import get_session
from lunary.models import (
    CosmicReport,
    DailyHoroscope,
    FriendConnection,
    JournalPattern,
    MonthlyInsight,
    PatternAnalysis,
    SynastryReport,
    YearAnalysis,
)
from lunary.services.snapshot_cache import delete_snapshots

logger = logging.getLogger(__name__)

InvalidationOp = Callable[[AsyncSession, uuid.UUID], Awaitable[None]]


@dataclass(frozen=True)
class InvalidationResult:
    target: str
    ok: bool
    error: str | None = None


def _delete_user_rows(model) -> InvalidationOp:
    async def _op(session: AsyncSession, user_id: uuid.UUID) -> None:
        await session.execute(delete(model).where(model.user_id == user_id))

    return _op


async def _reset_friend_synastry(session: AsyncSession, user_id: uuid.UUID) -> None:
    # Either side of the friendship carries a score computed from this chart
    await session.execute(
        update(FriendConnection)
        .where(or_(FriendConnection.user_id == user_id, FriendConnection.friend_id == user_id))
        .values(synastry_score=None, synastry_data=None)
    )


DEFAULT_TARGETS: tuple[tuple[str, InvalidationOp], ...] = (
    ("synastry_reports", _delete_user_rows(SynastryReport)),
    ("daily_horoscopes", _delete_user_rows(DailyHoroscope)),
    ("monthly_insights", _delete_user_rows(MonthlyInsight)),
    ("cosmic_snapshots", delete_snapshots),
    ("cosmic_reports", _delete_user_rows(CosmicReport)),
    ("journal_patterns", _delete_user_rows(JournalPattern)),
    ("pattern_analysis", _delete_user_rows(PatternAnalysis)),
    ("year_analysis", _delete_user_rows(YearAnalysis)),
    ("friend_connections", _reset_friend_synastry),
)


async def _run_target(op: InvalidationOp, user_id: uuid.UUID) -> None:
    async with get_session() as session:
        await op(session, user_id)


async def invalidate_derived_caches(
    user_id: uuid.UUID,
    targets: Sequence[tuple[str, InvalidationOp]] | None = None,
) -> list[InvalidationResult]:
    """Clear every derived cache for a user. Never raises; failures are reported."""
    chosen = DEFAULT_TARGETS if targets is None else tuple(targets)
    outcomes = await asyncio.gather(
        *(_run_target(op, user_id) for _, op in chosen),
        return_exceptions=True,
    )

    results: list[InvalidationResult] = []
    for (name, _), outcome in zip(chosen, outcomes):
        if isinstance(outcome, BaseException):
            logger.warning(
                "Cache invalidation failed for %s (user %s): %s",
                name,
                user_id,
                outcome,
                exc_info=outcome,
            )
            results.append(
                InvalidationResult(target=name, ok=False, error=str(outcome) or type(outcome).__name__)
            )
        else:
            results.append(InvalidationResult(target=name, ok=True))

    failed = sum(1 for r in results if not r.ok)
    logger.info(
        "Invalidated derived caches for user %s: %d ok, %d failed",
        user_id,
        len(results) - failed,
        failed,
    )
    return results
