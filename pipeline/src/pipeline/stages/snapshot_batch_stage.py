"""Daily batch refresh of per-user cosmic snapshots.

Standalone entry point: manages its own DB sessions. The global row for the
day is warmed once, then eligible users are paged through and each one is
built and saved in its own session, so one bad chart never affects another
user. Re-running a day is safe because every write is an upsert.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, timedelta

from lunary.database import get_session
from lunary.models import BatchRun, NotificationSubscription, User, UserProfile
from lunary.schemas.cosmic import CosmicSnapshotPayload, GlobalCosmicDay
from lunary.services.global_cache import build_global_cosmic_data
from lunary.services.snapshot_cache import build_snapshot_with_global_cache, save_snapshot
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

BATCH_TYPE = "cosmic_snapshot"


@dataclass(frozen=True)
class CandidateRow:
    user_id: uuid.UUID
    birthday: date
    timezone: str | None
    locale: str | None
    display_name: str | None
    birth_chart: dict | None = None

    @property
    def chart_source(self) -> dict | date:
        if isinstance(self.birth_chart, dict) and self.birth_chart.get("positions"):
            return self.birth_chart
        return self.birthday


@dataclass
class BatchOutcome:
    processed: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)
    pages: int = 0
    stopped_early: bool = False


FetchPage = Callable[[AsyncSession, int, int], Awaitable[list[CandidateRow]]]
Notify = Callable[[CandidateRow, CosmicSnapshotPayload], Awaitable[None]]


async def fetch_candidate_page(session: AsyncSession, offset: int, limit: int) -> list[CandidateRow]:
    """Active users with an active subscription and a birthday, ordered by id."""
    subscribed = select(NotificationSubscription.user_id).where(NotificationSubscription.is_active)
    result = await session.execute(
        select(
            User.id,
            UserProfile.birth_date,
            User.timezone,
            User.locale,
            User.display_name,
            UserProfile.birth_chart_json,
        )
        .join(UserProfile, UserProfile.user_id == User.id)
        .where(
            User.is_active,
            UserProfile.birth_date.is_not(None),
            User.id.in_(subscribed),
        )
        .order_by(User.id)
        .offset(offset)
        .limit(limit)
    )
    return [
        CandidateRow(
            user_id=user_id,
            birthday=birthday,
            timezone=tz,
            locale=locale,
            display_name=display_name,
            birth_chart=chart,
        )
        for user_id, birthday, tz, locale, display_name, chart in result.all()
    ]


def _should_stop(deadline: float | None, stop_event: asyncio.Event | None) -> bool:
    if stop_event is not None and stop_event.is_set():
        return True
    return deadline is not None and time.monotonic() >= deadline


async def _create_batch_run(target_date: date, started_at: datetime) -> uuid.UUID | None:
    try:
        async with get_session() as br_session:
            batch_run = BatchRun(
                batch_type=BATCH_TYPE,
                started_at=started_at,
                status="running",
                target_date=target_date,
            )
            br_session.add(batch_run)
            await br_session.flush()
            return batch_run.id
    except Exception:
        logger.warning("Could not create BatchRun record", exc_info=True)
        return None


async def _finish_batch_run(
    batch_run_id: uuid.UUID | None,
    status: str,
    outcome: BatchOutcome,
    eligible_count: int,
    ended_at: datetime,
    error_detail: str | None = None,
) -> None:
    if batch_run_id is None:
        return
    try:
        async with get_session() as br_session:
            result = await br_session.execute(select(BatchRun).where(BatchRun.id == batch_run_id))
            br = result.scalars().first()
            if br:
                br.status = status
                br.ended_at = ended_at
                br.eligible_count = eligible_count
                br.processed_count = outcome.processed
                br.failed_count = outcome.failed
                br.summary_json = {
                    "pages": outcome.pages,
                    "stopped_early": outcome.stopped_early,
                    "errors": outcome.errors,
                }
                if error_detail:
                    br.error_detail = error_detail[:2000]
    except Exception:
        logger.warning("Could not update BatchRun to %s", status, exc_info=True)


async def run_cosmic_snapshot_batch(
    now: datetime,
    *,
    page_size: int = 100,
    concurrency: int = 5,
    error_report_limit: int = 10,
    deadline: float | None = None,
    stop_event: asyncio.Event | None = None,
    notify: Notify | None = None,
    fetch_page: FetchPage = fetch_candidate_page,
) -> BatchOutcome:
    """Refresh today's snapshot for every eligible user.

    Args:
        now: Run instant; the UTC date of it selects the global row.
        page_size: Users fetched per page.
        concurrency: Max users processed at once.
        error_report_limit: Max error messages kept in the outcome.
        deadline: time.monotonic() value after which no new page is started.
        stop_event: When set, no new page is started.
        notify: Optional hook called after a user's snapshot is saved.
        fetch_page: Candidate listing, injectable for tests.

    Returns:
        BatchOutcome with processed/failed counts and the first errors.
    """
    if now.tzinfo is None:
        raise ValueError("now must be timezone-aware")
    if page_size < 1 or concurrency < 1:
        raise ValueError("page_size and concurrency must be positive")

    target_date = now.astimezone(UTC).date()
    outcome = BatchOutcome()
    eligible_count = 0
    started = time.monotonic()
    batch_run_id = await _create_batch_run(target_date, now)

    def _ended_at() -> datetime:
        # Run instant plus elapsed monotonic time
        return now + timedelta(seconds=time.monotonic() - started)

    try:
        async with get_session() as session:
            global_data = await build_global_cosmic_data(session, target_date, now)

        semaphore = asyncio.Semaphore(concurrency)

        async def _process_one(row: CandidateRow, day: GlobalCosmicDay) -> str | None:
            async with semaphore:
                try:
                    async with get_session() as session:
                        snapshot = build_snapshot_with_global_cache(
                            row.user_id,
                            day,
                            row.timezone,
                            row.locale,
                            row.display_name,
                            row.chart_source,
                            now,
                        )
                        await save_snapshot(session, row.user_id, target_date, snapshot)
                except Exception as exc:
                    logger.exception("Cosmic snapshot failed for user %s", row.user_id)
                    return f"{row.user_id}: {exc}"

                if notify is not None:
                    try:
                        await notify(row, snapshot)
                    except Exception:
                        logger.warning("Notification failed for user %s", row.user_id, exc_info=True)
                return None

        offset = 0
        while True:
            if _should_stop(deadline, stop_event):
                outcome.stopped_early = True
                logger.warning(
                    "Snapshot batch stopping early after %d page(s) (%d processed)",
                    outcome.pages,
                    outcome.processed,
                )
                break

            async with get_session() as session:
                page = await fetch_page(session, offset, page_size)
            if not page:
                break
            outcome.pages += 1
            offset += len(page)
            eligible_count += len(page)

            errors = await asyncio.gather(*(_process_one(row, global_data) for row in page))
            for error in errors:
                if error is None:
                    outcome.processed += 1
                    continue
                outcome.failed += 1
                if len(outcome.errors) < error_report_limit:
                    outcome.errors.append(error)

            logger.info(
                "Snapshot batch page %d: %d users (%d processed, %d failed so far)",
                outcome.pages,
                len(page),
                outcome.processed,
                outcome.failed,
            )
    except Exception as exc:
        await _finish_batch_run(
            batch_run_id, "failed", outcome, eligible_count, _ended_at(), str(exc)
        )
        raise

    await _finish_batch_run(batch_run_id, "completed", outcome, eligible_count, _ended_at())
    logger.info(
        "Snapshot batch complete for %s: %d processed, %d failed",
        target_date.isoformat(),
        outcome.processed,
        outcome.failed,
    )
    return outcome
