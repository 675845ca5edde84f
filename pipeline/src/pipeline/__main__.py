"""Pipeline entry point for running as a module: python -m pipeline."""

from __future__ import annotations

import asyncio
import logging
import signal
import sys
import time
from datetime import UTC, datetime, timedelta
from zoneinfo import ZoneInfo

from lunary.config import get_settings
from lunary.database import get_session
from lunary.models import BatchRun
from sqlalchemy import select

from pipeline.stages.snapshot_batch_stage import run_cosmic_snapshot_batch

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    stream=sys.stdout,
)

logger = logging.getLogger("pipeline")


def _parse_daily_schedule(schedule: str) -> tuple[int, int]:
    """Parse a simple daily cron expression: M H * * *."""
    parts = schedule.split()
    if len(parts) != 5:
        raise ValueError(f"Unsupported schedule '{schedule}'. Expected 'M H * * *'.")
    minute_str, hour_str, dom, month, dow = parts
    if dom != "*" or month != "*" or dow != "*":
        raise ValueError(f"Unsupported schedule '{schedule}'. Only daily schedules are supported.")

    minute = int(minute_str)
    hour = int(hour_str)
    if minute < 0 or minute > 59 or hour < 0 or hour > 23:
        raise ValueError(f"Invalid schedule '{schedule}'.")
    return hour, minute


def _next_run(now: datetime, hour: int, minute: int) -> datetime:
    target = now.replace(hour=hour, minute=minute, second=0, microsecond=0)
    if target <= now:
        target += timedelta(days=1)
    return target


async def _run_once(*, fail_hard: bool, stop_event: asyncio.Event | None = None) -> None:
    settings = get_settings()
    deadline = None
    if settings.snapshot_batch_deadline_seconds:
        deadline = time.monotonic() + settings.snapshot_batch_deadline_seconds
    try:
        outcome = await run_cosmic_snapshot_batch(
            datetime.now(UTC),
            page_size=settings.snapshot_batch_page_size,
            concurrency=settings.snapshot_batch_concurrency,
            error_report_limit=settings.snapshot_batch_error_limit,
            deadline=deadline,
            stop_event=stop_event,
        )
        logger.info(
            "Snapshot batch finished: %d processed, %d failed, %d page(s)%s",
            outcome.processed,
            outcome.failed,
            outcome.pages,
            " (stopped early)" if outcome.stopped_early else "",
        )
    except Exception as exc:
        logger.error("Snapshot batch failed: %s", exc)
        if fail_hard:
            raise


async def _mark_orphaned_running_runs() -> None:
    """Convert stale 'running' rows to failed on process startup."""
    try:
        async with get_session() as session:
            result = await session.execute(select(BatchRun).where(BatchRun.status == "running"))
            orphaned = result.scalars().all()
            if not orphaned:
                return

            now = datetime.now(UTC)
            for run in orphaned:
                run.status = "failed"
                run.ended_at = now
                if not run.error_detail:
                    run.error_detail = "Run marked failed after pipeline process restart before completion."
            logger.warning("Marked %d orphaned running batch(es) as failed", len(orphaned))
    except Exception as exc:
        logger.warning("Could not mark orphaned runs on startup: %s", exc)


async def _run_scheduler(stop_event: asyncio.Event) -> None:
    settings = get_settings()
    if settings.snapshot_batch_run_on_start:
        logger.info("Running snapshot batch immediately on startup")
        await _run_once(fail_hard=False, stop_event=stop_event)

    schedule = settings.snapshot_batch_schedule
    hour, minute = _parse_daily_schedule(schedule)
    tz = ZoneInfo(settings.timezone)

    last_announced: str | None = None
    while not stop_event.is_set():
        now = datetime.now(tz)
        target = _next_run(now, hour, minute)
        sleep_seconds = max((target - now).total_seconds(), 1.0)
        if target.isoformat() != last_announced:
            logger.info(
                "Next snapshot batch scheduled for %s (%s seconds) using '%s' %s",
                target.isoformat(),
                int(sleep_seconds),
                schedule,
                settings.timezone,
            )
            last_announced = target.isoformat()

        if sleep_seconds > 30:
            await asyncio.sleep(30)
            continue

        await asyncio.sleep(sleep_seconds)
        await _run_once(fail_hard=False, stop_event=stop_event)


async def main() -> None:
    """Run one batch pass or scheduler mode."""
    logger.info("Starting Lunary pipeline")
    await _mark_orphaned_running_runs()

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)

    if "--once" in sys.argv[1:]:
        try:
            await _run_once(fail_hard=True, stop_event=stop_event)
        except Exception:
            sys.exit(1)
        return

    try:
        await _run_scheduler(stop_event)
    except Exception as exc:
        logger.error("Pipeline scheduler failed: %s", exc)
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
