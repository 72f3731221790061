"""AvatarScheduler: APScheduler-based trigger for avatar ticks.

Fires the updater on a cron schedule (hourly by default). Each firing
runs one tick under a deadline; a tick that overruns is cancelled, which
abandons in-flight user updates before they persist anything.

Capabilities:
- Cron expression validation before scheduling
- Coalesced, single-instance runs with a misfire grace period
- Manual trigger for one-off runs
"""

from __future__ import annotations

import asyncio
import time
from datetime import datetime, timezone
from typing import Any

import structlog
from apscheduler.events import EVENT_JOB_MISSED
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from randavatar.config import settings
from randavatar.crons.updater import AvatarUpdater, TickReport
from randavatar.errors import AvatarError, ConfigurationError
from randavatar.observability import get_metrics

logger = structlog.get_logger()

TICK_JOB_ID = "avatar_tick"


def validate_cron_expression(expr: str) -> str | None:
    """Return None if valid, error message if invalid."""
    try:
        CronTrigger.from_crontab(expr)
        return None
    except (ValueError, TypeError) as e:
        return str(e)


class AvatarScheduler:
    """Schedules avatar ticks via APScheduler."""

    def __init__(
        self,
        updater: AvatarUpdater,
        cron: str | None = None,
        deadline_s: float | None = None,
    ) -> None:
        self.updater = updater
        self.cron = cron or settings.update_cron
        self.deadline_s = deadline_s if deadline_s is not None else settings.tick_deadline_s
        self.scheduler = AsyncIOScheduler(
            job_defaults={
                "coalesce": True,
                "max_instances": 1,
                "misfire_grace_time": settings.misfire_grace_time_s,
            }
        )
        self.scheduler.add_listener(self._on_job_missed, EVENT_JOB_MISSED)
        self._running = False

    @staticmethod
    def _on_job_missed(event: Any) -> None:
        logger.warning(
            "avatar_tick_missed",
            job_id=event.job_id,
            scheduled_run_time=str(event.scheduled_run_time),
        )

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        error = validate_cron_expression(self.cron)
        if error:
            raise ConfigurationError(f"Invalid update_cron '{self.cron}': {error}")

        self.scheduler.add_job(
            self._run_tick,
            trigger=CronTrigger.from_crontab(self.cron, timezone=timezone.utc),
            id=TICK_JOB_ID,
            name="Avatar update tick",
            replace_existing=True,
        )
        self.scheduler.start()
        self._running = True
        logger.info("avatar_scheduler_started", schedule=self.cron)

    async def stop(self) -> None:
        if self._running:
            self.scheduler.shutdown(wait=False)
            self._running = False
            logger.info("avatar_scheduler_stopped")

    async def trigger_now(self) -> TickReport | None:
        """Run one tick immediately (outside the schedule)."""
        return await self._run_tick()

    def next_run_time(self) -> datetime | None:
        job = self.scheduler.get_job(TICK_JOB_ID)
        return job.next_run_time if job else None

    async def _run_tick(self) -> TickReport | None:
        metrics = get_metrics()
        started = time.monotonic()
        now = datetime.now(timezone.utc)
        try:
            report = await asyncio.wait_for(
                self.updater.run_tick(now), timeout=self.deadline_s,
            )
        except asyncio.TimeoutError:
            metrics.increment("ticks_total", "deadline_exceeded")
            logger.error("avatar_tick_deadline_exceeded", deadline_s=self.deadline_s)
            return None
        except AvatarError as e:
            metrics.increment("ticks_total", "failed")
            logger.error("avatar_tick_failed", error=str(e), error_type=type(e).__name__)
            return None

        metrics.record_tick(report, (time.monotonic() - started) * 1000)
        return report


_scheduler: AvatarScheduler | None = None


def get_scheduler(updater: AvatarUpdater | None = None) -> AvatarScheduler:
    """Process-wide scheduler; the first call decides the updater."""
    global _scheduler
    if _scheduler is None:
        if updater is None:
            from randavatar.db.store import get_store

            updater = AvatarUpdater(get_store())
        _scheduler = AvatarScheduler(updater)
    return _scheduler
