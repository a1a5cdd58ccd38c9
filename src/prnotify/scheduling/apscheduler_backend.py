"""APScheduler-based timer backend.

Wraps APScheduler 3.x ``AsyncIOScheduler``: every job becomes an
APScheduler job with a ``CronTrigger``. Overlap protection maps onto
``max_instances=1`` and missed runs are coalesced into one.

.. note::

    The asyncio backend is enough for a single process. Use this one when
    you want APScheduler's misfire handling and its job listing.

Day-of-week and month fields are handed to APScheduler as explicit value
lists because APScheduler numbers weekdays from Monday (``0 = mon``) while
cron numbers them from Sunday.
"""

from __future__ import annotations

import inspect
import uuid
from datetime import datetime
from zoneinfo import ZoneInfo

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from prnotify.core.logging import get_logger

from .cron import CronSchedule, parse_cron_expression
from .protocol import BackendHealth, FireCallback

logger = get_logger(__name__)


def build_cron_trigger(schedule: CronSchedule, timezone: str) -> CronTrigger:
    """Translate a validated cron schedule into an APScheduler trigger."""
    months = schedule.values["month"]
    month = "*" if len(months) == 12 else ",".join(str(m) for m in sorted(months))
    return CronTrigger(
        second=schedule.tokens.get("second", "0"),
        minute=schedule.tokens["minute"],
        hour=schedule.tokens["hour"],
        day=schedule.tokens["day_of_month"],
        month=month,
        day_of_week=schedule.day_of_week_names(),
        timezone=ZoneInfo(timezone),
    )


class APSchedulerJob:
    """Handle for one APScheduler job."""

    def __init__(self, scheduler: AsyncIOScheduler, job_id: str, name: str, expression: str):
        self.name = name
        self.expression = expression
        self._scheduler = scheduler
        self._job_id = job_id
        self._stopped = False

    def stop(self) -> None:
        if self._stopped:
            return
        self._stopped = True
        try:
            self._scheduler.remove_job(self._job_id)
        except JobLookupError:
            logger.debug("apscheduler_job_already_removed", job=self.name)

    def next_run(self) -> datetime | None:
        if self._stopped:
            return None
        job = self._scheduler.get_job(self._job_id)
        if job is None:
            return None
        # pending jobs (scheduler not started yet) have no next_run_time
        return getattr(job, "next_run_time", None)

    @property
    def is_running(self) -> bool:
        return not self._stopped and self._scheduler.get_job(self._job_id) is not None

    def __repr__(self) -> str:
        return f"APSchedulerJob({self.name!r}, {self.expression!r})"


class APSchedulerJobFactory:
    """Creates cron jobs on an APScheduler ``AsyncIOScheduler``.

    Example::

        >>> factory = APSchedulerJobFactory()
        >>> factory.start()          # inside a running event loop
        >>> handle = factory.create("0 9 * * MON-FRI", timezone="UTC",
        ...                         callback=fire, job_name="notification-1")
        >>> factory.shutdown()
    """

    name: str = "apscheduler"

    def __init__(
        self,
        scheduler: AsyncIOScheduler | None = None,
        *,
        misfire_grace_seconds: int = 60,
    ) -> None:
        self._scheduler = scheduler or AsyncIOScheduler()
        self._misfire_grace_seconds = misfire_grace_seconds

    @property
    def scheduler(self) -> AsyncIOScheduler:
        return self._scheduler

    def create(
        self,
        expression: str,
        *,
        timezone: str,
        callback: FireCallback,
        job_name: str,
        protect: bool = True,
    ) -> APSchedulerJob:
        trigger = build_cron_trigger(parse_cron_expression(expression), timezone)

        async def _fire() -> None:
            result = callback()
            if inspect.isawaitable(result):
                await result

        job_id = f"{job_name}:{uuid.uuid4().hex[:8]}"
        self._scheduler.add_job(
            _fire,
            trigger=trigger,
            id=job_id,
            name=job_name,
            replace_existing=True,
            max_instances=1 if protect else 10,
            coalesce=True,
            misfire_grace_time=self._misfire_grace_seconds,
        )
        return APSchedulerJob(self._scheduler, job_id, job_name, expression)

    def start(self) -> None:
        if not self._scheduler.running:
            self._scheduler.start()
            logger.info("apscheduler_started")

    def shutdown(self) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("apscheduler_stopped")

    def health(self) -> BackendHealth:
        running = self._scheduler.running
        return BackendHealth(
            healthy=running,
            backend=self.name,
            jobs=len(self._scheduler.get_jobs()),
            extra={"running": running},
        )


__all__ = ["APSchedulerJob", "APSchedulerJobFactory", "build_cron_trigger"]
