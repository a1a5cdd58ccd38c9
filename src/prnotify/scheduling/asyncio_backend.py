"""Asyncio timer backend (default).

One lightweight task per job on the running event loop. Fire times come
from croniter, evaluated in the job's timezone so DST changes are handled
by the zone rules rather than by fixed offsets.

┌──────────────────────────────────────────────────────────────────────────────┐
│  AsyncioCronJob                                                               │
│                                                                               │
│   task loop:                                                                  │
│       next_at = croniter(expr, max(now, previous)).get_next()                 │
│           └── croniter error → log, mark stopped, end task                   │
│       await asyncio.sleep(next_at - now)                                      │
│       if stopped: break              ◄── stop() between wake-up and fire      │
│       _fire()                                                                 │
│           ├── previous run still in flight and protect → skip                │
│           └── callback(); awaitable result tracked as in-flight              │
│                                                                               │
│   stop(): stopped = True, cancel task                                         │
└──────────────────────────────────────────────────────────────────────────────┘
"""

from __future__ import annotations

import asyncio
import inspect
from datetime import UTC, datetime
from zoneinfo import ZoneInfo

from croniter import croniter

from prnotify.core.errors import SchedulerError
from prnotify.core.logging import get_logger

from .cron import parse_cron_expression
from .protocol import BackendHealth, FireCallback

logger = get_logger(__name__)


class AsyncioCronJob:
    """A cron timer running as an asyncio task.

    Must be created on (or handed) the loop it will run on.
    """

    def __init__(
        self,
        expression: str,
        *,
        timezone: str,
        callback: FireCallback,
        name: str,
        protect: bool = True,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self.name = name
        self.expression = expression
        self.timezone = timezone
        self._croniter_expression = parse_cron_expression(expression).croniter_expression()
        self._tz = ZoneInfo(timezone)
        self._callback = callback
        self._protect = protect

        self._stopped = False
        self._next_at: datetime | None = None
        self._inflight: asyncio.Future | None = None
        self._fire_count = 0
        self._skip_count = 0
        self._last_fire: datetime | None = None

        self._loop = loop or asyncio.get_running_loop()
        self._task = self._loop.create_task(self._run(), name=f"cron:{name}")

    # ------------------------------------------------------------------
    # Timer loop
    # ------------------------------------------------------------------

    def _compute_next(self, previous: datetime | None) -> datetime:
        now = datetime.now(self._tz)
        base = now if previous is None or now > previous else previous
        return croniter(self._croniter_expression, base).get_next(datetime)

    async def _run(self) -> None:
        previous: datetime | None = None
        while not self._stopped:
            try:
                next_at = self._compute_next(previous)
            except Exception:
                logger.exception(
                    "job_schedule_failed", job=self.name, expression=self.expression
                )
                self._stopped = True
                self._next_at = None
                return
            self._next_at = next_at
            delay = (next_at - datetime.now(self._tz)).total_seconds()
            if delay > 0:
                await asyncio.sleep(delay)
            if self._stopped:
                break
            previous = next_at
            self._fire()

    def _fire(self) -> None:
        if self._protect and self._inflight is not None and not self._inflight.done():
            self._skip_count += 1
            logger.warning("job_fire_skipped_overlap", job=self.name)
            return

        self._fire_count += 1
        self._last_fire = datetime.now(UTC)
        try:
            result = self._callback()
        except Exception:
            logger.exception("job_callback_failed", job=self.name)
            return

        if inspect.isawaitable(result):
            self._inflight = asyncio.ensure_future(result)
            self._inflight.add_done_callback(self._on_callback_done)

    def _on_callback_done(self, future: asyncio.Future) -> None:
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            logger.error("job_callback_failed", job=self.name, exc_info=error)

    # ------------------------------------------------------------------
    # JobHandle protocol
    # ------------------------------------------------------------------

    def stop(self) -> None:
        if self._stopped:
            return
        self._stopped = True
        self._next_at = None
        if self._task.done():
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is self._loop:
            self._task.cancel()
        elif not self._loop.is_closed():
            self._loop.call_soon_threadsafe(self._task.cancel)

    def next_run(self) -> datetime | None:
        if self._stopped:
            return None
        return self._next_at

    @property
    def is_running(self) -> bool:
        return not self._stopped and not self._task.done()

    @property
    def fire_count(self) -> int:
        return self._fire_count

    @property
    def skip_count(self) -> int:
        return self._skip_count

    @property
    def last_fire(self) -> datetime | None:
        return self._last_fire

    def __repr__(self) -> str:
        return f"AsyncioCronJob({self.name!r}, {self.expression!r}, tz={self.timezone!r})"


class AsyncioJobFactory:
    """Creates ``AsyncioCronJob`` timers on the running (or given) loop.

    Example:
        >>> factory = AsyncioJobFactory()
        >>> handle = factory.create("0 17 * * 1-5", timezone="UTC",
        ...                         callback=fire, job_name="notification-1")
    """

    name: str = "asyncio"

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop
        self._created = 0

    def create(
        self,
        expression: str,
        *,
        timezone: str,
        callback: FireCallback,
        job_name: str,
        protect: bool = True,
    ) -> AsyncioCronJob:
        loop = self._loop
        if loop is None:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError as e:
                raise SchedulerError(
                    "The asyncio backend needs a running event loop", cause=e
                ).with_context(expression=expression, timezone=timezone) from e

        job = AsyncioCronJob(
            expression,
            timezone=timezone,
            callback=callback,
            name=job_name,
            protect=protect,
            loop=loop,
        )
        self._created += 1
        return job

    def start(self) -> None:
        """Nothing to start; each job owns its task."""

    def shutdown(self) -> None:
        """Nothing to shut down; jobs are stopped through the registry."""

    def health(self) -> BackendHealth:
        return BackendHealth(
            healthy=True,
            backend=self.name,
            extra={"jobs_created": self._created},
        )


__all__ = ["AsyncioCronJob", "AsyncioJobFactory"]
