"""
Scheduler engine: keeps one live cron job per active notification config.

┌──────────────────────────────────────────────────────────────────────────────┐
│  SCHEDULER ENGINE                                                             │
│                                                                               │
│   initialize_job_scheduler()            refresh_job(id)                       │
│        │                                    │                                 │
│        ▼                                    ▼                                 │
│   terminate()                          config = get_config(id) ── None ─► raise│
│        │                                    │                                 │
│        ▼                                    ├── inactive ─► stop_job(id)      │
│   for config in active configs:             │                                 │
│     build_expression(strict=False)          ▼                                 │
│     "" ─► skip                          stop_job(id)                          │
│     error ─► log, continue              build_expression(strict=True)         │
│     ok ─► _schedule(config)             _schedule(config)  (errors raise)     │
│                                                                               │
│   _schedule: JobFactory.create(expr, tz, fire) ─► JobRegistry.set(id, handle) │
│                                                                               │
│   fire (per tick):                                                            │
│     log ─► trigger(workflow_name) ─► run started (not awaited)                │
│     WorkflowNotFoundError / any error ─► log, keep job armed                  │
└──────────────────────────────────────────────────────────────────────────────┘

Per job id the life cycle is ``UNSCHEDULED → SCHEDULED → UNSCHEDULED`` (stop)
or ``SCHEDULED → SCHEDULED`` (refresh: stop, then create). There is no
paused state.

Bulk initialization is lenient: one bad config is logged and skipped.
Refreshing a single job is strict: errors propagate to the caller.

Tags:
    prnotify, scheduling, cron, engine, job-registry

Doc-Types:
    - API Reference
    - Architecture Guide
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from prnotify.core.errors import ConfigurationError, WorkflowNotFoundError
from prnotify.core.logging import get_logger
from prnotify.notifications.models import NotificationConfig, ensure_unique_ids

from .cron import CronExpressionBuilder
from .protocol import BackendHealth, JobFactory
from .registry import JobRegistry

WorkflowTrigger = Callable[[str], Any]


@dataclass
class EngineStats:
    """Counters for the engine since start (or the last reset)."""

    initializations: int = 0
    refreshes: int = 0
    jobs_scheduled: int = 0
    jobs_skipped: int = 0
    jobs_failed: int = 0
    fires: int = 0
    trigger_failures: int = 0
    last_fire: datetime | None = None
    last_error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "initializations": self.initializations,
            "refreshes": self.refreshes,
            "jobs_scheduled": self.jobs_scheduled,
            "jobs_skipped": self.jobs_skipped,
            "jobs_failed": self.jobs_failed,
            "fires": self.fires,
            "trigger_failures": self.trigger_failures,
            "last_fire": self.last_fire.isoformat() if self.last_fire else None,
            "last_error": self.last_error,
        }


@dataclass
class ScheduledJob:
    """Snapshot row for one live job."""

    id: int
    workflow_name: str
    expression: str
    timezone: str
    next_run: datetime | None = None
    running: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "workflow_name": self.workflow_name,
            "expression": self.expression,
            "timezone": self.timezone,
            "next_run": self.next_run.isoformat() if self.next_run else None,
            "running": self.running,
        }


@dataclass
class EngineHealth:
    """Health status for the scheduler engine."""

    healthy: bool
    backend: BackendHealth | dict
    configs_total: int = 0
    configs_active: int = 0
    jobs_live: int = 0
    stats: EngineStats = field(default_factory=EngineStats)

    def to_dict(self) -> dict[str, Any]:
        return {
            "healthy": self.healthy,
            "backend": self.backend.to_dict() if isinstance(self.backend, BackendHealth) else self.backend,
            "configs_total": self.configs_total,
            "configs_active": self.configs_active,
            "jobs_live": self.jobs_live,
            "stats": self.stats.to_dict(),
        }


class SchedulerEngine:
    """Owns the job registry and maps notification configs onto timers.

    Args:
        configs: Static notification configs (read once, never reloaded).
        job_factory: Timer backend that arms cron jobs.
        trigger: ``trigger(workflow_name)`` starts a workflow run and returns
            a run handle, or raises ``WorkflowNotFoundError``.
        default_timezone: Zone for configs that do not name one.
        logger: structlog-style logger; module logger when omitted.

    Example:
        >>> engine = SchedulerEngine(configs, AsyncioJobFactory(), workflows.trigger)
        >>> engine.initialize_job_scheduler()
        3
        >>> engine.refresh_job(2)
        >>> engine.terminate()
    """

    def __init__(
        self,
        configs: Iterable[NotificationConfig],
        job_factory: JobFactory,
        trigger: WorkflowTrigger,
        *,
        default_timezone: str = "UTC",
        logger: Any = None,
        registry: JobRegistry | None = None,
    ) -> None:
        self._configs = ensure_unique_ids(configs)
        self._by_id = {config.id: config for config in self._configs}
        self._factory = job_factory
        self._trigger = trigger
        self._default_timezone = default_timezone
        self._logger = logger if logger is not None else get_logger(__name__)
        self._builder = CronExpressionBuilder(logger=self._logger)
        self._registry = registry if registry is not None else JobRegistry()
        self._details: dict[int, tuple[str, str]] = {}
        self._lock = threading.RLock()
        self._stats = EngineStats()

    # === Accessors ===

    @property
    def configs(self) -> tuple[NotificationConfig, ...]:
        return self._configs

    @property
    def registry(self) -> JobRegistry:
        return self._registry

    @property
    def job_factory(self) -> JobFactory:
        return self._factory

    def get_config(self, job_id: int) -> NotificationConfig | None:
        return self._by_id.get(job_id)

    # === Administrative operations ===

    def initialize_job_scheduler(self) -> int:
        """(Re)schedule every active config. Returns the number of live jobs."""
        with self._lock:
            self._stats.initializations += 1
            self.terminate()

            for config in self._configs:
                if not config.is_active:
                    continue
                try:
                    expression = self._builder.build_expression(config, strict=False)
                    if not expression:
                        self._stats.jobs_skipped += 1
                        continue
                    self._schedule(config, expression)
                except Exception as e:
                    self._stats.jobs_failed += 1
                    self._stats.last_error = str(e)
                    self._logger.error(
                        "job_schedule_failed",
                        job_id=config.id,
                        workflow=config.workflow_name,
                        error=str(e),
                    )

            count = self._registry.size()
            self._logger.info("scheduler_initialized", active_jobs=count)
            return count

    def refresh_job(self, job_id: int) -> None:
        """Re-create the job for ``job_id``, or stop it when its config is inactive.

        Raises:
            ConfigurationError: no config with this id, or unusable timing
            CronExpressionError: the expression fails validation
            SchedulerError: the timer backend could not arm the job
        """
        with self._lock:
            self._stats.refreshes += 1
            config = self.get_config(job_id)
            if config is None:
                raise ConfigurationError(
                    f"Job config not found for id: {job_id}"
                ).with_context(job_id=job_id)

            if not config.is_active:
                self.stop_job(job_id)
                self._logger.info(
                    "job_inactive_stopped", job_id=job_id, workflow=config.workflow_name
                )
                return

            self.stop_job(job_id)
            try:
                expression = self._builder.build_expression(config, strict=True)
                self._schedule(config, expression)
            except Exception as e:
                self._stats.jobs_failed += 1
                self._stats.last_error = str(e)
                self._logger.error(
                    "job_refresh_failed",
                    job_id=job_id,
                    workflow=config.workflow_name,
                    error=str(e),
                )
                raise
            self._logger.info("job_refreshed", job_id=job_id, workflow=config.workflow_name)

    def stop_job(self, job_id: int) -> bool:
        """Stop one job. Returns False when it was not scheduled."""
        with self._lock:
            stopped = self._registry.stop(job_id)
            self._details.pop(job_id, None)
            if stopped:
                self._logger.info("job_stopped", job_id=job_id)
            return stopped

    def terminate(self) -> None:
        """Stop every job. Safe to call repeatedly."""
        with self._lock:
            stopped = self._registry.stop_all()
            self._details.clear()
            if stopped:
                self._logger.info("scheduler_terminated", stopped=stopped)

    # === Queries ===

    def is_sub_job_active(self, workflow_name: str, sub_job_name: str) -> bool:
        """False only when every config for the workflow lists the sub-job as inactive."""
        matching = [c for c in self._configs if c.workflow_name == workflow_name]
        if not matching:
            # unknown workflows keep every sub-job enabled
            return True
        return any(not config.lists_inactive(sub_job_name) for config in matching)

    def jobs(self) -> list[ScheduledJob]:
        """Snapshot of live jobs ordered by id."""
        with self._lock:
            result = []
            for job_id, handle in self._registry.items():
                expression, timezone = self._details.get(job_id, ("", self._default_timezone))
                result.append(
                    ScheduledJob(
                        id=job_id,
                        workflow_name=self._by_id[job_id].workflow_name,
                        expression=expression,
                        timezone=timezone,
                        next_run=handle.next_run(),
                        running=handle.is_running,
                    )
                )
            return result

    def get_stats(self) -> EngineStats:
        return self._stats

    def reset_stats(self) -> None:
        self._stats = EngineStats()

    def health(self) -> EngineHealth:
        backend_health = getattr(self._factory, "health", None)
        backend = backend_health() if callable(backend_health) else {"backend": self._factory.name}
        return EngineHealth(
            healthy=backend.healthy if isinstance(backend, BackendHealth) else True,
            backend=backend,
            configs_total=len(self._configs),
            configs_active=sum(1 for c in self._configs if c.is_active),
            jobs_live=self._registry.size(),
            stats=self._stats,
        )

    # === Internals ===

    def _timezone_for(self, config: NotificationConfig) -> str:
        name = config.timezone or self._default_timezone
        try:
            ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ConfigurationError(
                f"Unknown timezone: {name}", cause=e
            ).with_context(job_id=config.id, workflow=config.workflow_name, timezone=name) from e
        return name

    def _schedule(self, config: NotificationConfig, expression: str) -> None:
        timezone = self._timezone_for(config)
        handle = self._factory.create(
            expression,
            timezone=timezone,
            callback=self._make_fire_callback(config),
            job_name=f"notification-{config.id}",
            protect=True,
        )
        self._registry.set(config.id, handle)
        self._details[config.id] = (expression, timezone)
        self._stats.jobs_scheduled += 1
        self._logger.info(
            "job_scheduled",
            job_id=config.id,
            workflow=config.workflow_name,
            expression=expression,
            timezone=timezone,
        )

    def _make_fire_callback(self, config: NotificationConfig) -> Callable[[], None]:
        def fire() -> None:
            self._fire(config)

        return fire

    def _fire(self, config: NotificationConfig) -> None:
        self._stats.fires += 1
        self._stats.last_fire = datetime.now(UTC)
        self._logger.info(
            "notification_job_executing", job_id=config.id, workflow=config.workflow_name
        )

        try:
            run = self._trigger(config.workflow_name)
        except WorkflowNotFoundError as e:
            self._stats.trigger_failures += 1
            self._logger.error(
                "workflow_runner_unavailable",
                job_id=config.id,
                workflow=config.workflow_name,
                error=str(e),
            )
            return
        except Exception:
            self._stats.trigger_failures += 1
            self._logger.exception(
                "workflow_trigger_failed", job_id=config.id, workflow=config.workflow_name
            )
            return

        if run is None:
            self._stats.trigger_failures += 1
            self._logger.error(
                "workflow_runner_unavailable", job_id=config.id, workflow=config.workflow_name
            )
            return

        self._logger.info(
            "workflow_run_started",
            job_id=config.id,
            workflow=config.workflow_name,
            run_id=getattr(run, "run_id", None),
        )


__all__ = [
    "SchedulerEngine",
    "EngineStats",
    "EngineHealth",
    "ScheduledJob",
    "WorkflowTrigger",
]
