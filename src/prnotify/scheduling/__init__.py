"""
Cron scheduling for notification workflows.

┌──────────────────────────────────────────────────────────────────────────────┐
│  SchedulerEngine ──► CronExpressionBuilder   (config → validated cron)        │
│        │                                                                      │
│        ├──────────► JobFactory               (asyncio | apscheduler timers)   │
│        │                                                                      │
│        └──────────► JobRegistry              (config id → live JobHandle)     │
└──────────────────────────────────────────────────────────────────────────────┘
"""

from __future__ import annotations

from .apscheduler_backend import APSchedulerJob, APSchedulerJobFactory
from .asyncio_backend import AsyncioCronJob, AsyncioJobFactory
from .cron import (
    CronExpressionBuilder,
    CronSchedule,
    parse_cron_expression,
    timing_to_cron_expression,
    validate_cron_expression,
)
from .engine import EngineHealth, EngineStats, ScheduledJob, SchedulerEngine
from .protocol import BackendHealth, FireCallback, JobFactory, JobHandle
from .registry import JobRegistry


def create_job_factory(backend: str) -> JobFactory:
    """Job factory for a ``scheduler_backend`` setting value."""
    if backend == "asyncio":
        return AsyncioJobFactory()
    if backend == "apscheduler":
        return APSchedulerJobFactory()
    raise ValueError(f"Unknown scheduler backend: {backend!r}")


__all__ = [
    # Protocol
    "JobHandle",
    "JobFactory",
    "FireCallback",
    "BackendHealth",
    # Backends
    "AsyncioCronJob",
    "AsyncioJobFactory",
    "APSchedulerJob",
    "APSchedulerJobFactory",
    "create_job_factory",
    # Cron
    "CronExpressionBuilder",
    "CronSchedule",
    "parse_cron_expression",
    "validate_cron_expression",
    "timing_to_cron_expression",
    # Registry / engine
    "JobRegistry",
    "SchedulerEngine",
    "EngineStats",
    "EngineHealth",
    "ScheduledJob",
]
