"""Timer backend protocol.

┌──────────────────────────────────────────────────────────────────────────────┐
│  JOB FACTORY CONTRACT                                                         │
│                                                                               │
│   SchedulerEngine ──create(expression, timezone, callback)──► JobFactory      │
│         │                                                        │            │
│         │                                                        ▼            │
│         │                                                   JobHandle         │
│         └──── JobRegistry.set(id, handle) ◄─────────────────────┘            │
│                                                                               │
│  A factory is responsible ONLY for timing: arming a timer that calls the      │
│  callback at every cron match in the given timezone. What the callback does   │
│  (logging, workflow lookup, trigger) lives in SchedulerEngine.                │
│                                                                               │
│  Implementations:                                                             │
│   - AsyncioJobFactory: croniter + one asyncio task per job (default)          │
│   - APSchedulerJobFactory: APScheduler AsyncIOScheduler + CronTrigger         │
└──────────────────────────────────────────────────────────────────────────────┘
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol, runtime_checkable

FireCallback = Callable[[], Awaitable[None] | None]


@runtime_checkable
class JobHandle(Protocol):
    """A live, armed timer. Owned by the JobRegistry once registered."""

    name: str

    def stop(self) -> None:
        """Cancel all future firings. Must be safe to call more than once."""
        ...

    def next_run(self) -> datetime | None:
        """Next scheduled fire time, or None when stopped."""
        ...

    @property
    def is_running(self) -> bool: ...


@runtime_checkable
class JobFactory(Protocol):
    """Creates armed timers for cron expressions."""

    name: str

    def create(
        self,
        expression: str,
        *,
        timezone: str,
        callback: FireCallback,
        job_name: str,
        protect: bool = True,
    ) -> JobHandle:
        """Arm a timer for ``expression`` in ``timezone``.

        Args:
            expression: Validated 5- or 6-field cron expression.
            timezone: IANA timezone name the expression is evaluated in.
            callback: Called at every match; may return an awaitable.
            job_name: Human-readable name (logs, health output).
            protect: Skip a firing while the previous one is still running.
        """
        ...

    def start(self) -> None:
        """Start the underlying scheduler, if it has one."""
        ...

    def shutdown(self) -> None:
        """Stop the underlying scheduler, if it has one."""
        ...


@dataclass
class BackendHealth:
    """Structured backend health response."""

    healthy: bool
    backend: str
    jobs: int = 0
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "healthy": self.healthy,
            "backend": self.backend,
            "jobs": self.jobs,
            **self.extra,
        }


__all__ = ["FireCallback", "JobHandle", "JobFactory", "BackendHealth"]
