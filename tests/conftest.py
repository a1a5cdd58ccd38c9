"""
Shared pytest fixtures for prnotify tests.

This module provides:
- Fake timer backend (FakeJobFactory / FakeJobHandle) that records
  create/stop calls and lets tests fire jobs by hand
- A sample notification config list covering active, inactive and broken
  entries
- structlog reset between tests

Usage:
    def test_something(engine, job_factory):
        engine.initialize_job_scheduler()
        job_factory.created[0].fire()
"""

from __future__ import annotations

from collections.abc import Generator
from datetime import UTC, datetime
from types import SimpleNamespace
from typing import Any
from unittest.mock import MagicMock

import pytest
import structlog

from prnotify.core.errors import SchedulerError
from prnotify.core.settings import PRNotifySettings
from prnotify.notifications.models import NotificationConfig, Timing
from prnotify.scheduling.engine import SchedulerEngine

# =============================================================================
# Fake timer backend
# =============================================================================


class FakeJobHandle:
    """Job handle that never fires on its own."""

    def __init__(self, expression: str, timezone: str, callback: Any, name: str, protect: bool):
        self.expression = expression
        self.timezone = timezone
        self.callback = callback
        self.name = name
        self.protect = protect
        self.stop_calls = 0

    def stop(self) -> None:
        self.stop_calls += 1

    @property
    def stopped(self) -> bool:
        return self.stop_calls > 0

    def next_run(self) -> datetime | None:
        if self.stopped:
            return None
        return datetime(2030, 1, 7, 17, 0, tzinfo=UTC)

    @property
    def is_running(self) -> bool:
        return not self.stopped

    def fire(self) -> Any:
        """Simulate a timer tick; a stopped handle does nothing."""
        if self.stopped:
            return None
        return self.callback()


class FakeJobFactory:
    """Records every job it creates. Expressions in ``fail_for`` raise."""

    name = "fake"

    def __init__(self) -> None:
        self.created: list[FakeJobHandle] = []
        self.fail_for: set[str] = set()
        self.started = False
        self.shut_down = False

    def create(self, expression, *, timezone, callback, job_name, protect=True):
        if expression in self.fail_for:
            raise SchedulerError(f"cannot arm {expression}")
        handle = FakeJobHandle(expression, timezone, callback, job_name, protect)
        self.created.append(handle)
        return handle

    def start(self) -> None:
        self.started = True

    def shutdown(self) -> None:
        self.shut_down = True

    def live(self) -> list[FakeJobHandle]:
        return [h for h in self.created if not h.stopped]


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_structlog() -> Generator[None, None, None]:
    """Undo any configure_logging() a test (or the CLI) performed."""
    yield
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()


@pytest.fixture
def sample_configs() -> tuple[NotificationConfig, ...]:
    """Two schedulable configs, one inactive, two that cannot be scheduled."""
    return (
        NotificationConfig(
            id=1,
            workflow_name="notifyReviewers",
            timing=Timing(minute=0, hour=17, day_of_week="1-5"),
            inactive_sub_jobs=frozenset({"slack"}),
        ),
        NotificationConfig(
            id=2,
            workflow_name="sendPRList",
            expression="*/5 * * * *",
            timezone="Asia/Ho_Chi_Minh",
        ),
        NotificationConfig(
            id=3,
            workflow_name="notifyInactivePRs",
            expression="0 9 * * *",
            is_active=False,
        ),
        NotificationConfig(
            id=4,
            workflow_name="brokenExpression",
            expression="61 * * * *",
        ),
        NotificationConfig(
            id=5,
            workflow_name="noTiming",
        ),
    )


@pytest.fixture
def job_factory() -> FakeJobFactory:
    return FakeJobFactory()


@pytest.fixture
def trigger() -> MagicMock:
    """Workflow trigger that always starts a run."""
    return MagicMock(return_value=SimpleNamespace(run_id="run-1"))


@pytest.fixture
def engine_logger() -> MagicMock:
    return MagicMock()


@pytest.fixture
def engine(sample_configs, job_factory, trigger, engine_logger) -> SchedulerEngine:
    return SchedulerEngine(
        sample_configs,
        job_factory,
        trigger,
        default_timezone="UTC",
        logger=engine_logger,
    )


@pytest.fixture
def settings(tmp_path, monkeypatch) -> PRNotifySettings:
    """Settings isolated from the developer's environment and .env file."""
    monkeypatch.chdir(tmp_path)
    for key in (
        "PRNOTIFY_DEFAULT_TIMEZONE",
        "PRNOTIFY_NOTIFICATIONS_FILE",
        "PRNOTIFY_SCHEDULER_BACKEND",
        "PRNOTIFY_LOG_LEVEL",
    ):
        monkeypatch.delenv(key, raising=False)
    return PRNotifySettings(load_entry_points=False)
