"""Composition root: settings → configs → workflows → job factory → engine.

The engine is an explicit object owned by whoever builds the runtime (the
API lifespan, the CLI, a test). Nothing in prnotify keeps a module-level
scheduler instance.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from prnotify.core.logging import get_logger
from prnotify.core.settings import PRNotifySettings, get_settings
from prnotify.notifications.configs import resolve_notification_configs
from prnotify.notifications.models import NotificationConfig
from prnotify.scheduling import JobFactory, SchedulerEngine, create_job_factory
from prnotify.workflows.registry import WorkflowRegistry, load_entry_point_workflows

logger = get_logger(__name__)


@dataclass
class Runtime:
    settings: PRNotifySettings
    workflows: WorkflowRegistry
    job_factory: JobFactory
    engine: SchedulerEngine

    def start(self) -> int:
        """Start the timer backend and schedule every active config."""
        self.job_factory.start()
        return self.engine.initialize_job_scheduler()

    def stop(self) -> None:
        self.engine.terminate()
        self.job_factory.shutdown()


def build_runtime(
    settings: PRNotifySettings | None = None,
    *,
    configs: Iterable[NotificationConfig] | None = None,
    workflows: WorkflowRegistry | None = None,
    job_factory: JobFactory | None = None,
) -> Runtime:
    """Wire a runtime; any piece can be passed in (tests pass fakes)."""
    settings = settings or get_settings()

    if configs is None:
        configs = resolve_notification_configs(settings.notifications_file)

    if workflows is None:
        workflows = WorkflowRegistry()
        if settings.load_entry_points:
            load_entry_point_workflows(workflows)

    factory = job_factory or create_job_factory(settings.scheduler_backend)
    engine = SchedulerEngine(
        configs,
        factory,
        workflows.trigger,
        default_timezone=settings.default_timezone,
    )
    if workflows.sub_job_gate is None:
        workflows.sub_job_gate = engine.is_sub_job_active

    logger.debug(
        "runtime_built",
        backend=factory.name,
        configs=len(engine.configs),
        workflows=len(workflows),
    )
    return Runtime(settings=settings, workflows=workflows, job_factory=factory, engine=engine)


__all__ = ["Runtime", "build_runtime"]
