"""Workflow registry: the names cron jobs trigger.

Manifesto:
    The scheduler only knows workflow *names*. This registry maps a name to
    a callable and starts runs without waiting for them: a tick must never
    block on a notification run, and a failing run must never reach the
    scheduler.

Workflows are registered in code::

    registry = WorkflowRegistry()

    @registry.workflow("notifyReviewersWorkflow")
    async def notify_reviewers(ctx: WorkflowRunContext) -> None:
        if ctx.is_sub_job_active("discord"):
            ...

or by installed packages through the ``prnotify.workflows`` entry-point
group, whose targets are called with the registry::

    [project.entry-points."prnotify.workflows"]
    github = "acme_notify.workflows:register"

Tags:
    prnotify, workflows, registry, fire-and-forget

Doc-Types:
    api-reference
"""

from __future__ import annotations

import asyncio
import inspect
import threading
import uuid
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from importlib.metadata import entry_points
from typing import Any

from prnotify.core.errors import WorkflowNotFoundError
from prnotify.core.logging import LogContext, get_logger

logger = get_logger(__name__)

ENTRY_POINT_GROUP = "prnotify.workflows"

SubJobGate = Callable[[str, str], bool]


@dataclass(frozen=True)
class WorkflowRunContext:
    """What a workflow run gets to see."""

    run_id: str
    workflow_name: str
    sub_job_gate: SubJobGate | None = None

    def is_sub_job_active(self, sub_job_name: str) -> bool:
        if self.sub_job_gate is None:
            return True
        return self.sub_job_gate(self.workflow_name, sub_job_name)


WorkflowFunc = Callable[[WorkflowRunContext], Awaitable[Any] | Any]


@dataclass(frozen=True)
class Workflow:
    name: str
    func: WorkflowFunc
    description: str = ""


@dataclass
class WorkflowRun:
    """Handle for a started run. Updated in place when the run finishes."""

    run_id: str
    workflow_name: str
    started_at: datetime
    status: str = "running"  # running, completed, failed
    finished_at: datetime | None = None
    error: str | None = None
    done: threading.Event = field(default_factory=threading.Event, repr=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "workflow_name": self.workflow_name,
            "started_at": self.started_at.isoformat(),
            "status": self.status,
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "error": self.error,
        }


class WorkflowRegistry:
    """Named workflows plus a fire-and-forget ``trigger``.

    Args:
        sub_job_gate: ``gate(workflow_name, sub_job_name) -> bool`` handed to
            every run context; wire it to ``SchedulerEngine.is_sub_job_active``.
        history_size: How many recent runs ``recent_runs()`` keeps.
    """

    def __init__(self, sub_job_gate: SubJobGate | None = None, history_size: int = 100):
        self.sub_job_gate = sub_job_gate
        self._workflows: dict[str, Workflow] = {}
        self._runs: deque[WorkflowRun] = deque(maxlen=history_size)
        self._tasks: set[asyncio.Task] = set()
        self._lock = threading.Lock()

    # === Registration ===

    def register(self, name: str, func: WorkflowFunc, description: str = "") -> Workflow:
        with self._lock:
            if name in self._workflows:
                raise ValueError(f"Workflow '{name}' is already registered")
            workflow = Workflow(name=name, func=func, description=description or (func.__doc__ or "").strip())
            self._workflows[name] = workflow
        logger.debug("workflow_registered", name=name, func=getattr(func, "__name__", repr(func)))
        return workflow

    def workflow(self, name: str, description: str = "") -> Callable[[WorkflowFunc], WorkflowFunc]:
        """Decorator form of ``register``."""

        def decorator(func: WorkflowFunc) -> WorkflowFunc:
            self.register(name, func, description)
            return func

        return decorator

    def unregister(self, name: str) -> bool:
        with self._lock:
            return self._workflows.pop(name, None) is not None

    def get(self, name: str) -> Workflow | None:
        with self._lock:
            return self._workflows.get(name)

    def names(self) -> list[str]:
        with self._lock:
            return sorted(self._workflows)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._workflows

    def __len__(self) -> int:
        with self._lock:
            return len(self._workflows)

    # === Runs ===

    def trigger(self, name: str) -> WorkflowRun:
        """Start a run of ``name`` and return immediately.

        Raises:
            WorkflowNotFoundError: nothing is registered under ``name``
        """
        workflow = self.get(name)
        if workflow is None:
            raise WorkflowNotFoundError(name)

        run = WorkflowRun(
            run_id=uuid.uuid4().hex,
            workflow_name=name,
            started_at=datetime.now(UTC),
        )
        context = WorkflowRunContext(
            run_id=run.run_id,
            workflow_name=name,
            sub_job_gate=self.sub_job_gate,
        )
        coro = self._execute(workflow, run, context)

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        if loop is not None:
            task = loop.create_task(coro, name=f"workflow:{name}:{run.run_id[:8]}")
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
        else:
            thread = threading.Thread(
                target=asyncio.run,
                args=(coro,),
                name=f"workflow-{name}",
                daemon=True,
            )
            thread.start()

        self._runs.append(run)
        return run

    def recent_runs(self) -> list[WorkflowRun]:
        return list(self._runs)

    async def _execute(self, workflow: Workflow, run: WorkflowRun, context: WorkflowRunContext) -> None:
        async with LogContext(workflow=workflow.name, run_id=run.run_id):
            logger.info("workflow_run_started")
            try:
                if inspect.iscoroutinefunction(workflow.func):
                    await workflow.func(context)
                else:
                    result = await asyncio.to_thread(workflow.func, context)
                    if inspect.isawaitable(result):
                        await result
            except Exception as e:
                run.status = "failed"
                run.error = str(e)
                logger.exception("workflow_run_failed")
            else:
                run.status = "completed"
                logger.info("workflow_run_completed")
            finally:
                run.finished_at = datetime.now(UTC)
                run.done.set()


def load_entry_point_workflows(registry: WorkflowRegistry, group: str = ENTRY_POINT_GROUP) -> int:
    """Call every ``register(registry)`` hook published under ``group``.

    A hook that fails to import or raises is logged and skipped. Returns the
    number of hooks that ran.
    """
    loaded = 0
    for entry_point in entry_points(group=group):
        try:
            hook = entry_point.load()
            hook(registry)
        except Exception:
            logger.exception("workflow_entry_point_failed", entry_point=entry_point.name)
            continue
        loaded += 1
        logger.debug("workflow_entry_point_loaded", entry_point=entry_point.name)
    logger.debug("workflow_registry_loaded", registered=len(registry), hooks=loaded)
    return loaded


__all__ = [
    "ENTRY_POINT_GROUP",
    "Workflow",
    "WorkflowFunc",
    "WorkflowRegistry",
    "WorkflowRun",
    "WorkflowRunContext",
    "load_entry_point_workflows",
]
