"""
Tests for the workflow registry.

Tests cover:
- Registration (direct and decorator)
- Fire-and-forget triggering with and without a running loop
- Run status tracking and failure isolation
- Sub-job gate wiring
- Entry-point discovery
"""

from __future__ import annotations

import asyncio
from unittest.mock import MagicMock, patch

import pytest

from prnotify.core.errors import WorkflowNotFoundError
from prnotify.workflows.registry import (
    ENTRY_POINT_GROUP,
    WorkflowRegistry,
    WorkflowRunContext,
    load_entry_point_workflows,
)


class TestRegistration:
    """Tests for register/unregister/lookup."""

    def test_register_and_get(self):
        registry = WorkflowRegistry()

        def notify(ctx):
            """Ping reviewers."""

        registry.register("notifyReviewers", notify)

        workflow = registry.get("notifyReviewers")
        assert workflow.func is notify
        assert workflow.description == "Ping reviewers."
        assert "notifyReviewers" in registry
        assert len(registry) == 1

    def test_decorator(self):
        registry = WorkflowRegistry()

        @registry.workflow("b")
        async def second(ctx):
            pass

        @registry.workflow("a", description="first")
        def first(ctx):
            pass

        assert registry.names() == ["a", "b"]
        assert registry.get("a").description == "first"

    def test_duplicate_name(self):
        registry = WorkflowRegistry()
        registry.register("w", lambda ctx: None)

        with pytest.raises(ValueError, match="already registered"):
            registry.register("w", lambda ctx: None)

    def test_unregister(self):
        registry = WorkflowRegistry()
        registry.register("w", lambda ctx: None)

        assert registry.unregister("w") is True
        assert registry.unregister("w") is False
        assert registry.get("w") is None


class TestTrigger:
    """Tests for starting runs."""

    def test_unknown_workflow(self):
        with pytest.raises(WorkflowNotFoundError):
            WorkflowRegistry().trigger("missing")

    def test_without_running_loop_uses_thread(self):
        registry = WorkflowRegistry()
        seen = []
        registry.register("w", lambda ctx: seen.append(ctx.workflow_name))

        run = registry.trigger("w")

        assert run.done.wait(timeout=5)
        assert run.status == "completed"
        assert run.finished_at is not None
        assert seen == ["w"]
        assert registry.recent_runs() == [run]

    def test_failure_is_recorded(self):
        registry = WorkflowRegistry()

        def broken(ctx):
            raise RuntimeError("discord down")

        registry.register("w", broken)

        run = registry.trigger("w")

        assert run.done.wait(timeout=5)
        assert run.status == "failed"
        assert run.error == "discord down"
        assert run.to_dict()["status"] == "failed"

    @pytest.mark.asyncio
    async def test_inside_loop_returns_before_run_finishes(self):
        registry = WorkflowRegistry()
        release = asyncio.Event()

        @registry.workflow("slow")
        async def slow(ctx):
            await release.wait()

        run = registry.trigger("slow")

        assert run.status == "running"
        release.set()
        for _ in range(50):
            if run.done.is_set():
                break
            await asyncio.sleep(0.01)
        assert run.status == "completed"

    @pytest.mark.asyncio
    async def test_sync_workflow_inside_loop(self):
        registry = WorkflowRegistry()
        registry.register("w", lambda ctx: ctx.run_id)

        run = registry.trigger("w")

        for _ in range(100):
            if run.done.is_set():
                break
            await asyncio.sleep(0.01)
        assert run.status == "completed"

    def test_history_size(self):
        registry = WorkflowRegistry(history_size=2)
        registry.register("w", lambda ctx: None)

        runs = [registry.trigger("w") for _ in range(3)]
        for run in runs:
            run.done.wait(timeout=5)

        assert registry.recent_runs() == runs[1:]


class TestSubJobGate:
    """Tests for WorkflowRunContext.is_sub_job_active."""

    def test_no_gate_means_active(self):
        ctx = WorkflowRunContext(run_id="r", workflow_name="w")

        assert ctx.is_sub_job_active("slack") is True

    def test_gate_receives_workflow_name(self):
        gate = MagicMock(return_value=False)
        ctx = WorkflowRunContext(run_id="r", workflow_name="w", sub_job_gate=gate)

        assert ctx.is_sub_job_active("slack") is False
        gate.assert_called_once_with("w", "slack")

    def test_registry_passes_gate_to_runs(self):
        registry = WorkflowRegistry(sub_job_gate=lambda workflow, sub_job: sub_job != "slack")
        results = {}

        @registry.workflow("w")
        def check(ctx):
            results["slack"] = ctx.is_sub_job_active("slack")
            results["discord"] = ctx.is_sub_job_active("discord")

        registry.trigger("w").done.wait(timeout=5)

        assert results == {"slack": False, "discord": True}


class TestEntryPoints:
    """Tests for entry-point discovery."""

    def test_loads_hooks_and_skips_failures(self):
        good = MagicMock()
        good.name = "good"
        good.load.return_value = lambda registry: registry.register("fromPlugin", lambda ctx: None)
        bad = MagicMock()
        bad.name = "bad"
        bad.load.side_effect = ImportError("missing dependency")
        registry = WorkflowRegistry()

        with patch(
            "prnotify.workflows.registry.entry_points", return_value=[good, bad]
        ) as mock_entry_points:
            loaded = load_entry_point_workflows(registry)

        mock_entry_points.assert_called_once_with(group=ENTRY_POINT_GROUP)
        assert loaded == 1
        assert registry.names() == ["fromPlugin"]
