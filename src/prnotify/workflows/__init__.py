"""Workflow registry and fire-and-forget runs."""

from .registry import (
    ENTRY_POINT_GROUP,
    Workflow,
    WorkflowRegistry,
    WorkflowRun,
    WorkflowRunContext,
    load_entry_point_workflows,
)

__all__ = [
    "ENTRY_POINT_GROUP",
    "Workflow",
    "WorkflowRegistry",
    "WorkflowRun",
    "WorkflowRunContext",
    "load_entry_point_workflows",
]
