"""
Structured error types for prnotify.

Every failure the scheduler can report is a ``NotifyError`` subclass that
carries a category, structured context (job id, workflow, cron expression,
timezone) and an optional chained cause. The HTTP layer serializes them with
``to_dict()``; the engine logs the same dictionary.

Manifesto:
    - **Typed hierarchy:** configuration, validation, scheduling and workflow
      failures are different types with different handling
    - **Rich context:** errors know which job and expression they belong to
    - **Chaining:** wrap the underlying exception as ``cause=``, never drop it

Architecture:
    ::

        ┌──────────────────────────────────────────────────────────────┐
        │                         NotifyError                           │
        │                  (category, context, cause)                   │
        ├──────────────────────────────────────────────────────────────┤
        │                                                               │
        │  ConfigurationError   CronExpressionError   SchedulerError    │
        │  (CONFIG)             (VALIDATION)          (SCHEDULING)      │
        │                                                               │
        │  WorkflowError (WORKFLOW)                                     │
        │       │                                                       │
        │  WorkflowNotFoundError                                        │
        └──────────────────────────────────────────────────────────────┘

Propagation:
    Bulk operations (initializing every job) catch per-item errors and log
    them. Targeted operations (refreshing one job) raise.

Examples:
    >>> error = ConfigurationError("Job config not found for id: 7")
    >>> error.with_context(job_id=7).to_dict()["context"]
    {'job_id': 7}

    >>> CronExpressionError("61 * * * *").expression
    '61 * * * *'

Tags:
    error-handling, exception-hierarchy, error-context, prnotify

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """
    Error categories for classification and HTTP mapping.

    Attributes:
        CONFIG: Unknown job id, malformed config, bad timezone
        VALIDATION: Cron grammar violations
        SCHEDULING: Timer could not be created or stopped
        WORKFLOW: Workflow lookup or execution failures
        INTERNAL: Bugs, unexpected state
        UNKNOWN: Uncategorized errors
    """

    CONFIG = "CONFIG"
    VALIDATION = "VALIDATION"
    SCHEDULING = "SCHEDULING"
    WORKFLOW = "WORKFLOW"
    INTERNAL = "INTERNAL"
    UNKNOWN = "UNKNOWN"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Only fields that are set end up in ``to_dict()``; anything that does not
    fit a named field goes into ``metadata``.
    """

    job_id: int | None = None
    workflow: str | None = None
    expression: str | None = None
    timezone: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result: dict[str, Any] = {}
        for key in ("job_id", "workflow", "expression", "timezone"):
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class NotifyError(Exception):
    """
    Base class for all prnotify errors.

    Subclasses set ``default_category``. Context can be passed at
    construction or added fluently with ``with_context()``.

    Example:
        >>> raise NotifyError("boom").with_context(job_id=3)
        Traceback (most recent call last):
        ...
        NotifyError: boom
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> NotifyError:
        """Add context to this error (fluent API)."""
        for key, value in kwargs.items():
            if key != "metadata" and hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# CONFIGURATION / VALIDATION
# =============================================================================


class ConfigurationError(NotifyError):
    """Unknown job id, malformed notification config, or unusable timing."""

    default_category = ErrorCategory.CONFIG


class CronExpressionError(NotifyError):
    """A cron expression failed grammar validation."""

    default_category = ErrorCategory.VALIDATION

    def __init__(
        self,
        expression: str,
        message: str | None = None,
        **kwargs: Any,
    ):
        self.expression = expression
        super().__init__(message or f"Invalid cron expression: {expression!r}", **kwargs)
        self.context.expression = expression


# =============================================================================
# SCHEDULING / WORKFLOWS
# =============================================================================


class SchedulerError(NotifyError):
    """A timer could not be created or controlled."""

    default_category = ErrorCategory.SCHEDULING


class WorkflowError(NotifyError):
    """Workflow lookup or execution error."""

    default_category = ErrorCategory.WORKFLOW


class WorkflowNotFoundError(WorkflowError):
    """Workflow not found in registry."""

    def __init__(self, name: str):
        self.workflow_name = name
        super().__init__(f"Workflow not found: {name}")
        self.context.workflow = name


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def categorize_error(error: Exception) -> ErrorCategory:
    """Get the category of an error."""
    if isinstance(error, NotifyError):
        return error.category
    if isinstance(error, ValueError):
        return ErrorCategory.VALIDATION
    if isinstance(error, (KeyError, LookupError)):
        return ErrorCategory.CONFIG
    return ErrorCategory.UNKNOWN


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "NotifyError",
    "ConfigurationError",
    "CronExpressionError",
    "SchedulerError",
    "WorkflowError",
    "WorkflowNotFoundError",
    "categorize_error",
]
