"""Core primitives shared by every prnotify package: errors, logging, settings."""

from .errors import (
    ConfigurationError,
    CronExpressionError,
    ErrorCategory,
    ErrorContext,
    NotifyError,
    SchedulerError,
    WorkflowError,
    WorkflowNotFoundError,
    categorize_error,
)
from .logging import LogContext, bind_context, configure_logging, get_logger

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
    "configure_logging",
    "get_logger",
    "bind_context",
    "LogContext",
]
