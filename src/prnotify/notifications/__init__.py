"""Notification configs, history and the exponential backoff timing service."""

from .configs import (
    DEFAULT_NOTIFICATION_CONFIGS,
    load_notification_configs,
    resolve_notification_configs,
)
from .history import HistoryKey, NotificationHistory
from .models import (
    WILDCARD,
    Expression,
    Fixed,
    NotificationConfig,
    Timing,
    TimingField,
    Wildcard,
)
from .timing import (
    DEFAULT_BACKOFF,
    BackoffConfig,
    NotificationCheck,
    NotificationTimingService,
    calculate_interval,
    check_notification_history,
    should_notify,
)

__all__ = [
    # Models
    "NotificationConfig",
    "Timing",
    "TimingField",
    "Wildcard",
    "Fixed",
    "Expression",
    "WILDCARD",
    # Configs
    "DEFAULT_NOTIFICATION_CONFIGS",
    "load_notification_configs",
    "resolve_notification_configs",
    # Timing
    "BackoffConfig",
    "DEFAULT_BACKOFF",
    "NotificationCheck",
    "NotificationTimingService",
    "calculate_interval",
    "should_notify",
    "check_notification_history",
    # History
    "HistoryKey",
    "NotificationHistory",
]
