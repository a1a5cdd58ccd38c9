"""
Exponential backoff for repeated notifications.

A workflow that nags someone (a reviewer who has not looked at a PR yet, an
author with a stale PR) keeps a history of when it already notified them.
These functions decide whether another notification is due: the first one
is always due, after that the required gap doubles each time, capped at a
maximum.

Manifesto:
    - **Pure:** no clock reads unless the caller omits ``now``, no I/O
    - **History is the caller's:** the store lives elsewhere; we only read
      the timestamps handed to us and say what to persist next

Architecture:
    ::

        count (len(history))   required interval
        ───────────────────    ─────────────────
        0, 1                   30 min   (initial)
        2                      60 min
        3                      120 min
        4, 5, ...              240 min  (max)

        check_notification_history(history)
            │
            ├── last = max(parsed timestamps)
            ├── required = calculate_interval(len(history))
            └── should_notify = last is None or now - last >= required

Examples:
    >>> calculate_interval(2)
    3600000
    >>> check_notification_history([]).should_notify
    True

Tags:
    prnotify, notifications, backoff, timing, pure-functions

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime

from prnotify.core.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class BackoffConfig:
    """Backoff parameters, all intervals in milliseconds."""

    initial_interval_ms: int = 30 * 60 * 1000
    multiplier: float = 2
    max_interval_ms: int = 4 * 60 * 60 * 1000

    def __post_init__(self) -> None:
        if self.initial_interval_ms < 0 or self.max_interval_ms < 0:
            raise ValueError("Backoff intervals must be non-negative")
        if self.multiplier < 1:
            raise ValueError("Backoff multiplier must be >= 1")


DEFAULT_BACKOFF = BackoffConfig()


@dataclass(frozen=True)
class NotificationCheck:
    """Outcome of ``check_notification_history``.

    Attributes:
        should_notify: A notification is due now.
        last_notification_time: Latest prior notification (ISO-8601, UTC) or None.
        notified_times: History to persist once the notification is sent.
    """

    should_notify: bool
    last_notification_time: str | None
    notified_times: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "should_notify": self.should_notify,
            "last_notification_time": self.last_notification_time,
            "notified_times": list(self.notified_times),
        }


# ---------------------------------------------------------------------------
# Time helpers
# ---------------------------------------------------------------------------


def current_ms() -> int:
    return int(datetime.now(UTC).timestamp() * 1000)


def to_epoch_ms(value: datetime) -> int:
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return int(value.timestamp() * 1000)


def parse_timestamp(text: str) -> datetime | None:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    try:
        parsed = datetime.fromisoformat(text.strip())
    except (AttributeError, ValueError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def format_timestamp(value: datetime) -> str:
    """ISO-8601 in UTC with millisecond precision and a ``Z`` suffix."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    text = value.astimezone(UTC).isoformat(timespec="milliseconds")
    return text.replace("+00:00", "Z")


# ---------------------------------------------------------------------------
# Backoff
# ---------------------------------------------------------------------------


def calculate_interval(notification_count: int, config: BackoffConfig = DEFAULT_BACKOFF) -> int:
    """Required gap (ms) before the next notification after ``notification_count`` sends."""
    if notification_count <= 1:
        return config.initial_interval_ms
    interval = config.initial_interval_ms
    if interval <= 0 or config.multiplier == 1:
        return int(min(interval, config.max_interval_ms))
    # step instead of exponentiating so huge counts cannot overflow
    for _ in range(notification_count - 1):
        interval *= config.multiplier
        if interval >= config.max_interval_ms:
            return config.max_interval_ms
    return int(interval)


def should_notify(
    last_notification_ms: int | float,
    required_interval_ms: int | float,
    *,
    now_ms: int | float | None = None,
) -> bool:
    """True when at least ``required_interval_ms`` has passed since the last notification."""
    current = current_ms() if now_ms is None else now_ms
    return current - last_notification_ms >= required_interval_ms


def check_notification_history(
    notified_timestamps: Sequence[str],
    config: BackoffConfig = DEFAULT_BACKOFF,
    *,
    now: datetime | None = None,
) -> NotificationCheck:
    """Decide whether to notify again given the prior notification timestamps.

    Unparseable timestamps still count towards the backoff step but cannot be
    the latest notification.
    """
    current = now or datetime.now(UTC)
    history = list(notified_timestamps)

    parsed = []
    for text in history:
        value = parse_timestamp(text)
        if value is None:
            logger.warning("notification_timestamp_unparseable", value=text)
            continue
        parsed.append(value)

    if not parsed:
        due = True
        last_time = None
    else:
        latest = max(parsed, key=to_epoch_ms)
        required = calculate_interval(len(history), config)
        due = should_notify(to_epoch_ms(latest), required, now_ms=to_epoch_ms(current))
        last_time = format_timestamp(latest)

    notified_times = [*history, format_timestamp(current)] if due else history
    return NotificationCheck(
        should_notify=due,
        last_notification_time=last_time,
        notified_times=notified_times,
    )


class NotificationTimingService:
    """Namespace wrapper around the module functions.

    Workflows that were written against a timing *service* object can take
    one of these instead of importing the functions.
    """

    def __init__(self, config: BackoffConfig = DEFAULT_BACKOFF):
        self.config = config

    def calculate_interval(self, notification_count: int) -> int:
        return calculate_interval(notification_count, self.config)

    @staticmethod
    def should_notify(
        last_notification_ms: int | float,
        required_interval_ms: int | float,
        *,
        now_ms: int | float | None = None,
    ) -> bool:
        return should_notify(last_notification_ms, required_interval_ms, now_ms=now_ms)

    def check_notification_history(
        self,
        notified_timestamps: Sequence[str],
        *,
        now: datetime | None = None,
    ) -> NotificationCheck:
        return check_notification_history(notified_timestamps, self.config, now=now)


__all__ = [
    "BackoffConfig",
    "DEFAULT_BACKOFF",
    "NotificationCheck",
    "NotificationTimingService",
    "calculate_interval",
    "should_notify",
    "check_notification_history",
    "parse_timestamp",
    "format_timestamp",
]
