"""In-memory notification history.

Workflows persist "who was notified when" next to the notification they
send and read it back before the next one. This store keeps that history
in process, keyed by ``(workflow, subject, channel)``, and only hands back
timestamps from the current day in its timezone so the backoff resets
every morning.

Example:
    >>> history = NotificationHistory(timezone="Asia/Ho_Chi_Minh")
    >>> key = HistoryKey("notifyReviewers", "octocat", "discord")
    >>> check = history.check(key)
    >>> if check.should_notify:
    ...     send(...)
    ...     history.record(key, check.notified_times)
"""

from __future__ import annotations

import threading
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import NamedTuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from prnotify.core.errors import ConfigurationError

from .timing import (
    DEFAULT_BACKOFF,
    BackoffConfig,
    NotificationCheck,
    check_notification_history,
    parse_timestamp,
)


class HistoryKey(NamedTuple):
    workflow: str
    subject: str
    channel: str = "default"


class NotificationHistory:
    """Thread-safe per-key notification timestamps with a daily reset."""

    def __init__(self, timezone: str = "UTC", backoff: BackoffConfig = DEFAULT_BACKOFF):
        try:
            self._tz = ZoneInfo(timezone)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ConfigurationError(f"Unknown timezone: {timezone}", cause=e) from e
        self._backoff = backoff
        self._lock = threading.Lock()
        self._entries: dict[HistoryKey, list[str]] = {}

    def _start_of_day(self, now: datetime) -> datetime:
        local = now.astimezone(self._tz)
        return local.replace(hour=0, minute=0, second=0, microsecond=0)

    def notified_times(self, key: HistoryKey, *, now: datetime | None = None) -> list[str]:
        """Timestamps recorded for ``key`` since local midnight."""
        current = now or datetime.now(UTC)
        cutoff = self._start_of_day(current)
        with self._lock:
            stored = list(self._entries.get(key, ()))
        result = []
        for text in stored:
            value = parse_timestamp(text)
            if value is not None and value >= cutoff:
                result.append(text)
        return result

    def check(self, key: HistoryKey, *, now: datetime | None = None) -> NotificationCheck:
        return check_notification_history(
            self.notified_times(key, now=now), self._backoff, now=now
        )

    def record(self, key: HistoryKey, notified_times: Sequence[str]) -> None:
        """Replace the history for ``key`` (pass ``NotificationCheck.notified_times``)."""
        with self._lock:
            self._entries[key] = list(notified_times)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


__all__ = ["HistoryKey", "NotificationHistory"]
