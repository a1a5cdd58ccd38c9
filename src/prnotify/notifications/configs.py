"""Static notification config list and its file loader.

The list is read once at startup and never reloaded; refreshing a job
re-reads the in-memory copy only. Deployments that need a different
schedule point ``PRNOTIFY_NOTIFICATIONS_FILE`` at a TOML file::

    [[notifications]]
    id = 2
    workflow_name = "notifyReviewers"
    timezone = "Asia/Ho_Chi_Minh"
    inactive_sub_jobs = ["slack"]

    [notifications.timing]
    minute = "*/30"
    hour = "9-18"
    day_of_week = "1-5"

A ``.json`` file holding either a list or ``{"notifications": [...]}`` is
accepted too, with the camelCase keys of older deployments.
"""

from __future__ import annotations

import json
import tomllib
from pathlib import Path
from typing import Any

from prnotify.core.errors import ConfigurationError
from prnotify.core.logging import get_logger

from .models import NotificationConfig, Timing, ensure_unique_ids

logger = get_logger(__name__)


DEFAULT_NOTIFICATION_CONFIGS: tuple[NotificationConfig, ...] = (
    NotificationConfig(
        id=1,
        workflow_name="sendTodayPRListToDiscordWorkflow",
        timing=Timing(minute=0, hour=9, day_of_week="1-5"),
    ),
    NotificationConfig(
        id=2,
        workflow_name="notifyReviewersWorkflow",
        timing=Timing(minute="*/30", hour="9-18", day_of_week="1-5"),
    ),
    NotificationConfig(
        id=3,
        workflow_name="notifyDeveloperPRRequestWorkflow",
        timing=Timing(minute=0, hour="10,15", day_of_week="1-5"),
    ),
    NotificationConfig(
        id=4,
        workflow_name="notifyDeveloperAboutPRStatusWorkflow",
        timing=Timing(minute=0, hour=17, day_of_week="1-5"),
    ),
    NotificationConfig(
        id=5,
        workflow_name="notifyInactivePRsWorkflow",
        expression="0 11 * * MON",
        is_active=False,
    ),
)


def _entries_from_document(document: Any, path: Path) -> list[Any]:
    if isinstance(document, list):
        return document
    if isinstance(document, dict) and isinstance(document.get("notifications"), list):
        return document["notifications"]
    raise ConfigurationError(f"{path}: expected a 'notifications' list")


def load_notification_configs(path: str | Path) -> tuple[NotificationConfig, ...]:
    """Read and validate notification configs from a TOML or JSON file."""
    path = Path(path).expanduser()
    try:
        raw = path.read_bytes()
    except OSError as e:
        raise ConfigurationError(f"Cannot read notification file {path}: {e}", cause=e) from e

    try:
        if path.suffix.lower() == ".json":
            document = json.loads(raw)
        else:
            document = tomllib.loads(raw.decode("utf-8"))
    except (tomllib.TOMLDecodeError, json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ConfigurationError(f"Cannot parse notification file {path}: {e}", cause=e) from e

    configs = []
    for index, entry in enumerate(_entries_from_document(document, path)):
        if not isinstance(entry, dict):
            raise ConfigurationError(f"{path}: entry #{index} is not a table")
        try:
            configs.append(NotificationConfig.from_dict(entry))
        except ConfigurationError as e:
            raise e.with_context(source=str(path), entry=index)

    result = ensure_unique_ids(configs)
    logger.debug("notification_configs_loaded", path=str(path), count=len(result))
    return result


def resolve_notification_configs(path: str | Path | None) -> tuple[NotificationConfig, ...]:
    """Configs from ``path`` when given, else the built-in list."""
    if path:
        return load_notification_configs(path)
    return DEFAULT_NOTIFICATION_CONFIGS


__all__ = [
    "DEFAULT_NOTIFICATION_CONFIGS",
    "load_notification_configs",
    "resolve_notification_configs",
]
