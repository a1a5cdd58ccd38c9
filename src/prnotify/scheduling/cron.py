"""
Cron expression building and validation.

Turns a ``NotificationConfig`` into a validated cron expression. Configs
carry either a raw ``expression`` (used as-is after validation) or a
structured ``Timing`` whose fields are joined in cron order.

Fields (5 or 6, whitespace-separated)::

    [second] minute hour day-of-month month day-of-week

The leading second is moved to the end before handing the expression to
croniter, which validates every field, expands it, and must be able to
find a next fire time for the expression to count as valid.

Strict vs lenient:
    ``build_expression(config, strict=True)`` raises on any problem; it is
    what a targeted job refresh uses. ``strict=False`` logs and returns
    ``""`` for a missing timing or an invalid expression so that bulk
    initialization can skip the config and carry on. An all-wildcard timing
    raises in both modes.

Examples:
    >>> timing_to_cron_expression(Timing(minute=0, hour=17, day_of_week="1-5"))
    '0 17 * * 1-5'
    >>> parse_cron_expression("30 0 9 * * MON-FRI").croniter_expression()
    '0 9 * * MON-FRI 30'

Tags:
    prnotify, scheduling, cron, validation

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any
from zoneinfo import ZoneInfo

from croniter import CroniterBadDateError, CroniterError, croniter

from prnotify.core.errors import ConfigurationError, CronExpressionError
from prnotify.core.logging import get_logger
from prnotify.notifications.models import NotificationConfig, Timing

DAY_ABBREVIATIONS = dict(enumerate(["sun", "mon", "tue", "wed", "thu", "fri", "sat"]))

# croniter field order; seconds trail the five standard fields
CRONITER_FIELDS = ("minute", "hour", "day_of_month", "month", "day_of_week", "second")

FIELD_RANGES = {
    "second": (0, 59),
    "minute": (0, 59),
    "hour": (0, 23),
    "day_of_month": (1, 31),
    "month": (1, 12),
    "day_of_week": (0, 6),
}


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def _expanded_values(name: str, expanded: list[Any]) -> frozenset[int]:
    low, high = FIELD_RANGES[name]
    if "*" in expanded:
        return frozenset(range(low, high + 1))
    values = {value for value in expanded if isinstance(value, int)}
    if name == "day_of_week" and 7 in values:
        values.discard(7)
        values.add(0)
    return frozenset(values)


@dataclass(frozen=True)
class CronSchedule:
    """A validated cron expression with every field expanded."""

    expression: str
    tokens: dict[str, str]
    values: dict[str, frozenset[int]]

    @property
    def has_seconds(self) -> bool:
        return "second" in self.tokens

    def croniter_expression(self) -> str:
        """croniter expects seconds as the trailing sixth field."""
        return " ".join(self.tokens[name] for name in CRONITER_FIELDS if name in self.tokens)

    def day_of_week_names(self) -> str:
        """Explicit day list (``mon,tue``) with no numbering ambiguity."""
        days = self.values["day_of_week"]
        if len(days) == 7:
            return "*"
        return ",".join(DAY_ABBREVIATIONS[day] for day in sorted(days))


def parse_cron_expression(expression: str) -> CronSchedule:
    """Validate ``expression`` with croniter and expand its fields.

    An expression is only accepted when croniter can also find its next
    fire time, so ``0 0 31 2 *`` (never matches) is rejected here.

    Raises:
        CronExpressionError: wrong field count, a field croniter rejects,
            or no date ever matches
    """
    if not isinstance(expression, str):
        raise CronExpressionError(str(expression), "Cron expression must be a string")
    parts = expression.split()
    if len(parts) not in (5, 6):
        raise CronExpressionError(
            expression, f"Expected 5 or 6 fields, got {len(parts)} in {expression!r}"
        )

    normalized = " ".join(parts)
    names = CRONITER_FIELDS[5:] + CRONITER_FIELDS[:5] if len(parts) == 6 else CRONITER_FIELDS[:5]
    tokens = dict(zip(names, parts, strict=True))
    schedule_expression = " ".join(tokens[name] for name in CRONITER_FIELDS if name in tokens)

    try:
        expanded, _ = croniter.expand(schedule_expression)
        croniter(schedule_expression, datetime.now(UTC)).get_next(datetime)
    except CroniterBadDateError as e:
        raise CronExpressionError(
            normalized, f"Cron expression {normalized!r} never matches a date"
        ) from e
    except (CroniterError, ValueError, KeyError) as e:
        raise CronExpressionError(
            normalized, f"Invalid cron expression {normalized!r}: {e}"
        ) from e

    values = {
        name: _expanded_values(name, field_values)
        for name, field_values in zip(CRONITER_FIELDS, expanded)
    }
    return CronSchedule(expression=normalized, tokens=tokens, values=values)


def validate_cron_expression(expression: str) -> str:
    """Return the whitespace-normalized expression or raise CronExpressionError."""
    return parse_cron_expression(expression).expression


def next_fire_time(expression: str, timezone: str = "UTC", after: datetime | None = None) -> datetime:
    """Next match of ``expression`` after ``after`` (default: now), in ``timezone``."""
    schedule = parse_cron_expression(expression)
    tz = ZoneInfo(timezone)
    base = (after or datetime.now(UTC)).astimezone(tz)
    return croniter(schedule.croniter_expression(), base).get_next(datetime)


def timing_to_cron_expression(timing: Timing) -> str:
    """Join timing fields in cron order; an omitted ``second`` gives 5 fields.

    Raises:
        ConfigurationError: every field is a wildcard
    """
    if timing.is_all_wildcard:
        raise ConfigurationError("Invalid timing values provided: every field is a wildcard")
    return " ".join(timing.tokens())


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------


class CronExpressionBuilder:
    """Derives the cron expression for a notification config.

    Example:
        >>> builder = CronExpressionBuilder()
        >>> builder.build_expression(config)            # strict, raises
        >>> builder.build_expression(config, strict=False)  # "" on failure
    """

    def __init__(self, logger: Any = None):
        self._logger = logger if logger is not None else get_logger(__name__)

    def build_expression(self, config: NotificationConfig, strict: bool = True) -> str:
        if config.expression:
            return self._validated(config, config.expression, strict)

        if config.timing is None:
            if strict:
                raise ConfigurationError(
                    "No timing or expression provided"
                ).with_context(job_id=config.id, workflow=config.workflow_name)
            self._logger.error(
                "notification_config_without_timing",
                job_id=config.id,
                workflow=config.workflow_name,
            )
            return ""

        try:
            expression = timing_to_cron_expression(config.timing)
        except ConfigurationError as e:
            raise e.with_context(job_id=config.id, workflow=config.workflow_name)
        return self._validated(config, expression, strict)

    def _validated(self, config: NotificationConfig, expression: str, strict: bool) -> str:
        try:
            return validate_cron_expression(expression)
        except CronExpressionError as e:
            e.with_context(job_id=config.id, workflow=config.workflow_name)
            self._logger.error(
                "cron_expression_invalid",
                job_id=config.id,
                workflow=config.workflow_name,
                expression=expression,
                error=e.message,
            )
            if strict:
                raise
            return ""


__all__ = [
    "CronSchedule",
    "CronExpressionBuilder",
    "parse_cron_expression",
    "validate_cron_expression",
    "timing_to_cron_expression",
    "next_fire_time",
]
