"""Notification config models.

Manifesto:
    Notification configs are static, read-only records. Each one names a
    workflow, says when it fires (structured ``Timing`` or a raw cron
    ``expression``) and in which timezone, and lists the sub-jobs of the
    workflow that are switched off.

Timing fields are a tagged variant instead of "number or string":

- ``Wildcard``   renders ``*``
- ``Fixed(9)``   renders ``9``
- ``Expression("1-5")`` renders ``1-5``

Plain ints and strings are coerced on construction, so
``Timing(minute=0, hour=17, day_of_week="1-5")`` is the usual spelling.

Tags:
    prnotify, models, notifications, dataclasses, cron

Doc-Types:
    api-reference, data-model
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from prnotify.core.errors import ConfigurationError

# ---------------------------------------------------------------------------
# Timing field variants
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Wildcard:
    """Matches every value of the field."""

    def to_token(self) -> str:
        return "*"


@dataclass(frozen=True)
class Fixed:
    """A single numeric value."""

    value: int

    def __post_init__(self) -> None:
        if isinstance(self.value, bool) or not isinstance(self.value, int):
            raise ConfigurationError(f"Fixed timing value must be an integer, got {self.value!r}")
        if self.value < 0:
            raise ConfigurationError(f"Fixed timing value must be non-negative, got {self.value}")

    def to_token(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class Expression:
    """A raw cron field expression such as ``1-5``, ``*/15`` or ``MON,WED``."""

    text: str

    def __post_init__(self) -> None:
        if not isinstance(self.text, str) or not self.text.strip():
            raise ConfigurationError("Timing expression must be a non-empty string")

    def to_token(self) -> str:
        return self.text.strip()


TimingField = Wildcard | Fixed | Expression
TimingInput = TimingField | int | str | None

WILDCARD = Wildcard()


def as_timing_field(value: TimingInput) -> TimingField:
    """Coerce a config value into a timing field variant.

    ``None`` and ``"*"`` become ``Wildcard``; ints and digit strings become
    ``Fixed``; any other string becomes ``Expression`` (grammar is checked
    later, when the whole cron expression is validated).
    """
    if value is None:
        return WILDCARD
    if isinstance(value, (Wildcard, Fixed, Expression)):
        return value
    if isinstance(value, bool):
        raise ConfigurationError(f"Unsupported timing value: {value!r}")
    if isinstance(value, int):
        return Fixed(value)
    if isinstance(value, str):
        text = value.strip()
        if text == "*":
            return WILDCARD
        if text.isdigit():
            return Fixed(int(text))
        return Expression(text)
    raise ConfigurationError(f"Unsupported timing value: {value!r}")


# ---------------------------------------------------------------------------
# Timing
# ---------------------------------------------------------------------------

TIMING_FIELDS = ("second", "minute", "hour", "day_of_month", "month", "day_of_week")

_TIMING_ALIASES = {
    "dayOfMonth": "day_of_month",
    "dayOfWeek": "day_of_week",
}


@dataclass(frozen=True)
class Timing:
    """Structured cron timing, fields in cron order.

    ``second`` is the only field that can be omitted (left as ``None``), which
    produces a classic 5-field expression. Every other unset field is a
    wildcard.
    """

    second: TimingInput = None
    minute: TimingInput = WILDCARD
    hour: TimingInput = WILDCARD
    day_of_month: TimingInput = WILDCARD
    month: TimingInput = WILDCARD
    day_of_week: TimingInput = WILDCARD

    def __post_init__(self) -> None:
        if self.second is not None:
            object.__setattr__(self, "second", as_timing_field(self.second))
        for name in TIMING_FIELDS[1:]:
            object.__setattr__(self, name, as_timing_field(getattr(self, name)))

    def tokens(self) -> list[str]:
        """Cron tokens in order; an omitted ``second`` is left out."""
        fields = [getattr(self, name) for name in TIMING_FIELDS]
        return [f.to_token() for f in fields if f is not None]

    @property
    def has_seconds(self) -> bool:
        return self.second is not None

    @property
    def is_all_wildcard(self) -> bool:
        return all(token == "*" for token in self.tokens())

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Timing:
        """Build from a mapping with snake_case (or camelCase) field names."""
        kwargs: dict[str, Any] = {}
        for key, value in data.items():
            name = _TIMING_ALIASES.get(key, key)
            if name not in TIMING_FIELDS:
                raise ConfigurationError(f"Unknown timing field: {key!r}")
            kwargs[name] = value
        return cls(**kwargs)

    def to_dict(self) -> dict[str, str]:
        result = {}
        for name in TIMING_FIELDS:
            value = getattr(self, name)
            if value is not None:
                result[name] = value.to_token()
        return result


# ---------------------------------------------------------------------------
# NotificationConfig
# ---------------------------------------------------------------------------

_CONFIG_ALIASES = {
    "workflowName": "workflow_name",
    "inactiveSubJobs": "inactive_sub_jobs",
    "isActive": "is_active",
}

_CONFIG_FIELDS = (
    "id",
    "workflow_name",
    "timing",
    "expression",
    "timezone",
    "inactive_sub_jobs",
    "is_active",
)


@dataclass(frozen=True)
class NotificationConfig:
    """One scheduled notification.

    ``expression`` takes precedence over ``timing`` when both are set. A
    config with neither is accepted here and rejected when it has to be
    scheduled.
    """

    id: int
    workflow_name: str
    timing: Timing | None = None
    expression: str | None = None
    timezone: str | None = None
    inactive_sub_jobs: frozenset[str] = field(default_factory=frozenset)
    is_active: bool = True

    def __post_init__(self) -> None:
        if isinstance(self.id, bool) or not isinstance(self.id, int) or self.id <= 0:
            raise ConfigurationError(f"Notification id must be a positive integer, got {self.id!r}")
        if not isinstance(self.workflow_name, str) or not self.workflow_name.strip():
            raise ConfigurationError(
                f"Notification {self.id} has no workflow name"
            ).with_context(job_id=self.id)

        if isinstance(self.timing, Mapping):
            object.__setattr__(self, "timing", Timing.from_dict(self.timing))
        elif self.timing is not None and not isinstance(self.timing, Timing):
            raise ConfigurationError(
                f"Notification {self.id} has an unsupported timing value"
            ).with_context(job_id=self.id)

        for name in ("expression", "timezone"):
            value = getattr(self, name)
            if value is None:
                continue
            if not isinstance(value, str):
                raise ConfigurationError(
                    f"Notification {self.id}: {name} must be a string"
                ).with_context(job_id=self.id)
            object.__setattr__(self, name, value.strip() or None)

        if isinstance(self.inactive_sub_jobs, str):
            raise ConfigurationError(
                f"Notification {self.id}: inactive_sub_jobs must be a list of names"
            ).with_context(job_id=self.id)
        object.__setattr__(self, "inactive_sub_jobs", frozenset(self.inactive_sub_jobs))

    def lists_inactive(self, sub_job_name: str) -> bool:
        return sub_job_name in self.inactive_sub_jobs

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> NotificationConfig:
        """Build from a plain mapping (TOML table or JSON object)."""
        kwargs: dict[str, Any] = {}
        for key, value in data.items():
            name = _CONFIG_ALIASES.get(key, key)
            if name not in _CONFIG_FIELDS:
                raise ConfigurationError(f"Unknown notification field: {key!r}")
            kwargs[name] = value
        if "id" not in kwargs or "workflow_name" not in kwargs:
            raise ConfigurationError("Notification entries need 'id' and 'workflow_name'")
        return cls(**kwargs)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "workflow_name": self.workflow_name,
            "timing": self.timing.to_dict() if self.timing else None,
            "expression": self.expression,
            "timezone": self.timezone,
            "inactive_sub_jobs": sorted(self.inactive_sub_jobs),
            "is_active": self.is_active,
        }


def ensure_unique_ids(configs: Iterable[NotificationConfig]) -> tuple[NotificationConfig, ...]:
    """Return configs as a tuple, rejecting duplicate ids."""
    seen: set[int] = set()
    result = []
    for config in configs:
        if config.id in seen:
            raise ConfigurationError(
                f"Duplicate notification id: {config.id}"
            ).with_context(job_id=config.id)
        seen.add(config.id)
        result.append(config)
    return tuple(result)


__all__ = [
    "Wildcard",
    "Fixed",
    "Expression",
    "TimingField",
    "TimingInput",
    "WILDCARD",
    "as_timing_field",
    "TIMING_FIELDS",
    "Timing",
    "NotificationConfig",
    "ensure_unique_ids",
]
