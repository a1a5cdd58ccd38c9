"""
Process-wide settings.

All values can be overridden via environment variables prefixed with
``PRNOTIFY_`` or a ``.env`` file in the working directory.

Order of precedence (highest → lowest):
    1. Explicit constructor arguments (tests, CLI flags)
    2. Environment variables (``PRNOTIFY_DEFAULT_TIMEZONE``, ...)
    3. ``.env`` file
    4. Defaults below
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class PRNotifySettings(BaseSettings):
    """Settings for the scheduler engine, the admin API and logging."""

    # ── Scheduling ───────────────────────────────────────────────────────
    default_timezone: str = Field(
        default="UTC",
        description="IANA timezone for configs that do not name one",
    )
    notifications_file: str | None = Field(
        default=None,
        description="TOML file with [[notifications]] tables; built-in list when unset",
    )
    scheduler_backend: Literal["asyncio", "apscheduler"] = Field(
        default="asyncio",
        description="Timer backend used to arm cron jobs",
    )
    load_entry_points: bool = Field(
        default=True,
        description="Discover workflows from the 'prnotify.workflows' entry-point group",
    )

    # ── Logging ──────────────────────────────────────────────────────────
    log_level: str = Field(default="INFO", description="Log level")
    log_format: Literal["console", "json", "auto"] = Field(
        default="auto",
        description="console, json, or auto (json when stdout is not a tty)",
    )

    # ── Server ───────────────────────────────────────────────────────────
    api_host: str = Field(default="0.0.0.0", description="Bind address")
    api_port: int = Field(default=4111, description="Bind port")
    api_title: str = Field(default="prnotify scheduler", description="OpenAPI title")
    debug: bool = Field(default=False, description="Enable debug mode")

    model_config = SettingsConfigDict(
        env_prefix="PRNOTIFY_",
        env_file=".env",
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.upper()

    @property
    def json_logs(self) -> bool | None:
        """Translate ``log_format`` into the ``json_format`` flag of configure_logging."""
        if self.log_format == "auto":
            return None
        return self.log_format == "json"


@lru_cache(maxsize=1)
def get_settings() -> PRNotifySettings:
    """Cached settings, loaded once per process."""
    return PRNotifySettings()


__all__ = ["PRNotifySettings", "get_settings"]
