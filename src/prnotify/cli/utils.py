"""
CLI helpers: consoles, config loading and table/JSON output.
"""

from __future__ import annotations

import json
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from prnotify.core.errors import NotifyError
from prnotify.core.settings import get_settings
from prnotify.notifications.configs import resolve_notification_configs
from prnotify.notifications.models import NotificationConfig

console = Console()
err_console = Console(stderr=True)


def load_configs(config_file: str | None) -> tuple[NotificationConfig, ...]:
    """Configs from ``--config``, else from settings (file or built-in list)."""
    path = config_file or get_settings().notifications_file
    try:
        return resolve_notification_configs(path)
    except NotifyError as e:
        err_console.print(f"[bold red]Error[/bold red] ({e.category.value}): {e.message}")
        raise typer.Exit(code=1) from e


def print_json(payload: Any) -> None:
    console.print_json(json.dumps(payload, default=str))


def print_table(rows: list[dict[str, Any]], *, title: str = "") -> None:
    """Render a list of dicts as a Rich table."""
    if not rows:
        console.print("[dim]No items.[/dim]")
        return
    table = Table(title=title or None, show_lines=False, pad_edge=False)
    for column in rows[0]:
        table.add_column(column, overflow="fold")
    for row in rows:
        table.add_row(*("" if value is None else str(value) for value in row.values()))
    console.print(table)
