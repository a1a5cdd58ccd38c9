"""
CLI: ``prnotify schedule`` - inspect and validate notification schedules.
"""

from __future__ import annotations

import typer

from prnotify.cli.utils import console, err_console, load_configs, print_json, print_table
from prnotify.core.errors import NotifyError
from prnotify.core.settings import get_settings
from prnotify.scheduling.cron import CronExpressionBuilder, next_fire_time

app = typer.Typer(no_args_is_help=True)


@app.command("list")
def list_schedules(
    config_file: str | None = typer.Option(None, "--config", "-c", help="Notification TOML/JSON file"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """List notification configs with their cron expression and next run."""
    configs = load_configs(config_file)
    default_tz = get_settings().default_timezone
    builder = CronExpressionBuilder()

    rows = []
    for config in configs:
        timezone = config.timezone or default_tz
        try:
            expression = builder.build_expression(config, strict=True)
            next_run = next_fire_time(expression, timezone).isoformat() if config.is_active else None
            error = None
        except (NotifyError, ValueError, KeyError) as e:
            expression, next_run = "", None
            error = getattr(e, "message", str(e))
        rows.append(
            {
                "id": config.id,
                "workflow": config.workflow_name,
                "expression": expression,
                "timezone": timezone,
                "active": config.is_active,
                "next_run": next_run,
                "error": error,
            }
        )

    if json_out:
        print_json(rows)
        return
    print_table(rows, title="Notification schedules")


@app.command("validate")
def validate_schedules(
    config_file: str | None = typer.Option(None, "--config", "-c", help="Notification TOML/JSON file"),
) -> None:
    """Strictly validate every active config. Exits 1 if any is invalid."""
    configs = load_configs(config_file)
    builder = CronExpressionBuilder()
    failures = 0

    for config in configs:
        if not config.is_active:
            console.print(f"[dim]- {config.id} {config.workflow_name}: inactive[/dim]")
            continue
        try:
            expression = builder.build_expression(config, strict=True)
        except NotifyError as e:
            failures += 1
            err_console.print(f"[red]✗ {config.id} {config.workflow_name}: {e.message}[/red]")
            continue
        console.print(f"[green]✓ {config.id} {config.workflow_name}: {expression}[/green]")

    if failures:
        err_console.print(f"[bold red]{failures} invalid config(s)[/bold red]")
        raise typer.Exit(code=1)
    console.print("[bold green]All active configs are valid[/bold green]")
