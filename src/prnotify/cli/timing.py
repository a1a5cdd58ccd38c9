"""
CLI: ``prnotify timing`` - explore the notification backoff.
"""

from __future__ import annotations

from datetime import datetime

import typer

from prnotify.cli.utils import console, err_console, print_json, print_table
from prnotify.notifications.timing import calculate_interval, check_notification_history, parse_timestamp

app = typer.Typer(no_args_is_help=True)


def _minutes(interval_ms: int) -> str:
    return f"{interval_ms / 60000:g} min"


@app.command("interval")
def interval(
    count: int = typer.Argument(..., help="Notifications already sent"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Required gap before the next notification after COUNT sends."""
    value = calculate_interval(count)
    if json_out:
        print_json({"count": count, "interval_ms": value})
        return
    console.print(f"{value} ms ({_minutes(value)})")


@app.command("table")
def table(
    upto: int = typer.Option(6, "--upto", "-n", help="Show counts 0..N"),
) -> None:
    """Backoff table for the default settings."""
    rows = [
        {"count": n, "interval_ms": calculate_interval(n), "interval": _minutes(calculate_interval(n))}
        for n in range(upto + 1)
    ]
    print_table(rows, title="Notification backoff")


@app.command("check")
def check(
    timestamps: list[str] | None = typer.Argument(None, help="Prior notification times (ISO-8601)"),
    now: str | None = typer.Option(None, "--now", help="Evaluate at this time instead of now"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Would a notification be sent now, given its history?"""
    current: datetime | None = None
    if now is not None:
        current = parse_timestamp(now)
        if current is None:
            err_console.print(f"[bold red]Error[/bold red]: invalid --now value {now!r}")
            raise typer.Exit(code=1)

    result = check_notification_history(timestamps or [], now=current)
    if json_out:
        print_json(result.to_dict())
        return
    verdict = "[green]notify[/green]" if result.should_notify else "[yellow]wait[/yellow]"
    console.print(f"{verdict} (last: {result.last_notification_time or 'never'})")
