"""
CLI: ``prnotify serve`` - start the admin API with the scheduler running.
"""

from __future__ import annotations

import typer
import uvicorn

from prnotify.cli.utils import console
from prnotify.core.logging import configure_logging
from prnotify.core.settings import get_settings

app = typer.Typer(no_args_is_help=True)


@app.command("start")
def start(
    host: str | None = typer.Option(None, "--host", "-h", help="Bind address"),
    port: int | None = typer.Option(None, "--port", "-p", help="Bind port"),
    log_level: str | None = typer.Option(None, "--log-level"),
) -> None:
    """Start the API server; the scheduler runs inside its event loop."""
    settings = get_settings()
    host = host or settings.api_host
    port = port or settings.api_port
    level = (log_level or settings.log_level).upper()

    configure_logging(level=level, json_format=settings.json_logs, service="prnotify")
    console.print(f"[bold green]Starting prnotify[/bold green] on {host}:{port}")
    uvicorn.run(
        "prnotify.api:create_app",
        factory=True,
        host=host,
        port=port,
        log_level=level.lower(),
    )
