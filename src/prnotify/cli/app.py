"""
Root Typer application for the prnotify CLI.
"""

from __future__ import annotations

import sys

import typer
from typer import Typer

from prnotify.core.logging import configure_logging

app = Typer(
    name="prnotify",
    help="prnotify - cron-driven pull-request notifications.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from importlib.metadata import PackageNotFoundError
        from importlib.metadata import version as pkg_version

        try:
            v = pkg_version("prnotify")
        except PackageNotFoundError:
            from prnotify import __version__ as v
        typer.echo(f"prnotify {v}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    log_level: str = typer.Option("WARNING", "--log-level", help="Log level for diagnostics (stderr)."),
) -> None:
    """prnotify CLI - inspect schedules, explore backoff, run the scheduler."""
    configure_logging(level=log_level, json_format=False, stream=sys.stderr, cache_loggers=False)


# ── Sub-command registration ─────────────────────────────────────────────

from prnotify.cli.schedule import app as schedule_app  # noqa: E402
from prnotify.cli.serve import app as serve_app  # noqa: E402
from prnotify.cli.timing import app as timing_app  # noqa: E402

app.add_typer(schedule_app, name="schedule", help="Notification schedules.")
app.add_typer(timing_app, name="timing", help="Notification backoff.")
app.add_typer(serve_app, name="serve", help="Start the API server.")
