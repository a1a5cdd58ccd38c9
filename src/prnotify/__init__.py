"""
prnotify - cron-driven notification scheduler for pull-request workflows.

Packages:
- prnotify.core: errors, structured logging, settings
- prnotify.notifications: notification configs and the backoff timing service
- prnotify.scheduling: cron expression builder, job registry, scheduler engine
- prnotify.workflows: workflow registry the scheduler triggers
- prnotify.api: FastAPI admin surface (refresh endpoints)
- prnotify.cli: Typer command line
"""

__version__ = "0.3.0"
