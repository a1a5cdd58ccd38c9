"""
FastAPI application factory.

``create_app()`` wires the runtime, error handlers, routers and the
lifespan into a single ``FastAPI`` instance. The lifespan starts the timer
backend and schedules every active config; shutdown stops every job.

Tags:
    prnotify, api, app-factory, composition-root, FastAPI

Doc-Types:
    api-reference
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from prnotify import __version__
from prnotify.api.errors import unhandled_exception_handler
from prnotify.core.logging import get_logger
from prnotify.core.settings import PRNotifySettings, get_settings
from prnotify.runtime import Runtime, build_runtime


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: build (if needed) and start the scheduler runtime."""
    log = get_logger("prnotify.api")

    if app.state.runtime is None:
        app.state.runtime = build_runtime(app.state.settings)
    app.state.admin_lock = asyncio.Lock()

    runtime: Runtime = app.state.runtime
    scheduled = runtime.start()
    log.info("prnotify_api_started", version=app.version, scheduled=scheduled)

    yield

    runtime.stop()
    log.info("prnotify_api_stopped")


def create_app(
    *,
    settings: PRNotifySettings | None = None,
    runtime: Runtime | None = None,
) -> FastAPI:
    """Build and return a fully-configured FastAPI application.

    Parameters
    ----------
    settings : PRNotifySettings | None
        Override settings. When ``None`` the cached singleton from
        :func:`get_settings` is used (or the runtime's own settings).
    runtime : Runtime | None
        Pre-built runtime (tests pass one with a fake job factory). When
        ``None`` the lifespan builds one from settings.
    """
    if settings is None:
        settings = runtime.settings if runtime is not None else get_settings()

    app = FastAPI(
        title=settings.api_title,
        version=__version__,
        lifespan=lifespan,
        debug=settings.debug,
    )

    app.state.settings = settings
    app.state.runtime = runtime
    app.state.admin_lock = asyncio.Lock()

    app.add_exception_handler(Exception, unhandled_exception_handler)

    from prnotify.api.routers import cronjobs, health

    app.include_router(health.router)
    app.include_router(cronjobs.router)

    return app
