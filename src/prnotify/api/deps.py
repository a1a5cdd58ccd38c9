"""
FastAPI dependencies: the runtime and the admin lock live on ``app.state``.

Usage in routers::

    @router.post("/things")
    async def do_thing(runtime: RuntimeDep, lock: AdminLockDep): ...
"""

from __future__ import annotations

import asyncio
from typing import Annotated

from fastapi import Depends, Request

from prnotify.runtime import Runtime


def get_runtime(request: Request) -> Runtime:
    return request.app.state.runtime


def get_admin_lock(request: Request) -> asyncio.Lock:
    """Single-flight guard for initialize/refresh calls."""
    return request.app.state.admin_lock


RuntimeDep = Annotated[Runtime, Depends(get_runtime)]
AdminLockDep = Annotated[asyncio.Lock, Depends(get_admin_lock)]
