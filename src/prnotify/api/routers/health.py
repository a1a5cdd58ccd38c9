"""
Health endpoints.

GET /health        engine + backend status (503 when the backend is down)
GET /health/live   liveness probe, always 200
"""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from prnotify import __version__
from prnotify.api.deps import RuntimeDep

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
async def health(runtime: RuntimeDep):
    report = runtime.engine.health()
    body = {
        "status": "healthy" if report.healthy else "unhealthy",
        "service": "prnotify",
        "version": __version__,
        **report.to_dict(),
    }
    return JSONResponse(status_code=200 if report.healthy else 503, content=body)


@router.get("/live")
async def live():
    return {"status": "alive"}
