"""Map scheduler errors to JSON error bodies."""

from __future__ import annotations

from fastapi import Request
from fastapi.responses import JSONResponse

from prnotify.api.schemas import ErrorBody
from prnotify.core.errors import NotifyError


def error_response(status: int, message: str, exc: Exception | None = None) -> JSONResponse:
    """Build ``{"message": ..., "error": {...}}`` with the error's structured form."""
    error = None
    if isinstance(exc, NotifyError):
        error = exc.to_dict()
    elif exc is not None:
        error = {"error_type": exc.__class__.__name__, "message": str(exc)}
    body = ErrorBody(message=message, error=error)
    return JSONResponse(status_code=status, content=body.model_dump())


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unhandled exceptions, returns 500."""
    debug = request.app.state.settings.debug
    return error_response(
        500,
        "Internal Server Error",
        exc if debug or isinstance(exc, NotifyError) else None,
    )
