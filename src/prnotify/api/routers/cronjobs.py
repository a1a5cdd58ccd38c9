"""
Cron job administration.

POST /refresh-cronjobs          re-initialize every job from the config list
POST /refresh-cronjobs/{job_id} refresh (or stop, when inactive) one job
GET  /cronjobs                  live job snapshot

The refresh routes also answer GET for callers of the older agent API.
Calls are serialized: a refresh waits for any refresh already in flight.
"""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from prnotify.api.deps import AdminLockDep, RuntimeDep
from prnotify.api.errors import error_response
from prnotify.api.schemas import (
    JobListResponse,
    RefreshAllResponse,
    RefreshJobResponse,
    ScheduledJobSchema,
)
from prnotify.core.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["cronjobs"])


@router.api_route(
    "/refresh-cronjobs",
    methods=["POST", "GET"],
    response_model=RefreshAllResponse,
)
async def refresh_cronjobs(runtime: RuntimeDep, lock: AdminLockDep):
    """Stop every job and schedule all active configs again.

    Example:
        POST /refresh-cronjobs

        Response:
        {"message": "Cron jobs refreshed successfully", "scheduled": 4}
    """
    async with lock:
        try:
            count = runtime.engine.initialize_job_scheduler()
        except Exception as e:
            logger.exception("refresh_cronjobs_failed")
            return error_response(500, "Failed to refresh cron jobs", e)
    return RefreshAllResponse(message="Cron jobs refreshed successfully", scheduled=count)


@router.api_route(
    "/refresh-cronjobs/{job_id}",
    methods=["POST", "GET"],
    response_model=RefreshJobResponse,
)
async def refresh_cronjob(job_id: str, runtime: RuntimeDep, lock: AdminLockDep):
    """Refresh a single job by config id.

    Returns 400 for a non-numeric id and 500 when the refresh fails (unknown
    id, invalid expression, timer error).
    """
    if not job_id.isdigit() or int(job_id) <= 0:
        return JSONResponse(status_code=400, content={"message": "Valid job ID is required"})

    numeric_id = int(job_id)
    async with lock:
        try:
            runtime.engine.refresh_job(numeric_id)
        except Exception as e:
            logger.error("refresh_cronjob_failed", job_id=numeric_id, error=str(e))
            return error_response(500, f"Failed to refresh cron job {numeric_id}", e)

    return RefreshJobResponse(
        message=f"Cron job {numeric_id} refreshed successfully",
        job_id=numeric_id,
        scheduled=numeric_id in runtime.engine.registry,
    )


@router.get("/cronjobs", response_model=JobListResponse)
async def list_cronjobs(runtime: RuntimeDep):
    """Live jobs with their expression, timezone and next fire time."""
    jobs = [ScheduledJobSchema(**job.to_dict()) for job in runtime.engine.jobs()]
    return JobListResponse(data=jobs, count=len(jobs))
