"""Response bodies for the admin API."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class RefreshAllResponse(BaseModel):
    message: str
    scheduled: int = Field(description="Number of live jobs after the refresh")


class RefreshJobResponse(BaseModel):
    message: str
    job_id: int
    scheduled: bool = Field(description="False when the config is inactive and the job was stopped")


class ErrorBody(BaseModel):
    message: str
    error: dict[str, Any] | None = None


class ScheduledJobSchema(BaseModel):
    id: int
    workflow_name: str
    expression: str
    timezone: str
    next_run: str | None = None
    running: bool = True


class JobListResponse(BaseModel):
    data: list[ScheduledJobSchema]
    count: int
