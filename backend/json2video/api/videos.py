"""Video API endpoints."""

import asyncio
from typing import Annotated, Any

from fastapi import APIRouter, Body, Request

from json2video.api.deps import ApiKey, Intake, Scheduler
from json2video.schemas.video import JobStatus, VideoResponse

router = APIRouter()


@router.get("/api/validate")
async def validate_api_key(api_key: ApiKey) -> dict[str, str]:
    return {"message": "API key is valid"}


@router.post("/create-video", response_model=VideoResponse)
async def create_video(
    request: Request,
    payload: Annotated[Any, Body()],
    api_key: ApiKey,
    intake: Intake,
) -> VideoResponse:
    """
    Queue a render job.

    Downloads and probes the input synchronously, then returns the output
    filename right after the job is enqueued. The result is delivered to
    ``webhook_url`` when present.
    """
    request_origin = request.url.hostname or "localhost"
    return await intake.submit(payload, api_key, request_origin)


@router.get("/api/jobs/{job_key}", response_model=JobStatus)
async def get_job_status(job_key: str, api_key: ApiKey, scheduler: Scheduler) -> JobStatus:
    # Result backend lookups are blocking Redis calls
    return await asyncio.to_thread(scheduler.status, job_key, owner=api_key)
