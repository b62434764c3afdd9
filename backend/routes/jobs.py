"""API routes for job submission, status, files and progress."""

from __future__ import annotations

import asyncio
import logging
import re
from typing import AsyncIterator

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import StreamingResponse

import config
from models import (
    FilesResponse,
    GenerateRequest,
    GenerateResponse,
    JobRecord,
    JobStatus,
)
from services.job_manager import JobManager
from workers.runner import JobRunner

logger = logging.getLogger("mca.routes")

router = APIRouter()

URL_PATTERN = re.compile(r"^https?://.+")


def _manager(request: Request) -> JobManager:
    return request.app.state.job_manager


def _runner(request: Request) -> JobRunner:
    return request.app.state.job_runner


# ---------------------------------------------------------------------------
# POST /api/generate
# ---------------------------------------------------------------------------
@router.post("/generate", response_model=GenerateResponse)
async def generate(body: GenerateRequest, request: Request):
    """Create a job for ``body.url`` and start processing it in the background."""
    if not isinstance(body.url, str) or not URL_PATTERN.match(body.url):
        raise HTTPException(400, "A valid http(s) URL is required.")

    manager = _manager(request)
    job_id = manager.create_job(body.url, body.style, body.subtitles)
    _runner(request).launch(job_id)

    return GenerateResponse(
        job_id=job_id,
        message="Job started",
        status_url=f"/api/status/{job_id}",
    )


# ---------------------------------------------------------------------------
# GET /api/status/{job_id}
# ---------------------------------------------------------------------------
@router.get("/status/{job_id}", response_model=JobRecord)
async def get_job_status(job_id: str, request: Request):
    job = _manager(request).get_job(job_id)
    if not job:
        raise HTTPException(404, f"Job '{job_id}' not found.")
    return job


# ---------------------------------------------------------------------------
# GET /api/files/{job_id}
# ---------------------------------------------------------------------------
@router.get("/files/{job_id}", response_model=FilesResponse)
async def get_job_files(job_id: str, request: Request):
    """Paths of the artifacts of a completed job, derived from its timestamp."""
    job = _manager(request).get_job(job_id)
    if not job or job.status != JobStatus.COMPLETED or job.result is None:
        raise HTTPException(404, f"Files for job '{job_id}' not found.")

    stem = f"script_{job.result.timestamp}"
    return FilesResponse(
        script=f"/output/{stem}.json",
        studio=f"/output/{stem}_studio.json",
        audio=f"/output/{stem}.mp3",
        video=f"/output/{stem}.mp4",
        images=f"/output/images/{stem}/",
        audio_files=f"/output/audio/{stem}/",
    )


# ---------------------------------------------------------------------------
# GET /api/progress/{job_id}  (Server-Sent Events)
# ---------------------------------------------------------------------------
@router.get("/progress/{job_id}")
async def stream_progress(job_id: str, request: Request):
    """Push the job record once per interval until it reaches a terminal state."""
    manager = _manager(request)
    if manager.get_job(job_id) is None:
        raise HTTPException(404, f"Job '{job_id}' not found.")

    return StreamingResponse(
        _progress_events(request, manager, job_id, config.PROGRESS_INTERVAL),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )


async def _progress_events(
    request: Request,
    manager: JobManager,
    job_id: str,
    interval: float,
) -> AsyncIterator[str]:
    while True:
        if await request.is_disconnected():
            logger.info("Progress stream for %s closed by client.", job_id)
            return
        job = manager.get_job(job_id)
        if job is None:
            return
        yield f"data: {job.model_dump_json(by_alias=True)}\n\n"
        if job.status.is_terminal:
            return
        await asyncio.sleep(interval)


# ---------------------------------------------------------------------------
# GET /api/jobs  (list recent jobs)
# ---------------------------------------------------------------------------
@router.get("/jobs", response_model=list[JobRecord])
async def list_jobs(request: Request):
    """List recent jobs (most recent first)."""
    return _manager(request).list_jobs()
