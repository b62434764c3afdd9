"""Pydantic models for job records and API request/response schemas."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class JobStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


class CamelModel(BaseModel):
    """Serialised with camelCase keys, populated with either form."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class JobResult(CamelModel):
    script_path: str
    output_dir: str
    timestamp: str


class JobRecord(CamelModel):
    id: str
    url: str
    style: str
    subtitles: bool = False
    status: JobStatus = JobStatus.PENDING
    progress: int = 0  # 0-100
    message: str = ""
    created_at: datetime
    updated_at: datetime
    result: Optional[JobResult] = None
    error: Optional[str] = None


class GenerateRequest(BaseModel):
    url: Any = None  # checked in the route so bad values get a 400
    style: str = "ghibli"
    subtitles: bool = False


class GenerateResponse(CamelModel):
    job_id: str
    message: str
    status_url: str


class FilesResponse(CamelModel):
    script: str
    studio: str
    audio: str
    video: str
    images: str
    audio_files: str
