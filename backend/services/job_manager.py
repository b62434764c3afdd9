"""Job manager – in-memory job registry."""

from __future__ import annotations

import logging
import threading
import uuid
from datetime import datetime, timezone
from typing import Optional

from models import JobRecord, JobStatus

logger = logging.getLogger("mca.job_manager")


class JobManager:
    """
    Thread-safe registry of job records, keyed by job id.

    Records are replaced on every update, so a record returned by ``get_job``
    is a snapshot that later updates do not mutate.
    """

    def __init__(self) -> None:
        self._jobs: dict[str, JobRecord] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------
    def _now(self) -> datetime:
        return datetime.now(timezone.utc)

    def create_job(self, url: str, style: str, subtitles: bool = False) -> str:
        job_id = str(uuid.uuid4())
        now = self._now()
        record = JobRecord(
            id=job_id,
            url=url,
            style=style,
            subtitles=subtitles,
            status=JobStatus.PENDING,
            progress=0,
            message="Starting job",
            created_at=now,
            updated_at=now,
        )
        with self._lock:
            self._jobs[job_id] = record
        logger.info("Job created: %s (%s)", job_id, url)
        return job_id

    def get_job(self, job_id: str) -> Optional[JobRecord]:
        with self._lock:
            return self._jobs.get(job_id)

    def list_jobs(self, limit: int = 50) -> list[JobRecord]:
        with self._lock:
            jobs = list(self._jobs.values())
        jobs.sort(key=lambda j: j.created_at, reverse=True)
        return jobs[:limit]

    def update_job(self, job_id: str, **fields) -> Optional[JobRecord]:
        """Merge ``fields`` into the record. Returns None if it no longer exists."""
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                logger.warning("Update for unknown job %s dropped.", job_id)
                return None
            fields["updated_at"] = self._now()
            job = job.model_copy(update=fields)
            self._jobs[job_id] = job
        return job

    def sweep(self, max_age: float) -> int:
        """Remove every record older than ``max_age`` seconds, whatever its status."""
        now = self._now()
        with self._lock:
            expired = [
                job_id
                for job_id, job in self._jobs.items()
                if (now - job.created_at).total_seconds() > max_age
            ]
            for job_id in expired:
                del self._jobs[job_id]
        if expired:
            logger.info("Sweep removed %d job(s) older than %ds.", len(expired), max_age)
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)
