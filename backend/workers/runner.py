"""Job runner – drives the content pipeline for one job at a time per task."""

from __future__ import annotations

import asyncio
import logging
import traceback

import config
from models import JobStatus
from services.errors import PipelineError
from services.job_manager import JobManager
from services.pipeline import ContentPipeline

logger = logging.getLogger("mca.runner")


class JobRunner:
    """
    Launches pipeline runs as detached asyncio tasks and records their outcome.

    The runner is the only writer of a job record after creation:
    PENDING → PROCESSING → COMPLETED | FAILED.
    """

    def __init__(
        self,
        manager: JobManager,
        pipeline: ContentPipeline,
        shutdown_timeout: float = config.SHUTDOWN_TIMEOUT,
    ) -> None:
        self.manager = manager
        self.pipeline = pipeline
        self.shutdown_timeout = shutdown_timeout
        self._tasks: set[asyncio.Task] = set()

    def launch(self, job_id: str) -> asyncio.Task:
        """Start ``run`` in the background and return immediately."""
        task = asyncio.create_task(self.run(job_id), name=f"job-{job_id}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    @property
    def active_count(self) -> int:
        return len(self._tasks)

    async def run(self, job_id: str) -> None:
        job = self.manager.get_job(job_id)
        if job is None:
            logger.warning("Job %s vanished before it started.", job_id)
            return

        logger.info("Processing job %s: url=%s style=%s", job_id, job.url, job.style)

        def on_progress(progress: int, message: str) -> None:
            current = self.manager.get_job(job_id)
            if current is not None:
                progress = max(progress, current.progress)
            logger.info("[%s] %d%% %s", job_id, progress, message)
            self.manager.update_job(
                job_id,
                status=JobStatus.PROCESSING,
                progress=progress,
                message=message,
            )

        try:
            on_progress(10, "Fetching content from URL…")
            result = await self.pipeline.generate_content_from_url(
                job.url,
                style=job.style,
                subtitles=job.subtitles,
                on_progress=on_progress,
            )
            self.manager.update_job(
                job_id,
                status=JobStatus.COMPLETED,
                progress=100,
                message="Content generation complete",
                result=result,
                error=None,
            )
            logger.info("Job %s completed successfully.", job_id)

        except PipelineError as e:
            self._fail(job_id, e)
            logger.error("Job %s failed (pipeline): %s", job_id, e)

        except Exception as e:
            self._fail(job_id, e)
            logger.error("Job %s failed (unexpected): %s\n%s", job_id, e, traceback.format_exc())

    async def shutdown(self) -> list[str]:
        """
        Wait up to ``shutdown_timeout`` for in-flight jobs, then cancel the rest.

        Returns the names of the tasks that were abandoned.
        """
        if not self._tasks:
            return []
        logger.info("Waiting for %d running job(s)…", len(self._tasks))
        _, pending = await asyncio.wait(set(self._tasks), timeout=self.shutdown_timeout)
        abandoned = sorted(task.get_name() for task in pending)
        if abandoned:
            logger.warning("Abandoning %d unfinished job(s): %s", len(abandoned), ", ".join(abandoned))
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
        return abandoned

    def _fail(self, job_id: str, error: Exception) -> None:
        self.manager.update_job(
            job_id,
            status=JobStatus.FAILED,
            progress=0,
            message=f"Error: {error}",
            result=None,
            error=str(error),
        )
