"""Background sweeper – drops job records past the retention window."""

from __future__ import annotations

import logging
import threading

import config
from services.job_manager import JobManager

logger = logging.getLogger("mca.sweeper")


class JobSweeper:
    """
    Background worker that runs in a daemon thread.
    Every ``interval`` seconds, removes jobs older than ``max_age`` seconds.
    """

    def __init__(
        self,
        manager: JobManager,
        interval: float = config.SWEEP_INTERVAL,
        max_age: float = config.JOB_RETENTION,
    ) -> None:
        self.manager = manager
        self.interval = interval
        self.max_age = max_age
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, daemon=True, name="job-sweeper")
        self._thread.start()

    def stop(self) -> None:
        self._stop_event.set()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5)

    def _run(self) -> None:
        logger.info(
            "Sweeper thread started (interval=%ds, retention=%ds)",
            self.interval,
            self.max_age,
        )
        while not self._stop_event.wait(timeout=self.interval):
            try:
                self.manager.sweep(self.max_age)
            except Exception as e:
                logger.error("Sweep error: %s", e, exc_info=True)
