import asyncio
import time

import pytest
from fastapi.testclient import TestClient

from main import create_app
from models import JobResult, JobStatus
from services.job_manager import JobManager
from services.pipeline import ContentPipeline

TIMESTAMP = "2025-07-13T14-30-00-000Z"

STAGES = [
    (10, "Fetching content from URL…"),
    (20, "Analysing content…"),
    (30, "Generating MulmoScript…"),
    (40, "Saving MulmoScript…"),
    (50, "Generating audio…"),
    (60, "Audio generated"),
    (70, "Generating images…"),
    (80, "Images generated"),
    (90, "Generating video…"),
    (95, "Video generated"),
]


class FakePipeline(ContentPipeline):
    """Walks the real stage checkpoints without touching the network or mulmo."""

    def __init__(self, output_dir, delay: float = 0.0, error: Exception | None = None) -> None:
        super().__init__(output_dir=output_dir, bgm_path=None)
        self.delay = delay
        self.error = error
        self.calls: list[tuple[str, str, bool]] = []

    async def generate_content_from_url(self, url, style="ghibli", subtitles=False, on_progress=None):
        self.calls.append((url, style, subtitles))
        for progress, message in STAGES:
            if on_progress:
                on_progress(progress, message)
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return JobResult(
            script_path=str(self.output_dir / f"script_{TIMESTAMP}.json"),
            output_dir=str(self.output_dir),
            timestamp=TIMESTAMP,
        )


class FakeProcess:
    """Stands in for an asyncio subprocess."""

    def __init__(self, returncode: int = 0, stdout: bytes = b"", stderr: bytes = b"", hang: bool = False) -> None:
        self.returncode = returncode
        self._stdout = stdout
        self._stderr = stderr
        self._hang = hang
        self.pid = 4242
        self.killed = False

    def kill(self) -> None:
        self.killed = True

    async def communicate(self):
        if self._hang:
            await asyncio.Event().wait()
        return self._stdout, self._stderr


def fake_mulmo(failing: str | None = None, hang_bgm: str | None = None):
    """
    Replacement for asyncio.create_subprocess_exec. The ``failing`` mulmo
    subcommand exits 1; runs whose PATH_BGM equals ``hang_bgm`` never finish
    and are collected in ``create_subprocess_exec.hung``.
    """
    calls = []

    async def create_subprocess_exec(*cmd, stdout=None, stderr=None, env=None):
        calls.append((list(cmd), env.get("PATH_BGM")))
        if hang_bgm and env.get("PATH_BGM") == hang_bgm:
            proc = FakeProcess(hang=True)
            create_subprocess_exec.hung.append(proc)
            return proc
        if cmd[1] == failing:
            return FakeProcess(1, stdout=b"rendering beat 1", stderr=b"ffmpeg exited with code 1")
        return FakeProcess(0, stdout=b"done")

    create_subprocess_exec.hung = []
    return create_subprocess_exec, calls


class HangingPipeline(FakePipeline):
    """Never finishes, like a job stuck on an unresponsive call."""

    async def generate_content_from_url(self, url, style="ghibli", subtitles=False, on_progress=None):
        if on_progress:
            on_progress(50, "Generating audio…")
        await asyncio.sleep(3600)


def wait_for_terminal(client: TestClient, job_id: str, timeout: float = 5.0) -> dict:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        job = client.get(f"/api/status/{job_id}").json()
        if JobStatus(job["status"]).is_terminal:
            return job
        time.sleep(0.02)
    raise AssertionError(f"job {job_id} did not finish in {timeout}s")


@pytest.fixture
def manager() -> JobManager:
    return JobManager()


@pytest.fixture
def fake_pipeline(tmp_path) -> FakePipeline:
    return FakePipeline(tmp_path, delay=0.01)


@pytest.fixture
def client(fake_pipeline):
    app = create_app(pipeline=fake_pipeline)
    with TestClient(app) as c:
        yield c
