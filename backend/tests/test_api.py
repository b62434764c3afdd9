import json
import time

import pytest
from fastapi.testclient import TestClient

import config
from conftest import FakePipeline, HangingPipeline, TIMESTAMP, wait_for_terminal
from main import create_app
from models import JobStatus
from routes.jobs import _progress_events
from services.errors import CommandError


def test_health(client):
    assert client.get("/api/health").json()["status"] == "ok"


def test_submit_returns_job_id_immediately(client):
    resp = client.post("/api/generate", json={"url": "https://example.com", "style": "ghibli"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["statusUrl"] == f"/api/status/{body['jobId']}"
    assert body["message"]


@pytest.mark.parametrize(
    "url",
    ["", "example.com", "ftp://example.com", "https://", "javascript:alert(1)", 123, ["https://example.com"], None],
)
def test_submit_rejects_invalid_url(client, url):
    resp = client.post("/api/generate", json={"url": url})

    assert resp.status_code == 400
    assert client.get("/api/jobs").json() == []


def test_submit_without_url_is_rejected(client):
    assert client.post("/api/generate", json={"style": "ghibli"}).status_code == 400
    assert client.get("/api/jobs").json() == []


@pytest.mark.parametrize("path", ["/api/status/unknown", "/api/files/unknown", "/api/progress/unknown"])
def test_unknown_job_is_not_found(client, path):
    assert client.get(path).status_code == 404


def test_completed_job_scenario(client, fake_pipeline):
    job_id = client.post(
        "/api/generate", json={"url": "https://example.com", "style": "ghibli", "subtitles": True}
    ).json()["jobId"]

    job = wait_for_terminal(client, job_id)

    assert job["status"] == "completed"
    assert job["progress"] == 100
    assert job["error"] is None
    assert job["result"]["scriptPath"].endswith(f"script_{TIMESTAMP}.json")
    assert job["result"]["outputDir"] == str(fake_pipeline.output_dir)
    assert job["url"] == "https://example.com"
    assert job["style"] == "ghibli"
    assert fake_pipeline.calls == [("https://example.com", "ghibli", True)]


def test_files_for_completed_job(client):
    job_id = client.post("/api/generate", json={"url": "https://example.com"}).json()["jobId"]
    wait_for_terminal(client, job_id)

    files = client.get(f"/api/files/{job_id}").json()

    stem = f"script_{TIMESTAMP}"
    assert files == {
        "script": f"/output/{stem}.json",
        "studio": f"/output/{stem}_studio.json",
        "audio": f"/output/{stem}.mp3",
        "video": f"/output/{stem}.mp4",
        "images": f"/output/images/{stem}/",
        "audioFiles": f"/output/audio/{stem}/",
    }


def test_failed_job_scenario(tmp_path):
    error = CommandError(
        "Command failed (generate movie, exit 1)\nstderr: ffmpeg exited with code 1\nstdout: ",
        stderr="ffmpeg exited with code 1",
    )
    app = create_app(pipeline=FakePipeline(tmp_path, error=error))

    with TestClient(app) as client:
        job_id = client.post("/api/generate", json={"url": "https://example.com"}).json()["jobId"]
        job = wait_for_terminal(client, job_id)

        assert job["status"] == "failed"
        assert job["progress"] == 0
        assert job["result"] is None
        assert "ffmpeg exited with code 1" in job["error"]
        assert client.get(f"/api/files/{job_id}").status_code == 404


def test_status_not_found_after_sweep(client):
    job_id = client.post("/api/generate", json={"url": "https://example.com"}).json()["jobId"]
    wait_for_terminal(client, job_id)

    client.app.state.job_manager.sweep(-1)

    assert client.get(f"/api/status/{job_id}").status_code == 404
    assert client.get(f"/api/files/{job_id}").status_code == 404


def test_progress_stream_until_terminal(tmp_path, monkeypatch):
    monkeypatch.setattr(config, "PROGRESS_INTERVAL", 0.02)
    app = create_app(pipeline=FakePipeline(tmp_path, delay=0.02))

    with TestClient(app) as client:
        job_id = client.post("/api/generate", json={"url": "https://example.com"}).json()["jobId"]

        with client.stream("GET", f"/api/progress/{job_id}") as resp:
            assert resp.status_code == 200
            assert resp.headers["content-type"].startswith("text/event-stream")
            frames = [
                json.loads(line[len("data: "):])
                for line in resp.iter_lines()
                if line.startswith("data: ")
            ]

    statuses = [frame["status"] for frame in frames]
    assert "processing" in statuses
    assert statuses[-1] == "completed"
    # nothing is pushed after the terminal record
    assert statuses.count("completed") == 1
    assert statuses.index("processing") < statuses.index("completed")
    assert all(frame["id"] == job_id for frame in frames)


def test_progress_stream_for_finished_job_sends_one_frame(client):
    job_id = client.post("/api/generate", json={"url": "https://example.com"}).json()["jobId"]
    wait_for_terminal(client, job_id)

    with client.stream("GET", f"/api/progress/{job_id}") as resp:
        frames = [line for line in resp.iter_lines() if line.startswith("data: ")]

    assert len(frames) == 1
    assert json.loads(frames[0][len("data: "):])["status"] == "completed"


def test_list_jobs(client):
    ids = [
        client.post("/api/generate", json={"url": f"https://example.com/{i}"}).json()["jobId"]
        for i in range(3)
    ]
    for job_id in ids:
        wait_for_terminal(client, job_id)

    listed = client.get("/api/jobs").json()
    assert {job["id"] for job in listed} == set(ids)


class DisconnectingRequest:
    """Reports the client as gone after ``frames`` checks."""

    def __init__(self, frames: int) -> None:
        self.frames = frames
        self.checks = 0

    async def is_disconnected(self) -> bool:
        self.checks += 1
        return self.checks > self.frames


async def test_progress_stream_stops_when_client_disconnects(manager):
    job_id = manager.create_job("https://example.com", "ghibli")
    manager.update_job(job_id, status=JobStatus.PROCESSING, progress=50, message="Generating audio…")
    request = DisconnectingRequest(frames=1)

    frames = [frame async for frame in _progress_events(request, manager, job_id, 0.01)]

    assert len(frames) == 1
    assert json.loads(frames[0][len("data: "):])["status"] == "processing"
    assert request.checks == 2
    assert manager.get_job(job_id).status == JobStatus.PROCESSING


def test_shutdown_does_not_wait_forever_on_hanging_jobs(tmp_path, monkeypatch):
    monkeypatch.setattr(config, "SHUTDOWN_TIMEOUT", 0.1)
    app = create_app(pipeline=HangingPipeline(tmp_path))

    started = time.monotonic()
    with TestClient(app) as client:
        job_id = client.post("/api/generate", json={"url": "https://example.com"}).json()["jobId"]
        assert client.get(f"/api/status/{job_id}").json()["status"] in ("pending", "processing")

    assert time.monotonic() - started < 5
    assert app.state.job_runner.active_count == 0
