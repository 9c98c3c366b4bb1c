"""Tests for the worker status server."""

import threading
from http.server import HTTPServer

import httpx
import pytest

from json2video.exceptions import RenderError
from json2video.scheduling import JobEventLog
from json2video.schemas.video import JobOutcome
from json2video.worker import make_status_handler


@pytest.fixture
def events() -> JobEventLog:
    return JobEventLog(completed_limit=2, failed_limit=2)


@pytest.fixture
def status_url(events):
    server = HTTPServer(("127.0.0.1", 0), make_status_handler(events))
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield f"http://127.0.0.1:{server.server_address[1]}"
    server.shutdown()
    server.server_close()


def test_health_reports_recent_counts(events, status_url, make_descriptor):
    events.failed(make_descriptor(), 3, RenderError("FFmpeg failed with exit code 1"))

    response = httpx.get(f"{status_url}/health", trust_env=False)

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert (body["completed"], body["failed"]) == (0, 1)


def test_recent_jobs_lists_terminal_records(events, status_url, make_descriptor):
    outcome = JobOutcome(
        success=True,
        message="Video created successfully",
        input_width=800,
        input_height=600,
        output_width=1920,
        output_height=1080,
    )
    events.completed(make_descriptor(job_key="done.mp4"), 1, outcome)
    events.failed(make_descriptor(job_key="broken.mp4"), 3, RenderError("boom"))

    response = httpx.get(f"{status_url}/jobs/recent", trust_env=False)

    assert response.status_code == 200
    body = response.json()
    assert [r["job_key"] for r in body["completed"]] == ["done.mp4"]
    assert body["completed"][0]["state"] == "completed"
    assert body["failed"][0] | {"finished_at": None} == {
        "job_key": "broken.mp4",
        "record_id": "rec123",
        "state": "failed",
        "attempts": 3,
        "message": "boom",
        "finished_at": None,
    }


def test_unknown_path(status_url):
    response = httpx.get(f"{status_url}/nope", trust_env=False)
    assert response.status_code == 404
    assert response.json() == {"error": "Endpoint not found"}
