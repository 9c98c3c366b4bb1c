"""Tests for the HTTP surface."""

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from json2video.api.deps import api_key_directory
from json2video.exceptions import AcquisitionError, ApiKeyError, JobNotFoundError
from json2video.main import create_app
from json2video.scheduling import JobScheduler
from json2video.schemas.video import JobDescriptor, JobState, JobStatus
from json2video.services.acquisition_service import AcquiredSource, SourceAcquirer

API_KEY = "testkey123"


@pytest.fixture
def scheduler():
    return MagicMock(spec=JobScheduler)


@pytest.fixture
def acquirer(settings):
    cached = Path(settings.cache_dir) / "cachedsource"
    cached.parent.mkdir(parents=True, exist_ok=True)
    cached.write_bytes(b"png")

    mock = MagicMock(spec=SourceAcquirer)
    mock.acquire = AsyncMock(return_value=AcquiredSource(source_path=str(cached), width=800, height=600))
    return mock


@pytest.fixture
def client(settings, scheduler, acquirer, api_key_dir):
    app = create_app(settings=settings, scheduler=scheduler, acquirer=acquirer)
    return TestClient(app, raise_server_exceptions=False)


def _headers(key: str = API_KEY) -> dict[str, str]:
    return {"x-api-key": key}


class TestApiKey:
    def test_valid_key(self, client):
        response = client.get("/api/validate", headers=_headers())
        assert response.status_code == 200
        assert response.json() == {"message": "API key is valid"}

    def test_missing_header(self, client):
        response = client.get("/api/validate")
        assert response.status_code == 400
        assert response.json() == {"error": "Missing x-api-key header"}

    def test_non_alphanumeric_key(self, client):
        response = client.get("/api/validate", headers=_headers("bad-key!"))
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid API key"}

    def test_unprovisioned_key(self, client):
        response = client.get("/api/validate", headers=_headers("unknownkey"))
        assert response.status_code == 400
        assert response.json() == {"error": "Directory does not exist"}

    def test_traversal_rejected(self, tmp_path: Path):
        with pytest.raises(ApiKeyError, match="traversal"):
            api_key_directory(str(tmp_path / "movies"), "../etc")


class TestCreateVideo:
    def test_accepts_valid_request(self, client, scheduler, valid_request):
        response = client.post("/create-video", json=valid_request, headers=_headers())

        assert response.status_code == 200
        body = response.json()
        assert body["record_id"] == "rec123"
        assert body["message"] == "Video processing started"
        assert body["input_width"] == 800
        assert body["input_height"] == 600
        assert body["output_width"] == 1920
        assert body["output_height"] == 1080
        assert body["filename"].endswith(".mp4")

        job = scheduler.enqueue.call_args.args[0]
        assert isinstance(job, JobDescriptor)
        assert job.job_key == body["filename"]
        assert job.request_origin == "testserver"

    def test_requires_api_key(self, client, scheduler, valid_request):
        response = client.post("/create-video", json=valid_request)
        assert response.status_code == 400
        assert response.json() == {"error": "Missing x-api-key header"}
        scheduler.enqueue.assert_not_called()

    def test_schema_violation(self, client, acquirer, valid_request):
        valid_request["record_id"] = "bad id!"
        response = client.post("/create-video", json=valid_request, headers=_headers())

        assert response.status_code == 400
        assert response.json()["error"].startswith("Invalid input data")
        acquirer.acquire.assert_not_called()

    def test_disallowed_host(self, client, valid_request):
        valid_request["input_url"] = "https://evil.com/image.png"
        response = client.post("/create-video", json=valid_request, headers=_headers())

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid input URL: host 'evil.com' is not allowed"}

    def test_malformed_json(self, client):
        response = client.post(
            "/create-video",
            content=b"{not json",
            headers={**_headers(), "Content-Type": "application/json"},
        )
        assert response.status_code == 400
        assert "error" in response.json()

    def test_download_failure(self, client, acquirer, scheduler, valid_request):
        acquirer.acquire.side_effect = AcquisitionError("Failed to download input file: HTTP 404")
        response = client.post("/create-video", json=valid_request, headers=_headers())

        assert response.status_code == 400
        assert response.json() == {"error": "Failed to download input file: HTTP 404"}
        scheduler.enqueue.assert_not_called()

    def test_unexpected_error_is_500(self, client, scheduler, valid_request):
        scheduler.enqueue.side_effect = RuntimeError("broker down")
        response = client.post("/create-video", json=valid_request, headers=_headers())

        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error"}


class TestJobStatus:
    def test_returns_status(self, client, scheduler):
        scheduler.status.return_value = JobStatus(job_key="abc.mp4", state=JobState.ACTIVE)
        response = client.get("/api/jobs/abc.mp4", headers=_headers())

        assert response.status_code == 200
        assert response.json()["state"] == "active"
        scheduler.status.assert_called_once_with("abc.mp4", owner=API_KEY)

    def test_job_of_another_key_is_not_found(self, client, scheduler):
        scheduler.status.side_effect = JobNotFoundError()
        response = client.get("/api/jobs/abc.mp4", headers=_headers())

        assert response.status_code == 404
        assert response.json() == {"error": "Job not found"}


class TestServing:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "version": "1.0.0"}

    def test_serves_rendered_artifact(self, client, api_key_dir: Path):
        (api_key_dir / "clip.mp4").write_bytes(b"mp4data")
        response = client.get(f"/movies/{API_KEY}/clip.mp4")
        assert response.status_code == 200
        assert response.content == b"mp4data"

    def test_unknown_endpoint(self, client):
        response = client.get("/nope")
        assert response.status_code == 404
        assert response.json() == {"error": "Endpoint not found"}
