"""Tests for create-video intake."""

import threading
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from json2video.exceptions import AcquisitionError, ValidationError
from json2video.scheduling import JobScheduler
from json2video.schemas.video import JobDescriptor
from json2video.services.acquisition_service import AcquiredSource, SourceAcquirer
from json2video.services.intake_service import VideoIntake
from json2video.services.validation_service import RequestValidator

API_KEY = "testkey123"


@pytest.fixture
def cached_source(settings) -> Path:
    path = Path(settings.cache_dir) / "cachedsource"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"png")
    return path


@pytest.fixture
def acquirer(cached_source: Path):
    mock = MagicMock(spec=SourceAcquirer)
    mock.acquire = AsyncMock(
        return_value=AcquiredSource(source_path=str(cached_source), width=800, height=600)
    )
    return mock


@pytest.fixture
def scheduler():
    return MagicMock(spec=JobScheduler)


@pytest.fixture
def intake(settings, acquirer, scheduler) -> VideoIntake:
    return VideoIntake(
        validator=RequestValidator(settings.allowed_hosts),
        acquirer=acquirer,
        scheduler=scheduler,
        settings=settings,
    )


class TestSubmit:
    @pytest.mark.asyncio
    async def test_enqueues_descriptor(self, intake, scheduler, settings, valid_request):
        response = await intake.submit(valid_request, API_KEY, "api.example.com")

        scheduler.enqueue.assert_called_once()
        job = scheduler.enqueue.call_args.args[0]
        assert isinstance(job, JobDescriptor)
        assert job.job_key == response.filename
        assert (job.input_width, job.input_height) == (800, 600)
        assert job.request_origin == "api.example.com"
        assert job.owner == API_KEY
        assert job.output_path == str(Path(settings.movies_dir) / API_KEY / response.filename)
        assert job.public_path == f"movies/{API_KEY}/{response.filename}"

        assert response.record_id == "rec123"
        assert response.message == "Video processing started"
        assert (response.input_width, response.input_height) == (800, 600)
        assert (response.output_width, response.output_height) == (1920, 1080)
        assert response.filename.endswith(".mp4")

    @pytest.mark.asyncio
    async def test_omitted_zoom_uses_default(self, intake, scheduler, valid_request):
        del valid_request["zoom"]
        await intake.submit(valid_request, API_KEY, "localhost")
        assert scheduler.enqueue.call_args.args[0].zoom == 0.0

    @pytest.mark.asyncio
    async def test_validation_failure_skips_download(self, intake, acquirer, scheduler, valid_request):
        valid_request["duration"] = 61
        with pytest.raises(ValidationError):
            await intake.submit(valid_request, API_KEY, "localhost")
        acquirer.acquire.assert_not_called()
        scheduler.enqueue.assert_not_called()

    @pytest.mark.asyncio
    async def test_acquisition_failure_is_not_enqueued(self, intake, acquirer, scheduler, valid_request):
        acquirer.acquire.side_effect = AcquisitionError("Failed to download input file: HTTP 404")
        with pytest.raises(AcquisitionError):
            await intake.submit(valid_request, API_KEY, "localhost")
        scheduler.enqueue.assert_not_called()

    @pytest.mark.asyncio
    async def test_enqueue_failure_removes_cached_source(
        self, intake, scheduler, cached_source, valid_request
    ):
        scheduler.enqueue.side_effect = ConnectionError("broker unavailable")
        with pytest.raises(ConnectionError):
            await intake.submit(valid_request, API_KEY, "localhost")
        assert not cached_source.exists()

    @pytest.mark.asyncio
    async def test_job_keys_are_unique(self, intake, valid_request):
        first = await intake.submit(dict(valid_request), API_KEY, "localhost")
        second = await intake.submit(dict(valid_request), API_KEY, "localhost")
        assert first.filename != second.filename

    @pytest.mark.asyncio
    async def test_enqueue_runs_off_the_event_loop_thread(self, intake, scheduler, valid_request):
        enqueue_threads = []
        scheduler.enqueue.side_effect = lambda job: enqueue_threads.append(threading.get_ident())

        await intake.submit(valid_request, API_KEY, "localhost")

        assert len(enqueue_threads) == 1
        assert enqueue_threads[0] != threading.get_ident()
