"""Intake for create-video requests.

validate -> download + probe -> build the job descriptor -> enqueue.
The caller gets its response as soon as the job is on the queue; rendering
and webhook delivery happen in the worker.
"""

import asyncio
import logging
import os
from pathlib import Path
from typing import Any

from json2video.config import Settings
from json2video.schemas.video import JobDescriptor, JobRequest, VideoResponse
from json2video.scheduling import JobScheduler
from json2video.services.acquisition_service import AcquiredSource, SourceAcquirer
from json2video.services.cleanup_service import remove_cached_source
from json2video.services.validation_service import RequestValidator
from json2video.utils.filenames import ensure_directory_exists, generate_random_filename

logger = logging.getLogger(__name__)


class VideoIntake:
    def __init__(
        self,
        validator: RequestValidator,
        acquirer: SourceAcquirer,
        scheduler: JobScheduler,
        settings: Settings,
    ):
        self.validator = validator
        self.acquirer = acquirer
        self.scheduler = scheduler
        self.settings = settings

    async def submit(self, raw: Any, api_key: str, request_origin: str) -> VideoResponse:
        """Accept one create-video body on behalf of ``api_key``.

        Raises:
            ValidationError: body failed schema or allow-list checks
            AcquisitionError: source could not be downloaded or probed
        """
        request = self.validator.parse(raw)

        logger.info(f"Downloading input file from: {request.input_url}")
        source = await self.acquirer.acquire(request.input_url)
        logger.info(f"Input file cached at: {source.source_path}")

        job = self.build_descriptor(request, source, api_key, request_origin)
        try:
            # send_task publishes to the broker synchronously
            await asyncio.to_thread(self.scheduler.enqueue, job)
        except Exception:
            # The job never reached the queue, so no worker will release it
            remove_cached_source(source.source_path)
            raise

        return VideoResponse(
            record_id=job.record_id,
            filename=job.job_key,
            message="Video processing started",
            input_height=job.input_height,
            input_width=job.input_width,
            output_height=job.output_height,
            output_width=job.output_width,
        )

    def build_descriptor(
        self,
        request: JobRequest,
        source: AcquiredSource,
        api_key: str,
        request_origin: str,
    ) -> JobDescriptor:
        output_dir = ensure_directory_exists(Path(self.settings.movies_dir) / api_key)
        filename = generate_random_filename()
        zoom = request.zoom if request.zoom is not None else self.settings.default_zoom

        return JobDescriptor(
            **request.model_dump(exclude={"zoom"}),
            zoom=zoom,
            job_key=filename,
            owner=api_key,
            input_width=source.width,
            input_height=source.height,
            request_origin=request_origin,
            source_path=source.source_path,
            output_path=os.fspath(output_dir / filename),
            public_path=f"{self.settings.public_url_prefix.strip('/')}/{api_key}/{filename}",
        )
