"""
Render pipeline for one create-video job.

This is the handler the scheduler drives:
1. Compose the filter chain from the job geometry
2. Encode with ffmpeg
3. Notify the caller's webhook
4. Release the cached source once the job is terminal

A retried attempt whose artifact already exists (the render succeeded but the
webhook did not) skips straight to notification instead of re-rendering.
"""

import logging
from pathlib import Path

from json2video.config import Settings
from json2video.render.encoder import FfmpegEncoder
from json2video.render.filters import compose_filter_chain
from json2video.schemas.video import JobDescriptor, JobOutcome
from json2video.services.cleanup_service import remove_cached_source
from json2video.services.notification_service import WebhookNotifier

logger = logging.getLogger(__name__)


class RenderPipeline:
    def __init__(self, encoder: FfmpegEncoder, notifier: WebhookNotifier):
        self.encoder = encoder
        self.notifier = notifier

    @classmethod
    def from_settings(cls, settings: Settings) -> "RenderPipeline":
        return cls(
            encoder=FfmpegEncoder(settings.ffmpeg_path, timeout=settings.render_timeout_seconds),
            notifier=WebhookNotifier.from_settings(settings),
        )

    def run(self, job: JobDescriptor, attempt: int = 1) -> JobOutcome:
        logger.info(f"Processing video job for record_id: {job.record_id} (attempt {attempt})")
        logger.info(f"Duration param: {job.duration}")

        if attempt > 1 and Path(job.output_path).exists():
            logger.info(f"Artifact {job.output_path} already rendered, retrying notification only")
        else:
            chain = compose_filter_chain(
                job.input_width,
                job.input_height,
                job.output_width,
                job.output_height,
                job.crop,
                job.zoom,
            )
            self.encoder.render(job, chain)
            logger.info(f"Video created at {job.output_path}")

        notified = self.notifier.notify(job)

        return JobOutcome(
            success=True,
            message="Video created successfully",
            input_width=job.input_width,
            input_height=job.input_height,
            output_width=job.output_width,
            output_height=job.output_height,
            notified=notified,
        )

    def release(self, job: JobDescriptor) -> None:
        remove_cached_source(job.source_path)
