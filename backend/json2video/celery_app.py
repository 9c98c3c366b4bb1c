"""Celery application configuration."""

from celery import Celery

from json2video.config import Settings


def create_celery_app(settings: Settings) -> Celery:
    """Build the Celery app backing the job queue (Redis broker + results)."""
    celery_app = Celery(
        "json2video",
        broker=settings.redis_url,
        backend=settings.redis_url,
    )

    # Celery configuration
    celery_app.conf.update(
        task_serializer="json",
        accept_content=["json"],
        result_serializer="json",
        enable_utc=True,
        task_track_started=True,
        # Hard ceiling per attempt: encoder timeout plus webhook timeout plus slack
        task_time_limit=int(settings.render_timeout_seconds + settings.webhook_timeout_seconds + 60),
        worker_prefetch_multiplier=1,  # Claim one job at a time
        task_acks_late=True,  # Acknowledge after the attempt finished
        task_reject_on_worker_lost=True,  # Requeue if worker dies
        result_expires=settings.job_result_ttl_seconds,
        result_extended=True,  # Keep task args so status lookups can check the owner
    )
    return celery_app
