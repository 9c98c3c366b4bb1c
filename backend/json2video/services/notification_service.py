import logging

import httpx

from json2video.config import Settings
from json2video.exceptions import NotificationError
from json2video.schemas.video import JobDescriptor, WebhookPayload

logger = logging.getLogger(__name__)


class WebhookNotifier:
    """Delivers the completion payload to the caller's webhook."""

    def __init__(
        self,
        scheme: str = "https",
        public_port: str = "80",
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.scheme = scheme
        self.public_port = public_port
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> "WebhookNotifier":
        return cls(
            scheme=settings.scheme,
            public_port=settings.public_port,
            timeout=settings.webhook_timeout_seconds,
        )

    def build_artifact_url(self, job: JobDescriptor) -> str:
        """Absolute URL the rendered file is served at."""
        base_url = f"{self.scheme}://{job.request_origin}:{self.public_port}"
        return f"{base_url}/{job.public_path.lstrip('/')}"

    def build_payload(self, job: JobDescriptor) -> WebhookPayload:
        return WebhookPayload(record_id=job.record_id, filename=self.build_artifact_url(job))

    def notify(self, job: JobDescriptor) -> bool:
        """POST the payload to ``job.webhook_url``.

        Returns False when the job has no webhook.

        Raises:
            NotificationError: non-2xx response, timeout or network error
        """
        if not job.webhook_url:
            return False

        payload = self.build_payload(job).model_dump()
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                response = client.post(
                    job.webhook_url,
                    json=payload,
                    headers={"Content-Type": "application/json"},
                )
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Webhook call failed for record_id {job.record_id}: {e}")
            raise NotificationError(f"Webhook call failed: {e}") from e

        logger.info(f"Webhook called successfully with payload: {payload}")
        return True
