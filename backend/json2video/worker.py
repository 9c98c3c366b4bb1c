"""Worker entrypoint.

Wires the render pipeline into the job scheduler and runs the Celery worker
in this process, with a status server on a side thread. Sharing the process
lets the status server report the scheduler's recent terminal jobs. The Celery
app is importable as ``json2video.worker`` so the stock ``celery -A`` CLI works
too, without the status server.
"""

import json
import logging
import os
import threading
from http.server import BaseHTTPRequestHandler, HTTPServer

from json2video import __version__
from json2video.celery_app import create_celery_app
from json2video.config import get_settings
from json2video.render.pipeline import RenderPipeline
from json2video.scheduling import JobEventLog, JobScheduler, RetryPolicy

settings = get_settings()
logger = logging.getLogger(__name__)

celery_app = create_celery_app(settings)
scheduler = JobScheduler(
    celery_app,
    policy=RetryPolicy.from_settings(settings),
    events=JobEventLog(
        completed_limit=settings.recent_completed_limit,
        failed_limit=settings.recent_failed_limit,
    ),
)
render_video_task = scheduler.register_handler(RenderPipeline.from_settings(settings))


def make_status_handler(events: JobEventLog) -> type[BaseHTTPRequestHandler]:
    """Build a request handler reporting liveness and recent jobs from ``events``."""

    class StatusHandler(BaseHTTPRequestHandler):
        def do_GET(self):
            if self.path in ("/health", "/"):
                self._send_json(200, {
                    "status": "healthy",
                    "version": __version__,
                    "completed": len(events.recent_completed()),
                    "failed": len(events.recent_failed()),
                })
            elif self.path == "/jobs/recent":
                self._send_json(200, {
                    "completed": [record.to_dict() for record in events.recent_completed()],
                    "failed": [record.to_dict() for record in events.recent_failed()],
                })
            else:
                self._send_json(404, {"error": "Endpoint not found"})

        def _send_json(self, status: int, body: dict) -> None:
            data = json.dumps(body).encode()
            self.send_response(status)
            self.send_header("Content-Type", "application/json")
            self.send_header("Content-Length", str(len(data)))
            self.end_headers()
            self.wfile.write(data)

        def log_message(self, format, *args):
            # Suppress access logs
            pass

    return StatusHandler


def run_status_server(events: JobEventLog, port: int | None = None) -> None:
    port = port if port is not None else int(os.environ.get("PORT", 8080))
    server = HTTPServer(("0.0.0.0", port), make_status_handler(events))
    logger.info(f"Status server running on port {port}")
    server.serve_forever()


def run_celery_worker() -> None:
    # solo pool: jobs run in this process so the status server sees their events.
    # It does not enforce task_time_limit; the encoder and webhook timeouts bound an attempt.
    celery_app.worker_main([
        "worker",
        f"--loglevel={settings.log_level.upper()}",
        "--pool=solo",
    ])


def main():
    logging.basicConfig(level=settings.log_level.upper())

    status_thread = threading.Thread(target=run_status_server, args=(scheduler.events,), daemon=True)
    status_thread.start()

    run_celery_worker()


if __name__ == "__main__":
    main()
