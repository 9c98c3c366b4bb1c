"""
Durable job scheduler on top of Celery.

Jobs are identified by their job_key, which doubles as the Celery task id so
the state of any submitted job can be looked up from the result backend.
A job is retried with exponential backoff up to the policy's attempt budget;
the handler's ``release`` hook runs exactly once, when the job reaches a
terminal state.
"""

import logging
from typing import Any, Protocol

from celery import Celery, Task
from celery.result import AsyncResult

from json2video.exceptions import JobNotFoundError
from json2video.scheduling.events import JobEventLog
from json2video.scheduling.retry import RetryPolicy
from json2video.schemas.video import JobDescriptor, JobOutcome, JobState, JobStatus

logger = logging.getLogger(__name__)

RENDER_TASK_NAME = "json2video.render_video"

# Celery task states mapped onto the public job lifecycle
_CELERY_STATES: dict[str, JobState] = {
    "PENDING": JobState.QUEUED,
    "RECEIVED": JobState.QUEUED,
    "RETRY": JobState.QUEUED,
    "STARTED": JobState.ACTIVE,
    "SUCCESS": JobState.COMPLETED,
    "FAILURE": JobState.FAILED,
    "REVOKED": JobState.FAILED,
}


class JobHandler(Protocol):
    def run(self, job: JobDescriptor, attempt: int) -> JobOutcome: ...

    def release(self, job: JobDescriptor) -> None: ...


def _status_from_result(job_key: str, result: AsyncResult) -> JobStatus:
    state = _CELERY_STATES.get(result.state, JobState.QUEUED)
    if state == JobState.COMPLETED:
        return JobStatus(job_key=job_key, state=state, outcome=JobOutcome.model_validate(result.result))
    if state == JobState.FAILED:
        return JobStatus(job_key=job_key, state=state, error=str(result.result))
    return JobStatus(job_key=job_key, state=state)


def _job_owner(result: AsyncResult) -> str | None:
    args = getattr(result, "args", None)
    if not args or not isinstance(args[0], dict):
        return None
    return args[0].get("owner")


class JobHandle:
    """Caller-side view of one submitted job."""

    def __init__(self, job_key: str, result: AsyncResult):
        self.job_key = job_key
        self._result = result

    def state(self) -> JobState:
        return _CELERY_STATES.get(self._result.state, JobState.QUEUED)

    def status(self) -> JobStatus:
        return _status_from_result(self.job_key, self._result)

    def outcome(self, timeout: float | None = None) -> JobOutcome | None:
        """Block until the job is terminal. Returns None when it failed."""
        value = self._result.get(timeout=timeout, propagate=False)
        if self._result.successful():
            return JobOutcome.model_validate(value)
        return None


class JobScheduler:
    def __init__(
        self,
        celery_app: Celery,
        policy: RetryPolicy | None = None,
        events: JobEventLog | None = None,
    ):
        self.celery_app = celery_app
        self.policy = policy or RetryPolicy()
        self.events = events or JobEventLog()

    def enqueue(self, job: JobDescriptor) -> JobHandle:
        """Persist a job on the queue. Returns once the broker accepted it."""
        if not isinstance(job, JobDescriptor):
            raise TypeError(f"Expected JobDescriptor, got {type(job).__name__}")

        result = self.celery_app.send_task(
            RENDER_TASK_NAME,
            args=[job.model_dump(mode="json")],
            task_id=job.job_key,
        )
        self.events.queued(job)
        return JobHandle(job.job_key, result)

    def handle(self, job_key: str) -> JobHandle:
        return JobHandle(job_key, AsyncResult(job_key, app=self.celery_app))

    def status(self, job_key: str, owner: str | None = None) -> JobStatus:
        """Look up a job. With ``owner``, jobs submitted by another key are not found.

        Ownership is read from the stored task arguments, which only exist once a
        worker picked the job up; a job still waiting on the queue reports queued.
        """
        result = AsyncResult(job_key, app=self.celery_app)
        if owner is not None and _job_owner(result) not in (None, owner):
            raise JobNotFoundError()
        return _status_from_result(job_key, result)

    def register_handler(self, handler: JobHandler) -> Task:
        """Bind ``handler`` as the worker-side executor for queued jobs."""
        scheduler = self

        @self.celery_app.task(bind=True, name=RENDER_TASK_NAME)
        def render_video_task(task: Task, payload: dict[str, Any]) -> dict[str, Any]:
            return scheduler.execute(task, payload, handler)

        return render_video_task

    def execute(self, task: Task, payload: dict[str, Any], handler: JobHandler) -> dict[str, Any]:
        """Run one attempt of a job inside a worker."""
        job = JobDescriptor.model_validate(payload)
        attempt = task.request.retries + 1
        self.events.active(job, attempt)

        terminal = True
        try:
            outcome = handler.run(job, attempt)
        except Exception as exc:
            if self.policy.should_retry(attempt, exc):
                terminal = False
                delay = self.policy.delay_for(attempt)
                self.events.retrying(job, attempt, delay, exc)
                raise task.retry(
                    exc=exc,
                    countdown=delay,
                    max_retries=self.policy.max_attempts - 1,
                )
            self.events.failed(job, attempt, exc)
            raise
        finally:
            if terminal:
                handler.release(job)

        self.events.completed(job, attempt, outcome)
        return outcome.model_dump()
