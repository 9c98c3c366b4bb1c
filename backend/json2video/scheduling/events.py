"""Operational observability sink for job lifecycle events.

Every transition is logged; the most recent completed and failed jobs are
kept in bounded in-memory buffers so an operator can inspect them without a
job database.
"""

import logging
import threading
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone

from json2video.schemas.video import JobDescriptor, JobOutcome, JobState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class JobRecord:
    job_key: str
    record_id: str
    state: JobState
    attempts: int
    message: str
    finished_at: datetime

    def to_dict(self) -> dict[str, str | int]:
        return {
            "job_key": self.job_key,
            "record_id": self.record_id,
            "state": self.state.value,
            "attempts": self.attempts,
            "message": self.message,
            "finished_at": self.finished_at.isoformat(),
        }


class JobEventLog:
    """Thread-safe event sink with bounded terminal-job retention."""

    def __init__(self, completed_limit: int = 10, failed_limit: int = 5) -> None:
        self._completed: deque[JobRecord] = deque(maxlen=completed_limit)
        self._failed: deque[JobRecord] = deque(maxlen=failed_limit)
        self._lock = threading.Lock()

    def queued(self, job: JobDescriptor) -> None:
        logger.info(f"Video processing job queued for record_id: {job.record_id} (job {job.job_key})")

    def active(self, job: JobDescriptor, attempt: int) -> None:
        logger.info(f"Job {job.job_key} active (attempt {attempt})")

    def retrying(self, job: JobDescriptor, attempt: int, delay: float, error: BaseException) -> None:
        logger.warning(
            f"Job {job.job_key} attempt {attempt} failed: {error}; retrying in {delay:g}s"
        )

    def completed(self, job: JobDescriptor, attempt: int, outcome: JobOutcome) -> None:
        logger.info(f"Video processing completed for record_id: {job.record_id} (job {job.job_key})")
        self._record(self._completed, job, JobState.COMPLETED, attempt, outcome.message)

    def failed(self, job: JobDescriptor, attempt: int, error: BaseException) -> None:
        diagnostics = getattr(error, "diagnostics", "")
        logger.error(
            f"Video processing failed for record_id: {job.record_id} "
            f"(job {job.job_key}) after {attempt} attempt(s): {error}"
            + (f"\n{diagnostics}" if diagnostics else "")
        )
        self._record(self._failed, job, JobState.FAILED, attempt, str(error))

    def recent_completed(self) -> list[JobRecord]:
        with self._lock:
            return list(self._completed)

    def recent_failed(self) -> list[JobRecord]:
        with self._lock:
            return list(self._failed)

    def _record(
        self,
        buffer: deque[JobRecord],
        job: JobDescriptor,
        state: JobState,
        attempts: int,
        message: str,
    ) -> None:
        record = JobRecord(
            job_key=job.job_key,
            record_id=job.record_id,
            state=state,
            attempts=attempts,
            message=message,
            finished_at=datetime.now(timezone.utc),
        )
        with self._lock:
            buffer.append(record)
