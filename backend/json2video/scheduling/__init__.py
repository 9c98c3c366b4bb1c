from json2video.scheduling.events import JobEventLog, JobRecord
from json2video.scheduling.retry import RetryPolicy
from json2video.scheduling.scheduler import (
    RENDER_TASK_NAME,
    JobHandle,
    JobHandler,
    JobScheduler,
)

__all__ = [
    "RENDER_TASK_NAME",
    "JobEventLog",
    "JobHandle",
    "JobHandler",
    "JobRecord",
    "JobScheduler",
    "RetryPolicy",
]
