from json2video.schemas.video import (
    JobDescriptor,
    JobOutcome,
    JobRequest,
    JobState,
    JobStatus,
    ValidationResult,
    VideoResponse,
    WebhookPayload,
)

__all__ = [
    "JobDescriptor",
    "JobOutcome",
    "JobRequest",
    "JobState",
    "JobStatus",
    "ValidationResult",
    "VideoResponse",
    "WebhookPayload",
]
