"""Custom exceptions for the json2video backend.

Each exception carries a machine-readable error code (see
``constants/error_codes.py``), the HTTP status it maps to when it reaches the
API layer, and whether the scheduler may retry a job that failed with it.
"""

from json2video.constants.error_codes import is_retryable


class Json2VideoError(Exception):
    """Base exception for all json2video application errors."""

    code: str = "INTERNAL_ERROR"
    status_code: int = 500
    message: str = "An unexpected error occurred"

    def __init__(
        self,
        message: str | None = None,
        *,
        code: str | None = None,
        status_code: int | None = None,
    ):
        self.message = message or self.__class__.message
        if code:
            self.code = code
        if status_code:
            self.status_code = status_code
        super().__init__(self.message)

    @property
    def retryable(self) -> bool:
        return is_retryable(self.code)

    def to_response(self) -> dict[str, str]:
        """Body returned to HTTP callers."""
        return {"error": self.message}


# =============================================================================
# Client Errors (400)
# =============================================================================


class ValidationError(Json2VideoError):
    """Request body is malformed, out of range or points at a disallowed host."""

    code = "SCHEMA_VIOLATION"
    status_code = 400
    message = "Invalid input data"


class DisallowedHostError(ValidationError):
    """URL scheme or host is not on the allow-list."""

    code = "DISALLOWED_HOST"
    message = "URL host is not allowed"


class ApiKeyError(Json2VideoError):
    """API key header is missing, malformed or not mapped to a directory."""

    code = "INVALID_API_KEY"
    status_code = 400
    message = "Invalid API key"


class JobNotFoundError(Json2VideoError):
    """No job with this key is visible to the calling API key."""

    code = "JOB_NOT_FOUND"
    status_code = 404
    message = "Job not found"


class AcquisitionError(Json2VideoError):
    """Source artifact could not be downloaded or probed."""

    code = "DOWNLOAD_FAILED"
    status_code = 400
    message = "Failed to download input file"


class ProbeError(AcquisitionError):
    """ffprobe failed or reported no usable video stream."""

    code = "PROBE_FAILED"
    message = "Failed to read input file dimensions"


# =============================================================================
# Job Errors (raised inside workers)
# =============================================================================


class RenderError(Json2VideoError):
    """ffmpeg exited non-zero, could not be spawned or timed out."""

    code = "RENDER_FAILED"
    status_code = 500
    message = "Video rendering failed"

    def __init__(self, message: str | None = None, *, diagnostics: str = ""):
        self.diagnostics = diagnostics
        super().__init__(message)


class NotificationError(Json2VideoError):
    """Webhook delivery failed (non-2xx, timeout or network error)."""

    code = "WEBHOOK_FAILED"
    status_code = 502
    message = "Webhook call failed"


class CleanupWarning(Json2VideoError):
    """Cached source file could not be removed. Logged, never propagated."""

    code = "CLEANUP_FAILED"
    message = "Failed to clean up cached input file"
