"""Error codes dictionary.

Single source of truth for every error code the service emits and whether a
job failing with it may be retried by the scheduler.
"""

from typing import TypedDict


class ErrorCodeSpec(TypedDict, total=False):
    """Specification for an error code."""

    retryable: bool
    suggested_fix: str


ERROR_CODES: dict[str, ErrorCodeSpec] = {
    # ==========================================================================
    # Request errors (client side, never retried)
    # ==========================================================================
    "SCHEMA_VIOLATION": {
        "retryable": False,
        "suggested_fix": "Fix the request body; see the error message for the offending field",
    },
    "DISALLOWED_HOST": {
        "retryable": False,
        "suggested_fix": "Use a URL whose host is on the configured allow-list",
    },
    "INVALID_API_KEY": {
        "retryable": False,
        "suggested_fix": "Send an alphanumeric x-api-key header with a provisioned directory",
    },
    "JOB_NOT_FOUND": {
        "retryable": False,
        "suggested_fix": "Query a job key returned to the same API key by POST /create-video",
    },
    # ==========================================================================
    # Acquisition errors (reported synchronously before enqueue)
    # ==========================================================================
    "DOWNLOAD_FAILED": {
        "retryable": False,
        "suggested_fix": "Check that the input URL is reachable and returns media",
    },
    "PROBE_FAILED": {
        "retryable": False,
        "suggested_fix": "Check that the input file contains a decodable video stream or image",
    },
    # ==========================================================================
    # Asynchronous job errors (retried by the scheduler)
    # ==========================================================================
    "RENDER_FAILED": {
        "retryable": True,
    },
    "WEBHOOK_FAILED": {
        "retryable": True,
        "suggested_fix": "Make sure the webhook endpoint answers 2xx within the timeout",
    },
    "CLEANUP_FAILED": {
        "retryable": False,
    },
    # ==========================================================================
    # System errors
    # ==========================================================================
    "INTERNAL_ERROR": {
        "retryable": False,
    },
}


def get_error_spec(code: str) -> ErrorCodeSpec:
    """Return the spec for a code, falling back to INTERNAL_ERROR."""
    return ERROR_CODES.get(code, ERROR_CODES["INTERNAL_ERROR"])


def is_retryable(code: str) -> bool:
    return get_error_spec(code).get("retryable", False)
