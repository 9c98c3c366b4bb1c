"""Request validation.

Two stages, checked in order and failing fast:

1. Structural schema - types, required fields, numeric ranges, record id
   format (``JobRequest``).
2. URL allow-list - ``input_url`` and, when present, ``webhook_url`` must use
   http(s) and point at a configured domain or IP literal.

The reason strings keep the two stages apart ("Invalid input data" vs
"Invalid input URL"/"Invalid webhook URL") so callers can tell a malformed
request from one that only needs the allow-list to change.
"""

from collections.abc import Iterable
from typing import Any
from urllib.parse import urlparse

from pydantic import ValidationError as PydanticValidationError

from json2video.exceptions import DisallowedHostError, ValidationError
from json2video.schemas.video import JobRequest, ValidationResult

ALLOWED_SCHEMES = frozenset({"http", "https"})


def _describe_schema_error(exc: PydanticValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid input data"
    first_error = errors[0]
    loc = ".".join(str(x) for x in first_error.get("loc", []))
    msg = first_error.get("msg", "validation error")
    return f"Invalid input data: {loc}: {msg}" if loc else f"Invalid input data: {msg}"


def check_url_allowed(url: str, allowed_hosts: Iterable[str]) -> str | None:
    """Return why ``url`` is not allowed, or None when it is."""
    try:
        parsed = urlparse(url)
        hostname = parsed.hostname
    except ValueError:
        return "malformed URL"

    if parsed.scheme.lower() not in ALLOWED_SCHEMES:
        return f"scheme '{parsed.scheme}' is not allowed"
    if not hostname:
        return "URL has no host"
    if hostname.lower() not in {host.lower() for host in allowed_hosts}:
        return f"host '{hostname}' is not allowed"
    return None


def is_valid_url(url: str, allowed_hosts: Iterable[str]) -> bool:
    return check_url_allowed(url, allowed_hosts) is None


class RequestValidator:
    """Validates raw create-video bodies against schema and allow-list."""

    def __init__(self, allowed_hosts: Iterable[str]):
        self.allowed_hosts = frozenset(host.lower() for host in allowed_hosts)

    def parse(self, raw: Any) -> JobRequest:
        """Return the parsed request or raise ``ValidationError``."""
        if not isinstance(raw, dict):
            raise ValidationError("Invalid input data: body must be a JSON object")

        try:
            request = JobRequest.model_validate(raw)
        except PydanticValidationError as exc:
            raise ValidationError(_describe_schema_error(exc)) from exc

        problem = check_url_allowed(request.input_url, self.allowed_hosts)
        if problem:
            raise DisallowedHostError(f"Invalid input URL: {problem}")

        if request.webhook_url is not None:
            problem = check_url_allowed(request.webhook_url, self.allowed_hosts)
            if problem:
                raise DisallowedHostError(f"Invalid webhook URL: {problem}")

        return request

    def validate(self, raw: Any) -> ValidationResult:
        try:
            self.parse(raw)
        except ValidationError as exc:
            return ValidationResult.failed(exc.message, exc.code)
        return ValidationResult.ok()
