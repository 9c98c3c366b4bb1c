from enum import Enum
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator

RECORD_ID_PATTERN = r"^[0-9A-Za-z]+$"
MAX_DURATION_SECONDS = 60


def _require_uri(value: str) -> str:
    parsed = urlparse(value)
    if not parsed.scheme or not parsed.netloc:
        raise ValueError("must be a valid uri")
    return value


class JobRequest(BaseModel):
    """Body of POST /create-video."""

    model_config = ConfigDict(extra="forbid")

    record_id: str = Field(pattern=RECORD_ID_PATTERN)
    input_url: str
    webhook_url: str | None = None
    framerate: float = Field(gt=0, allow_inf_nan=False)
    duration: float = Field(gt=0, le=MAX_DURATION_SECONDS, allow_inf_nan=False)
    cache: bool = Field(default=False, strict=True)  # reserved for result caching
    zoom: float | None = Field(default=None, ge=-100, le=100, allow_inf_nan=False)
    crop: bool = Field(strict=True)
    output_width: int = Field(gt=0)
    output_height: int = Field(gt=0)

    @field_validator("framerate", "duration", "zoom", "output_width", "output_height", mode="before")
    @classmethod
    def reject_booleans(cls, value):
        # lax mode would read true/false as 1/0
        if isinstance(value, bool):
            raise ValueError("Input should be a valid number")
        return value

    @field_validator("output_width", "output_height")
    @classmethod
    def require_even_dimension(cls, value: int) -> int:
        # libx264 cannot encode yuv420p at odd sizes
        if value % 2:
            raise ValueError("must be an even number")
        return value

    @field_validator("input_url")
    @classmethod
    def validate_input_url(cls, value: str) -> str:
        return _require_uri(value)

    @field_validator("webhook_url")
    @classmethod
    def validate_webhook_url(cls, value: str | None) -> str | None:
        if value is None:
            return value
        return _require_uri(value)


class JobDescriptor(BaseModel):
    """Fully resolved job, the only payload the scheduler accepts."""

    model_config = ConfigDict(frozen=True)

    job_key: str
    owner: str  # API key that submitted the job
    record_id: str
    input_url: str
    webhook_url: str | None = None
    framerate: float
    duration: float
    cache: bool = False
    zoom: float
    crop: bool
    output_width: int
    output_height: int

    input_width: int = Field(gt=0)
    input_height: int = Field(gt=0)
    request_origin: str
    source_path: str
    output_path: str
    public_path: str  # artifact path relative to the server root


class JobOutcome(BaseModel):
    success: bool
    message: str
    input_width: int
    input_height: int
    output_width: int
    output_height: int
    notified: bool = False


class WebhookPayload(BaseModel):
    record_id: str
    filename: str  # absolute URL of the rendered artifact


class ValidationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    valid: bool
    reason: str | None = None
    code: str | None = None

    @classmethod
    def ok(cls) -> "ValidationResult":
        return cls(valid=True)

    @classmethod
    def failed(cls, reason: str, code: str) -> "ValidationResult":
        return cls(valid=False, reason=reason, code=code)


class VideoResponse(BaseModel):
    record_id: str
    filename: str
    message: str
    input_height: int
    input_width: int
    output_height: int
    output_width: int


class JobState(str, Enum):
    QUEUED = "queued"
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"


class JobStatus(BaseModel):
    job_key: str
    state: JobState
    outcome: JobOutcome | None = None
    error: str | None = None
