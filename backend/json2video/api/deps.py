from pathlib import Path
from typing import Annotated, Optional

from fastapi import Depends, Header, Request

from json2video.config import Settings, get_settings
from json2video.exceptions import ApiKeyError
from json2video.scheduling import JobScheduler
from json2video.services.intake_service import VideoIntake


def api_key_directory(movies_dir: str, api_key: str) -> Path:
    """Resolve the per-key output directory, refusing paths outside ``movies_dir``."""
    root = Path(movies_dir).resolve()
    candidate = (root / api_key).resolve()
    if candidate != root and root not in candidate.parents:
        raise ApiKeyError("Directory traversal not allowed")
    return candidate


def get_app_settings(request: Request) -> Settings:
    return getattr(request.app.state, "settings", None) or get_settings()


async def get_api_key(
    settings: Annotated[Settings, Depends(get_app_settings)],
    x_api_key: Annotated[Optional[str], Header(alias="x-api-key")] = None,
) -> str:
    """Authenticate via the x-api-key header.

    A key is valid when it is alphanumeric and ``movies_dir/<key>`` exists.
    """
    if not x_api_key:
        raise ApiKeyError("Missing x-api-key header")
    if not x_api_key.isascii() or not x_api_key.isalnum():
        raise ApiKeyError("Invalid API key")
    if not api_key_directory(settings.movies_dir, x_api_key).is_dir():
        raise ApiKeyError("Directory does not exist")
    return x_api_key


def get_scheduler(request: Request) -> JobScheduler:
    return request.app.state.scheduler


def get_intake(request: Request) -> VideoIntake:
    return request.app.state.intake


ApiKey = Annotated[str, Depends(get_api_key)]
Scheduler = Annotated[JobScheduler, Depends(get_scheduler)]
Intake = Annotated[VideoIntake, Depends(get_intake)]
