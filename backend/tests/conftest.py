"""
Pytest fixtures for json2video backend tests.

Tests that shell out to ffmpeg/ffprobe are skipped when the binaries are not
on PATH. Everything else runs against temporary directories and in-memory
doubles (``httpx.MockTransport``, ``unittest.mock``).
"""

from pathlib import Path
from typing import Any, Callable

import pytest
from PIL import Image

from json2video.config import Settings
from json2video.schemas.video import JobDescriptor

API_KEY = "testkey123"


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings rooted in a temporary directory, ignoring any local .env."""
    return Settings(
        _env_file=None,
        cache_dir=str(tmp_path / "cache"),
        movies_dir=str(tmp_path / "movies"),
        allowed_domains="example.com,trusted.com",
        scheme="https",
        public_port="443",
    )


@pytest.fixture
def api_key_dir(settings: Settings) -> Path:
    """Provisioned output directory for API_KEY."""
    path = Path(settings.movies_dir) / API_KEY
    path.mkdir(parents=True, exist_ok=True)
    return path


@pytest.fixture
def valid_request() -> dict[str, Any]:
    """A create-video body that passes every validation stage."""
    return {
        "record_id": "rec123",
        "input_url": "https://example.com/image.png",
        "webhook_url": "https://trusted.com/hook",
        "framerate": 30,
        "duration": 5,
        "zoom": 0,
        "crop": True,
        "output_width": 1920,
        "output_height": 1080,
    }


@pytest.fixture
def make_descriptor(tmp_path: Path) -> Callable[..., JobDescriptor]:
    """Factory for JobDescriptor with sensible defaults."""

    def _make(**overrides: Any) -> JobDescriptor:
        fields: dict[str, Any] = {
            "job_key": "AbCdEf0123456789.mp4",
            "owner": API_KEY,
            "record_id": "rec123",
            "input_url": "https://example.com/image.png",
            "webhook_url": "https://trusted.com/hook",
            "framerate": 30,
            "duration": 5,
            "zoom": 0,
            "crop": True,
            "output_width": 1920,
            "output_height": 1080,
            "input_width": 1920,
            "input_height": 1080,
            "request_origin": "api.example.com",
            "source_path": str(tmp_path / "cache" / "source"),
            "output_path": str(tmp_path / "movies" / API_KEY / "AbCdEf0123456789.mp4"),
            "public_path": f"movies/{API_KEY}/AbCdEf0123456789.mp4",
        }
        fields.update(overrides)
        return JobDescriptor(**fields)

    return _make


@pytest.fixture
def still_image(tmp_path: Path) -> Path:
    """An 800x600 PNG still frame."""
    path = tmp_path / "still.png"
    Image.new("RGB", (800, 600), color=(200, 40, 40)).save(path)
    return path


@pytest.fixture
def striped_image(tmp_path: Path) -> Path:
    """A 400x400 PNG with vertical stripes, so zoomed frames differ."""
    path = tmp_path / "striped.png"
    image = Image.new("RGB", (400, 400), color=(255, 255, 255))
    for x in range(0, 400, 20):
        image.paste((0, 0, 0), (x, 0, x + 10, 400))
    image.save(path)
    return path
