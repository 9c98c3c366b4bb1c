"""Media file information utilities using FFprobe."""

import json
import subprocess

from json2video.config import get_settings


def _get_settings():
    """Get settings lazily to avoid import issues in tests."""
    return get_settings()


def _run_ffprobe(file_path: str, *args, ffprobe_path: str | None = None, timeout: float | None = None) -> dict:
    """Run ffprobe and return parsed JSON."""
    settings = _get_settings()
    cmd = [
        ffprobe_path or settings.ffprobe_path,
        "-v", "error",
        *args,
        "-of", "json",
        file_path,
    ]

    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            timeout=timeout or settings.probe_timeout_seconds,
        )
    except FileNotFoundError as e:
        raise RuntimeError(f"ffprobe not found: {e}")
    except subprocess.TimeoutExpired:
        raise RuntimeError(f"ffprobe timed out on: {file_path}")

    if result.returncode != 0:
        raise RuntimeError(f"ffprobe failed: {result.stderr.strip()}")

    try:
        return json.loads(result.stdout)
    except json.JSONDecodeError as e:
        raise RuntimeError(f"Failed to parse ffprobe output: {e}")


def get_video_dimensions(
    file_path: str,
    *,
    ffprobe_path: str | None = None,
    timeout: float | None = None,
) -> tuple[int, int]:
    """
    Get width and height of the first video stream.

    Still images are reported by ffprobe as a single-frame video stream, so
    this works for both image and video sources.

    Args:
        file_path: Path to media file
        ffprobe_path: Override for the ffprobe binary
        timeout: Seconds before ffprobe is killed

    Returns:
        Tuple of (width, height)

    Raises:
        RuntimeError: If ffprobe fails or video stream not found
    """
    data = _run_ffprobe(
        file_path,
        "-select_streams", "v:0",
        "-show_entries", "stream=width,height",
        ffprobe_path=ffprobe_path,
        timeout=timeout,
    )

    streams = data.get("streams") or []
    if not streams:
        raise RuntimeError(f"No video stream found in: {file_path}")

    stream = streams[0]
    width = stream.get("width")
    height = stream.get("height")

    if not isinstance(width, int) or not isinstance(height, int) or width <= 0 or height <= 0:
        raise RuntimeError(f"Video dimensions not found in: {file_path}")

    return width, height
