"""FFmpeg invocation for a single render job."""

import logging
import os
import subprocess
from pathlib import Path

from json2video.exceptions import RenderError
from json2video.render.filters import PIXEL_FORMAT, FilterChain
from json2video.schemas.video import JobDescriptor

logger = logging.getLogger(__name__)

VIDEO_CODEC = "libx264"
CONTAINER_FORMAT = "mp4"


def _decode(stream: str | bytes | None) -> str:
    if stream is None:
        return ""
    if isinstance(stream, bytes):
        return stream.decode("utf-8", errors="replace")
    return stream


def _format_number(value: float) -> str:
    return format(value, "g")


def partial_output_path(output_path: str | Path) -> Path:
    """Sibling path ffmpeg writes to before the result is moved into place."""
    path = Path(output_path)
    return path.with_name(f".{path.stem}.part{path.suffix}")


class FfmpegEncoder:
    """Runs ffmpeg as a single-shot process and owns its lifetime."""

    def __init__(self, ffmpeg_path: str = "ffmpeg", timeout: float | None = 300.0):
        self.ffmpeg_path = ffmpeg_path
        self.timeout = timeout

    def build_command(self, job: JobDescriptor, chain: FilterChain, output_path: str | Path) -> list[str]:
        return [
            self.ffmpeg_path,
            "-y",
            "-loop", "1",
            "-i", job.source_path,
            "-vf", str(chain),
            "-t", _format_number(job.duration),
            "-pix_fmt", PIXEL_FORMAT,
            "-r", _format_number(job.framerate),
            "-c:v", VIDEO_CODEC,
            "-f", CONTAINER_FORMAT,
            str(output_path),
        ]

    def render(self, job: JobDescriptor, chain: FilterChain) -> Path:
        """Render ``job`` into ``job.output_path``.

        The output only appears at its final path when ffmpeg exits 0.

        Raises:
            RenderError: ffmpeg could not start, timed out or exited non-zero
        """
        output_path = Path(job.output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        partial_path = partial_output_path(output_path)
        cmd = self.build_command(job, chain, partial_path)

        logger.info(f"Running FFmpeg command: {' '.join(cmd)}")

        try:
            result = subprocess.run(cmd, capture_output=True, text=True, timeout=self.timeout)
        except subprocess.TimeoutExpired as e:
            partial_path.unlink(missing_ok=True)
            raise RenderError(
                f"FFmpeg timed out after {_format_number(self.timeout)}s",
                diagnostics=_decode(e.stderr),
            ) from e
        except OSError as e:
            partial_path.unlink(missing_ok=True)
            raise RenderError(f"Failed to start FFmpeg: {e}", diagnostics=str(e)) from e

        if result.returncode != 0:
            partial_path.unlink(missing_ok=True)
            logger.error(f"FFmpeg error: {result.stderr}")
            raise RenderError(
                f"FFmpeg failed with exit code {result.returncode}",
                diagnostics=result.stderr,
            )

        logger.debug(f"FFmpeg output: {result.stdout}")
        os.replace(partial_path, output_path)
        logger.info(f"Processing video: {job.source_path} to {output_path} completed successfully.")
        return output_path
