"""Source acquisition: download the input artifact and probe its size.

The download streams into ``<cache_dir>/<name>.part`` and is renamed to its
final name only once every byte arrived within the size ceiling, so a failed
download never leaves an addressable file behind. A file whose probe fails is
removed as well; nothing would ever clean it up otherwise.
"""

import asyncio
import logging
import os
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

import httpx

from json2video.config import Settings
from json2video.exceptions import AcquisitionError, ProbeError
from json2video.services.validation_service import check_url_allowed
from json2video.utils.filenames import ensure_directory_exists, generate_random_filename
from json2video.utils.media_info import get_video_dimensions

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AcquiredSource:
    """Cached source file plus its probed dimensions."""

    source_path: str
    width: int
    height: int


def _discard(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning(f"Failed to remove cached file {path}: {e}")


class SourceAcquirer:
    """Downloads input media into the cache directory and probes it."""

    def __init__(
        self,
        cache_dir: str,
        *,
        max_bytes: int = 10 * 1024 * 1024,
        timeout: float = 10.0,
        rejected_content_types: tuple[str, ...] = ("application/json", "text/html"),
        user_agent: str = "json2video-api/1.0",
        ffprobe_path: str = "ffprobe",
        probe_timeout: float = 30.0,
        allowed_hosts: Iterable[str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.cache_dir = cache_dir
        self.max_bytes = max_bytes
        self.timeout = timeout
        self.rejected_content_types = tuple(t.lower() for t in rejected_content_types)
        self.user_agent = user_agent
        self.ffprobe_path = ffprobe_path
        self.probe_timeout = probe_timeout
        self.allowed_hosts = (
            frozenset(host.lower() for host in allowed_hosts) if allowed_hosts is not None else None
        )
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> "SourceAcquirer":
        return cls(
            settings.cache_dir,
            max_bytes=settings.download_max_bytes,
            timeout=settings.download_timeout_seconds,
            rejected_content_types=tuple(settings.rejected_content_types),
            user_agent=settings.user_agent,
            ffprobe_path=settings.ffprobe_path,
            probe_timeout=settings.probe_timeout_seconds,
            allowed_hosts=settings.allowed_hosts,
        )

    async def acquire(self, input_url: str) -> AcquiredSource:
        """Download ``input_url`` and probe it.

        Raises:
            AcquisitionError: download failed, was too large or not media
            ProbeError: ffprobe could not read the downloaded file
        """
        source_path = await self.download(input_url)
        try:
            width, height = await self.probe(source_path)
        except ProbeError:
            _discard(source_path)
            raise
        return AcquiredSource(source_path=str(source_path), width=width, height=height)

    async def download(self, input_url: str) -> Path:
        cache_dir = ensure_directory_exists(self.cache_dir)
        final_path = cache_dir / generate_random_filename(suffix="")
        part_path = final_path.with_name(final_path.name + ".part")

        logger.info(f"Downloading input file from: {input_url}")
        try:
            await asyncio.wait_for(self._stream_to_file(input_url, part_path), timeout=self.timeout)
        except asyncio.TimeoutError:
            _discard(part_path)
            raise AcquisitionError(f"Failed to download input file: timed out after {self.timeout:g}s")
        except AcquisitionError:
            _discard(part_path)
            raise
        except (httpx.HTTPError, OSError) as e:
            _discard(part_path)
            raise AcquisitionError(f"Failed to download input file: {e}") from e

        os.replace(part_path, final_path)
        logger.info(f"Input file cached at: {final_path}")
        return final_path

    async def _stream_to_file(self, input_url: str, part_path: Path) -> None:
        headers = {"User-Agent": self.user_agent}
        async with httpx.AsyncClient(
            timeout=self.timeout,
            follow_redirects=True,
            event_hooks={"request": [self._check_hop]},
            transport=self._transport,
        ) as client:
            async with client.stream("GET", input_url, headers=headers) as response:
                if not response.is_success:
                    raise AcquisitionError(
                        f"Failed to download input file: HTTP {response.status_code}"
                    )

                content_type = (response.headers.get("content-type") or "").lower()
                if any(content_type.startswith(t) for t in self.rejected_content_types):
                    raise AcquisitionError("Invalid file type")

                declared = response.headers.get("content-length")
                if declared and declared.isdigit() and int(declared) > self.max_bytes:
                    raise AcquisitionError("Input file exceeds the maximum allowed size")

                received = 0
                with open(part_path, "wb") as f:
                    async for chunk in response.aiter_bytes():
                        received += len(chunk)
                        if received > self.max_bytes:
                            raise AcquisitionError("Input file exceeds the maximum allowed size")
                        f.write(chunk)

    async def _check_hop(self, request: httpx.Request) -> None:
        """Runs before every request, redirect hops included."""
        if self.allowed_hosts is None:
            return
        problem = check_url_allowed(str(request.url), self.allowed_hosts)
        if problem:
            logger.warning(f"Refusing to fetch {request.url}: {problem}")
            raise AcquisitionError(f"Failed to download input file: {problem}")

    async def probe(self, source_path: Path) -> tuple[int, int]:
        try:
            return await asyncio.to_thread(
                get_video_dimensions,
                str(source_path),
                ffprobe_path=self.ffprobe_path,
                timeout=self.probe_timeout,
            )
        except RuntimeError as e:
            logger.error(f"ffprobe error: {e}")
            raise ProbeError(f"Failed to read input file dimensions: {e}") from e
