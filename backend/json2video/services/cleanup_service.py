"""Best-effort removal of transient cached source files."""

import logging
from pathlib import Path

from json2video.exceptions import CleanupWarning

logger = logging.getLogger(__name__)


def _unlink(path: Path) -> bool:
    try:
        if not path.exists():
            return False
        path.unlink()
        return True
    except OSError as e:
        raise CleanupWarning(f"Failed to clean up cached input file: {path}: {e}") from e


def remove_cached_source(source_path: str | Path) -> bool:
    """Delete the cached source file.

    Returns True when a file was removed. Failures are logged and swallowed;
    they must never change a job's outcome.
    """
    path = Path(source_path)
    try:
        removed = _unlink(path)
    except CleanupWarning as warning:
        logger.warning(warning.message)
        return False

    if removed:
        logger.info(f"Cleaned up cached input file: {path}")
    return removed
