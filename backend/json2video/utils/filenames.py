import secrets
import string
from pathlib import Path

FILENAME_ALPHABET = string.ascii_letters + string.digits


def generate_random_filename(length: int = 16, suffix: str = ".mp4") -> str:
    """Random alphanumeric filename, also used as the job key."""
    return "".join(secrets.choice(FILENAME_ALPHABET) for _ in range(length)) + suffix


def ensure_directory_exists(dir_path: str | Path) -> Path:
    path = Path(dir_path)
    path.mkdir(parents=True, exist_ok=True)
    return path
