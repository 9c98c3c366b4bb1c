from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _split_csv(raw: str) -> list[str]:
    return [item.strip() for item in raw.split(",") if item.strip()]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Application
    app_name: str = "json2video API"
    app_version: str = "1.0.0"
    environment: Literal["development", "production"] = "development"
    log_level: str = "INFO"
    cors_origins: list[str] = ["*"]

    # Storage
    cache_dir: str = "cache"
    movies_dir: str = "movies"
    public_url_prefix: str = "movies"  # URL path the movies directory is served under

    # Rendering defaults
    default_zoom: float = 0.0

    # Public URL used to build webhook links
    scheme: str = "https"
    public_port: str = "80"

    # Queue store (Celery broker + result backend)
    redis_url: str = "redis://localhost:6379/0"

    # Allow-list - stored as comma-separated strings, parsed via computed properties
    allowed_domains_raw: str = Field(
        default="example.com,trusted.com",
        validation_alias=AliasChoices("allowed_domains", "allowed_domains_raw"),
    )
    allowed_ips_local: str = "localhost"
    allowed_ips_make_us1: str = "54.209.79.175,54.80.47.193,54.161.178.114"
    allowed_ips_make_eu2: str = "34.254.1.9,52.31.156.93,52.50.32.186"
    allowed_ips_make_eu1: str = "54.75.157.176,54.78.149.203,52.18.144.195"

    @property
    def allowed_domains(self) -> list[str]:
        return _split_csv(self.allowed_domains_raw)

    @computed_field
    @property
    def allowed_ips(self) -> dict[str, list[str]]:
        """Allowed IP literals grouped by region tag."""
        return {
            "LOCAL": _split_csv(self.allowed_ips_local),
            "MAKE_US1": _split_csv(self.allowed_ips_make_us1),
            "MAKE_EU2": _split_csv(self.allowed_ips_make_eu2),
            "MAKE_EU1": _split_csv(self.allowed_ips_make_eu1),
        }

    @property
    def allowed_hosts(self) -> frozenset[str]:
        """Every domain and IP literal a source or webhook URL may point at."""
        hosts = {domain.lower() for domain in self.allowed_domains}
        for ips in self.allowed_ips.values():
            hosts.update(ip.lower() for ip in ips)
        return frozenset(hosts)

    # FFmpeg
    ffmpeg_path: str = "ffmpeg"
    ffprobe_path: str = "ffprobe"

    # Acquisition limits
    download_max_bytes: int = 10 * 1024 * 1024
    download_timeout_seconds: float = 10.0
    rejected_content_types: list[str] = ["application/json", "text/html"]
    user_agent: str = "json2video-api/1.0"
    probe_timeout_seconds: float = 30.0

    # Render / delivery
    render_timeout_seconds: float = 300.0
    webhook_timeout_seconds: float = 10.0

    # Job scheduling
    job_max_attempts: int = 3
    job_backoff_seconds: float = 2.0
    job_result_ttl_seconds: int = 3600
    recent_completed_limit: int = 10
    recent_failed_limit: int = 5


@lru_cache
def get_settings() -> Settings:
    return Settings()
