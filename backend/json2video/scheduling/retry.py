from dataclasses import dataclass

from json2video.config import Settings


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt budget with exponential backoff.

    ``max_attempts`` counts every execution, the first one included. With the
    defaults a failing job runs at t=0, t=2s and t=6s and then fails for good.
    """

    max_attempts: int = 3
    base_delay: float = 2.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "RetryPolicy":
        return cls(max_attempts=settings.job_max_attempts, base_delay=settings.job_backoff_seconds)

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after failed ``attempt`` (1-based) before the next one."""
        return self.base_delay * 2 ** (attempt - 1)

    def should_retry(self, attempt: int, error: BaseException) -> bool:
        if attempt >= self.max_attempts:
            return False
        return getattr(error, "retryable", True)

    def backoff_schedule(self) -> list[float]:
        return [self.delay_for(attempt) for attempt in range(1, self.max_attempts)]
