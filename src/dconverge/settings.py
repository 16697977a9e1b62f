"""
Engine settings read from the environment.
"""
import os
from dataclasses import dataclass
from typing import Optional


def _env_float(name: str, default: Optional[float]) -> Optional[float]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    # Dependency condition polling
    poll_interval_s: float = 0.5

    # Seconds the runtime waits before killing a stopping container, None for its default
    stop_timeout_s: Optional[float] = None

    # Upper bound on threads per task group
    max_concurrency: int = 16

    log_level: str = "WARNING"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            poll_interval_s=_env_float("DCONVERGE_POLL_INTERVAL_S", 0.5),
            stop_timeout_s=_env_float("DCONVERGE_STOP_TIMEOUT_S", None),
            max_concurrency=max(1, _env_int("DCONVERGE_MAX_CONCURRENCY", 16)),
            log_level=os.getenv("DCONVERGE_LOG_LEVEL", "WARNING").upper(),
        )


settings = Settings.from_env()
