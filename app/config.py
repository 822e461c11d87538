from dataclasses import dataclass, field
from typing import Optional, Tuple
import os


def _int_env(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value not in (None, "") else default


def _float_env(name: str, default: float) -> float:
    value = os.getenv(name)
    return float(value) if value not in (None, "") else default


def _schemes_env(name: str, default: str) -> Tuple[str, ...]:
    raw = os.getenv(name, default)
    return tuple(s.strip() for s in raw.split(",") if s.strip())


@dataclass
class Settings:
    """Runtime configuration, read from environment variables"""

    # Pipeline
    acquisition_timeout: float = 60.0
    accepted_url_schemes: Tuple[str, ...] = ("https://", "git@")
    default_mode: str = "v2"
    max_concurrent_jobs: int = 0  # 0 = unbounded
    work_dir: Optional[str] = None

    # Documentation generator
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o-mini"

    # Documentation cache
    cache_ttl: float = 3600.0
    cache_max_size: int = 100

    # Client poller
    poll_interval: float = 2.0
    poll_max_attempts: int = 150
    poll_request_timeout: float = 10.0
    poll_failsafe: float = 300.0

    log_level: str = "INFO"
    service_name: str = field(default="GitGen Documentation API")

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            acquisition_timeout=_float_env("ACQUISITION_TIMEOUT_SECONDS", 60.0),
            accepted_url_schemes=_schemes_env("ACCEPTED_URL_SCHEMES", "https://,git@"),
            default_mode=os.getenv("DEFAULT_README_MODE", "v2"),
            max_concurrent_jobs=_int_env("MAX_CONCURRENT_JOBS", 0),
            work_dir=os.getenv("DOCGEN_WORK_DIR") or None,
            openai_api_key=os.getenv("OPENAI_API_KEY") or None,
            openai_model=os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
            cache_ttl=_float_env("DOC_CACHE_TTL_SECONDS", 3600.0),
            cache_max_size=_int_env("DOC_CACHE_MAX_SIZE", 100),
            poll_interval=_float_env("POLL_INTERVAL_SECONDS", 2.0),
            poll_max_attempts=_int_env("POLL_MAX_ATTEMPTS", 150),
            poll_request_timeout=_float_env("POLL_REQUEST_TIMEOUT_SECONDS", 10.0),
            poll_failsafe=_float_env("POLL_FAILSAFE_SECONDS", 300.0),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )
