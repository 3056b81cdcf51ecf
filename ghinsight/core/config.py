"""Runtime settings, read from ``GHINSIGHT_*`` environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass

_PREFIX = "GHINSIGHT_"


def _env_str(key: str, default: str) -> str:
    return os.environ.get(_PREFIX + key, default)


def _env_int(key: str, default: int) -> int:
    return int(os.environ.get(_PREFIX + key, default))


def _env_float(key: str, default: float) -> float:
    return float(os.environ.get(_PREFIX + key, default))


@dataclass(frozen=True)
class Settings:
    """Tunables for the fetch pipeline and the query engine."""

    api_url: str = "https://api.github.com"
    api_version: str = "2022-11-28"
    timeout: float = 30.0
    max_retries: int = 3
    retry_base_delay: float = 1.0  # seconds, doubled per attempt
    rate_limit_wait: float = 60.0  # used when no usable reset header
    page_size: int = 100
    low_quota_threshold: int = 20
    low_quota_pause: float = 2.0
    search_debounce: float = 0.3

    @classmethod
    def from_env(cls) -> Settings:
        """Build settings from the environment, falling back to defaults."""
        defaults = cls()
        return cls(
            api_url=_env_str("API_URL", defaults.api_url),
            api_version=_env_str("API_VERSION", defaults.api_version),
            timeout=_env_float("TIMEOUT", defaults.timeout),
            max_retries=_env_int("MAX_RETRIES", defaults.max_retries),
            retry_base_delay=_env_float("RETRY_BASE_DELAY", defaults.retry_base_delay),
            rate_limit_wait=_env_float("RATE_LIMIT_WAIT", defaults.rate_limit_wait),
            page_size=_env_int("PAGE_SIZE", defaults.page_size),
            low_quota_threshold=_env_int("LOW_QUOTA_THRESHOLD", defaults.low_quota_threshold),
            low_quota_pause=_env_float("LOW_QUOTA_PAUSE", defaults.low_quota_pause),
            search_debounce=_env_float("SEARCH_DEBOUNCE", defaults.search_debounce),
        )


def resolve_token(token: str | None = None) -> str | None:
    """Return *token*, else ``GHINSIGHT_TOKEN``, else ``GITHUB_TOKEN``."""
    return token or os.environ.get(_PREFIX + "TOKEN") or os.environ.get("GITHUB_TOKEN")
