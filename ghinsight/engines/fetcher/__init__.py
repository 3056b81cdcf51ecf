"""Fetcher engine — authenticated GitHub retrieval for one credential."""

from ghinsight.engines.fetcher.github_client import GitHubClient, verify_token
from ghinsight.engines.fetcher.models import RateLimitStatus, RawDataBundle
from ghinsight.engines.fetcher.orchestrator import fetch_all

__all__ = [
    "GitHubClient",
    "RateLimitStatus",
    "RawDataBundle",
    "fetch_all",
    "verify_token",
]
