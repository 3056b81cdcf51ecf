"""Data models for the fetcher engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ghinsight.exceptions import PartialResourceFailure


@dataclass
class RateLimitStatus:
    """Last quota headers seen on any response."""

    remaining: int | None = None
    limit: int | None = None
    reset: int | None = None  # epoch seconds


@dataclass
class RawDataBundle:
    """Every raw resource fetched for one credential in one cycle.

    Each list is possibly empty; a resource that failed is recorded in
    *failures* and left as ``[]``.
    """

    profile: dict[str, Any] = field(default_factory=dict)
    pull_requests: list[dict[str, Any]] = field(default_factory=list)
    issues: list[dict[str, Any]] = field(default_factory=list)
    repositories: list[dict[str, Any]] = field(default_factory=list)
    organizations: list[dict[str, Any]] = field(default_factory=list)
    starred: list[dict[str, Any]] = field(default_factory=list)
    events: list[dict[str, Any]] = field(default_factory=list)
    watched: list[dict[str, Any]] = field(default_factory=list)
    followers: list[dict[str, Any]] = field(default_factory=list)
    following: list[dict[str, Any]] = field(default_factory=list)
    failures: list[PartialResourceFailure] = field(default_factory=list)

    @property
    def login(self) -> str | None:
        return self.profile.get("login")

    def counts(self) -> dict[str, int]:
        """Number of raw records per resource."""
        return {
            "pull_requests": len(self.pull_requests),
            "issues": len(self.issues),
            "repositories": len(self.repositories),
            "organizations": len(self.organizations),
            "starred": len(self.starred),
            "events": len(self.events),
            "watched": len(self.watched),
            "followers": len(self.followers),
            "following": len(self.following),
        }
