"""Canonical entities produced by the normalizer.

All records are frozen: a refresh rebuilds them wholesale and never
mutates one in place.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

from ghinsight.exceptions import RecordMappingError

PullRequestState = Literal["Open", "Closed", "Merged"]
IssueState = Literal["Open", "Closed", "Other"]


@dataclass(frozen=True)
class Profile:
    login: str
    name: str
    url: str | None = None
    avatar_url: str | None = None
    bio: str | None = None
    public_repos: int = 0
    followers: int = 0
    following: int = 0
    created_at: datetime | None = None


@dataclass(frozen=True)
class PullRequest:
    number: int
    repository: str  # "owner/name"
    title: str
    state: PullRequestState
    days_open: float
    created_at: datetime
    hour_of_day: int
    day_of_week: str  # English weekday name, UTC
    updated_at: datetime | None = None
    closed_at: datetime | None = None
    merged_at: datetime | None = None
    labels: str = ""  # ", "-joined label names
    comments: int = 0
    url: str | None = None
    author: str | None = None


@dataclass(frozen=True)
class Issue:
    number: int
    repository: str
    title: str
    state: IssueState
    days_open: float
    created_at: datetime
    hour_of_day: int
    day_of_week: str
    updated_at: datetime | None = None
    closed_at: datetime | None = None
    labels: str = ""
    comments: int = 0
    url: str | None = None
    author: str | None = None


@dataclass(frozen=True)
class Repository:
    name: str  # full name, "owner/name"
    owner: str
    description: str | None = None
    language: str | None = None
    stars: int = 0
    forks: int = 0
    watchers: int = 0
    is_private: bool = False
    is_archived: bool = False
    is_fork: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None
    topics: tuple[str, ...] = ()
    size: int = 0
    url: str | None = None


@dataclass(frozen=True)
class Organization:
    login: str
    name: str  # display name, falls back to login
    description: str | None = None
    url: str | None = None
    avatar_url: str | None = None


@dataclass(frozen=True)
class StarredRepository:
    name: str
    owner: str
    description: str | None = None
    language: str | None = None
    stars: int = 0
    forks: int = 0
    url: str | None = None
    topics: tuple[str, ...] = ()
    updated_at: datetime | None = None


@dataclass(frozen=True)
class ContributionSummary:
    """Single fold over the activity-event stream."""

    event_counts: dict[str, int] = field(default_factory=dict)  # friendly label → count
    monthly_commits: dict[str, int] = field(default_factory=dict)  # "Mon YYYY" → commits
    repo_activity: dict[str, int] = field(default_factory=dict)  # "owner/name" → events


@dataclass(frozen=True)
class NormalizedEntities:
    """The complete canonical entity set for one refresh."""

    profile: Profile | None = None
    pull_requests: tuple[PullRequest, ...] = ()
    issues: tuple[Issue, ...] = ()
    repositories: tuple[Repository, ...] = ()
    organizations: tuple[Organization, ...] = ()
    starred: tuple[StarredRepository, ...] = ()
    watched: tuple[StarredRepository, ...] = ()
    followers: tuple[str, ...] = ()
    following: tuple[str, ...] = ()
    contributions: ContributionSummary = field(default_factory=ContributionSummary)
    errors: tuple[RecordMappingError, ...] = ()

    @property
    def login(self) -> str | None:
        return self.profile.login if self.profile else None

    def counts(self) -> dict[str, int]:
        return {
            "pull_requests": len(self.pull_requests),
            "issues": len(self.issues),
            "repositories": len(self.repositories),
            "organizations": len(self.organizations),
            "starred": len(self.starred),
            "watched": len(self.watched),
            "followers": len(self.followers),
            "following": len(self.following),
        }
