"""Normalizer engine — canonical entities from raw GitHub payloads."""

from ghinsight.engines.normalizer.models import (
    ContributionSummary,
    Issue,
    NormalizedEntities,
    Organization,
    Profile,
    PullRequest,
    Repository,
    StarredRepository,
)
from ghinsight.engines.normalizer.normalizer import (
    EVENT_LABELS,
    normalize_bundle,
    normalize_issues,
    normalize_organizations,
    normalize_profile,
    normalize_pull_requests,
    normalize_repositories,
    normalize_starred,
    summarize_contributions,
)

__all__ = [
    "EVENT_LABELS",
    "ContributionSummary",
    "Issue",
    "NormalizedEntities",
    "Organization",
    "Profile",
    "PullRequest",
    "Repository",
    "StarredRepository",
    "normalize_bundle",
    "normalize_issues",
    "normalize_organizations",
    "normalize_profile",
    "normalize_pull_requests",
    "normalize_repositories",
    "normalize_starred",
    "summarize_contributions",
]
