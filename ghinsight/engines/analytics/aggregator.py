"""Analytics aggregation — pure folds from normalized entities to chart series.

Every bucket scheme is initialised to zero before any record is folded in,
so a period or category with no activity is an explicit 0.
"""

from __future__ import annotations

import math
from collections import Counter
from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime

import structlog

from ghinsight.core.dates import WEEKDAYS, month_label, trailing_months, utcnow
from ghinsight.engines.analytics.colors import (
    ORIGIN_COLORS,
    PR_STATE_COLORS,
    VISIBILITY_COLORS,
    color_for,
    hash_color,
)
from ghinsight.engines.analytics.models import (
    ActivitySeries,
    AnalyticsSnapshot,
    Distribution,
    RepoTypeDistribution,
    TimeSeries,
)
from ghinsight.engines.normalizer.models import (
    Issue,
    NormalizedEntities,
    PullRequest,
    Repository,
)

log = structlog.get_logger("ghinsight.engine")

_TIMELINE_MONTHS = 12
_LANGUAGE_WEIGHT_FLOOR = 0.5
_TOP_LANGUAGES = 10
_TOP_TOPICS = 20
_HOUR_LABELS = [f"{h}:00" for h in range(24)]


def generate_analytics(
    entities: NormalizedEntities,
    *,
    now: datetime | None = None,
) -> AnalyticsSnapshot:
    """Compute the full snapshot; deterministic for a given *now*."""
    now = now or utcnow()
    months = trailing_months(now, _TIMELINE_MONTHS)
    prs = entities.pull_requests
    issues = entities.issues
    repos = entities.repositories

    snapshot = AnalyticsSnapshot(
        generated_at=now,
        pr_timeline=timeline(prs, months),
        issue_timeline=timeline(issues, months),
        day_of_week_activity=day_of_week_activity(prs, issues),
        time_of_day=time_of_day_activity(prs, issues),
        pr_state_distribution=pr_state_distribution(prs),
        repo_type_distribution=repo_type_distribution(repos),
        language_stats=language_stats(repos),
        monthly_commits=monthly_commits(entities.contributions.monthly_commits, months),
        repository_topics=repository_topics(repos),
        contribution_types=contribution_types(entities.contributions.event_counts),
    )
    log.debug(
        "analytics.generated",
        pull_requests=len(prs),
        issues=len(issues),
        repositories=len(repos),
        languages=len(snapshot.language_stats.labels),
    )
    return snapshot


# ── series ────────────────────────────────────────────────────────────────


def timeline(records: Iterable[PullRequest | Issue], months: Sequence[str]) -> TimeSeries:
    """Count records by creation month over the given bucket labels."""
    counts = dict.fromkeys(months, 0)
    for record in records:
        label = month_label(record.created_at)
        if label in counts:
            counts[label] += 1
    return TimeSeries(labels=list(months), data=list(counts.values()))


def day_of_week_activity(
    prs: Iterable[PullRequest],
    issues: Iterable[Issue],
) -> ActivitySeries:
    pr_counts = dict.fromkeys(WEEKDAYS, 0)
    issue_counts = dict.fromkeys(WEEKDAYS, 0)
    for pr in prs:
        pr_counts[pr.day_of_week] += 1
    for issue in issues:
        issue_counts[issue.day_of_week] += 1
    return ActivitySeries(
        labels=list(WEEKDAYS),
        pr_data=list(pr_counts.values()),
        issue_data=list(issue_counts.values()),
    )


def time_of_day_activity(
    prs: Iterable[PullRequest],
    issues: Iterable[Issue],
) -> ActivitySeries:
    pr_counts = [0] * 24
    issue_counts = [0] * 24
    for pr in prs:
        pr_counts[pr.hour_of_day] += 1
    for issue in issues:
        issue_counts[issue.hour_of_day] += 1
    return ActivitySeries(labels=list(_HOUR_LABELS), pr_data=pr_counts, issue_data=issue_counts)


def pr_state_distribution(prs: Iterable[PullRequest]) -> Distribution:
    counts = {"Open": 0, "Closed": 0, "Merged": 0}
    for pr in prs:
        if pr.state in counts:
            counts[pr.state] += 1
    return Distribution(
        labels=list(counts),
        data=list(counts.values()),
        colors=list(PR_STATE_COLORS),
    )


def repo_type_distribution(repos: Iterable[Repository]) -> RepoTypeDistribution:
    public = private = original = forked = 0
    for repo in repos:
        if repo.is_private:
            private += 1
        else:
            public += 1
        if repo.is_fork:
            forked += 1
        else:
            original += 1
    return RepoTypeDistribution(
        visibility=Distribution(
            labels=["Public", "Private"],
            data=[public, private],
            colors=list(VISIBILITY_COLORS),
        ),
        origin=Distribution(
            labels=["Original", "Forked"],
            data=[original, forked],
            colors=list(ORIGIN_COLORS),
        ),
    )


def language_stats(repos: Iterable[Repository]) -> Distribution:
    """Star-weighted language share of the user's own (non-fork) repositories.

    Weight per repository is ``1 + log2(stars + 1)``.  The top ten languages
    are kept, the rest fold into ``Other``, and values are percentages of
    the retained total rounded to two decimals.
    """
    weights: dict[str, float] = {}
    for repo in repos:
        if repo.language and not repo.is_fork:
            weight = 1 + math.log2(repo.stars + 1)
            weights[repo.language] = weights.get(repo.language, 0.0) + weight

    retained = [(lang, w) for lang, w in weights.items() if w >= _LANGUAGE_WEIGHT_FLOOR]
    retained.sort(key=lambda item: item[1], reverse=True)
    top = retained[:_TOP_LANGUAGES]
    other = sum(w for _, w in retained[_TOP_LANGUAGES:])
    if other > 0:
        # a language literally named "Other" absorbs the tail
        labels = [lang for lang, _ in top]
        if "Other" in labels:
            i = labels.index("Other")
            top[i] = ("Other", top[i][1] + other)
        else:
            top.append(("Other", other))

    total = sum(w for _, w in top)
    if total <= 0:
        return Distribution(labels=[], data=[], colors=[])
    return Distribution(
        labels=[lang for lang, _ in top],
        data=[round(w / total * 100, 2) for _, w in top],
        colors=[color_for(lang) for lang, _ in top],
    )


def monthly_commits(commits_by_month: Mapping[str, int], months: Sequence[str]) -> TimeSeries:
    return TimeSeries(
        labels=list(months),
        data=[commits_by_month.get(month, 0) for month in months],
    )


def repository_topics(repos: Iterable[Repository]) -> Distribution:
    """Top topics across repositories; ties keep first-seen order."""
    counts: Counter[str] = Counter()
    for repo in repos:
        counts.update(repo.topics)
    top = sorted(counts.items(), key=lambda item: item[1], reverse=True)[:_TOP_TOPICS]
    return Distribution(
        labels=[topic for topic, _ in top],
        data=[count for _, count in top],
        colors=[hash_color(topic) for topic, _ in top],
    )


def contribution_types(event_counts: Mapping[str, int]) -> Distribution:
    return Distribution(
        labels=list(event_counts),
        data=list(event_counts.values()),
        colors=[hash_color(label) for label in event_counts],
    )
