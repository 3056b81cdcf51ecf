"""Analytics snapshot schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class TimeSeries(BaseModel):
    labels: list[str]
    data: list[int]


class ActivitySeries(BaseModel):
    """PR and issue counts over the same fixed buckets."""

    labels: list[str]
    pr_data: list[int]
    issue_data: list[int]


class Distribution(BaseModel):
    labels: list[str]
    data: list[int | float]
    colors: list[str]


class RepoTypeDistribution(BaseModel):
    visibility: Distribution  # Public / Private
    origin: Distribution  # Original / Forked


class AnalyticsSnapshot(BaseModel):
    """Every derived series, recomputed from one normalized entity set."""

    generated_at: datetime
    pr_timeline: TimeSeries
    issue_timeline: TimeSeries
    day_of_week_activity: ActivitySeries
    time_of_day: ActivitySeries
    pr_state_distribution: Distribution
    repo_type_distribution: RepoTypeDistribution
    language_stats: Distribution
    monthly_commits: TimeSeries
    repository_topics: Distribution
    contribution_types: Distribution
