"""Analytics engine — chart-ready series from normalized entities."""

from ghinsight.core.dates import trailing_months
from ghinsight.engines.analytics.aggregator import generate_analytics
from ghinsight.engines.analytics.colors import LANGUAGE_COLORS, color_for, hash_color
from ghinsight.engines.analytics.models import (
    ActivitySeries,
    AnalyticsSnapshot,
    Distribution,
    RepoTypeDistribution,
    TimeSeries,
)

__all__ = [
    "LANGUAGE_COLORS",
    "ActivitySeries",
    "AnalyticsSnapshot",
    "Distribution",
    "RepoTypeDistribution",
    "TimeSeries",
    "color_for",
    "generate_analytics",
    "hash_color",
    "trailing_months",
]
