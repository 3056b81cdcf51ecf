"""Search engine — unified query over every normalized entity."""

from ghinsight.engines.search.debounce import SearchDebouncer
from ghinsight.engines.search.engine import (
    category_counts,
    group_results,
    matches_condition,
    matches_query,
    project,
    relevance,
    search,
    sort_results,
)
from ghinsight.engines.search.history import MAX_HISTORY, QueryHistory
from ghinsight.engines.search.models import (
    RESULT_TYPES,
    FilterCondition,
    GroupHeader,
    SearchResultItem,
)

__all__ = [
    "MAX_HISTORY",
    "RESULT_TYPES",
    "FilterCondition",
    "GroupHeader",
    "QueryHistory",
    "SearchDebouncer",
    "SearchResultItem",
    "category_counts",
    "group_results",
    "matches_condition",
    "matches_query",
    "project",
    "relevance",
    "search",
    "sort_results",
]
