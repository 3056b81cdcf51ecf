"""RefreshRunner — fetch → normalize → aggregate, then swap into the context."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import structlog

from ghinsight.context import DashboardContext
from ghinsight.core.dates import utcnow
from ghinsight.engines.analytics.aggregator import generate_analytics
from ghinsight.engines.fetcher.github_client import GitHubClient
from ghinsight.engines.fetcher.orchestrator import fetch_all
from ghinsight.engines.normalizer.normalizer import normalize_bundle
from ghinsight.engines.search.debounce import SearchDebouncer
from ghinsight.engines.search.engine import search
from ghinsight.engines.search.models import (
    Category,
    FilterCondition,
    GroupHeader,
    GroupKey,
    SearchResultItem,
    SortKey,
    TimeRange,
)

log = structlog.get_logger("ghinsight.engine")


@dataclass
class RefreshResult:
    """Summary of a single refresh cycle."""

    login: str | None = None
    counts: dict[str, int] = field(default_factory=dict)
    failures: list[str] = field(default_factory=list)  # resources that degraded to []
    mapping_errors: list[str] = field(default_factory=list)
    refreshed_at: datetime | None = None

    @property
    def degraded(self) -> bool:
        return bool(self.failures or self.mapping_errors)


class RefreshRunner:
    """Orchestration layer: pure engines → one atomic context update."""

    async def run(
        self,
        ctx: DashboardContext,
        client: GitHubClient | None = None,
        *,
        now: datetime | None = None,
    ) -> RefreshResult:
        """Run one full refresh for the context's credential.

        1. ``fetch_all`` the raw bundle (``AuthError`` propagates)
        2. ``normalize_bundle`` into canonical entities
        3. ``generate_analytics`` over the new entity set
        4. ``ctx.replace`` everything in one step

        On any exception the context keeps its previous state.
        """
        now = now or utcnow()
        bundle = await fetch_all(ctx.token, client=client, settings=ctx.settings)
        entities = normalize_bundle(bundle, now=now)
        analytics = generate_analytics(entities, now=now)

        ctx.replace(
            profile=bundle.profile,
            entities=entities,
            analytics=analytics,
            refreshed_at=now,
        )

        result = RefreshResult(
            login=entities.login,
            counts=entities.counts(),
            failures=[f.resource for f in bundle.failures],
            mapping_errors=[str(e) for e in entities.errors],
            refreshed_at=now,
        )
        log.info(
            "refresh.complete",
            login=result.login,
            failures=result.failures,
            mapping_errors=len(result.mapping_errors),
        )
        return result

    def search(
        self,
        ctx: DashboardContext,
        query: str = "",
        filters: Sequence[FilterCondition] = (),
        category: Category = "all",
        sort: SortKey = "relevance",
        group_by: GroupKey = "none",
        *,
        time_range: TimeRange = "all",
        now: datetime | None = None,
    ) -> list[SearchResultItem | GroupHeader]:
        """Query the context's current entity set and record *query* in history."""
        results = search(
            ctx.entities,
            query,
            filters,
            category,
            sort,
            group_by,
            time_range=time_range,
            default_owner=ctx.login,
            now=now,
        )
        ctx.query_history.add(query)
        return results

    def debouncer(
        self,
        ctx: DashboardContext,
        *,
        on_result: Callable[[Any], None] | None = None,
    ) -> SearchDebouncer:
        """Debounced :meth:`search` against *ctx*, quiet period from its settings."""
        return SearchDebouncer(
            lambda **params: self.search(ctx, **params),
            ctx.settings.search_debounce,
            on_result=on_result,
        )
