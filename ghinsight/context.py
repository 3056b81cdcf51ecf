"""Dashboard context — the explicit state handed to every pipeline stage."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from ghinsight.core.config import Settings
from ghinsight.engines.analytics.models import AnalyticsSnapshot
from ghinsight.engines.normalizer.models import NormalizedEntities
from ghinsight.engines.search.history import QueryHistory


@dataclass
class DashboardContext:
    """Current credential plus the last complete refresh.

    ``entities`` and ``analytics`` are only ever swapped together through
    :meth:`replace`, so readers see either the previous refresh or the new
    one, never a mix.
    """

    token: str
    settings: Settings = field(default_factory=Settings)
    profile: dict[str, Any] = field(default_factory=dict)
    entities: NormalizedEntities = field(default_factory=NormalizedEntities)
    analytics: AnalyticsSnapshot | None = None
    query_history: QueryHistory = field(default_factory=QueryHistory)
    refreshed_at: datetime | None = None

    @property
    def login(self) -> str | None:
        return self.entities.login or self.profile.get("login")

    @property
    def is_loaded(self) -> bool:
        return self.refreshed_at is not None

    def replace(
        self,
        *,
        profile: dict[str, Any],
        entities: NormalizedEntities,
        analytics: AnalyticsSnapshot,
        refreshed_at: datetime,
    ) -> None:
        """Swap in a complete refresh in one step (no await in between)."""
        self.profile = profile
        self.entities = entities
        self.analytics = analytics
        self.refreshed_at = refreshed_at

    @classmethod
    def restore(
        cls,
        token: str,
        *,
        history: str | None = None,
        settings: Settings | None = None,
    ) -> DashboardContext:
        """Build a context from a cached credential and persisted search history."""
        return cls(
            token=token,
            settings=settings or Settings(),
            query_history=QueryHistory.loads(history),
        )
