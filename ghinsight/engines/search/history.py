"""Recent search history — most recent first, de-duplicated, bounded."""

from __future__ import annotations

import json

import structlog

log = structlog.get_logger("ghinsight.engine")

MAX_HISTORY = 10


class QueryHistory:
    """Ordered recent queries, persisted by the caller as an opaque string."""

    def __init__(self, entries: list[str] | None = None, *, limit: int = MAX_HISTORY) -> None:
        self._limit = limit
        self._entries: list[str] = []
        for entry in reversed(entries or []):
            self.add(entry)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(self._entries)

    @property
    def entries(self) -> list[str]:
        return list(self._entries)

    def add(self, query: str) -> None:
        """Move *query* to the front; blank queries are ignored."""
        query = query.strip()
        if not query:
            return
        self._entries = [query] + [e for e in self._entries if e != query]
        del self._entries[self._limit :]

    def clear(self) -> None:
        self._entries.clear()

    def matching(self, text: str, limit: int = 5) -> list[str]:
        """Recent queries containing *text* (case-insensitive), for suggestions."""
        needle = text.strip().casefold()
        hits = [e for e in self._entries if needle in e.casefold()]
        return hits[:limit]

    def dumps(self) -> str:
        return json.dumps(self._entries)

    @classmethod
    def loads(cls, raw: str | None, *, limit: int = MAX_HISTORY) -> QueryHistory:
        """Restore from a persisted string; anything unreadable yields an empty history."""
        if not raw:
            return cls(limit=limit)
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            log.warning("search.history_unreadable", error=str(exc))
            return cls(limit=limit)
        if not isinstance(data, list):
            log.warning("search.history_unreadable", error="not a list")
            return cls(limit=limit)
        return cls([str(e) for e in data if isinstance(e, str)], limit=limit)
