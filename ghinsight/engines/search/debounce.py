"""Debounced re-query — coalesce rapid input changes into one search."""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Callable
from typing import Any

import structlog

from ghinsight.core.config import Settings

log = structlog.get_logger("ghinsight.engine")


class SearchDebouncer:
    """Run *search_fn* once input has been quiet for *delay* seconds
    (default: ``Settings.search_debounce``).

    Every :meth:`submit` resets the quiet-period timer.  A computation that
    already started is never aborted, but its result is dropped if a newer
    submission arrived in the meantime; only the newest result is applied
    to :attr:`latest` (and passed to *on_result*).
    """

    def __init__(
        self,
        search_fn: Callable[..., Any],
        delay: float | None = None,
        *,
        on_result: Callable[[Any], None] | None = None,
    ) -> None:
        self._search_fn = search_fn
        self.delay = Settings().search_debounce if delay is None else delay
        self._on_result = on_result
        self._generation = 0
        self._waiting: asyncio.Task[None] | None = None
        self._tasks: set[asyncio.Task[None]] = set()
        self.latest: Any = None
        self.applied_generation = 0

    @property
    def pending(self) -> bool:
        return bool(self._tasks)

    def submit(self, **params: Any) -> asyncio.Task[None]:
        """Schedule a search with *params*, superseding any earlier submission."""
        self._generation += 1
        generation = self._generation
        if self._waiting is not None:
            self._waiting.cancel()
        task = asyncio.create_task(self._run(generation, params), name=f"search-{generation}")
        self._waiting = task
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def flush(self) -> Any:
        """Wait for every outstanding submission and return :attr:`latest`."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        return self.latest

    async def cancel(self) -> None:
        """Drop every outstanding submission without applying results."""
        self._generation += 1
        for task in list(self._tasks):
            task.cancel()
        await asyncio.gather(*list(self._tasks), return_exceptions=True)
        self._waiting = None

    async def _run(self, generation: int, params: dict[str, Any]) -> None:
        await asyncio.sleep(self.delay)
        if self._waiting is asyncio.current_task():
            self._waiting = None
        if generation != self._generation:
            return

        try:
            result = self._search_fn(**params)
            if inspect.isawaitable(result):
                result = await result
        except Exception:
            log.exception("search.failed", generation=generation)
            return

        if generation != self._generation:
            log.debug("search.result_discarded", generation=generation, current=self._generation)
            return
        self.latest = result
        self.applied_generation = generation
        if self._on_result is not None:
            self._on_result(result)
