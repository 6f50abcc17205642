from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Generic, List, Optional, TypeVar

logger = logging.getLogger(__name__)

ResultT = TypeVar("ResultT")


class DebouncedSearch(Generic[ResultT]):
    """Debounced, switch-to-latest search dispatcher.

    Every new query restarts the quiet period. Once it elapses the query is
    skipped if it equals the last dispatched one; otherwise it supersedes the
    search in flight. Only the newest dispatched query's results ever reach
    ``on_results``.
    """

    def __init__(
        self,
        search: Callable[[str], Awaitable[List[ResultT]]],
        on_results: Callable[[List[ResultT]], None],
        *,
        debounce_seconds: float = 0.3,
    ) -> None:
        self._search = search
        self._on_results = on_results
        self.debounce_seconds = debounce_seconds
        self._timer: Optional[asyncio.Task[None]] = None
        self._in_flight: Optional[asyncio.Task[None]] = None
        self._generation = 0
        self._last_dispatched: Optional[str] = None

    def push(self, query: str) -> asyncio.Task[None]:
        _cancel(self._timer)
        self._timer = asyncio.create_task(self._debounce(query))
        return self._timer

    def cancel(self) -> None:
        _cancel(self._timer)
        _cancel(self._in_flight)
        self._timer = None
        self._in_flight = None

    def reset(self) -> None:
        self.cancel()
        self._last_dispatched = None

    async def _debounce(self, query: str) -> None:
        await asyncio.sleep(self.debounce_seconds)
        if query == self._last_dispatched:
            return
        self._last_dispatched = query
        _cancel(self._in_flight)
        self._generation += 1
        self._in_flight = asyncio.create_task(self._run(query, self._generation))

    async def _run(self, query: str, generation: int) -> None:
        try:
            results = await self._search(query)
        except Exception as exc:
            logger.warning("Suggestion search for %r failed: %s", query, exc)
            return
        if generation != self._generation:
            return
        self._on_results(results)

    async def wait(self) -> None:
        """Wait for the pending quiet period and the search it dispatched."""

        if self._timer is not None:
            await asyncio.gather(self._timer, return_exceptions=True)
        if self._in_flight is not None:
            await asyncio.gather(self._in_flight, return_exceptions=True)


def _cancel(task: Optional[asyncio.Task[None]]) -> None:
    if task is not None and not task.done():
        task.cancel()
