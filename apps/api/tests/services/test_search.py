from __future__ import annotations

import asyncio
from typing import List

import pytest

from posterguess.services.search import DebouncedSearch


class Recorder:
    def __init__(self, delays: dict[str, float] | None = None) -> None:
        self.dispatched: List[str] = []
        self.applied: List[List[str]] = []
        self.delays = delays or {}

    async def search(self, query: str) -> List[str]:
        self.dispatched.append(query)
        await asyncio.sleep(self.delays.get(query, 0))
        return [f"{query}-result"]

    def apply(self, results: List[str]) -> None:
        self.applied.append(results)


@pytest.mark.asyncio
async def test_rapid_queries_are_debounced_to_the_last_one() -> None:
    recorder = Recorder()
    search = DebouncedSearch(recorder.search, recorder.apply, debounce_seconds=0.02)

    for term in ("i", "in", "inc", "ince"):
        search.push(term)
    await search.wait()

    assert recorder.dispatched == ["ince"]
    assert recorder.applied == [["ince-result"]]


@pytest.mark.asyncio
async def test_identical_consecutive_query_is_not_dispatched_twice() -> None:
    recorder = Recorder()
    search = DebouncedSearch(recorder.search, recorder.apply, debounce_seconds=0.01)

    search.push("heat")
    await search.wait()
    search.push("heat")
    await search.wait()

    assert recorder.dispatched == ["heat"]
    assert len(recorder.applied) == 1


@pytest.mark.asyncio
async def test_in_flight_result_is_discarded_when_superseded() -> None:
    recorder = Recorder(delays={"slow": 0.2})
    search = DebouncedSearch(recorder.search, recorder.apply, debounce_seconds=0.01)

    search.push("slow")
    await asyncio.sleep(0.05)
    assert recorder.dispatched == ["slow"]

    search.push("fast")
    await search.wait()
    await asyncio.sleep(0.25)

    assert recorder.dispatched == ["slow", "fast"]
    assert recorder.applied == [["fast-result"]]


@pytest.mark.asyncio
async def test_failed_search_does_not_apply_results() -> None:
    applied: list = []

    async def failing(query: str) -> list:
        raise RuntimeError("boom")

    search = DebouncedSearch(failing, applied.append, debounce_seconds=0)
    search.push("x")
    await search.wait()
    assert applied == []


@pytest.mark.asyncio
async def test_returning_to_the_in_flight_query_keeps_its_results() -> None:
    recorder = Recorder(delays={"ab": 0.1})
    search = DebouncedSearch(recorder.search, recorder.apply, debounce_seconds=0.02)

    search.push("ab")
    await asyncio.sleep(0.05)
    assert recorder.dispatched == ["ab"]

    search.push("abc")
    search.push("ab")
    await search.wait()

    assert recorder.dispatched == ["ab"]
    assert recorder.applied == [["ab-result"]]


@pytest.mark.asyncio
async def test_reset_allows_the_same_query_again() -> None:
    recorder = Recorder()
    search = DebouncedSearch(recorder.search, recorder.apply, debounce_seconds=0)

    search.push("heat")
    await search.wait()
    search.reset()
    search.push("heat")
    await search.wait()

    assert recorder.dispatched == ["heat", "heat"]
