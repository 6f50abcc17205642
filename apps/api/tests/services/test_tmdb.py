from __future__ import annotations

from typing import List

import httpx
import pytest

from posterguess.services.cache import InMemoryCache
from posterguess.services.tmdb import (
    CatalogClient,
    ExternalIds,
    TMDBError,
    image_url,
    parse_item,
    reference_url,
)

POPULAR_TV = {
    "page": 3,
    "results": [
        {
            "id": 1396,
            "name": "Breaking Bad",
            "original_name": "Breaking Bad",
            "poster_path": "/bb.jpg",
            "first_air_date": "2008-01-20",
            "original_language": "en",
            "overview": "...",
        },
        {"id": 2, "name": "No poster", "poster_path": None, "first_air_date": "2001-01-01"},
        {
            "id": 3,
            "name": "Dix pour cent",
            "original_name": "Dix pour cent",
            "poster_path": "/dix.jpg",
            "first_air_date": "2015-10-14",
            "original_language": "fr",
        },
    ],
}


def make_client(requests: List[httpx.Request], token: str | None = "stored-token", **kwargs) -> CatalogClient:
    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        path = request.url.path
        if path.endswith("/tv/popular"):
            return httpx.Response(200, json=POPULAR_TV)
        if path.endswith("/movie/popular"):
            if request.headers.get("Authorization") != "Bearer good":
                return httpx.Response(401, json={"status_message": "Invalid API key"})
            return httpx.Response(200, json={"page": 1, "results": []})
        if path.endswith("/movie/27205/external_ids"):
            return httpx.Response(200, json={"id": 27205, "imdb_id": "tt1375666"})
        if path.endswith("/movie/27205"):
            return httpx.Response(
                200,
                json={
                    "id": 27205,
                    "title": "Inception",
                    "original_title": "Inception",
                    "poster_path": "/inception.jpg",
                    "release_date": "2010-07-15",
                    "original_language": "en",
                },
            )
        if path.endswith("/search/movie"):
            results = [{"id": i, "title": f"Result {i}", "release_date": "2000-01-01"} for i in range(8)]
            return httpx.Response(200, json={"page": 1, "results": results})
        return httpx.Response(404, json={"status_message": "not found"})

    return CatalogClient(
        lambda: token,
        base_url="https://tmdb.test/3",
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


def test_tv_records_are_mapped_to_the_canonical_shape() -> None:
    item = parse_item("tv", POPULAR_TV["results"][0])
    assert item.title == "Breaking Bad"
    assert item.original_title == "Breaking Bad"
    assert item.release_date == "2008-01-20"
    assert item.year == "2008"
    assert item.media_kind == "tv"


def test_missing_original_title_falls_back_to_title() -> None:
    item = parse_item("movie", {"id": 1, "title": "Heat"})
    assert item.original_title == "Heat"
    assert item.year == ""


def test_urls() -> None:
    assert image_url("/a.jpg", "https://img.test/original") == "https://img.test/original/a.jpg"
    assert image_url(None) == ""
    assert reference_url(ExternalIds(id=1, imdb_id="tt1")) == "https://www.imdb.com/title/tt1/"
    assert reference_url(ExternalIds(id=1, imdb_id=None)) == ""


@pytest.mark.asyncio
async def test_popular_page_filters_posters_and_sends_auth_and_language() -> None:
    requests: List[httpx.Request] = []
    client = make_client(requests)

    items = await client.fetch_popular_page("tv", 3)

    assert [item.id for item in items] == [1396, 3]
    request = requests[0]
    assert request.headers["Authorization"] == "Bearer stored-token"
    assert request.url.params["language"] == "fr-FR"
    assert request.url.params["page"] == "3"


@pytest.mark.asyncio
async def test_popular_pages_are_cached() -> None:
    requests: List[httpx.Request] = []
    client = make_client(requests, cache=InMemoryCache())

    first = await client.fetch_popular_page("tv", 3)
    second = await client.fetch_popular_page("tv", 3)

    assert first == second
    assert len(requests) == 1


@pytest.mark.asyncio
async def test_fetch_item_and_external_ids() -> None:
    client = make_client([])
    item = await client.fetch_item("movie", 27205)
    assert item.title == "Inception"
    ids = await client.fetch_external_ids("movie", 27205)
    assert ids.imdb_id == "tt1375666"


@pytest.mark.asyncio
async def test_http_failures_become_tmdb_errors() -> None:
    client = make_client([])
    with pytest.raises(TMDBError):
        await client.fetch_item("movie", 1)


@pytest.mark.asyncio
async def test_search_limits_results_and_skips_short_queries() -> None:
    requests: List[httpx.Request] = []
    client = make_client(requests)

    assert await client.search("movie", "a") == []
    assert requests == []

    results = await client.search("movie", "res")
    assert len(results) == 5
    assert requests[0].url.params["query"] == "res"


@pytest.mark.asyncio
async def test_validate_token_uses_the_candidate_token() -> None:
    requests: List[httpx.Request] = []
    client = make_client(requests, token=None)

    assert await client.validate_token("good") is True
    assert await client.validate_token("bad") is False
    assert requests[-1].headers["Authorization"] == "Bearer bad"
