from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional

import httpx
from pydantic import BaseModel, Field, ValidationError

from ..core.config import settings
from ..puzzles.models import MediaKind, PuzzleItem
from .cache import CATALOG_CACHE_PREFIX, CacheBackend

logger = logging.getLogger(__name__)

IMDB_TITLE_URL = "https://www.imdb.com/title/{imdb_id}/"


class TMDBError(RuntimeError):
    """Raised for any failed catalog request."""


class MovieResult(BaseModel):
    id: int
    title: str = ""
    poster_path: Optional[str] = None
    overview: Optional[str] = None
    release_date: Optional[str] = None
    original_language: Optional[str] = None
    original_title: Optional[str] = None


class TvResult(BaseModel):
    id: int
    name: str = ""
    poster_path: Optional[str] = None
    overview: Optional[str] = None
    first_air_date: Optional[str] = None
    original_language: Optional[str] = None
    original_name: Optional[str] = None


class ResultPage(BaseModel):
    page: int = 1
    results: List[Dict[str, Any]] = Field(default_factory=list)


class ExternalIds(BaseModel):
    id: int
    imdb_id: Optional[str] = None


def movie_to_item(movie: MovieResult) -> PuzzleItem:
    return PuzzleItem(
        id=movie.id,
        title=movie.title,
        original_title=movie.original_title or movie.title,
        poster_path=movie.poster_path,
        release_date=movie.release_date or "",
        media_kind="movie",
        original_language=movie.original_language,
        overview=movie.overview or "",
    )


def tv_to_item(show: TvResult) -> PuzzleItem:
    return PuzzleItem(
        id=show.id,
        title=show.name,
        original_title=show.original_name or show.name,
        poster_path=show.poster_path,
        release_date=show.first_air_date or "",
        media_kind="tv",
        original_language=show.original_language,
        overview=show.overview or "",
    )


def parse_item(kind: MediaKind, payload: Dict[str, Any]) -> PuzzleItem:
    if kind == "tv":
        return tv_to_item(TvResult.model_validate(payload))
    return movie_to_item(MovieResult.model_validate(payload))


def image_url(path: str | None, base: str | None = None) -> str:
    if not path:
        return ""
    return f"{base or settings.tmdb_image_base}{path}"


def reference_url(ids: ExternalIds) -> str:
    if not ids.imdb_id:
        return ""
    return IMDB_TITLE_URL.format(imdb_id=ids.imdb_id)


class CatalogClient:
    """Async client for the TMDB v3 endpoints used by the game."""

    def __init__(
        self,
        token_provider: Callable[[], Optional[str]],
        *,
        cache: CacheBackend | None = None,
        base_url: str | None = None,
        language: str | None = None,
        timeout: float | None = None,
        cache_ttl: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._token_provider = token_provider
        self._cache = cache
        self.base_url = (base_url or settings.tmdb_api_base).rstrip("/")
        self.language = language or settings.tmdb_language
        self.timeout = timeout if timeout is not None else settings.tmdb_timeout_seconds
        self.cache_ttl = cache_ttl if cache_ttl is not None else settings.catalog_cache_ttl_seconds
        self._transport = transport

    def _headers(self, token_override: str | None = None) -> Dict[str, str]:
        token = (token_override if token_override is not None else self._token_provider() or "").strip()
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def request(
        self,
        path: str,
        params: Dict[str, Any] | None = None,
        *,
        token: str | None = None,
    ) -> Dict[str, Any]:
        query = {"language": self.language}
        query.update(params or {})
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(
                    f"{self.base_url}{path}",
                    params=query,
                    headers=self._headers(token),
                )
                response.raise_for_status()
                payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise TMDBError(f"TMDB request to {path} failed: {exc}") from exc
        if not isinstance(payload, dict):
            raise TMDBError(f"Unexpected TMDB payload for {path}")
        return payload

    async def fetch_item(self, kind: MediaKind, item_id: int) -> PuzzleItem:
        payload = await self.request(f"/{kind}/{item_id}")
        try:
            return parse_item(kind, payload)
        except ValidationError as exc:
            raise TMDBError(f"Malformed {kind} record {item_id}") from exc

    async def _fetch_page_payload(self, kind: MediaKind, page: int) -> List[Dict[str, Any]]:
        payload = await self.request(f"/{kind}/popular", {"page": page})
        try:
            return ResultPage.model_validate(payload).results
        except ValidationError as exc:
            raise TMDBError(f"Malformed popular {kind} page {page}") from exc

    async def fetch_popular_page(self, kind: MediaKind, page: int) -> List[PuzzleItem]:
        """Return the items of a popular page that carry a poster."""

        async def creator() -> List[Dict[str, Any]]:
            return await self._fetch_page_payload(kind, page)

        if self._cache is not None:
            cache_key = f"{CATALOG_CACHE_PREFIX}:popular:{kind}:{self.language}:{page}"
            raw_items = await self._cache.remember(cache_key, self.cache_ttl, creator)
        else:
            raw_items = await creator()

        items: List[PuzzleItem] = []
        for raw in raw_items:
            try:
                item = parse_item(kind, raw)
            except ValidationError:
                logger.debug("Skipping malformed %s record on page %s", kind, page)
                continue
            if item.poster_path:
                items.append(item)
        return items

    async def search(self, kind: MediaKind, query: str, *, limit: int | None = None) -> List[PuzzleItem]:
        term = query or ""
        if len(term) < settings.suggestion_min_length:
            return []
        payload = await self.request(f"/search/{kind}", {"query": term, "page": 1})
        results = payload.get("results") or []
        items: List[PuzzleItem] = []
        for raw in results[: limit or settings.suggestion_limit]:
            try:
                items.append(parse_item(kind, raw))
            except ValidationError:
                continue
        return items

    async def fetch_external_ids(self, kind: MediaKind, item_id: int) -> ExternalIds:
        payload = await self.request(f"/{kind}/{item_id}/external_ids")
        try:
            return ExternalIds.model_validate(payload)
        except ValidationError as exc:
            raise TMDBError(f"Malformed external ids for {kind} {item_id}") from exc

    async def validate_token(self, token: str) -> bool:
        try:
            await self.request("/movie/popular", {"page": 1}, token=token)
        except TMDBError as exc:
            logger.info("TMDB rejected the submitted token: %s", exc)
            return False
        return True
