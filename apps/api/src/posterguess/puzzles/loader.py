from __future__ import annotations

import logging
import random
from datetime import date
from typing import List, Protocol, Sequence

from ..services.ledger import ProgressLedger
from ..services.tmdb import ExternalIds, TMDBError
from .models import LanguageFilter, MediaKind, PuzzleItem
from .picker import MODE_OFFSETS, choose_random_item, daily_seed, random_page

logger = logging.getLogger(__name__)


class Catalog(Protocol):
    async def fetch_item(self, kind: MediaKind, item_id: int) -> PuzzleItem: ...

    async def fetch_popular_page(self, kind: MediaKind, page: int) -> List[PuzzleItem]: ...

    async def search(self, kind: MediaKind, query: str, *, limit: int | None = None) -> List[PuzzleItem]: ...

    async def fetch_external_ids(self, kind: MediaKind, item_id: int) -> ExternalIds: ...

    async def validate_token(self, token: str) -> bool: ...


class CatalogUnavailableError(Exception):
    """Raised when no puzzle can be drawn from the catalog."""

    def __init__(self, message: str, *, status_code: int = 502) -> None:
        super().__init__(message)
        self.status_code = status_code


async def pick_daily_item(
    catalog: Catalog,
    ledger: ProgressLedger,
    mode: str,
    media_kind: MediaKind,
    day: date,
) -> PuzzleItem:
    seed = daily_seed(day, MODE_OFFSETS[mode])
    try:
        items = await catalog.fetch_popular_page(media_kind, seed.page)
    except TMDBError as exc:
        raise CatalogUnavailableError(f"Catalog page {seed.page} could not be fetched") from exc
    if not items:
        raise CatalogUnavailableError(f"No {media_kind} available for daily selection")
    picked = items[seed.index_for(len(items))]
    ledger.store_daily_item_id(mode, media_kind, day, picked.id)
    return picked


async def load_daily_item(
    catalog: Catalog,
    ledger: ProgressLedger,
    mode: str,
    media_kind: MediaKind,
    day: date,
) -> PuzzleItem:
    """Resolve the daily puzzle, preferring the id already picked for ``day``."""

    stored_id = ledger.daily_item_id(mode, media_kind, day)
    if stored_id is not None:
        try:
            return await catalog.fetch_item(media_kind, stored_id)
        except TMDBError as exc:
            logger.info("Stored daily %s %s is stale, picking again: %s", media_kind, stored_id, exc)
    return await pick_daily_item(catalog, ledger, mode, media_kind, day)


async def load_random_item(
    catalog: Catalog,
    media_kind: MediaKind,
    rng: random.Random,
    *,
    exclude_ids: Sequence[int] = (),
    language_filter: LanguageFilter = "all",
) -> PuzzleItem:
    page = random_page(rng)
    try:
        items = await catalog.fetch_popular_page(media_kind, page)
    except TMDBError as exc:
        raise CatalogUnavailableError(f"Catalog page {page} could not be fetched") from exc
    picked = choose_random_item(
        items,
        rng,
        exclude_ids=exclude_ids,
        language_filter=language_filter,
    )
    if picked is None:
        raise CatalogUnavailableError(f"No {media_kind} available on page {page}")
    return picked
