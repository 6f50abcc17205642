from __future__ import annotations

import sys
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from posterguess.core import database as db_module  # noqa: E402
from posterguess.db.models import Base  # noqa: E402
from posterguess.puzzles import engine as engine_module  # noqa: E402
from posterguess.puzzles.models import MediaKind, PuzzleItem  # noqa: E402
from posterguess.services import cache as cache_module  # noqa: E402
from posterguess.services import storage as storage_module  # noqa: E402
from posterguess.services.tmdb import ExternalIds, TMDBError  # noqa: E402


@pytest.fixture(autouse=True)
def setup_test_database():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    session_factory = sessionmaker(engine, expire_on_commit=False)

    original_engine = db_module._engine
    original_factory = db_module._session_factory
    db_module._engine = engine
    db_module._session_factory = session_factory
    storage_module.reset_store()
    cache_module.reset_cache()
    engine_module.reset_game_session()

    try:
        yield
    finally:
        db_module._engine = original_engine
        db_module._session_factory = original_factory
        storage_module.reset_store()
        cache_module.reset_cache()
        engine_module.reset_game_session()
        engine.dispose()


def make_item(
    item_id: int,
    title: str,
    *,
    original_title: str = "",
    release_date: str = "2010-07-14",
    media_kind: MediaKind = "movie",
    original_language: Optional[str] = "en",
    poster_path: Optional[str] = "/poster.jpg",
) -> PuzzleItem:
    return PuzzleItem(
        id=item_id,
        title=title,
        original_title=original_title or title,
        poster_path=poster_path,
        release_date=release_date,
        media_kind=media_kind,
        original_language=original_language,
    )


class FakeCatalog:
    """In-memory stand-in for the TMDB client."""

    def __init__(self, pages: Optional[Dict[int, List[PuzzleItem]]] = None) -> None:
        self.pages: Dict[int, List[PuzzleItem]] = pages or {}
        self.items: Dict[int, PuzzleItem] = {
            item.id: item for page in self.pages.values() for item in page
        }
        self.imdb_ids: Dict[int, str] = {}
        self.search_results: List[PuzzleItem] = []
        self.fail_pages = False
        self.fail_items = False
        self.fail_lookups = False
        self.valid_tokens: set[str] = {"good-token"}
        self.page_requests: List[int] = []
        self.item_requests: List[int] = []

    async def fetch_item(self, kind: MediaKind, item_id: int) -> PuzzleItem:
        self.item_requests.append(item_id)
        if self.fail_items or item_id not in self.items:
            raise TMDBError(f"{kind} {item_id} not found")
        return self.items[item_id]

    async def fetch_popular_page(self, kind: MediaKind, page: int) -> List[PuzzleItem]:
        self.page_requests.append(page)
        if self.fail_pages:
            raise TMDBError("catalog down")
        if self.pages and page not in self.pages:
            return list(next(iter(self.pages.values())))
        return list(self.pages.get(page, []))

    async def search(self, kind: MediaKind, query: str, *, limit: int | None = None) -> List[PuzzleItem]:
        return list(self.search_results)

    async def fetch_external_ids(self, kind: MediaKind, item_id: int) -> ExternalIds:
        if self.fail_lookups:
            raise TMDBError("lookup failed")
        return ExternalIds(id=item_id, imdb_id=self.imdb_ids.get(item_id))

    async def validate_token(self, token: str) -> bool:
        return token in self.valid_tokens


class FixedClock:
    def __init__(self, moment: datetime) -> None:
        self.moment = moment

    def __call__(self) -> datetime:
        return self.moment
