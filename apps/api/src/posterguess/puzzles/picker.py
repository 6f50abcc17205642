from __future__ import annotations

import math
import random
from dataclasses import dataclass
from datetime import date
from typing import Dict, Optional, Sequence

from .models import LanguageFilter, PuzzleItem

CATALOG_PAGE_COUNT = 50
PAGE_SEED_SHIFT = 9999

MODE_OFFSETS: Dict[str, int] = {
    "daily": 0,
    "daily-hard": 12345,
}

PREFERRED_LANGUAGES = ("fr", "en")


def pseudo_random(seed: int) -> int:
    """Reproducible six-digit integer derived from ``seed``."""

    x = math.sin(seed) * 10000
    return math.floor((x - math.floor(x)) * 1_000_000)


def seed_base(day: date, mode_offset: int = 0) -> int:
    return day.year * 10000 + day.month * 100 + day.day + mode_offset


@dataclass(frozen=True)
class DailySeed:
    seed: int
    page: int

    def index_for(self, item_count: int) -> int:
        if item_count <= 0:
            raise ValueError("Cannot pick from an empty catalog page")
        return pseudo_random(self.seed) % item_count


def daily_seed(day: date, mode_offset: int = 0) -> DailySeed:
    base = seed_base(day, mode_offset)
    page = pseudo_random(base + PAGE_SEED_SHIFT) % CATALOG_PAGE_COUNT + 1
    return DailySeed(seed=base, page=page)


def pick_daily_seed(day: date, mode_offset: int, item_count: int) -> tuple[int, int]:
    """Return the ``(page, index)`` pair of the daily puzzle for ``day``."""

    seed = daily_seed(day, mode_offset)
    return seed.page, seed.index_for(item_count)


def random_page(rng: random.Random) -> int:
    return rng.randint(1, CATALOG_PAGE_COUNT)


def choose_random_item(
    items: Sequence[PuzzleItem],
    rng: random.Random,
    *,
    exclude_ids: Sequence[int] = (),
    language_filter: LanguageFilter = "all",
) -> Optional[PuzzleItem]:
    """Pick an item for infinite play.

    Recently seen ids are skipped unless that empties the page. With the
    ``fr_en`` filter a pick in another language is swapped for the first
    French or English candidate, if there is one.
    """

    source = [item for item in items if item.poster_path]
    if not source:
        return None
    excluded = set(exclude_ids)
    candidates = [item for item in source if item.id not in excluded] if excluded else source
    if not candidates:
        candidates = source
    picked = candidates[rng.randrange(len(candidates))]

    if language_filter == "fr_en" and picked.original_language not in PREFERRED_LANGUAGES:
        for candidate in candidates:
            if candidate.original_language in PREFERRED_LANGUAGES:
                return candidate
    return picked
