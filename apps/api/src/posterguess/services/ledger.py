from __future__ import annotations

import json
import logging
from datetime import date
from typing import List, Optional

from pydantic import TypeAdapter, ValidationError

from ..puzzles.models import (
    DailyOutcome,
    GameSettings,
    MediaKind,
    SeenEntry,
    StreakRecord,
)
from .storage import KeyValueStore

logger = logging.getLogger(__name__)

DAILY_OUTCOME_KEY_TEMPLATE = "posterguess:{mode}:{outcome}:{media_kind}:{day}"
DAILY_ITEM_KEY_TEMPLATE = "posterguess:{mode}:item:{media_kind}:{day}"
STREAK_CURRENT_KEY_TEMPLATE = "posterguess:{mode}:streak:current:{media_kind}"
STREAK_TODAY_KEY_TEMPLATE = "posterguess:{mode}:streak:today:{media_kind}:{day}"
STREAK_ALL_TIME_KEY_TEMPLATE = "posterguess:{mode}:streak:all-time:{media_kind}"
SEEN_KEY_TEMPLATE = "posterguess:seen:{media_kind}"
MEDIA_KIND_KEY = "posterguess:media-kind"
TOKEN_KEY = "posterguess:tmdb-token"
REMEMBER_SEEN_KEY = "posterguess:settings:remember-seen"
LANGUAGE_FILTER_KEY = "posterguess:settings:language-filter"

_SEEN_ADAPTER = TypeAdapter(List[SeenEntry])


def day_key(day: date) -> str:
    return day.strftime("%Y%m%d")


def format_day_key(key: str) -> str:
    """Render a ``YYYYMMDD`` key as ``DD/MM/YY``."""

    return f"{key[6:8]}/{key[4:6]}/{key[2:4]}"


def daily_outcome_key(mode: str, media_kind: MediaKind, day: date, outcome: DailyOutcome) -> str:
    return DAILY_OUTCOME_KEY_TEMPLATE.format(
        mode=mode, outcome=outcome, media_kind=media_kind, day=day_key(day)
    )


def daily_item_key(mode: str, media_kind: MediaKind, day: date) -> str:
    return DAILY_ITEM_KEY_TEMPLATE.format(mode=mode, media_kind=media_kind, day=day_key(day))


def streak_keys(mode: str, media_kind: MediaKind, day: date) -> tuple[str, str, str]:
    """Keys of the current, today-best and all-time-best streak counters."""

    return (
        STREAK_CURRENT_KEY_TEMPLATE.format(mode=mode, media_kind=media_kind),
        STREAK_TODAY_KEY_TEMPLATE.format(mode=mode, media_kind=media_kind, day=day_key(day)),
        STREAK_ALL_TIME_KEY_TEMPLATE.format(mode=mode, media_kind=media_kind),
    )


def seen_key(media_kind: MediaKind) -> str:
    return SEEN_KEY_TEMPLATE.format(media_kind=media_kind)


def _parse_count(raw: Optional[str]) -> int:
    if raw is None:
        return 0
    try:
        return max(0, int(raw))
    except ValueError:
        return 0


class ProgressLedger:
    """Persisted progress: daily outcomes, streaks, seen items and preferences."""

    def __init__(self, store: KeyValueStore) -> None:
        self.store = store

    # Daily outcomes

    def daily_outcome(self, mode: str, media_kind: MediaKind, day: date) -> Optional[DailyOutcome]:
        if self.store.get(daily_outcome_key(mode, media_kind, day, "won")) == "true":
            return "won"
        if self.store.get(daily_outcome_key(mode, media_kind, day, "lost")) == "true":
            return "lost"
        return None

    def mark_daily_won(self, mode: str, media_kind: MediaKind, day: date) -> None:
        self.store.set(daily_outcome_key(mode, media_kind, day, "won"), "true")
        self.store.remove(daily_outcome_key(mode, media_kind, day, "lost"))

    def mark_daily_lost(self, mode: str, media_kind: MediaKind, day: date) -> None:
        self.store.set(daily_outcome_key(mode, media_kind, day, "lost"), "true")
        self.store.remove(daily_outcome_key(mode, media_kind, day, "won"))

    def daily_item_id(self, mode: str, media_kind: MediaKind, day: date) -> Optional[int]:
        raw = self.store.get(daily_item_key(mode, media_kind, day))
        if raw is None:
            return None
        try:
            return int(raw)
        except ValueError:
            return None

    def store_daily_item_id(self, mode: str, media_kind: MediaKind, day: date, item_id: int) -> None:
        self.store.set(daily_item_key(mode, media_kind, day), str(item_id))

    # Streaks

    def load_streak(self, mode: str, media_kind: MediaKind, day: date) -> StreakRecord:
        current_key, today_key, all_time_key = streak_keys(mode, media_kind, day)
        return StreakRecord(
            current=_parse_count(self.store.get(current_key)),
            today_best=_parse_count(self.store.get(today_key)),
            all_time_best=_parse_count(self.store.get(all_time_key)),
        )

    def store_streak(self, mode: str, media_kind: MediaKind, day: date, record: StreakRecord) -> None:
        current_key, today_key, all_time_key = streak_keys(mode, media_kind, day)
        self.store.set(current_key, str(record.current))
        self.store.set(today_key, str(record.today_best))
        self.store.set(all_time_key, str(record.all_time_best))

    # Seen-recently set

    def seen_recently(self, media_kind: MediaKind, now_ms: int) -> List[SeenEntry]:
        raw = self.store.get(seen_key(media_kind))
        if not raw:
            return []
        try:
            entries = _SEEN_ADAPTER.validate_python(json.loads(raw))
        except (ValueError, ValidationError) as exc:
            logger.warning("Ignoring corrupt seen list for %s: %s", media_kind, exc)
            return []
        return [entry for entry in entries if entry.expiry > now_ms]

    def seen_ids(self, media_kind: MediaKind, now_ms: int) -> List[int]:
        return [entry.movie_id for entry in self.seen_recently(media_kind, now_ms)]

    def add_seen(self, media_kind: MediaKind, item_id: int, now_ms: int, ttl_ms: int) -> None:
        entries = self.seen_recently(media_kind, now_ms)
        entries.append(SeenEntry(movie_id=item_id, expiry=now_ms + ttl_ms))
        payload = [entry.model_dump(by_alias=True) for entry in entries]
        self.store.set(seen_key(media_kind), json.dumps(payload))

    # Preferences

    def media_kind(self) -> MediaKind:
        return "tv" if self.store.get(MEDIA_KIND_KEY) == "tv" else "movie"

    def store_media_kind(self, media_kind: MediaKind) -> None:
        self.store.set(MEDIA_KIND_KEY, media_kind)

    def token(self) -> Optional[str]:
        raw = self.store.get(TOKEN_KEY)
        return raw.strip() if raw and raw.strip() else None

    def store_token(self, token: str) -> None:
        self.store.set(TOKEN_KEY, token)

    def load_settings(self) -> GameSettings:
        return GameSettings(
            remember_seen=self.store.get(REMEMBER_SEEN_KEY) != "false",
            language_filter=self.store.get(LANGUAGE_FILTER_KEY) or "all",
        )

    def store_settings(self, value: GameSettings) -> None:
        self.store.set(REMEMBER_SEEN_KEY, "true" if value.remember_seen else "false")
        self.store.set(LANGUAGE_FILTER_KEY, value.language_filter)

    def clear(self) -> None:
        self.store.clear()
