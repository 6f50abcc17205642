from __future__ import annotations

import asyncio
import logging
import random
from datetime import date, datetime
from typing import Callable, Iterable, List, Optional

from ..core.config import settings
from ..services.cache import CacheBackend, get_cache
from ..services.ledger import ProgressLedger, day_key, format_day_key
from ..services.search import DebouncedSearch
from ..services.storage import get_store
from ..services.tmdb import CatalogClient, TMDBError, reference_url
from . import transitions
from .evaluator import evaluate_guess
from .loader import Catalog, CatalogUnavailableError, load_daily_item, load_random_item
from .models import (
    GameSettings,
    LanguageFilter,
    MediaKind,
    Mode,
    PuzzleItem,
    SessionState,
    StreakRecord,
    WrongGuess,
    is_daily,
    is_infinite,
)
from .normalizer import extract_guess
from .transitions import SKIPPED_LABEL, Transition, TransitionEffect

logger = logging.getLogger(__name__)

EMPTY_TOKEN_MESSAGE = "Veuillez coller une clé API valide."
REJECTED_TOKEN_MESSAGE = "Clé invalide ou refusée par TMDB."


class InvalidActionError(Exception):
    """Raised when an operation is not allowed in the current session state."""

    def __init__(self, message: str, *, status_code: int = 409) -> None:
        super().__init__(message)
        self.status_code = status_code


class GameSession:
    """Single-player game session driving the poster puzzle lifecycle.

    State lives in an immutable :class:`SessionState`; each operation computes
    the next state through :mod:`.transitions` and then performs the
    persistence and lookup effects it asks for. Operations are serialized, so
    a new transition never starts before the previous one finished.
    """

    def __init__(
        self,
        catalog: Catalog,
        ledger: ProgressLedger,
        *,
        cache: Optional[CacheBackend] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], datetime] = datetime.now,
        seen_ttl_ms: Optional[int] = None,
        debounce_seconds: Optional[float] = None,
    ) -> None:
        self.catalog = catalog
        self.ledger = ledger
        self.cache = cache
        self.rng = rng or random.Random()
        self.clock = clock
        self.seen_ttl_ms = (
            seen_ttl_ms if seen_ttl_ms is not None else settings.seen_ttl_hours * 3_600_000
        )
        self._state = SessionState()
        self._lock = asyncio.Lock()
        self._streak_day: Optional[date] = None
        self._started = False
        self.search = DebouncedSearch(
            self._search_suggestions,
            self._apply_suggestions,
            debounce_seconds=(
                debounce_seconds
                if debounce_seconds is not None
                else settings.search_debounce_ms / 1000
            ),
        )

    @property
    def state(self) -> SessionState:
        return self._state

    def _today(self) -> date:
        return self.clock().date()

    def _now_ms(self) -> int:
        return int(self.clock().timestamp() * 1000)

    def _completed_date(self) -> str:
        return format_day_key(day_key(self._today()))

    def _update(self, **changes) -> SessionState:
        self._state = self._state.model_copy(update=changes)
        return self._state

    def _rebase_streak(self) -> SessionState:
        """Move an infinite streak onto today's best once the day has rolled over."""

        state = self._state
        today = self._today()
        if not is_infinite(state.mode) or self._streak_day in (None, today):
            return state
        stored = self.ledger.load_streak(state.mode, state.media_kind, today)
        self._streak_day = today
        return self._update(streak=state.streak.model_copy(update={"today_best": stored.today_best}))

    # Startup and credentials

    async def start(self) -> SessionState:
        async with self._lock:
            self._update(
                media_kind=self.ledger.media_kind(),
                settings=self.ledger.load_settings(),
            )
            if not self.ledger.token() and not settings.tmdb_token:
                return self._update(needs_token=True)
            await self._initialize()
            return self._state

    async def _initialize(self) -> None:
        if self._started:
            return
        self._started = True
        self._update(needs_token=False)
        await self._load_puzzle()

    async def submit_token(self, token: str) -> bool:
        async with self._lock:
            candidate = token.strip()
            if not candidate:
                self._update(token_error=EMPTY_TOKEN_MESSAGE)
                return False
            self._update(token_error="")
            if not await self.catalog.validate_token(candidate):
                self._update(token_error=REJECTED_TOKEN_MESSAGE)
                return False
            self.ledger.store_token(candidate)
            await self._initialize()
            return True

    # Puzzle loading

    async def _load_puzzle(self) -> None:
        state = self._state
        streak = StreakRecord()
        if is_infinite(state.mode):
            streak = self.ledger.load_streak(state.mode, state.media_kind, self._today())
            self._streak_day = self._today()
        self._state = transitions.begin_loading(state, streak=streak)
        self.search.reset()

        if is_daily(self._state.mode):
            await self._load_daily()
        else:
            await self._load_infinite()

    async def _load_daily(self) -> None:
        mode, media_kind = self._state.mode, self._state.media_kind
        day = self._today()
        outcome = self.ledger.daily_outcome(mode, media_kind, day)
        completed_date = format_day_key(day_key(day)) if outcome else ""
        if outcome is not None:
            self._state = transitions.outcome_restored(self._state, outcome, completed_date)
        try:
            item = await load_daily_item(self.catalog, self.ledger, mode, media_kind, day)
        except CatalogUnavailableError as exc:
            if outcome is not None:
                logger.warning(
                    "Daily %s for %s already %s, poster unavailable: %s", media_kind, mode, outcome, exc
                )
                self._update(error=str(exc))
                return
            logger.exception("Failed to load daily %s for %s", media_kind, mode)
            self._state = transitions.load_failed(self._state, str(exc))
            raise
        transition = transitions.puzzle_loaded(
            self._state, item, self.rng, outcome=outcome, completed_date=completed_date
        )
        logger.info("%s %s: %s", mode, media_kind, item.title)
        await self._apply(transition)

    async def _load_infinite(self) -> None:
        state = self._state
        exclude: List[int] = []
        if state.settings.remember_seen:
            exclude = self.ledger.seen_ids(state.media_kind, self._now_ms())
        try:
            item = await load_random_item(
                self.catalog,
                state.media_kind,
                self.rng,
                exclude_ids=exclude,
                language_filter=state.settings.language_filter,
            )
        except CatalogUnavailableError as exc:
            logger.warning("Failed to load infinite %s: %s", state.media_kind, exc)
            self._state = transitions.load_failed(self._state, str(exc))
            return
        logger.info("%s %s: %s", state.mode, state.media_kind, item.title)
        await self._apply(transitions.puzzle_loaded(self._state, item, self.rng))

    async def reload(self) -> SessionState:
        async with self._lock:
            await self._load_puzzle()
            return self._state

    # Effects

    async def _apply(self, transition: Transition) -> None:
        self._state = transition.state
        for effect in transition.effects:
            await self._perform(effect)

    async def _perform(self, effect: TransitionEffect) -> None:
        state = self._state
        day = self._today()
        if effect == "persist_streak":
            self.ledger.store_streak(state.mode, state.media_kind, day, state.streak)
        elif effect == "mark_daily_won":
            self.ledger.mark_daily_won(state.mode, state.media_kind, day)
        elif effect == "mark_daily_lost":
            self.ledger.mark_daily_lost(state.mode, state.media_kind, day)
        elif effect == "mark_seen" and state.item is not None:
            self.ledger.add_seen(state.media_kind, state.item.id, self._now_ms(), self.seen_ttl_ms)
        elif effect == "lookup_reference":
            await self._lookup_reference()

    async def _lookup_reference(self) -> None:
        item = self._state.item
        if item is None:
            return
        try:
            ids = await self.catalog.fetch_external_ids(self._state.media_kind, item.id)
        except TMDBError as exc:
            logger.debug("External ids lookup for %s failed: %s", item.id, exc)
            url = ""
        else:
            url = reference_url(ids)
        if self._state.item is not None and self._state.item.id == item.id:
            self._update(reference_url=url)

    # Guessing

    def update_guess_text(self, text: str) -> SessionState:
        self._update(guess_text=text, selected=None)
        self.search.push(text)
        return self._state

    def select_suggestion(self, item_id: int) -> SessionState:
        for item in self._state.suggestions:
            if item.id == item_id:
                label = f"{item.title} ({item.year})" if item.year else item.title
                return self._update(guess_text=label, selected=item, suggestions=[])
        raise InvalidActionError(f"Suggestion {item_id} is not available")

    async def _search_suggestions(self, term: str) -> List[PuzzleItem]:
        return await self.catalog.search(self._state.media_kind, term, limit=settings.suggestion_limit)

    def _apply_suggestions(self, items: Iterable[PuzzleItem]) -> None:
        self._update(suggestions=list(items))

    async def submit_guess(self, raw: Optional[str] = None) -> SessionState:
        async with self._lock:
            if self._state.status != "playing" or self._state.item is None:
                raise InvalidActionError("No puzzle is being played")
            state = self._rebase_streak()

            if raw is not None and raw != state.guess_text:
                state = self._update(guess_text=raw, selected=None)
            raw_guess = state.guess_text
            selected = state.selected
            completed_date = self._completed_date()

            if not raw_guess.strip():
                transition = transitions.record_wrong_guess(
                    state, WrongGuess(guess=SKIPPED_LABEL), self.rng, completed_date
                )
            elif evaluate_guess(raw_guess, selected, state.item):
                transition = transitions.win(state, completed_date)
            else:
                title, year = extract_guess(raw_guess)
                label = title if title.strip() else raw_guess
                guess_year = (selected.year if selected is not None else "") or year
                transition = transitions.record_wrong_guess(
                    state, WrongGuess(guess=label, year=guess_year), self.rng, completed_date
                )

            self.search.reset()
            await self._apply(transition)
            return self._update(guess_text="", selected=None, suggestions=[])

    # Give up

    def request_give_up(self) -> SessionState:
        if self._state.status != "playing":
            raise InvalidActionError("No puzzle is being played")
        return self._update(pending_confirmation="give_up")

    async def confirm_give_up(self) -> SessionState:
        async with self._lock:
            state = self._state
            if state.pending_confirmation != "give_up" or state.status != "playing":
                raise InvalidActionError("Give up was not requested")
            state = self._rebase_streak()
            await self._apply(transitions.lose(state, self._completed_date()))
            return self._state

    def cancel_give_up(self) -> SessionState:
        if self._state.pending_confirmation == "give_up":
            self._update(pending_confirmation=None)
        return self._state

    # Mode and media switching

    def _needs_leave_confirmation(self) -> bool:
        return is_infinite(self._state.mode) and self._state.status == "playing"

    async def select_mode(self, mode: Mode) -> SessionState:
        async with self._lock:
            if self._state.mode == mode:
                return self._state
            if self._needs_leave_confirmation():
                return self._update(
                    pending_confirmation="leave", pending_mode=mode, pending_media_kind=None
                )
            await self._switch(mode=mode)
            return self._state

    async def select_media_kind(self, media_kind: MediaKind) -> SessionState:
        async with self._lock:
            if self._state.media_kind == media_kind:
                return self._state
            if self._needs_leave_confirmation():
                return self._update(
                    pending_confirmation="leave", pending_media_kind=media_kind, pending_mode=None
                )
            await self._switch(media_kind=media_kind)
            return self._state

    async def confirm_leave(self) -> SessionState:
        async with self._lock:
            state = self._state
            if state.pending_confirmation != "leave":
                raise InvalidActionError("No switch is waiting for confirmation")
            await self._apply(transitions.forfeit_streak(self._rebase_streak()))
            await self._switch(
                mode=state.pending_mode or state.mode,
                media_kind=state.pending_media_kind or state.media_kind,
            )
            return self._state

    def cancel_leave(self) -> SessionState:
        return self._update(pending_confirmation=None, pending_mode=None, pending_media_kind=None)

    async def _switch(self, *, mode: Optional[Mode] = None, media_kind: Optional[MediaKind] = None) -> None:
        if media_kind is not None and media_kind != self._state.media_kind:
            self.ledger.store_media_kind(media_kind)
        self._update(
            mode=mode or self._state.mode,
            media_kind=media_kind or self._state.media_kind,
            pending_confirmation=None,
            pending_mode=None,
            pending_media_kind=None,
        )
        await self._load_puzzle()

    async def next_puzzle(self) -> SessionState:
        async with self._lock:
            if not is_infinite(self._state.mode):
                raise InvalidActionError("Next puzzle is only available in infinite modes")
            if self._state.next_disabled:
                raise InvalidActionError("Finish the current puzzle first")
            await self._load_puzzle()
            return self._state

    # Settings and cache

    def update_settings(
        self,
        *,
        remember_seen: Optional[bool] = None,
        language_filter: Optional[LanguageFilter] = None,
    ) -> GameSettings:
        current = self._state.settings
        updated = GameSettings(
            remember_seen=current.remember_seen if remember_seen is None else remember_seen,
            language_filter=current.language_filter if language_filter is None else language_filter,
        )
        self.ledger.store_settings(updated)
        self._update(settings=updated)
        return updated

    def request_clear_cache(self) -> SessionState:
        return self._update(pending_confirmation="clear_cache")

    def cancel_clear_cache(self) -> SessionState:
        if self._state.pending_confirmation == "clear_cache":
            self._update(pending_confirmation=None)
        return self._state

    async def confirm_clear_cache(self) -> SessionState:
        async with self._lock:
            if self._state.pending_confirmation != "clear_cache":
                raise InvalidActionError("Cache clearing was not requested")
            self.ledger.clear()
            if self.cache is not None:
                await self.cache.clear()
            self.search.reset()
            self._state = SessionState()
            self._started = False
        return await self.start()


_session: GameSession | None = None


async def get_game_session() -> GameSession:
    global _session
    if _session is not None:
        return _session
    store = get_store(settings.redis_url)
    ledger = ProgressLedger(store)
    cache = await get_cache(settings.redis_url)
    catalog = CatalogClient(lambda: ledger.token() or settings.tmdb_token, cache=cache)
    _session = GameSession(catalog, ledger, cache=cache)
    return _session


def reset_game_session() -> None:
    global _session
    _session = None
