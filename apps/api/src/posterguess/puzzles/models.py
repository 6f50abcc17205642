from __future__ import annotations

from typing import List, Literal, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

Mode = Literal["daily", "daily-hard", "infinite", "infinite-hard"]
DailyMode = Literal["daily", "daily-hard"]
InfiniteMode = Literal["infinite", "infinite-hard"]
MediaKind = Literal["movie", "tv"]
GameStatus = Literal["loading", "playing", "won", "lost"]
StripEffect = Literal["none", "flip", "desaturate", "obscure"]
DailyOutcome = Literal["won", "lost"]
LanguageFilter = Literal["all", "fr_en"]
PendingConfirmation = Literal["give_up", "leave", "clear_cache"]

DAILY_MODES: Sequence[str] = ("daily", "daily-hard")
INFINITE_MODES: Sequence[str] = ("infinite", "infinite-hard")
HARD_MODES: Sequence[str] = ("daily-hard", "infinite-hard")

PROGRESSION_STEPS: Sequence[int] = (100, 75, 50, 25, 10)


def is_daily(mode: str) -> bool:
    return mode in DAILY_MODES


def is_infinite(mode: str) -> bool:
    return mode in INFINITE_MODES


def is_hard(mode: str) -> bool:
    return mode in HARD_MODES


class PuzzleItem(BaseModel):
    """Canonical catalog record, identical for movies and TV shows."""

    model_config = ConfigDict(frozen=True)

    id: int
    title: str
    original_title: str = ""
    poster_path: Optional[str] = None
    release_date: str = ""
    media_kind: MediaKind = "movie"
    original_language: Optional[str] = None
    overview: str = ""

    @computed_field  # type: ignore[prop-decorator]
    @property
    def year(self) -> str:
        release = (self.release_date or "").strip()
        return release[:4] if len(release) >= 4 else ""


class WrongGuess(BaseModel):
    model_config = ConfigDict(frozen=True)

    guess: str
    year: str = ""


class SeenEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    movie_id: int = Field(alias="movieId")
    expiry: int


class StreakRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    current: int = 0
    today_best: int = 0
    all_time_best: int = 0

    @field_validator("current", "today_best", "all_time_best", mode="before")
    @classmethod
    def _clamp(cls, value: object) -> int:
        try:
            coerced = int(value)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return 0
        return max(0, coerced)

    def after_win(self) -> StreakRecord:
        current = self.current + 1
        return StreakRecord(
            current=current,
            today_best=max(self.today_best, current),
            all_time_best=max(self.all_time_best, current),
        )

    def after_loss(self) -> StreakRecord:
        return StreakRecord(
            current=0,
            today_best=self.today_best,
            all_time_best=self.all_time_best,
        )


class GameSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    remember_seen: bool = True
    language_filter: LanguageFilter = "all"

    @field_validator("language_filter", mode="before")
    @classmethod
    def _coerce_filter(cls, value: object) -> str:
        return "fr_en" if value == "fr_en" else "all"


class SessionState(BaseModel):
    """Serializable snapshot of a game session, rendered by the front end."""

    model_config = ConfigDict(frozen=True)

    mode: Mode = "daily"
    media_kind: MediaKind = "movie"
    status: GameStatus = "loading"
    item: Optional[PuzzleItem] = None
    step_index: int = 0
    wrong_guesses: List[WrongGuess] = Field(default_factory=list)
    strip_effects: List[StripEffect] = Field(default_factory=list)
    streak: StreakRecord = Field(default_factory=StreakRecord)
    daily_completed: bool = False
    completed_date: str = ""
    reference_url: str = ""
    guess_text: str = ""
    selected: Optional[PuzzleItem] = None
    suggestions: List[PuzzleItem] = Field(default_factory=list)
    pending_confirmation: Optional[PendingConfirmation] = None
    pending_mode: Optional[Mode] = None
    pending_media_kind: Optional[MediaKind] = None
    settings: GameSettings = Field(default_factory=GameSettings)
    needs_token: bool = False
    token_error: str = ""
    error: Optional[str] = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def strip_count(self) -> int:
        index = max(0, min(self.step_index, len(PROGRESSION_STEPS) - 1))
        return PROGRESSION_STEPS[index]

    @computed_field  # type: ignore[prop-decorator]
    @property
    def reveal_percent(self) -> int:
        return self.strip_count

    @computed_field  # type: ignore[prop-decorator]
    @property
    def remaining_attempts(self) -> int:
        return max(0, len(PROGRESSION_STEPS) - self.step_index)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_hard(self) -> bool:
        return is_hard(self.mode)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_infinite(self) -> bool:
        return is_infinite(self.mode)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def next_disabled(self) -> bool:
        if self.status == "loading":
            return True
        return self.status == "playing" and self.step_index > 0
