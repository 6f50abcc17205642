from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Literal, Optional, Tuple

from .effects import generate_strip_effects
from .models import (
    PROGRESSION_STEPS,
    DailyOutcome,
    MediaKind,
    Mode,
    PuzzleItem,
    SessionState,
    StreakRecord,
    WrongGuess,
    is_hard,
    is_infinite,
)

SKIPPED_LABEL = "SKIPPED"

TransitionEffect = Literal[
    "persist_streak",
    "mark_daily_won",
    "mark_daily_lost",
    "mark_seen",
    "lookup_reference",
]


@dataclass(frozen=True)
class Transition:
    """New session state plus the side effects the session must carry out."""

    state: SessionState
    effects: Tuple[TransitionEffect, ...] = ()


def _with_effects(state: SessionState, rng: random.Random) -> SessionState:
    if not is_hard(state.mode) or state.status != "playing":
        return state
    return state.model_copy(update={"strip_effects": generate_strip_effects(state.strip_count, rng)})


def begin_loading(
    state: SessionState,
    *,
    mode: Optional[Mode] = None,
    media_kind: Optional[MediaKind] = None,
    streak: Optional[StreakRecord] = None,
) -> SessionState:
    updates = {
        "status": "loading",
        "item": None,
        "step_index": 0,
        "wrong_guesses": [],
        "strip_effects": [],
        "guess_text": "",
        "selected": None,
        "suggestions": [],
        "pending_confirmation": None,
        "pending_mode": None,
        "pending_media_kind": None,
        "daily_completed": False,
        "completed_date": "",
        "reference_url": "",
        "error": None,
    }
    if mode is not None:
        updates["mode"] = mode
    if media_kind is not None:
        updates["media_kind"] = media_kind
    if streak is not None:
        updates["streak"] = streak
    return state.model_copy(update=updates)


def puzzle_loaded(
    state: SessionState,
    item: PuzzleItem,
    rng: random.Random,
    *,
    outcome: Optional[DailyOutcome] = None,
    completed_date: str = "",
) -> Transition:
    base = state.model_copy(
        update={"item": item, "step_index": 0, "wrong_guesses": [], "reference_url": "", "error": None}
    )
    if outcome is not None:
        return Transition(outcome_restored(base, outcome, completed_date), ("lookup_reference",))
    playing = base.model_copy(update={"status": "playing", "strip_effects": []})
    return Transition(_with_effects(playing, rng))


def outcome_restored(state: SessionState, outcome: DailyOutcome, completed_date: str) -> SessionState:
    """Apply a day already resolved, with or without its puzzle item."""

    return state.model_copy(
        update={
            "status": outcome,
            "daily_completed": outcome == "won",
            "completed_date": completed_date,
        }
    )


def load_failed(state: SessionState, message: str) -> SessionState:
    """Infinite play turns a failed load into a loss; daily play keeps the error."""

    if is_infinite(state.mode):
        return state.model_copy(update={"status": "lost", "error": message})
    return state.model_copy(update={"error": message})


def _resolve(state: SessionState, status: str, streak: StreakRecord, completed_date: str) -> Transition:
    effects: list[TransitionEffect] = []
    updates: dict = {"status": status, "pending_confirmation": None}
    if is_infinite(state.mode):
        updates["streak"] = streak
        effects.append("persist_streak")
        if state.settings.remember_seen:
            effects.append("mark_seen")
    elif status == "won":
        updates["daily_completed"] = True
        updates["completed_date"] = completed_date
        effects.append("mark_daily_won")
    else:
        updates["completed_date"] = completed_date
        effects.append("mark_daily_lost")
    effects.append("lookup_reference")
    return Transition(state.model_copy(update=updates), tuple(effects))


def win(state: SessionState, completed_date: str) -> Transition:
    return _resolve(state, "won", state.streak.after_win(), completed_date)


def lose(state: SessionState, completed_date: str) -> Transition:
    return _resolve(state, "lost", state.streak.after_loss(), completed_date)


def advance_attempt(state: SessionState, rng: random.Random, completed_date: str) -> Transition:
    if state.step_index < len(PROGRESSION_STEPS) - 1:
        advanced = state.model_copy(update={"step_index": state.step_index + 1})
        return Transition(_with_effects(advanced, rng))
    return lose(state, completed_date)


def record_wrong_guess(
    state: SessionState,
    wrong: WrongGuess,
    rng: random.Random,
    completed_date: str,
) -> Transition:
    updated = state.model_copy(update={"wrong_guesses": [*state.wrong_guesses, wrong]})
    return advance_attempt(updated, rng, completed_date)


def forfeit_streak(state: SessionState) -> Transition:
    """Abandoning an infinite puzzle in progress resets the current streak."""

    if not is_infinite(state.mode):
        return Transition(state)
    return Transition(
        state.model_copy(update={"streak": state.streak.after_loss()}),
        ("persist_streak",),
    )
