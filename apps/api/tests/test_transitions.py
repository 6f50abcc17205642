from __future__ import annotations

import random

from conftest import make_item
from posterguess.puzzles import transitions
from posterguess.puzzles.models import PROGRESSION_STEPS, GameSettings, SessionState, StreakRecord, WrongGuess

ITEM = make_item(1, "Heat", release_date="1995-12-15")


def playing(mode: str = "daily", **changes) -> SessionState:
    state = transitions.begin_loading(SessionState(mode=mode))  # type: ignore[arg-type]
    loaded = transitions.puzzle_loaded(state, ITEM, random.Random(0)).state
    return loaded.model_copy(update=changes)


def test_begin_loading_resets_attempt_state() -> None:
    state = SessionState(
        status="won",
        step_index=3,
        wrong_guesses=[WrongGuess(guess="x")],
        reference_url="https://www.imdb.com/title/tt1/",
        daily_completed=True,
    )
    loading = transitions.begin_loading(state, mode="infinite", streak=StreakRecord(current=2))
    assert loading.status == "loading"
    assert loading.step_index == 0
    assert loading.wrong_guesses == []
    assert loading.reference_url == ""
    assert loading.daily_completed is False
    assert loading.mode == "infinite"
    assert loading.streak.current == 2


def test_persisted_outcome_preempts_playing() -> None:
    loading = transitions.begin_loading(SessionState())
    won = transitions.puzzle_loaded(loading, ITEM, random.Random(0), outcome="won", completed_date="05/11/24")
    assert won.state.status == "won"
    assert won.state.daily_completed is True
    assert won.state.completed_date == "05/11/24"
    assert won.effects == ("lookup_reference",)

    lost = transitions.puzzle_loaded(loading, ITEM, random.Random(0), outcome="lost", completed_date="05/11/24")
    assert lost.state.status == "lost"
    assert lost.state.daily_completed is False


def test_hard_modes_get_effects_on_load_and_on_every_step() -> None:
    rng = random.Random(4)
    state = transitions.puzzle_loaded(transitions.begin_loading(SessionState(mode="daily-hard")), ITEM, rng).state
    assert len(state.strip_effects) == PROGRESSION_STEPS[0]
    for step in range(1, len(PROGRESSION_STEPS)):
        state = transitions.advance_attempt(state, rng, "05/11/24").state
        assert state.step_index == step
        assert len(state.strip_effects) == PROGRESSION_STEPS[step]


def test_normal_modes_have_no_effects() -> None:
    state = playing("daily")
    assert state.strip_effects == []
    assert transitions.advance_attempt(state, random.Random(0), "").state.strip_effects == []


def test_exhausting_attempts_loses_the_daily() -> None:
    state = playing("daily", step_index=len(PROGRESSION_STEPS) - 1)
    result = transitions.record_wrong_guess(state, WrongGuess(guess="Ronin"), random.Random(0), "05/11/24")
    assert result.state.status == "lost"
    assert result.state.wrong_guesses[-1].guess == "Ronin"
    assert result.effects == ("mark_daily_lost", "lookup_reference")


def test_infinite_win_and_loss_update_the_streak() -> None:
    state = playing("infinite", streak=StreakRecord(current=2, today_best=2, all_time_best=5))
    won = transitions.win(state, "")
    assert won.state.streak == StreakRecord(current=3, today_best=3, all_time_best=5)
    assert won.effects == ("persist_streak", "mark_seen", "lookup_reference")

    lost = transitions.lose(won.state.model_copy(update={"status": "playing"}), "")
    assert lost.state.streak == StreakRecord(current=0, today_best=3, all_time_best=5)


def test_mark_seen_follows_the_remember_setting() -> None:
    state = playing("infinite-hard", settings=GameSettings(remember_seen=False))
    assert "mark_seen" not in transitions.lose(state, "").effects


def test_infinite_load_failure_is_a_loss() -> None:
    infinite = transitions.load_failed(transitions.begin_loading(SessionState(mode="infinite")), "down")
    assert infinite.status == "lost"
    daily = transitions.load_failed(transitions.begin_loading(SessionState(mode="daily")), "down")
    assert daily.status == "loading"
    assert daily.error == "down"


def test_forfeit_only_applies_to_infinite_modes() -> None:
    infinite = playing("infinite", streak=StreakRecord(current=4, today_best=4, all_time_best=4))
    forfeited = transitions.forfeit_streak(infinite)
    assert forfeited.state.streak.current == 0
    assert forfeited.state.streak.all_time_best == 4
    assert forfeited.effects == ("persist_streak",)
    assert transitions.forfeit_streak(playing("daily")).effects == ()
