from __future__ import annotations

from typing import Optional

from .models import PuzzleItem
from .normalizer import extract_guess, normalize_title

# Free-text shortcut that always counts as a correct answer.
WIN_SHORTCUT = "win"


def years_compatible(left: str, right: str) -> bool:
    return not left or not right or left == right


def _title_forms(value: str) -> tuple[str, str]:
    return normalize_title(value, False), normalize_title(value, True)


def _matches(guess: str, target: str) -> bool:
    if not target:
        return False
    guess_plain, guess_bare = _title_forms(guess)
    target_plain, target_bare = _title_forms(target)
    if target_plain and guess_plain == target_plain:
        return True
    return bool(target_bare) and guess_bare == target_bare


def evaluate_selection(selected: PuzzleItem, target: PuzzleItem) -> bool:
    if selected.id == target.id:
        return True
    if not years_compatible(selected.year, target.year):
        return False
    return _matches(selected.title, target.title)


def evaluate_free_text(raw_guess: str, target: PuzzleItem) -> bool:
    title, year = extract_guess(raw_guess)
    if not years_compatible(year, target.year):
        return False
    if normalize_title(title, False) == WIN_SHORTCUT:
        return True
    return _matches(title, target.title) or _matches(title, target.original_title)


def evaluate_guess(
    raw_guess: str,
    selected: Optional[PuzzleItem],
    target: PuzzleItem,
) -> bool:
    """Decide whether a submitted guess names the target item.

    A suggestion picked from autocomplete is judged on its id, then on its
    title when the years agree. Free text is judged on the extracted title
    against the display and original titles, and on the year when one was typed.
    """

    if selected is not None:
        return evaluate_selection(selected, target)
    return evaluate_free_text(raw_guess, target)
