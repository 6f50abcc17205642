from __future__ import annotations

import re
import unicodedata
from typing import NamedTuple

LEADING_ARTICLES = (
    "the", "a", "an",
    "le", "la", "les", "un", "une", "des",
    "el", "los", "las",
    "il", "lo", "gli", "i",
)

ELISION_PATTERN = re.compile(r"^l['`]")
ARTICLE_PATTERN = re.compile(r"^(?:%s)\s+" % "|".join(LEADING_ARTICLES))
NON_ALNUM_PATTERN = re.compile(r"[^a-z0-9]")
YEAR_PATTERN = re.compile(r"(?:19|20)\d{2}")


class ExtractedGuess(NamedTuple):
    title: str
    year: str


def strip_leading_article(value: str) -> str:
    """Drop one leading article (``the``, ``les``, ``l'`` ...) from a title."""

    trimmed = value.strip().lower()
    without_elision = ELISION_PATTERN.sub("", trimmed)
    return ARTICLE_PATTERN.sub("", without_elision).strip()


def normalize_title(value: str | None, drop_articles: bool = False) -> str:
    """Reduce a title to lowercase ASCII letters and digits.

    Accents are folded, punctuation and whitespace removed, so
    ``"Amélie"`` and ``"amelie"`` compare equal.
    """

    if not value:
        return ""
    base = strip_leading_article(value) if drop_articles else value
    text = unicodedata.normalize("NFD", base.lower())
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    return NON_ALNUM_PATTERN.sub("", text)


def extract_guess(raw: str) -> ExtractedGuess:
    """Split free text such as ``"Inception (2010)"`` into title and year."""

    match = YEAR_PATTERN.search(raw)
    year = match.group(0) if match else ""
    title = raw
    if year:
        title = title.replace(year, "", 1)
    title = title.replace("(", "").replace(")", "").strip()
    return ExtractedGuess(title=title, year=year)
