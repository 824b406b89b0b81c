"""
Title matching for "play by name".

Spoken or typed titles rarely match catalog names exactly ("wall e" for
"WALL·E"), so both sides are normalized to lower-case alphanumeric words
before comparing.
"""

from __future__ import annotations

import re
import unicodedata
from typing import Any

MATCH_EXACT = 100
MATCH_PREFIX = 70
MATCH_SUBSTRING = 45

TYPE_BONUS: dict[str, int] = {
    "Series": 20,
    "Movie": 15,
    "Episode": 10,
}

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def normalize_for_match(value: str) -> str:
    """Fold accents and punctuation: "WALL·E" -> "wall e", "Amélie" -> "amelie"."""
    decomposed = unicodedata.normalize("NFKD", str(value))
    folded = "".join(char for char in decomposed if not unicodedata.combining(char)).lower()
    return _NON_ALNUM.sub(" ", folded).strip()


def score_match(item: dict[str, Any], normalized_query: str) -> int:
    """
    Score how well an item's name matches the normalized query.

    0 means no match at all; otherwise exact / prefix / substring points plus
    a bonus that prefers whole shows and movies over single episodes.
    """
    if not normalized_query:
        return 0

    name = normalize_for_match(item.get("Name") or "")
    if name == normalized_query:
        score = MATCH_EXACT
    elif name.startswith(normalized_query):
        score = MATCH_PREFIX
    elif normalized_query in name:
        score = MATCH_SUBSTRING
    else:
        return 0

    return score + TYPE_BONUS.get(item.get("Type") or "", 0)


def rank_matches(items: list[dict[str, Any]], query: str) -> list[tuple[dict[str, Any], int]]:
    """Matching items best first (input order kept on ties); non-matches dropped."""
    normalized = normalize_for_match(query)
    scored = [(item, score_match(item, normalized)) for item in items]
    scored = [entry for entry in scored if entry[1] > 0]
    return sorted(scored, key=lambda entry: entry[1], reverse=True)


def choose_best_match(items: list[dict[str, Any]], query: str) -> dict[str, Any] | None:
    ranked = rank_matches(items, query)
    return ranked[0][0] if ranked else None


def build_search_terms(query: str) -> list[str]:
    """
    Search terms to try against the server, most specific first.

    The raw query, its normalized form, the normalized form without spaces,
    and its first word (if at least 3 characters).
    """
    terms: list[str] = [query]
    normalized = normalize_for_match(query)
    if normalized:
        terms.append(normalized)
        compact = normalized.replace(" ", "")
        terms.append(compact)
        first_token = normalized.split()[0]
        if len(first_token) >= 3:
            terms.append(first_token)

    unique: list[str] = []
    for term in terms:
        if term.strip() and term not in unique:
            unique.append(term)
    return unique
