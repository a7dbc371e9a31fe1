"""
app/services/keyword_matching.py

Matches dashboard attribution keywords to Search Ads report keywords.

An exact match on the normalized form wins. Otherwise every candidate is scored,
containment by length ratio and anything else by Dice bigram similarity, and the
best score of at least ``SIMILARITY_THRESHOLD`` is kept.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Generic, TypeVar

from app.domain.keyword_roi import normalize_keyword

SIMILARITY_THRESHOLD = 0.85

T = TypeVar("T")


@dataclass(frozen=True)
class KeywordMatch(Generic[T]):
    keyword: str
    match_type: str  # exact | contains | similar
    score: float
    value: T


def dice_similarity(first: str, second: str) -> float:
    """
    Dice coefficient over character bigrams (multiset intersection).
    """

    if first == second:
        return 1.0
    if len(first) < 2 or len(second) < 2:
        return 0.0

    first_bigrams = Counter(first[i : i + 2] for i in range(len(first) - 1))
    second_bigrams = Counter(second[i : i + 2] for i in range(len(second) - 1))
    overlap = sum((first_bigrams & second_bigrams).values())
    return 2.0 * overlap / (len(first) + len(second) - 2)


def match_keyword(keyword: str, candidates: Mapping[str, T]) -> KeywordMatch[T] | None:
    """
    Find the report entry for ``keyword``.

    Parameters
    ----------
    keyword:
        Attribution keyword as shown on the dashboard.
    candidates:
        Report entries keyed by keyword. Keys are compared in normalized form.

    Returns
    -------
    KeywordMatch | None
        ``None`` when nothing clears the similarity threshold.
    """

    needle = normalize_keyword(keyword)
    if not needle:
        return None

    normalized = {normalize_keyword(key): key for key in candidates}
    normalized.pop("", None)

    if needle in normalized:
        key = normalized[needle]
        return KeywordMatch(keyword=key, match_type="exact", score=1.0, value=candidates[key])

    best: KeywordMatch[T] | None = None
    for candidate, key in normalized.items():
        match_type, score = _fuzzy_score(needle, candidate)
        if score >= SIMILARITY_THRESHOLD and (best is None or score > best.score):
            best = KeywordMatch(keyword=key, match_type=match_type, score=score, value=candidates[key])
    return best


def _fuzzy_score(needle: str, candidate: str) -> tuple[str, float]:
    # Containment is scored by length ratio so short fragments stay below the threshold.
    if needle in candidate or candidate in needle:
        return "contains", min(len(needle), len(candidate)) / max(len(needle), len(candidate))
    return "similar", dice_similarity(needle, candidate)
