"""Levenshtein edit distance and normalized string similarity."""

from __future__ import annotations

from rapidfuzz.distance import Levenshtein


def levenshtein_distance(a: str, b: str) -> int:
    """Return the minimum number of single-character edits turning ``a`` into ``b``.

    Insertions, deletions and substitutions all cost 1.
    """

    return Levenshtein.distance(a, b)


def similarity(a: str, b: str) -> float:
    """Return ``1 - distance / max(len(a), len(b))``; two empty strings score 1.0."""

    return Levenshtein.normalized_similarity(a, b)
