"""Fuzzy mapping of OCR tokens onto named plan fields."""

from __future__ import annotations

import math
import re
from collections.abc import Iterable, Sequence
from functools import lru_cache

from core.matching.models import FieldSpec, MatchReview, ReviewRow, Token, normalize_text
from core.matching.similarity import similarity

ACCEPT_THRESHOLD = 0.5

_NUMBER_SPACING_RE = re.compile(r"\s+")

FieldInput = str | FieldSpec
TokenInput = str | Token


def parse_numeric_token(text: str) -> float | None:
    """Parse token text as a number; return None for labels.

    Accepts a decimal comma and thousands separators written as spaces.
    """

    candidate = _NUMBER_SPACING_RE.sub("", text).replace(",", ".")
    if not candidate:
        return None
    try:
        value = float(candidate)
    except ValueError:
        return None
    if not math.isfinite(value):
        return None
    return value


def is_numeric_token(text: str) -> bool:
    return parse_numeric_token(text) is not None


def best_field(text: str, fields: Sequence[FieldInput]) -> tuple[str, float] | None:
    """Return the highest-scoring field key and its score for one token.

    Ties keep the earliest field in catalog order. A labelled field scores the
    better of its key and its label.
    """

    normalized = normalize_text(text)
    best: tuple[str, float] | None = None
    for item in fields:
        spec = _as_field_spec(item)
        score = max(similarity(normalized, candidate) for candidate in spec.candidates())
        if best is None or score > best[1]:
            best = (spec.key, score)
    return best


def suggest_mappings(
    tokens: Iterable[TokenInput],
    fields: Sequence[FieldInput],
) -> dict[str, str]:
    """Suggest one field per non-numeric token.

    Rules:
    - Numeric tokens are values, never labels, and are left out.
    - A token is kept only when its best score is strictly above 0.5.
    - Empty tokens or an empty catalog produce an empty mapping.

    Results are memoized per (tokens, fields) batch; callers always receive a
    fresh dict.
    """

    token_texts = tuple(_token_text(token) for token in tokens)
    specs = tuple(_as_field_spec(item) for item in fields)
    return dict(_suggest_for_batch(token_texts, specs))


class FieldMatcher:
    """Matcher bound to one read-only field catalog."""

    def __init__(self, fields: Sequence[FieldInput]) -> None:
        self._fields = tuple(_as_field_spec(item) for item in fields)

    @property
    def fields(self) -> tuple[FieldSpec, ...]:
        return self._fields

    def suggest(self, tokens: Iterable[TokenInput]) -> dict[str, str]:
        return suggest_mappings(tokens, self._fields)

    def review(self, tokens: Sequence[Token]) -> MatchReview:
        """Build review rows for every token alongside the suggested mapping."""

        mappings = self.suggest(tokens)
        rows = [
            ReviewRow(
                text=token.text,
                confidence=token.confidence,
                is_numeric=is_numeric_token(token.text),
                suggested_field=mappings.get(token.text),
            )
            for token in tokens
        ]
        return MatchReview(rows=rows, mappings=mappings)


@lru_cache(maxsize=64)
def _suggest_for_batch(
    token_texts: tuple[str, ...],
    specs: tuple[FieldSpec, ...],
) -> tuple[tuple[str, str], ...]:
    if not specs:
        return ()

    pairs: list[tuple[str, str]] = []
    seen: set[str] = set()
    for text in token_texts:
        if text in seen:
            continue
        seen.add(text)
        if is_numeric_token(text):
            continue
        match = best_field(text, specs)
        if match is not None and match[1] > ACCEPT_THRESHOLD:
            pairs.append((text, match[0]))
    return tuple(pairs)


def _token_text(token: TokenInput) -> str:
    if isinstance(token, Token):
        return token.text
    return token


def _as_field_spec(item: FieldInput) -> FieldSpec:
    if isinstance(item, FieldSpec):
        return item
    return FieldSpec(key=item)
