"""Pair numeric OCR tokens with the labels matched before them."""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from core.matching.field_matcher import TokenInput, parse_numeric_token
from core.matching.models import Token


def pair_values(tokens: Sequence[TokenInput], mapping: Mapping[str, str]) -> dict[str, float]:
    """Assign numeric tokens to plan fields.

    Rules:
    - A numeric token present in ``mapping`` fills its mapped field directly.
      Direct assignments override paired values; the last one per field wins.
    - A non-numeric token present in ``mapping`` becomes the current field.
    - Otherwise the first number after a label fills that field; later numbers
      are ignored until another label is matched.
    - Numbers seen before any matched label are dropped.
    """

    paired: dict[str, float] = {}
    direct: dict[str, float] = {}
    current_field: str | None = None
    for token in tokens:
        text = token.text if isinstance(token, Token) else token
        number = parse_numeric_token(text)
        if number is None:
            if text in mapping:
                current_field = mapping[text]
            continue
        if text in mapping:
            direct[mapping[text]] = number
            continue
        if current_field is None or current_field in paired:
            continue
        paired[current_field] = number
    return {**paired, **direct}


def confirm_mappings(
    tokens: Sequence[TokenInput],
    mapping: Mapping[str, str],
    allowed_fields: Sequence[str],
) -> dict[str, float]:
    """Turn an operator-reviewed mapping into field values.

    Blank selections mean "not mapped". Unknown field keys raise ValueError.
    """

    allowed = set(allowed_fields)
    reviewed: dict[str, str] = {}
    for text, field_key in mapping.items():
        if not field_key:
            continue
        if field_key not in allowed:
            raise ValueError(f"Unknown plan field: {field_key}")
        reviewed[text] = field_key
    return pair_values(tokens, reviewed)
