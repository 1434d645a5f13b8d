"""Collaborator interfaces around the field matcher."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from core.matching.field_matcher import FieldInput, suggest_mappings
from core.matching.models import Token


class TokenSource(Protocol):
    """Supplies one batch of recognized tokens."""

    def tokens(self) -> Sequence[Token]:
        """Return the tokens of the current OCR batch."""


class MappingSink(Protocol):
    """Receives the suggested mapping for operator review."""

    def accept(self, mapping: dict[str, str]) -> None:
        """Store or display one suggested mapping."""


def run_match_pass(
    source: TokenSource,
    fields: Sequence[FieldInput],
    sink: MappingSink,
) -> dict[str, str]:
    """Run the matcher once for a new token batch and hand the result to ``sink``."""

    mapping = suggest_mappings(source.tokens(), fields)
    sink.accept(mapping)
    return mapping
