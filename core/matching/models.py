"""Data models for recognized tokens, catalog fields and match review rows."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field


class BoundingBox(BaseModel):
    """Pixel box of one recognized word on the source image."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    x0: float
    y0: float
    x1: float
    y1: float


class Token(BaseModel):
    """One OCR-recognized unit of text.

    ``confidence`` is shown to the operator during review only; matching reads
    ``text`` alone.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    text: str
    confidence: float = Field(default=0.0, ge=0, le=100)
    bbox: BoundingBox | None = None


@dataclass(frozen=True)
class FieldSpec:
    """Catalog field identifier with its human-readable label."""

    key: str
    label: str | None = None

    def candidates(self) -> tuple[str, ...]:
        """Return normalized strings a token may be compared against."""

        normalized_key = normalize_text(self.key)
        if self.label is None:
            return (normalized_key,)
        normalized_label = normalize_text(self.label)
        if normalized_label == normalized_key:
            return (normalized_key,)
        return (normalized_key, normalized_label)


class ReviewRow(BaseModel):
    """Per-token row shown to the operator before confirmation."""

    model_config = ConfigDict(extra="forbid")

    text: str
    confidence: float
    is_numeric: bool
    suggested_field: str | None = None


class MatchReview(BaseModel):
    """Suggested mapping plus every raw token for operator review."""

    model_config = ConfigDict(extra="forbid")

    rows: list[ReviewRow] = Field(default_factory=list)
    mappings: dict[str, str] = Field(default_factory=dict)


def normalize_text(value: str) -> str:
    """Lowercase and trim whitespace for case-insensitive comparison."""

    return value.strip().lower()
