"""Data models for the store directory."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Store(BaseModel):
    """Retail store entry."""

    model_config = ConfigDict(extra="forbid")

    id: str
    name: str
    group: str
    address: str | None = None
    region: str | None = None

    @field_validator("name", "group")
    @classmethod
    def _require_text(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("must not be blank")
        return stripped


class StoreDraft(BaseModel):
    """Store fields supplied by a client before an id is assigned."""

    model_config = ConfigDict(extra="forbid")

    name: str
    group: str
    address: str | None = None
    region: str | None = None

    @field_validator("name", "group")
    @classmethod
    def _require_text(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("must not be blank")
        return stripped


class StoreChanges(BaseModel):
    """Partial update for an existing store."""

    model_config = ConfigDict(extra="forbid")

    name: str | None = None
    group: str | None = None
    address: str | None = None
    region: str | None = None


class RecognizedStore(BaseModel):
    """Best-effort store fields parsed from recognized card text."""

    model_config = ConfigDict(extra="forbid")

    name: str = ""
    group: str = ""
    raw: dict[str, str] = Field(default_factory=dict)
