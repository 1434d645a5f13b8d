"""Data models for monthly sales plans."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

_MONTH_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")

BASE_FIELD_KEYS: tuple[str, ...] = (
    "gsm",
    "gadgets",
    "digital",
    "orders",
    "household",
    "tech",
    "photo",
    "sp",
    "service",
    "smart",
    "sim",
)
ADDITIONAL_FIELD_KEYS: tuple[str, ...] = ("skill", "click", "vp", "nayavu", "spice", "auto")
PLAN_FIELD_KEYS: tuple[str, ...] = BASE_FIELD_KEYS + ADDITIONAL_FIELD_KEYS

FieldGroup = Literal["base", "additional"]


def is_valid_month(value: str) -> bool:
    """Return True for ``YYYY-MM`` month strings."""

    return bool(_MONTH_RE.match(value))


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


class MonthlyPlan(BaseModel):
    """Per-store sales targets for one month.

    ``id`` is empty until the plan is first saved.
    """

    model_config = ConfigDict(extra="forbid", allow_inf_nan=False)

    id: str = ""
    store_id: str = Field(min_length=1)
    month: str
    gsm: float = Field(default=0, ge=0)
    gadgets: float = Field(default=0, ge=0)
    digital: float = Field(default=0, ge=0)
    orders: float = Field(default=0, ge=0)
    household: float = Field(default=0, ge=0)
    tech: float = Field(default=0, ge=0)
    photo: float = Field(default=0, ge=0)
    sp: float = Field(default=0, ge=0)
    service: float = Field(default=0, ge=0)
    smart: float = Field(default=0, ge=0)
    sim: float = Field(default=0, ge=0)
    skill: float = Field(default=0, ge=0)
    click: float = Field(default=0, ge=0)
    vp: float = Field(default=0, ge=0)
    nayavu: float = Field(default=0, ge=0)
    spice: float = Field(default=0, ge=0)
    auto: float = Field(default=0, ge=0)
    created_at: str | None = None
    updated_at: str | None = None

    @field_validator("month")
    @classmethod
    def _check_month(cls, value: str) -> str:
        if not is_valid_month(value):
            raise ValueError("month must use YYYY-MM format")
        return value

    def field_values(self) -> dict[str, float]:
        return {key: getattr(self, key) for key in PLAN_FIELD_KEYS}

    def total(self) -> float:
        return sum(self.field_values().values())
