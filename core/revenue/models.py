"""Data models for revenue logging and summaries."""

from __future__ import annotations

import datetime as dt

from pydantic import BaseModel, ConfigDict


class RevenueEntry(BaseModel):
    """One logged revenue amount."""

    model_config = ConfigDict(extra="forbid", allow_inf_nan=False)

    id: str
    amount: float
    date: dt.date
    store_id: str | None = None


class RevenueSummary(BaseModel):
    """Aggregate statistics over revenue entries.

    Rules:
    - All values are 0 when there are no entries.
    - average == total / count otherwise.
    """

    model_config = ConfigDict(extra="forbid")

    count: int
    total: float
    average: float
    maximum: float
    minimum: float


class PlanProgress(BaseModel):
    """Planned versus actual revenue for one day."""

    model_config = ConfigDict(extra="forbid")

    date: dt.date
    planned: float
    actual: float
    percentage: float
    met: bool
