"""Revenue log storage and statistics."""

from __future__ import annotations

import calendar
import uuid
from collections.abc import Sequence
from datetime import date

from core.plans.models import MonthlyPlan, is_valid_month
from core.revenue.models import PlanProgress, RevenueEntry, RevenueSummary
from core.storage.kv_store import JsonKeyValueStore

REVENUES_KEY = "revenues"


class RevenueLog:
    """Append-only list of revenue entries."""

    def __init__(self, kv: JsonKeyValueStore) -> None:
        self._kv = kv

    def add(self, amount: float, entry_date: date, *, store_id: str | None = None) -> RevenueEntry:
        entry = RevenueEntry(id=uuid.uuid4().hex, amount=amount, date=entry_date, store_id=store_id)
        raw = list(self._kv.get(REVENUES_KEY, []))
        raw.append(entry.model_dump(mode="json"))
        self._kv.set(REVENUES_KEY, raw)
        return entry

    def list_all(self, *, store_id: str | None = None) -> list[RevenueEntry]:
        """Return entries newest first, optionally for one store."""

        entries = [RevenueEntry.model_validate(item) for item in self._kv.get(REVENUES_KEY, [])]
        if store_id is not None:
            entries = [entry for entry in entries if entry.store_id == store_id]
        return sorted(entries, key=lambda entry: entry.date, reverse=True)


def summarize(entries: Sequence[RevenueEntry]) -> RevenueSummary:
    if not entries:
        return RevenueSummary(count=0, total=0.0, average=0.0, maximum=0.0, minimum=0.0)

    amounts = [entry.amount for entry in entries]
    total = sum(amounts)
    return RevenueSummary(
        count=len(amounts),
        total=total,
        average=total / len(amounts),
        maximum=max(amounts),
        minimum=min(amounts),
    )


def plan_progress(day: date, planned: float, actual: float) -> PlanProgress:
    """Compute completion percentage; a zero plan reports 0%."""

    percentage = actual / planned * 100 if planned else 0.0
    return PlanProgress(
        date=day,
        planned=planned,
        actual=actual,
        percentage=percentage,
        met=percentage >= 100,
    )


def month_progress(
    plans: Sequence[MonthlyPlan],
    entries: Sequence[RevenueEntry],
    month: str,
) -> list[PlanProgress]:
    """Daily planned versus actual revenue for one ``YYYY-MM`` month.

    The summed plan total is spread evenly over the days of the month. Only
    days with logged revenue produce a row; rows are newest first.
    """

    if not is_valid_month(month):
        raise ValueError(f"Invalid month: {month}")
    year, month_number = (int(part) for part in month.split("-"))
    days_in_month = calendar.monthrange(year, month_number)[1]
    daily_plan = sum(plan.total() for plan in plans) / days_in_month

    actual_by_day: dict[date, float] = {}
    for entry in entries:
        if entry.date.year == year and entry.date.month == month_number:
            actual_by_day[entry.date] = actual_by_day.get(entry.date, 0.0) + entry.amount

    return [
        plan_progress(day, daily_plan, actual_by_day[day])
        for day in sorted(actual_by_day, reverse=True)
    ]
