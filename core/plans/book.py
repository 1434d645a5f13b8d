"""Monthly plan storage keyed by month."""

from __future__ import annotations

import uuid
from collections.abc import Mapping

from core.plans.models import PLAN_FIELD_KEYS, MonthlyPlan, is_valid_month, utc_now_iso
from core.storage.kv_store import JsonKeyValueStore
from core.utils.errors import PlanNotFoundError


def plans_key(month: str) -> str:
    return f"plans_{month}"


class PlanBook:
    """Read and upsert plans stored under ``plans_<YYYY-MM>`` keys."""

    def __init__(self, kv: JsonKeyValueStore) -> None:
        self._kv = kv

    def list_for_month(self, month: str) -> list[MonthlyPlan]:
        if not is_valid_month(month):
            raise ValueError(f"Invalid month: {month}")
        raw = self._kv.get(plans_key(month), [])
        return [MonthlyPlan.model_validate(item) for item in raw]

    def get(self, plan_id: str, *, month: str) -> MonthlyPlan:
        for plan in self.list_for_month(month):
            if plan.id == plan_id:
                return plan
        raise PlanNotFoundError(plan_id, month=month)

    def save(self, plan: MonthlyPlan) -> MonthlyPlan:
        """Insert a new plan or replace the one with the same id.

        Plans without a known id are stored as new entries with a fresh id.
        """

        plans = self.list_for_month(plan.month)
        now = utc_now_iso()

        for index, existing in enumerate(plans):
            if plan.id and existing.id == plan.id:
                saved = plan.model_copy(
                    update={"created_at": existing.created_at or now, "updated_at": now}
                )
                plans[index] = saved
                break
        else:
            saved = plan.model_copy(
                update={"id": uuid.uuid4().hex, "created_at": now, "updated_at": now}
            )
            plans.append(saved)

        self._kv.set(plans_key(plan.month), [item.model_dump(mode="json") for item in plans])
        return saved


def apply_values(plan: MonthlyPlan, values: Mapping[str, float]) -> MonthlyPlan:
    """Return a copy of ``plan`` with confirmed field values set."""

    unknown = sorted(set(values) - set(PLAN_FIELD_KEYS))
    if unknown:
        raise ValueError(f"Unknown plan fields: {unknown}")
    return MonthlyPlan.model_validate({**plan.model_dump(), **dict(values)})
