from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from core.plans.book import PlanBook, apply_values, plans_key
from core.plans.models import MonthlyPlan, is_valid_month
from core.storage.kv_store import JsonKeyValueStore
from core.utils.errors import PlanNotFoundError


def _book(tmp_path: Path) -> tuple[PlanBook, JsonKeyValueStore]:
    kv = JsonKeyValueStore(tmp_path / "store.json")
    return PlanBook(kv), kv


@pytest.mark.parametrize(
    ("value", "expected"),
    [("2024-05", True), ("2024-12", True), ("2024-13", False), ("2024-5", False), ("", False)],
)
def test_is_valid_month(value: str, expected: bool) -> None:
    assert is_valid_month(value) is expected


def test_monthly_plan_defaults_and_totals() -> None:
    plan = MonthlyPlan(store_id="s1", month="2024-05", gsm=10, sim=2.5, skill=4)

    assert plan.id == ""
    assert plan.gadgets == 0
    assert plan.total() == 16.5
    assert len(plan.field_values()) == 17


def test_monthly_plan_rejects_negative_and_bad_month() -> None:
    with pytest.raises(ValidationError):
        MonthlyPlan(store_id="s1", month="2024-05", gsm=-1)
    with pytest.raises(ValidationError):
        MonthlyPlan(store_id="s1", month="May 2024")


def test_save_new_plan_assigns_id_and_timestamps(tmp_path: Path) -> None:
    book, kv = _book(tmp_path)

    saved = book.save(MonthlyPlan(store_id="s1", month="2024-05", gsm=10))

    assert saved.id
    assert saved.created_at is not None
    assert saved.updated_at is not None
    assert len(kv.get(plans_key("2024-05"))) == 1
    assert book.list_for_month("2024-05") == [saved]


def test_save_existing_plan_replaces_in_place(tmp_path: Path) -> None:
    book, _ = _book(tmp_path)
    first = book.save(MonthlyPlan(store_id="s1", month="2024-05", gsm=10))
    book.save(MonthlyPlan(store_id="s2", month="2024-05", gsm=1))

    updated = book.save(first.model_copy(update={"gsm": 25}))

    plans = book.list_for_month("2024-05")
    assert len(plans) == 2
    assert updated.id == first.id
    assert updated.created_at == first.created_at
    assert book.get(first.id, month="2024-05").gsm == 25


def test_months_are_stored_separately(tmp_path: Path) -> None:
    book, _ = _book(tmp_path)
    book.save(MonthlyPlan(store_id="s1", month="2024-05"))

    assert book.list_for_month("2024-06") == []
    assert [plan.store_id for plan in book.list_for_month("2024-05")] == ["s1"]


def test_list_for_month_rejects_invalid_month(tmp_path: Path) -> None:
    book, _ = _book(tmp_path)

    with pytest.raises(ValueError, match="Invalid month"):
        book.list_for_month("2024/05")


def test_get_missing_plan_raises(tmp_path: Path) -> None:
    book, _ = _book(tmp_path)

    with pytest.raises(PlanNotFoundError):
        book.get("nope", month="2024-05")


def test_apply_values_sets_fields_and_keeps_others() -> None:
    plan = MonthlyPlan(id="p1", store_id="s1", month="2024-05", gsm=10)

    result = apply_values(plan, {"gadgets": 15.0, "auto": 3.0})

    assert result.id == "p1"
    assert result.gsm == 10
    assert result.gadgets == 15
    assert result.auto == 3


def test_apply_values_rejects_unknown_field() -> None:
    plan = MonthlyPlan(store_id="s1", month="2024-05")

    with pytest.raises(ValueError, match="Unknown plan fields"):
        apply_values(plan, {"bonus": 1.0})


@pytest.mark.parametrize("value", [float("inf"), float("nan")])
def test_monthly_plan_rejects_non_finite_values(value: float) -> None:
    with pytest.raises(ValidationError):
        MonthlyPlan(store_id="s1", month="2024-05", gsm=value)
