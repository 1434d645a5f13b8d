from __future__ import annotations

from pathlib import Path

import pytest

from core.storage.kv_store import JsonKeyValueStore
from core.utils.errors import StorageError


def test_kv_store_initializes_empty(tmp_path: Path) -> None:
    kv = JsonKeyValueStore(tmp_path / "store.json")

    assert kv.get("stores") is None
    assert kv.get("stores", []) == []


def test_kv_store_set_and_get_round_trip(tmp_path: Path) -> None:
    kv = JsonKeyValueStore(tmp_path / "store.json")

    kv.set("plans_2024-05", [{"id": "p1", "gsm": 10}])

    assert kv.get("plans_2024-05") == [{"id": "p1", "gsm": 10}]


def test_kv_store_persists_across_instances(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "store.json"
    JsonKeyValueStore(path).set("stores", [{"id": "s1", "name": "Магазин"}])

    assert JsonKeyValueStore(path).get("stores") == [{"id": "s1", "name": "Магазин"}]
    assert list(path.parent.glob("*.tmp")) == []


def test_kv_store_raises_on_invalid_json(tmp_path: Path) -> None:
    path = tmp_path / "store.json"
    path.write_text("{invalid", encoding="utf-8")

    with pytest.raises(StorageError, match="Invalid store JSON"):
        JsonKeyValueStore(path).get("stores")


def test_kv_store_raises_on_non_mapping(tmp_path: Path) -> None:
    path = tmp_path / "store.json"
    path.write_text("[1, 2]", encoding="utf-8")

    with pytest.raises(StorageError, match="must contain a mapping"):
        JsonKeyValueStore(path).get("stores")


def test_kv_store_refuses_non_finite_values_and_keeps_file(tmp_path: Path) -> None:
    path = tmp_path / "store.json"
    kv = JsonKeyValueStore(path)
    kv.set("revenues", [{"amount": 1.0}])

    with pytest.raises(StorageError, match="finite"):
        kv.set("revenues", [{"amount": float("nan")}])

    assert JsonKeyValueStore(path).get("revenues") == [{"amount": 1.0}]
