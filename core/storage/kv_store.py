"""Local JSON-file key-value store."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from core.utils.errors import StorageError

_STORE_VERSION = 1


class JsonKeyValueStore:
    """Persist JSON values under string keys in one file.

    Writes go through a temp file and ``replace`` so readers never see a
    half-written store.
    """

    def __init__(self, store_path: Path) -> None:
        self._store_path = store_path

    def get(self, key: str, default: Any = None) -> Any:
        return self._read_data().get(key, default)

    def set(self, key: str, value: Any) -> None:
        data = self._read_data()
        data[key] = value
        self._write_data(data)

    def _read_data(self) -> dict[str, Any]:
        if not self._store_path.exists():
            return {}

        try:
            raw = json.loads(self._store_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise StorageError(f"Invalid store JSON: {self._store_path}") from exc

        if not isinstance(raw, dict) or not isinstance(raw.get("data", {}), dict):
            raise StorageError(f"Store file must contain a mapping: {self._store_path}")
        return dict(raw.get("data", {}))

    def _write_data(self, data: dict[str, Any]) -> None:
        self._store_path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self._store_path.with_suffix(f"{self._store_path.suffix}.tmp")

        payload = {"version": _STORE_VERSION, "data": data}
        try:
            encoded = json.dumps(
                payload,
                sort_keys=True,
                separators=(",", ":"),
                ensure_ascii=False,
                allow_nan=False,
            )
        except ValueError as exc:
            raise StorageError(f"Store values must be finite JSON: {self._store_path}") from exc
        temp_path.write_text(encoded, encoding="utf-8")
        temp_path.replace(self._store_path)
