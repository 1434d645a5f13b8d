"""CLI I/O helpers for token input and atomic result writing."""

from __future__ import annotations

import json
import tempfile
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from core.matching.models import Token


def load_tokens(path: Path) -> list[Token]:
    """Read OCR tokens from JSON.

    Accepts either a list of strings or a list of ``{"text", "confidence",
    "bbox"}`` objects, optionally wrapped as ``{"tokens": [...]}``.
    """

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid tokens JSON: {path}") from exc

    if isinstance(raw, dict):
        raw = raw.get("tokens")
    if not isinstance(raw, list):
        raise ValueError(f"Tokens file must contain a list: {path}")

    tokens: list[Token] = []
    for item in raw:
        try:
            if isinstance(item, str):
                tokens.append(Token(text=item))
            else:
                tokens.append(Token.model_validate(item))
        except ValidationError as exc:
            raise ValueError(f"Invalid token entry in {path}: {item!r}") from exc
    return tokens


def write_json_atomic(path: Path, payload: dict[str, Any]) -> None:
    """Write one JSON artifact via temporary file + replace."""

    path.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile(
        mode="w",
        encoding="utf-8",
        dir=path.parent,
        delete=False,
        prefix=f"{path.name}.",
        suffix=".tmp",
    ) as tmp:
        tmp_path = Path(tmp.name)
        json.dump(payload, tmp, ensure_ascii=False, sort_keys=True, indent=2)

    try:
        tmp_path.replace(path)
    except Exception:
        tmp_path.unlink(missing_ok=True)
        raise
