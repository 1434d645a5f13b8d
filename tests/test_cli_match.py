from __future__ import annotations

import json
from pathlib import Path

from typer.testing import CliRunner

from apps.cli.main import app

runner = CliRunner()


def _write_tokens(tmp_path: Path) -> Path:
    path = tmp_path / "tokens.json"
    path.write_text(
        json.dumps(["Гаджеты", "15", "GSM", "20", "мусор"], ensure_ascii=False),
        encoding="utf-8",
    )
    return path


def test_cli_match_json_output(tmp_path: Path) -> None:
    tokens_path = _write_tokens(tmp_path)

    result = runner.invoke(app, ["match", "--tokens", str(tokens_path), "--format", "json"])

    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["mappings"] == {"Гаджеты": "gadgets", "GSM": "gsm"}
    assert payload["values"] == {"gadgets": 15.0, "gsm": 20.0}
    assert len(payload["rows"]) == 5


def test_cli_match_human_output(tmp_path: Path) -> None:
    tokens_path = _write_tokens(tmp_path)

    result = runner.invoke(app, ["match", "--tokens", str(tokens_path)])

    assert result.exit_code == 0, result.output
    assert "match_review:" in result.output
    assert "tokens=5 matched=2" in result.output
    assert "-> gadgets (Гаджеты)" in result.output
    assert "unmatched" in result.output
    assert "gsm=20" in result.output


def test_cli_match_writes_out_file(tmp_path: Path) -> None:
    tokens_path = _write_tokens(tmp_path)
    out_path = tmp_path / "result.json"

    result = runner.invoke(
        app,
        ["match", "--tokens", str(tokens_path), "--out", str(out_path), "--format", "human"],
    )

    assert result.exit_code == 0, result.output
    assert "INFO: wrote match result" in result.output
    assert json.loads(out_path.read_text(encoding="utf-8"))["values"]["gadgets"] == 15.0


def test_cli_match_invalid_format_exits_1(tmp_path: Path) -> None:
    tokens_path = _write_tokens(tmp_path)

    result = runner.invoke(app, ["match", "--tokens", str(tokens_path), "--format", "xml"])

    assert result.exit_code == 1
    assert "ERROR: --format must be one of: human, json." in result.output


def test_cli_match_invalid_tokens_exits_1(tmp_path: Path) -> None:
    tokens_path = tmp_path / "tokens.json"
    tokens_path.write_text("{broken", encoding="utf-8")

    result = runner.invoke(app, ["match", "--tokens", str(tokens_path)])

    assert result.exit_code == 1
    assert "ERROR: Invalid tokens JSON" in result.output


def test_cli_match_with_missing_catalog_exits_1(tmp_path: Path) -> None:
    tokens_path = _write_tokens(tmp_path)

    result = runner.invoke(
        app,
        ["match", "--tokens", str(tokens_path), "--catalog", str(tmp_path / "nope.yaml")],
    )

    assert result.exit_code == 1
    assert "ERROR: Catalog file not found" in result.output
