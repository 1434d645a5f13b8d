"""Typer CLI entrypoint for salesplan-tracker."""

from __future__ import annotations

import datetime as dt
import json
import logging
from pathlib import Path
from typing import Annotated, Any

import typer
from pydantic import ValidationError

from apps.cli.format_human import render_progress, render_review, render_summary
from apps.cli.io import load_tokens, write_json_atomic
from core.matching.field_matcher import FieldMatcher
from core.matching.pairing import pair_values
from core.plans.book import PlanBook
from core.plans.catalog import load_catalog
from core.revenue.log import RevenueLog, month_progress, summarize
from core.storage.kv_store import JsonKeyValueStore
from core.stores.directory import StoreDirectory
from core.stores.importers import parse_bulk_stores
from core.utils.errors import BulkImportError, StorageError

app = typer.Typer(help="Sales plan tracker CLI", rich_markup_mode=None)
stores_app = typer.Typer(help="Store directory commands.", rich_markup_mode=None)
revenue_app = typer.Typer(help="Revenue log commands.", rich_markup_mode=None)
app.add_typer(stores_app, name="stores")
app.add_typer(revenue_app, name="revenue")

logger = logging.getLogger("salesplan.cli")

DataOption = Annotated[
    Path,
    typer.Option("--data", envvar="SALESPLAN_DATA_PATH", help="JSON store file."),
]


@app.callback()
def cli_callback() -> None:
    """CLI root callback to keep subcommands explicit."""


@app.command("match")
def match_command(
    tokens: Annotated[Path, typer.Option(..., exists=True, dir_okay=False, file_okay=True)],
    catalog: Annotated[Path | None, typer.Option(envvar="SALESPLAN_CATALOG_PATH")] = None,
    out: Annotated[
        Path | None,
        typer.Option("--out", help="Write the suggested mapping and paired values as JSON."),
    ] = None,
    output_format: Annotated[str, typer.Option("--format")] = "human",
) -> None:
    """Suggest plan fields for OCR tokens and pair numbers with matched labels."""

    normalized_format = output_format.lower().strip()
    if normalized_format not in {"human", "json"}:
        typer.echo("ERROR: --format must be one of: human, json.")
        raise typer.Exit(code=1)

    try:
        field_catalog = load_catalog(catalog)
        token_list = load_tokens(tokens)
    except ValueError as exc:
        typer.echo(f"ERROR: {exc}")
        raise typer.Exit(code=1) from exc

    matcher = FieldMatcher(field_catalog.field_specs())
    review = matcher.review(token_list)
    values = pair_values(token_list, review.mappings)
    logger.info("matched %d of %d tokens", len(review.mappings), len(token_list))

    payload: dict[str, Any] = {**review.model_dump(), "values": values}
    if out is not None:
        write_json_atomic(out, payload)
        typer.echo(f"INFO: wrote match result to {out}")

    if normalized_format == "json":
        typer.echo(json.dumps(payload, ensure_ascii=False, sort_keys=True))
    else:
        typer.echo(render_review(review, values, field_catalog))


@stores_app.command("list")
def stores_list_command(data: DataOption = Path("data/salesplan.json")) -> None:
    """Print stores as tab-separated group/name/id rows."""

    try:
        stores = StoreDirectory(_open_kv(data)).list_all()
    except StorageError as exc:
        typer.echo(f"ERROR: {exc}")
        raise typer.Exit(code=1) from exc
    for store in stores:
        typer.echo(f"{store.group}\t{store.name}\t{store.id}")


@stores_app.command("import")
def stores_import_command(
    file: Annotated[Path, typer.Option(..., exists=True, dir_okay=False, file_okay=True)],
    data: DataOption = Path("data/salesplan.json"),
    group_column: Annotated[str | None, typer.Option()] = None,
    name_column: Annotated[str | None, typer.Option()] = None,
) -> None:
    """Import stores from a tab-separated table with a header row."""

    try:
        drafts = parse_bulk_stores(
            file.read_text(encoding="utf-8"),
            group_column=group_column,
            name_column=name_column,
        )
    except BulkImportError as exc:
        typer.echo(f"ERROR: {exc}")
        raise typer.Exit(code=1) from exc

    try:
        created = StoreDirectory(_open_kv(data)).import_many(drafts)
    except StorageError as exc:
        typer.echo(f"ERROR: {exc}")
        raise typer.Exit(code=1) from exc
    typer.echo(f"INFO: imported {len(created)} stores")


@revenue_app.command("add")
def revenue_add_command(
    amount: Annotated[float, typer.Option(...)],
    date: Annotated[str, typer.Option(..., help="YYYY-MM-DD")],
    data: DataOption = Path("data/salesplan.json"),
    store_id: Annotated[str | None, typer.Option()] = None,
) -> None:
    """Log one revenue amount."""

    try:
        entry_date = dt.date.fromisoformat(date)
    except ValueError as exc:
        typer.echo("ERROR: --date must use YYYY-MM-DD format.")
        raise typer.Exit(code=1) from exc

    try:
        entry = RevenueLog(_open_kv(data)).add(amount, entry_date, store_id=store_id)
    except (StorageError, ValidationError) as exc:
        typer.echo(f"ERROR: {exc}")
        raise typer.Exit(code=1) from exc
    typer.echo(f"INFO: added revenue {entry.id}")


@revenue_app.command("summary")
def revenue_summary_command(
    data: DataOption = Path("data/salesplan.json"),
    store_id: Annotated[str | None, typer.Option()] = None,
    output_format: Annotated[str, typer.Option("--format")] = "human",
) -> None:
    """Print total, average, maximum and minimum revenue."""

    try:
        entries = RevenueLog(_open_kv(data)).list_all(store_id=store_id)
    except StorageError as exc:
        typer.echo(f"ERROR: {exc}")
        raise typer.Exit(code=1) from exc
    summary = summarize(entries)
    if output_format.lower().strip() == "json":
        typer.echo(json.dumps(summary.model_dump(), sort_keys=True))
        return
    typer.echo(render_summary(summary))


@revenue_app.command("progress")
def revenue_progress_command(
    month: Annotated[str, typer.Option(..., help="YYYY-MM")],
    data: DataOption = Path("data/salesplan.json"),
    store_id: Annotated[str | None, typer.Option()] = None,
    output_format: Annotated[str, typer.Option("--format")] = "human",
) -> None:
    """Print daily planned versus actual revenue for one month."""

    kv = _open_kv(data)
    try:
        plans = PlanBook(kv).list_for_month(month)
        entries = RevenueLog(kv).list_all(store_id=store_id)
        if store_id is not None:
            plans = [plan for plan in plans if plan.store_id == store_id]
        rows = month_progress(plans, entries, month)
    except (StorageError, ValueError) as exc:
        typer.echo(f"ERROR: {exc}")
        raise typer.Exit(code=1) from exc

    if output_format.lower().strip() == "json":
        typer.echo(json.dumps([row.model_dump(mode="json") for row in rows], sort_keys=True))
        return
    typer.echo(render_progress(rows))


def _open_kv(data: Path) -> JsonKeyValueStore:
    return JsonKeyValueStore(data.expanduser())


def main() -> None:
    app()


if __name__ == "__main__":
    main()
