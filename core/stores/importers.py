"""Parsers that turn pasted tables and recognized card text into stores."""

from __future__ import annotations

from dataclasses import dataclass

from core.stores.models import RecognizedStore, StoreDraft
from core.utils.errors import BulkImportError

# Known spreadsheet headers and the store attribute they carry.
KNOWN_HEADERS: dict[str, str] = {
    "Гр": "group",
    "Группа": "group",
    "Group": "group",
    "ТО": "name",
    "Название": "name",
    "Name": "name",
}

_CARD_NAME_KEYS = ("название", "name")
_CARD_GROUP_KEYS = ("группа", "group")


@dataclass(frozen=True)
class ColumnMapping:
    """Header names holding the store group and name."""

    group: str | None = None
    name: str | None = None


def detect_columns(headers: list[str]) -> ColumnMapping:
    """Guess group/name columns from exact known header names."""

    group: str | None = None
    name: str | None = None
    for header in headers:
        target = KNOWN_HEADERS.get(header.strip())
        if target == "group":
            group = header
        elif target == "name":
            name = header
    return ColumnMapping(group=group, name=name)


def parse_bulk_stores(
    text: str,
    *,
    group_column: str | None = None,
    name_column: str | None = None,
) -> list[StoreDraft]:
    """Parse a tab-separated table pasted from a spreadsheet.

    The first non-blank line is the header. Explicit column names override
    auto-detection. Rows missing either group or name are skipped.
    """

    lines = [line for line in text.splitlines() if line.strip()]
    headers = lines[0].split("\t") if lines else []
    detected = detect_columns(headers)
    mapping = ColumnMapping(
        group=group_column or detected.group,
        name=name_column or detected.name,
    )

    if not mapping.group or not mapping.name:
        raise BulkImportError("group and name columns must be mapped", reason="unmapped_columns")
    if len(lines) < 2:
        raise BulkImportError("no data rows to import", reason="no_rows")
    if mapping.group not in headers or mapping.name not in headers:
        raise BulkImportError("mapped columns not found in header", reason="missing_columns")

    group_index = headers.index(mapping.group)
    name_index = headers.index(mapping.name)

    drafts: list[StoreDraft] = []
    for line in lines[1:]:
        values = line.split("\t")
        group = _cell(values, group_index)
        name = _cell(values, name_index)
        if group and name:
            drafts.append(StoreDraft(name=name, group=group))

    if not drafts:
        raise BulkImportError("no complete store rows found", reason="no_complete_rows")
    return drafts


def parse_store_card(text: str) -> RecognizedStore:
    """Parse ``key: value`` lines recognized from a photographed store card."""

    raw: dict[str, str] = {}
    for line in text.splitlines():
        key, sep, value = line.partition(":")
        if not sep:
            continue
        key = key.strip().lower()
        value = value.strip()
        if key and value:
            raw[key] = value

    return RecognizedStore(
        name=_first_present(raw, _CARD_NAME_KEYS),
        group=_first_present(raw, _CARD_GROUP_KEYS),
        raw=raw,
    )


def _cell(values: list[str], index: int) -> str:
    if index >= len(values):
        return ""
    return values[index].strip()


def _first_present(raw: dict[str, str], keys: tuple[str, ...]) -> str:
    for key in keys:
        if raw.get(key):
            return raw[key]
    return ""
