"""Plan field catalog loading from YAML."""

from __future__ import annotations

from pathlib import Path

import yaml  # type: ignore[import-untyped]
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from core.matching.models import FieldSpec
from core.plans.models import PLAN_FIELD_KEYS, FieldGroup


class CatalogField(BaseModel):
    """One plan field as listed in the catalog."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    key: str
    label: str = Field(min_length=1)
    group: FieldGroup


class FieldCatalog(BaseModel):
    """Ordered, read-only list of plan fields."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    fields: tuple[CatalogField, ...] = Field(min_length=1)

    @model_validator(mode="after")
    def _check_keys(self) -> FieldCatalog:
        keys = [item.key for item in self.fields]
        duplicates = sorted({key for key in keys if keys.count(key) > 1})
        if duplicates:
            raise ValueError(f"duplicate field keys: {duplicates}")
        unknown = sorted(set(keys) - set(PLAN_FIELD_KEYS))
        if unknown:
            raise ValueError(f"unknown plan field keys: {unknown}")
        return self

    def keys(self) -> list[str]:
        return [item.key for item in self.fields]

    def field_specs(self) -> list[FieldSpec]:
        return [FieldSpec(key=item.key, label=item.label) for item in self.fields]

    def label_for(self, key: str) -> str | None:
        for item in self.fields:
            if item.key == key:
                return item.label
        return None


def load_catalog(path: Path | None = None) -> FieldCatalog:
    """Load and validate the field catalog from YAML."""

    catalog_path = path or Path(__file__).with_name("catalog.yaml")

    try:
        raw = yaml.safe_load(catalog_path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ValueError(f"Catalog file not found: {catalog_path}") from exc
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in catalog file: {catalog_path}") from exc

    if not isinstance(raw, dict):
        raise ValueError(f"Catalog file must contain a mapping: {catalog_path}")

    try:
        return FieldCatalog.model_validate(raw)
    except ValidationError as exc:
        raise ValueError(f"Invalid catalog schema: {catalog_path}") from exc
