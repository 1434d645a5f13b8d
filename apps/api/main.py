"""FastAPI service for stores, monthly plans, revenue and OCR field matching."""

from __future__ import annotations

import base64
import binascii
import datetime as dt
import hmac
import importlib.metadata
import json
import logging
import os
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, TypeVar

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from core.matching.field_matcher import ACCEPT_THRESHOLD, FieldMatcher
from core.matching.models import FieldSpec, Token
from core.matching.pairing import confirm_mappings
from core.plans.book import PlanBook, apply_values
from core.plans.catalog import FieldCatalog, load_catalog
from core.plans.models import MonthlyPlan, is_valid_month
from core.revenue.log import RevenueLog, month_progress, summarize
from core.storage.kv_store import JsonKeyValueStore
from core.stores.directory import StoreDirectory
from core.stores.importers import parse_bulk_stores, parse_store_card
from core.stores.models import StoreChanges, StoreDraft
from core.utils.errors import (
    BulkImportError,
    PlanNotFoundError,
    StorageError,
    StoreNotFoundError,
)

app = FastAPI(title="salesplan-tracker API", version="0.1.0")
logger = logging.getLogger("salesplan.api")

_REQUEST_ID_HEADER = "X-Salesplan-Request-Id"
_DEFAULT_DATA_PATH = "data/salesplan.json"
_DEFAULT_MAX_TOKENS = 500
_BASIC_AUTH_REALM = "salesplan"

BodyModel = TypeVar("BodyModel", bound=BaseModel)


class BulkImportRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    text: str
    group_column: str | None = None
    name_column: str | None = None


class RecognizeStoreRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    text: str


class SuggestRequest(BaseModel):
    """OCR tokens to match; ``fields`` narrows the catalog when given."""

    model_config = ConfigDict(extra="forbid")

    tokens: list[Token] = Field(default_factory=list)
    fields: list[str] | None = None


class ConfirmRequest(BaseModel):
    """Operator-reviewed mapping, optionally applied to a stored plan."""

    model_config = ConfigDict(extra="forbid")

    tokens: list[Token] = Field(default_factory=list)
    mappings: dict[str, str] = Field(default_factory=dict)
    plan_id: str | None = None
    month: str | None = None


class AddRevenueRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", allow_inf_nan=False)

    amount: float
    date: dt.date
    store_id: str | None = None


class ApiRequestError(Exception):
    def __init__(
        self,
        *,
        status_code: int,
        error_code: str,
        message: str,
        detail: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.error_code = error_code
        self.message = message
        self.detail = detail or {}


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    """Ensure every response has a request id header."""

    request_id = uuid.uuid4().hex
    request.state.request_id = request_id
    try:
        response = await call_next(request)
    except Exception:  # noqa: BLE001
        _log_event(
            logging.ERROR,
            "error",
            request_id,
            error_code="INTERNAL_ERROR",
            status_code=500,
            failure_stage="middleware",
        )
        response = _error_response(
            status_code=500,
            error_code="INTERNAL_ERROR",
            message="internal server error",
            request_id=request_id,
            detail={"path": request.url.path},
        )
    response.headers.setdefault(_REQUEST_ID_HEADER, request_id)
    return response


@app.get("/healthz")
async def healthz() -> dict[str, str]:
    """Liveness endpoint."""

    return {"status": "ok"}


@app.get("/v1/meta")
async def meta_v1(request: Request) -> JSONResponse:
    """Metadata endpoint for form/bootstrap clients."""

    request_id = _request_id_from_request(request)
    auth_error = _guard_meta_access(request, request_id)
    if auth_error is not None:
        return auth_error

    def action() -> dict[str, Any]:
        catalog = _catalog()
        return {
            "version": app.version,
            "build": {
                "version": _package_version(),
                "commit": os.getenv("SALESPLAN_COMMIT_SHA", "unknown"),
            },
            "accept_threshold": ACCEPT_THRESHOLD,
            "fields": [item.model_dump() for item in catalog.fields],
        }

    return _api_call(request, "meta", action)


@app.get("/api/stores")
async def list_stores(request: Request) -> JSONResponse:
    def action() -> list[dict[str, Any]]:
        stores = StoreDirectory(_open_kv()).list_all()
        return [store.model_dump(mode="json") for store in stores]

    return _api_call(request, "list_stores", action)


@app.post("/api/stores")
async def create_store(request: Request) -> JSONResponse:
    body = await _read_json(request)

    def action() -> dict[str, Any]:
        draft = _validate_body(StoreDraft, body, field_name="store")
        store = StoreDirectory(_open_kv()).create(draft)
        return store.model_dump(mode="json")

    return _api_call(request, "create_store", action, success_status=201)


@app.post("/api/stores/bulk")
async def bulk_import_stores(request: Request) -> JSONResponse:
    body = await _read_json(request)

    def action() -> dict[str, Any]:
        payload = _validate_body(BulkImportRequest, body, field_name="bulk")
        drafts = parse_bulk_stores(
            payload.text,
            group_column=payload.group_column,
            name_column=payload.name_column,
        )
        created = StoreDirectory(_open_kv()).import_many(drafts)
        return {
            "imported": len(created),
            "stores": [store.model_dump(mode="json") for store in created],
        }

    return _api_call(request, "bulk_import_stores", action, success_status=201)


@app.post("/api/stores/recognize")
async def recognize_store(request: Request) -> JSONResponse:
    body = await _read_json(request)

    def action() -> dict[str, Any]:
        payload = _validate_body(RecognizeStoreRequest, body, field_name="text")
        return parse_store_card(payload.text).model_dump()

    return _api_call(request, "recognize_store", action)


@app.put("/api/stores/{store_id}")
async def update_store(store_id: str, request: Request) -> JSONResponse:
    body = await _read_json(request)

    def action() -> dict[str, Any]:
        changes = _validate_body(StoreChanges, _without_id(body), field_name="store")
        store = StoreDirectory(_open_kv()).update(store_id, changes)
        return store.model_dump(mode="json")

    return _api_call(request, "update_store", action)


@app.delete("/api/stores/{store_id}")
async def delete_store(store_id: str, request: Request) -> JSONResponse:
    def action() -> dict[str, Any]:
        StoreDirectory(_open_kv()).delete(store_id)
        return {"success": True}

    return _api_call(request, "delete_store", action)


@app.get("/api/plans")
async def list_plans(request: Request, month: str | None = None) -> JSONResponse:
    def action() -> list[dict[str, Any]]:
        checked = _require_month(month)
        plans = PlanBook(_open_kv()).list_for_month(checked)
        return [plan.model_dump(mode="json") for plan in plans]

    return _api_call(request, "list_plans", action)


@app.post("/api/plans")
async def save_plan(request: Request) -> JSONResponse:
    body = await _read_json(request)

    def action() -> dict[str, Any]:
        plan = _validate_body(MonthlyPlan, body, field_name="plan")
        kv = _open_kv()
        StoreDirectory(kv).get(plan.store_id)
        saved = PlanBook(kv).save(plan)
        return saved.model_dump(mode="json")

    return _api_call(request, "save_plan", action)


@app.post("/api/plans/suggest")
async def suggest_plan_fields(request: Request) -> JSONResponse:
    body = await _read_json(request)

    def action() -> dict[str, Any]:
        payload = _validate_body(SuggestRequest, body, field_name="tokens")
        _check_token_count(payload.tokens)
        matcher = FieldMatcher(_selected_field_specs(_catalog(), payload.fields))
        review = matcher.review(payload.tokens)
        return review.model_dump()

    return _api_call(request, "suggest_plan_fields", action)


@app.post("/api/plans/confirm")
async def confirm_plan_fields(request: Request) -> JSONResponse:
    body = await _read_json(request)

    def action() -> dict[str, Any]:
        payload = _validate_body(ConfirmRequest, body, field_name="mappings")
        _check_token_count(payload.tokens)
        try:
            values = confirm_mappings(payload.tokens, payload.mappings, _catalog().keys())
        except ValueError as exc:
            raise ApiRequestError(
                status_code=400,
                error_code="INVALID_ARGUMENT",
                message="mapping references an unknown field",
                detail={"field": "mappings", "error": str(exc)},
            ) from exc

        result: dict[str, Any] = {"values": values, "plan": None}
        if payload.plan_id is None:
            return result

        book = PlanBook(_open_kv())
        plan = book.get(payload.plan_id, month=_require_month(payload.month))
        saved = book.save(apply_values(plan, values))
        result["plan"] = saved.model_dump(mode="json")
        return result

    return _api_call(request, "confirm_plan_fields", action)


@app.get("/api/revenues")
async def list_revenues(request: Request, store_id: str | None = None) -> JSONResponse:
    def action() -> list[dict[str, Any]]:
        entries = RevenueLog(_open_kv()).list_all(store_id=store_id)
        return [entry.model_dump(mode="json") for entry in entries]

    return _api_call(request, "list_revenues", action)


@app.post("/api/revenues")
async def add_revenue(request: Request) -> JSONResponse:
    body = await _read_json(request)

    def action() -> dict[str, Any]:
        payload = _validate_body(AddRevenueRequest, body, field_name="revenue")
        entry = RevenueLog(_open_kv()).add(
            payload.amount, payload.date, store_id=payload.store_id
        )
        return entry.model_dump(mode="json")

    return _api_call(request, "add_revenue", action, success_status=201)


@app.get("/api/revenues/summary")
async def revenue_summary(request: Request, store_id: str | None = None) -> JSONResponse:
    def action() -> dict[str, Any]:
        entries = RevenueLog(_open_kv()).list_all(store_id=store_id)
        return summarize(entries).model_dump()

    return _api_call(request, "revenue_summary", action)


@app.get("/api/revenues/progress")
async def revenue_progress(
    request: Request, month: str | None = None, store_id: str | None = None
) -> JSONResponse:
    def action() -> list[dict[str, Any]]:
        checked = _require_month(month)
        kv = _open_kv()
        plans = PlanBook(kv).list_for_month(checked)
        if store_id is not None:
            plans = [plan for plan in plans if plan.store_id == store_id]
        entries = RevenueLog(kv).list_all(store_id=store_id)
        rows = month_progress(plans, entries, checked)
        return [row.model_dump(mode="json") for row in rows]

    return _api_call(request, "revenue_progress", action)


def _api_call(
    request: Request,
    operation: str,
    action: Callable[[], Any],
    *,
    success_status: int = 200,
) -> JSONResponse:
    """Run one endpoint action and translate failures into error envelopes."""

    started = time.perf_counter()
    request_id = _request_id_from_request(request)
    try:
        content = action()
    except ApiRequestError as exc:
        return _failed(
            request_id,
            operation,
            exc.status_code,
            exc.error_code,
            exc.message,
            exc.detail,
        )
    except (StoreNotFoundError, PlanNotFoundError) as exc:
        return _failed(request_id, operation, 404, "NOT_FOUND", str(exc), {})
    except ValidationError as exc:
        return _failed(
            request_id,
            operation,
            400,
            "INVALID_ARGUMENT",
            "validation failed",
            {"error": str(exc)},
        )
    except BulkImportError as exc:
        return _failed(
            request_id,
            operation,
            400,
            "INVALID_ARGUMENT",
            str(exc),
            {"field": "text", "reason": exc.reason},
        )
    except StorageError as exc:
        return _failed(
            request_id,
            operation,
            500,
            "STORAGE_ERROR",
            "storage unavailable",
            {"error": str(exc)},
        )
    except Exception as exc:  # noqa: BLE001
        return _failed(
            request_id,
            operation,
            500,
            "INTERNAL_ERROR",
            "internal server error",
            {"total_ms": _elapsed_ms(started)},
            error_type=type(exc).__name__,
            error=str(exc),
        )

    _log_event(
        logging.INFO,
        "done",
        request_id,
        operation=operation,
        status_code=success_status,
        timing={"total_ms": _elapsed_ms(started)},
    )
    return JSONResponse(
        status_code=success_status,
        headers={_REQUEST_ID_HEADER: request_id},
        content=content,
    )


def _failed(
    request_id: str,
    failure_stage: str,
    status_code: int,
    error_code: str,
    message: str,
    detail: dict[str, Any],
    **log_fields: Any,
) -> JSONResponse:
    _log_event(
        logging.ERROR,
        "error",
        request_id,
        error_code=error_code,
        status_code=status_code,
        failure_stage=failure_stage,
        **log_fields,
    )
    return _error_response(
        status_code=status_code,
        error_code=error_code,
        message=message,
        request_id=request_id,
        detail=detail,
    )


@dataclass(frozen=True)
class _InvalidJson:
    error: str


async def _read_json(request: Request) -> Any:
    """Read the raw JSON body; parse errors surface inside ``_api_call``."""

    raw = await request.body()
    try:
        return json.loads(raw.decode("utf-8")) if raw else None
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        return _InvalidJson(str(exc))


def _validate_body(model: type[BodyModel], body: Any, *, field_name: str) -> BodyModel:
    if isinstance(body, _InvalidJson):
        raise ApiRequestError(
            status_code=400,
            error_code="INVALID_JSON",
            message="request body must be valid UTF-8 JSON",
            detail={"field": field_name, "error": body.error},
        )
    if not isinstance(body, dict):
        raise ApiRequestError(
            status_code=400,
            error_code="INVALID_JSON",
            message="request JSON must be an object",
            detail={"field": field_name},
        )
    try:
        return model.model_validate(body)
    except ValidationError as exc:
        raise ApiRequestError(
            status_code=400,
            error_code="INVALID_ARGUMENT",
            message=f"{field_name} schema validation failed",
            detail={"field": field_name, "error": str(exc)},
        ) from exc


def _without_id(body: Any) -> Any:
    if isinstance(body, dict):
        return {key: value for key, value in body.items() if key != "id"}
    return body


def _require_month(month: str | None) -> str:
    if month is None or not month.strip():
        raise ApiRequestError(
            status_code=400,
            error_code="INVALID_ARGUMENT",
            message="month parameter is required",
            detail={"field": "month"},
        )
    if not is_valid_month(month):
        raise ApiRequestError(
            status_code=400,
            error_code="INVALID_ARGUMENT",
            message="month must use YYYY-MM format",
            detail={"field": "month", "value": month},
        )
    return month


def _check_token_count(tokens: list[Token]) -> None:
    max_tokens = _max_tokens()
    if len(tokens) > max_tokens:
        raise ApiRequestError(
            status_code=413,
            error_code="TOO_MANY_TOKENS",
            message="token batch exceeds limit",
            detail={"field": "tokens", "max_tokens": max_tokens, "received": len(tokens)},
        )


def _selected_field_specs(
    catalog: FieldCatalog, requested: list[str] | None
) -> list[FieldSpec]:
    specs = catalog.field_specs()
    if requested is None:
        return specs

    known = {spec.key for spec in specs}
    unknown = sorted(set(requested) - known)
    if unknown:
        raise ApiRequestError(
            status_code=400,
            error_code="INVALID_ARGUMENT",
            message="unknown plan fields",
            detail={"field": "fields", "unknown": unknown, "allowed": catalog.keys()},
        )
    # Catalog order decides ties, so keep it regardless of request order.
    wanted = set(requested)
    return [spec for spec in specs if spec.key in wanted]


def _open_kv() -> JsonKeyValueStore:
    return JsonKeyValueStore(_data_path())


def _data_path() -> Path:
    raw = os.getenv("SALESPLAN_DATA_PATH", "").strip()
    return Path(raw or _DEFAULT_DATA_PATH).expanduser()


def _catalog() -> FieldCatalog:
    raw = os.getenv("SALESPLAN_CATALOG_PATH", "").strip()
    return load_catalog(Path(raw) if raw else None)


def _max_tokens() -> int:
    raw = os.getenv("SALESPLAN_MAX_TOKENS")
    if raw is None:
        return _DEFAULT_MAX_TOKENS
    try:
        parsed = int(raw)
    except ValueError:
        return _DEFAULT_MAX_TOKENS
    return parsed if parsed > 0 else _DEFAULT_MAX_TOKENS


def _request_id_from_request(request: Request) -> str:
    request_id = getattr(request.state, "request_id", None)
    if isinstance(request_id, str) and request_id:
        return request_id
    generated = uuid.uuid4().hex
    request.state.request_id = generated
    return generated


def _guard_meta_access(request: Request, request_id: str) -> JSONResponse | None:
    if not _meta_enabled():
        return _error_response(
            status_code=404,
            error_code="NOT_FOUND",
            message="meta endpoint is disabled",
            request_id=request_id,
            detail={"path": request.url.path},
        )

    expected = _basic_auth_credentials()
    if expected is None or _request_has_valid_basic_auth(request, expected):
        return None

    return _error_response(
        status_code=401,
        error_code="UNAUTHORIZED",
        message="authentication required",
        request_id=request_id,
        detail={
            "path": request.url.path,
            "auth_enabled": True,
        },
        extra_headers={"WWW-Authenticate": f'Basic realm="{_BASIC_AUTH_REALM}"'},
    )


def _meta_enabled() -> bool:
    raw = os.getenv("SALESPLAN_ENABLE_META", "1").strip().lower()
    return raw not in {"0", "false", "off", "no"}


def _basic_auth_credentials() -> tuple[str, str] | None:
    raw = os.getenv("SALESPLAN_BASIC_AUTH")
    if raw is None:
        return None

    candidate = raw.strip()
    if ":" not in candidate:
        return None

    username, password = candidate.split(":", 1)
    if not username or not password:
        return None
    return username, password


def _request_has_valid_basic_auth(request: Request, expected: tuple[str, str]) -> bool:
    auth_header = request.headers.get("authorization")
    if auth_header is None:
        return False

    scheme, _, token = auth_header.partition(" ")
    if scheme.lower() != "basic" or not token:
        return False

    try:
        decoded = base64.b64decode(token.encode("ascii"), validate=True).decode("utf-8")
    except (ValueError, UnicodeDecodeError, binascii.Error):
        return False

    if ":" not in decoded:
        return False
    username, password = decoded.split(":", 1)
    expected_username, expected_password = expected
    return hmac.compare_digest(username, expected_username) and hmac.compare_digest(
        password, expected_password
    )


def _package_version() -> str:
    try:
        return importlib.metadata.version("salesplan-tracker")
    except importlib.metadata.PackageNotFoundError:
        return "unknown"


def _error_response(
    *,
    status_code: int,
    error_code: str,
    message: str,
    request_id: str,
    detail: dict[str, Any] | None = None,
    extra_headers: dict[str, str] | None = None,
) -> JSONResponse:
    payload_detail = dict(detail or {})
    payload_detail["request_id"] = request_id

    headers = {_REQUEST_ID_HEADER: request_id}
    if extra_headers is not None:
        headers.update(extra_headers)

    return JSONResponse(
        status_code=status_code,
        headers=headers,
        content={
            "error_code": error_code,
            "message": message,
            "detail": payload_detail,
        },
    )


def _dump_json(payload: dict[str, Any]) -> str:
    return json.dumps(payload, ensure_ascii=False, sort_keys=True, separators=(",", ":"))


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


def _log_event(level: int, event: str, request_id: str, **fields: Any) -> None:
    payload = {
        "event": event,
        "request_id": request_id,
        **fields,
    }
    logger.log(level, _dump_json(payload))
