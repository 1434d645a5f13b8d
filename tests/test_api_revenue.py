from __future__ import annotations

import logging
from pathlib import Path

import httpx
import pytest

from apps.api.main import app


@pytest.fixture(autouse=True)
def _data_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SALESPLAN_DATA_PATH", str(tmp_path / "store.json"))


@pytest.mark.anyio
async def test_add_and_list_revenues_newest_first() -> None:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        first = await client.post("/api/revenues", json={"amount": 100, "date": "2024-05-01"})
        await client.post("/api/revenues", json={"amount": 250.5, "date": "2024-05-03"})
        listed = await client.get("/api/revenues")

    assert first.status_code == 201
    assert first.json()["id"]
    assert first.json()["date"] == "2024-05-01"
    assert [item["amount"] for item in listed.json()] == [250.5, 100]


@pytest.mark.anyio
async def test_add_revenue_invalid_date_returns_400() -> None:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        response = await client.post("/api/revenues", json={"amount": 100, "date": "yesterday"})

    assert response.status_code == 400
    assert response.json()["error_code"] == "INVALID_ARGUMENT"
    assert response.json()["detail"]["field"] == "revenue"


@pytest.mark.anyio
async def test_revenue_summary_empty_is_zero() -> None:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        response = await client.get("/api/revenues/summary")

    assert response.status_code == 200
    assert response.json() == {
        "count": 0,
        "total": 0.0,
        "average": 0.0,
        "maximum": 0.0,
        "minimum": 0.0,
    }


@pytest.mark.anyio
async def test_revenue_summary_filters_by_store() -> None:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        for amount, store_id in ((100, "s1"), (300, "s1"), (999, "s2")):
            await client.post(
                "/api/revenues",
                json={"amount": amount, "date": "2024-05-01", "store_id": store_id},
            )
        response = await client.get("/api/revenues/summary", params={"store_id": "s1"})
        listed = await client.get("/api/revenues", params={"store_id": "s2"})

    summary = response.json()
    assert summary["count"] == 2
    assert summary["total"] == 400
    assert summary["average"] == 200
    assert summary["maximum"] == 300
    assert summary["minimum"] == 100
    assert [item["amount"] for item in listed.json()] == [999]


@pytest.mark.anyio
@pytest.mark.parametrize("raw_amount", ["NaN", "Infinity", "-Infinity"])
async def test_add_revenue_non_finite_amount_is_rejected(raw_amount: str) -> None:
    body = f'{{"amount": {raw_amount}, "date": "2024-05-01"}}'.encode("utf-8")

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        response = await client.post(
            "/api/revenues",
            content=body,
            headers={"Content-Type": "application/json"},
        )
        listed = await client.get("/api/revenues")
        summary = await client.get("/api/revenues/summary")

    assert response.status_code == 400
    assert response.json()["error_code"] == "INVALID_ARGUMENT"
    assert listed.status_code == 200
    assert listed.json() == []
    assert summary.status_code == 200


@pytest.mark.anyio
async def test_revenue_progress_compares_plan_and_actual() -> None:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        store = (await client.post("/api/stores", json={"name": "A", "group": "G"})).json()
        await client.post(
            "/api/plans",
            json={"store_id": store["id"], "month": "2024-05", "gsm": 3100},
        )
        await client.post(
            "/api/revenues",
            json={"amount": 150, "date": "2024-05-02", "store_id": store["id"]},
        )
        await client.post(
            "/api/revenues",
            json={"amount": 40, "date": "2024-05-01", "store_id": store["id"]},
        )
        await client.post("/api/revenues", json={"amount": 500, "date": "2024-05-01"})
        response = await client.get(
            "/api/revenues/progress",
            params={"month": "2024-05", "store_id": store["id"]},
        )

    assert response.status_code == 200
    rows = response.json()
    assert [row["date"] for row in rows] == ["2024-05-02", "2024-05-01"]
    assert rows[0]["planned"] == pytest.approx(100)
    assert rows[0]["met"] is True
    assert rows[1]["actual"] == 40
    assert rows[1]["percentage"] == pytest.approx(40)
    assert rows[1]["met"] is False


@pytest.mark.anyio
async def test_revenue_progress_requires_month() -> None:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        response = await client.get("/api/revenues/progress")

    assert response.status_code == 400
    assert response.json()["detail"]["field"] == "month"


@pytest.mark.anyio
async def test_unexpected_failure_keeps_error_text_out_of_response(
    monkeypatch: pytest.MonkeyPatch,
    caplog: pytest.LogCaptureFixture,
) -> None:
    def _explode(entries):
        raise RuntimeError("secret internal detail")

    monkeypatch.setattr("apps.api.main.summarize", _explode)
    caplog.set_level(logging.INFO, logger="salesplan.api")

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        response = await client.get("/api/revenues/summary")

    assert response.status_code == 500
    payload = response.json()
    assert payload["error_code"] == "INTERNAL_ERROR"
    assert "secret internal detail" not in response.text
    assert set(payload["detail"]) == {"total_ms", "request_id"}
    messages = [record.message for record in caplog.records if record.name == "salesplan.api"]
    assert any(
        "secret internal detail" in message and '"error_type":"RuntimeError"' in message
        for message in messages
    )
