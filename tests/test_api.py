import sqlite3
from decimal import Decimal
from uuid import uuid4

from sqlalchemy.exc import OperationalError

from fleet_inventory.models.part import ABCClass
from fleet_inventory.services.part_stock_service import PartStockService


async def test_cycle_count_flow(client, make_part, make_completed_count, today):
    part = await make_part(
        "BRK-PAD-01", quantity_on_hand="100", unit_cost="40", usage_quantity="300", abc_class=ABCClass.A
    )
    await make_completed_count(part, days_ago=31)
    await make_part("HOSE-02", unit_cost="20", usage_quantity="100", created_days_ago=10)
    await make_part("FUSE-03", unit_cost="1", usage_quantity="1000", created_days_ago=10)

    abc_resp = await client.post("/api/v1/parts/recalculate-abc")
    assert abc_resp.status_code == 200
    assert abc_resp.json()["classified"] == 3

    schedule_resp = await client.post(
        "/api/v1/cycle-counts/generate-schedule", json={"as_of": today.isoformat()}
    )
    assert schedule_resp.status_code == 200
    assert schedule_resp.json() == {"scheduled": 1, "skipped_open": 0, "not_due": 2, "complete": True}

    list_resp = await client.get("/api/v1/cycle-counts", params={"status": "scheduled"})
    assert list_resp.status_code == 200
    body = list_resp.json()
    assert body["total"] == 1
    count = body["items"][0]
    assert count["count_number"] == "CC-00001"
    assert count["part"]["part_number"] == "BRK-PAD-01"
    assert Decimal(count["expected_quantity"]) == Decimal("100")

    execute_resp = await client.post(
        f"/api/v1/cycle-counts/{count['id']}/execute",
        json={"actual_quantity": 97, "counted_by_name": "Night shift"},
    )
    assert execute_resp.status_code == 200
    assert execute_resp.json()["status"] == "completed"
    assert Decimal(execute_resp.json()["variance"]) == Decimal("-3")

    receipt_resp = await client.post(f"/api/v1/parts/{part.id}/receipts", json={"quantity": 10})
    assert receipt_resp.status_code == 200
    assert Decimal(receipt_resp.json()["quantity_on_hand"]) == Decimal("110")

    reconcile_resp = await client.post(f"/api/v1/cycle-counts/{count['id']}/reconcile")
    assert reconcile_resp.status_code == 200
    result = reconcile_resp.json()
    assert Decimal(result["part"]["quantity_on_hand"]) == Decimal("107")
    assert result["cycle_count"]["is_reconciled"] is True
    assert Decimal(result["adjustment"]["quantity_before"]) == Decimal("110")

    part_resp = await client.get(f"/api/v1/parts/{part.id}")
    assert part_resp.status_code == 200
    assert Decimal(part_resp.json()["quantity_on_hand"]) == Decimal("107")
    assert part_resp.json()["abc_class"] == "A"

    again_resp = await client.post(f"/api/v1/cycle-counts/{count['id']}/reconcile")
    assert again_resp.status_code == 409
    assert again_resp.json()["type"] == "AlreadyReconciledError"

    adjustments_resp = await client.get("/api/v1/inventory-adjustments", params={"part_id": str(part.id)})
    assert adjustments_resp.json()["total"] == 1

    summary_resp = await client.get("/api/v1/cycle-counts/summary")
    assert summary_resp.status_code == 200
    assert summary_resp.json()["completed"] == 2
    assert summary_resp.json()["needs_reconcile"] == 0


async def test_adhoc_count_and_cancel(client, make_part):
    part = await make_part("FLT-OIL-09", quantity_on_hand="6")

    create_resp = await client.post("/api/v1/cycle-counts", json={"part_id": str(part.id)})
    assert create_resp.status_code == 201
    count_id = create_resp.json()["id"]

    duplicate_resp = await client.post("/api/v1/cycle-counts", json={"part_id": str(part.id)})
    assert duplicate_resp.status_code == 409
    assert duplicate_resp.json()["type"] == "InvalidStateError"

    start_resp = await client.post(f"/api/v1/cycle-counts/{count_id}/start")
    assert start_resp.json()["status"] == "in_progress"

    cancel_resp = await client.post(f"/api/v1/cycle-counts/{count_id}/cancel", json={"reason": "Wrong bin"})
    assert cancel_resp.status_code == 200
    assert cancel_resp.json()["cancel_reason"] == "Wrong bin"

    reconcile_resp = await client.post(f"/api/v1/cycle-counts/{count_id}/reconcile")
    assert reconcile_resp.status_code == 409
    assert reconcile_resp.json()["type"] == "InvalidStateError"


async def test_error_responses(client, make_part):
    missing_resp = await client.get(f"/api/v1/cycle-counts/{uuid4()}")
    assert missing_resp.status_code == 404
    assert missing_resp.json()["type"] == "NotFoundError"
    assert missing_resp.json()["path"].startswith("/api/v1/cycle-counts/")

    part = await make_part("WPR-BLD-22", quantity_on_hand="2")
    count_id = (await client.post("/api/v1/cycle-counts", json={"part_id": str(part.id)})).json()["id"]

    negative_resp = await client.post(
        f"/api/v1/cycle-counts/{count_id}/execute", json={"actual_quantity": -4}
    )
    assert negative_resp.status_code == 422
    assert negative_resp.json()["type"] == "ValidationError"

    issue_resp = await client.post(f"/api/v1/parts/{part.id}/issues", json={"quantity": 5})
    assert issue_resp.status_code == 422

    get_resp = await client.get(f"/api/v1/cycle-counts/{count_id}")
    assert get_resp.json()["status"] == "scheduled"


async def test_locked_row_asks_caller_to_retry(client, make_part, monkeypatch):
    part = await make_part("ALT-BELT-07", quantity_on_hand="3")

    async def locked_receipt(self, part_id, quantity):
        raise OperationalError(
            "UPDATE parts SET quantity_on_hand=? WHERE parts.id = ?",
            {},
            sqlite3.OperationalError("database is locked"),
        )

    monkeypatch.setattr(PartStockService, "record_receipt", locked_receipt)

    resp = await client.post(f"/api/v1/parts/{part.id}/receipts", json={"quantity": 1})

    assert resp.status_code == 409
    body = resp.json()
    assert set(body) == {"error", "type", "path"}
    assert body["type"] == "OperationalError"
    assert body["path"] == f"/api/v1/parts/{part.id}/receipts"
    assert "retry" in body["error"]
