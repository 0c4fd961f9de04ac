"""Integration tests for Fulfillment API endpoints via TestClient."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from fulfillment.api.errors import register_exception_handlers
from fulfillment.api.routes import fulfillment_router

TRACKING_NUMBER = "1Z999AA10123456784"


@pytest.fixture()
def client():
    app = FastAPI()
    app.include_router(fulfillment_router)
    register_exception_handlers(app)
    return TestClient(app)


def _create_fulfillment(client, **overrides):
    defaults = {
        "order_id": "ord-001",
        "items": [{"order_item_id": "oi-1", "quantity": 2}],
    }
    defaults.update(overrides)
    response = client.post("/fulfillments", json=defaults)
    assert response.status_code == 201, response.text
    return response.json()["fulfillment_id"]


def _ship(client, ff_id):
    response = client.put(f"/fulfillments/{ff_id}/tracking-number", json={"tracking_number": TRACKING_NUMBER})
    assert response.status_code == 200, response.text
    return response.json()


@pytest.mark.usefixtures("paid_order")
class TestCreateAndRead:
    def test_create_then_get(self, client, ledger):
        ff_id = _create_fulfillment(client)
        response = client.get(f"/fulfillments/{ff_id}")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "Pending"
        assert data["fulfillment_number"].startswith("FUL")
        assert data["total_items"] == 2
        assert data["shipping_address"]["city"] == "London"
        assert data["items"][0]["attention_reasons"] == ["Quality check pending"]
        assert ledger.find_order_item_by_id("oi-1").pending_quantity == 1

    def test_second_over_claim_is_conflict(self, client):
        _create_fulfillment(client)
        response = client.post(
            "/fulfillments",
            json={"order_id": "ord-001", "items": [{"order_item_id": "oi-1", "quantity": 2}]},
        )
        assert response.status_code == 409
        assert response.json()["error"] == "conflict"
        assert "Only 1 items are available" in response.json()["detail"]

    def test_unknown_order_is_404(self, client):
        response = client.post(
            "/fulfillments",
            json={"order_id": "ord-404", "items": [{"order_item_id": "oi-1", "quantity": 1}]},
        )
        assert response.status_code == 404

    def test_zero_quantity_is_400(self, client):
        response = client.post(
            "/fulfillments",
            json={"order_id": "ord-001", "items": [{"order_item_id": "oi-1", "quantity": 0}]},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    def test_malformed_body_is_400(self, client):
        response = client.post("/fulfillments", json={"order_id": "ord-001"})
        assert response.status_code == 400

    def test_get_unknown_is_404(self, client):
        response = client.get("/fulfillments/does-not-exist")
        assert response.status_code == 404
        assert response.json()["path"] == "/fulfillments/does-not-exist"

    def test_lookup_by_number_and_order(self, client):
        ff_id = _create_fulfillment(client)
        number = client.get(f"/fulfillments/{ff_id}").json()["fulfillment_number"]

        assert client.get(f"/fulfillments/by-number/{number}").json()["id"] == ff_id
        by_order = client.get("/fulfillments/by-order/ord-001").json()
        assert [f["id"] for f in by_order] == [ff_id]


@pytest.mark.usefixtures("paid_order")
class TestLifecycle:
    def test_tracking_number_ships_and_builds_url(self, client, carrier):
        ff_id = _create_fulfillment(client, shipping_provider_id="prov-ups")
        data = _ship(client, ff_id)
        assert data["status"] == "Shipped"
        assert data["tracking_url"] == f"https://track.example.com/{TRACKING_NUMBER}"
        assert data["latest_tracking_event"]["status"] == "Label_Created"

    def test_bad_tracking_number_format_is_400(self, client, carrier):
        ff_id = _create_fulfillment(client, shipping_provider_id="prov-ups")
        response = client.put(f"/fulfillments/{ff_id}/tracking-number", json={"tracking_number": "BAD"})
        assert response.status_code == 400

    def test_carrier_events_deliver_the_order(self, client, ledger):
        ff_id = _create_fulfillment(client, items=[{"order_item_id": "oi-1", "quantity": 3}])
        other_id = _create_fulfillment(client, items=[{"order_item_id": "oi-2", "quantity": 5}])
        for shipment in (ff_id, other_id):
            _ship(client, shipment)

        response = client.post(f"/fulfillments/{ff_id}/tracking-events", json={"status": "In_Transit"})
        assert response.status_code == 201
        assert response.json()["tracking_event_id"]

        client.post(f"/fulfillments/{ff_id}/tracking-events", json={"status": "Delivered"})
        assert client.get(f"/fulfillments/{ff_id}").json()["status"] == "Delivered"
        assert ledger.find_order_by_id("ord-001").status == "Processing"

        response = client.put(f"/fulfillments/{other_id}/deliver", json={"recipient_name": "Ada"})
        assert response.status_code == 200
        assert ledger.find_order_by_id("ord-001").status == "Delivered"

    def test_tracking_event_without_number_is_409(self, client):
        ff_id = _create_fulfillment(client)
        response = client.post(f"/fulfillments/{ff_id}/tracking-events", json={"status": "In_Transit"})
        assert response.status_code == 409

    def test_patch_to_shipped_without_tracking_is_409(self, client):
        ff_id = _create_fulfillment(client)
        client.patch(f"/fulfillments/{ff_id}", json={"status": "Packed"})
        response = client.patch(f"/fulfillments/{ff_id}", json={"status": "Shipped"})
        assert response.status_code == 409
        assert client.get(f"/fulfillments/{ff_id}").json()["status"] == "Packed"

    def test_patch_fields(self, client):
        ff_id = _create_fulfillment(client)
        response = client.patch(
            f"/fulfillments/{ff_id}",
            json={"shipping_cost": 5.0, "insurance_cost": 1.5, "priority_level": "Urgent"},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["total_cost"] == 6.5
        assert data["priority_level"] == "Urgent"

    def test_invalid_status_value_is_400(self, client):
        ff_id = _create_fulfillment(client)
        response = client.patch(f"/fulfillments/{ff_id}", json={"status": "Teleported"})
        assert response.status_code == 400

    def test_cancel_then_cancel_again(self, client):
        ff_id = _create_fulfillment(client)
        response = client.put(f"/fulfillments/{ff_id}/cancel", json={"reason": "Duplicate"})
        assert response.status_code == 200
        assert response.json()["status"] == "Cancelled"
        assert response.json()["cancel_reason"] == "Duplicate"

        response = client.put(f"/fulfillments/{ff_id}/cancel", json={})
        assert response.status_code == 409

    def test_cancel_shipped_is_409(self, client):
        ff_id = _create_fulfillment(client)
        _ship(client, ff_id)
        response = client.put(f"/fulfillments/{ff_id}/cancel", json={"reason": "Too late"})
        assert response.status_code == 409


@pytest.mark.usefixtures("paid_order")
class TestDelete:
    def test_delete_pending_releases_quantity(self, client, ledger):
        ff_id = _create_fulfillment(client)
        response = client.delete(f"/fulfillments/{ff_id}")
        assert response.status_code == 200
        assert response.json() == {"status": "deleted"}
        assert ledger.find_order_item_by_id("oi-1").pending_quantity == 3
        assert client.get(f"/fulfillments/{ff_id}").status_code == 404

    def test_delete_shipped_is_409(self, client):
        ff_id = _create_fulfillment(client)
        _ship(client, ff_id)
        assert client.delete(f"/fulfillments/{ff_id}").status_code == 409


@pytest.mark.usefixtures("paid_order")
class TestItemEndpoints:
    def _item_id(self, client, ff_id):
        return client.get(f"/fulfillments/{ff_id}").json()["items"][0]["id"]

    def test_item_status_rolls_up(self, client):
        ff_id = _create_fulfillment(client)
        item_id = self._item_id(client, ff_id)
        response = client.put(f"/fulfillments/{ff_id}/items/{item_id}/status", json={"status": "Packed"})
        assert response.status_code == 200
        assert response.json()["status"] == "Packed"

    def test_quality_check_twice_is_409(self, client):
        ff_id = _create_fulfillment(client)
        item_id = self._item_id(client, ff_id)
        url = f"/fulfillments/{ff_id}/items/{item_id}/quality-check"
        assert client.put(url, json={"checked_by": "inspector-7"}).status_code == 200
        assert client.put(url, json={"checked_by": "inspector-7"}).status_code == 409

    def test_damage_report(self, client):
        ff_id = _create_fulfillment(client)
        item_id = self._item_id(client, ff_id)
        response = client.post(f"/fulfillments/{ff_id}/items/{item_id}/damage", json={"quantity": 1})
        assert response.status_code == 200
        item = response.json()["items"][0]
        assert item["damaged_quantity"] == 1
        assert item["quality_score"] == 50

    def test_missing_over_available_is_400(self, client):
        ff_id = _create_fulfillment(client)
        item_id = self._item_id(client, ff_id)
        response = client.post(f"/fulfillments/{ff_id}/items/{item_id}/missing", json={"quantity": 5})
        assert response.status_code == 400

    def test_fulfilled_quantity(self, client):
        ff_id = _create_fulfillment(client)
        item_id = self._item_id(client, ff_id)
        response = client.put(
            f"/fulfillments/{ff_id}/items/{item_id}/fulfilled-quantity", json={"fulfilled_quantity": 1}
        )
        assert response.status_code == 200
        assert response.json()["progress"] == 50

    def test_unknown_item_is_404(self, client):
        ff_id = _create_fulfillment(client)
        response = client.put(f"/fulfillments/{ff_id}/items/nope/status", json={"status": "Picked"})
        assert response.status_code == 404


@pytest.mark.usefixtures("paid_order")
class TestQueryEndpoints:
    def test_list_with_filters_and_pagination(self, client):
        first = _create_fulfillment(client, items=[{"order_item_id": "oi-1", "quantity": 1}])
        _create_fulfillment(client, items=[{"order_item_id": "oi-1", "quantity": 1}])
        client.put(f"/fulfillments/{first}/cancel", json={})

        data = client.get("/fulfillments", params={"status": "Pending"}).json()
        assert data["total"] == 1

        data = client.get("/fulfillments", params={"limit": 1, "page": 2}).json()
        assert data["total"] == 2
        assert data["total_pages"] == 2
        assert len(data["items"]) == 1

    def test_active_overdue_and_search(self, client):
        ff_id = _create_fulfillment(client, estimated_delivery_date="2020-01-01T00:00:00Z")
        _ship(client, ff_id)

        assert [f["id"] for f in client.get("/fulfillments/active").json()] == [ff_id]
        overdue = client.get("/fulfillments/overdue").json()
        assert [f["id"] for f in overdue] == [ff_id]
        assert overdue[0]["days_overdue"] > 0
        assert [f["id"] for f in client.get("/fulfillments/search", params={"q": "1Z999"}).json()] == [ff_id]
        assert client.get(f"/fulfillments/by-tracking/{TRACKING_NUMBER}").json()["id"] == ff_id

    def test_search_requires_term(self, client):
        assert client.get("/fulfillments/search").status_code == 400

    def test_stats(self, client):
        _create_fulfillment(client)
        data = client.get("/fulfillments/stats").json()
        assert data["total"] == 1
        assert data["pending"] == 1
        assert len(data["recent"]) == 1

    def test_item_endpoints(self, client):
        _create_fulfillment(
            client,
            items=[{"order_item_id": "oi-1", "quantity": 1, "batch_number": "B-7", "serial_numbers": ["SN-9"]}],
        )
        assert client.get("/fulfillments/items/stats").json()["total"] == 1
        assert len(client.get("/fulfillments/items/attention").json()) == 1
        assert len(client.get("/fulfillments/items/quality-check-pending").json()) == 1

        found = client.get("/fulfillments/items/search", params={"serial_number": "SN-9"}).json()
        assert found[0]["batch_number"] == "B-7"
        assert found[0]["serial_numbers"] == ["SN-9"]
