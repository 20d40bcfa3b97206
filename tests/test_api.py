import pytest
from fastapi.testclient import TestClient

from kitchenflow.main import app
from kitchenflow.services.events import InMemoryEventPublisher
from kitchenflow.services.fulfillment.service import OrderFulfillmentService, get_fulfillment_service
from kitchenflow.services.settlement_ledger import SettlementLedger, get_settlement_ledger


@pytest.fixture
def ledger(tmp_path):
    return SettlementLedger(tmp_path, "cashier_ledger.xlsx", lock_timeout=5)


@pytest.fixture
def client(repository, catalog, payment_methods, clock, settings, ledger):
    service = OrderFulfillmentService(
        repository=repository,
        catalog=catalog,
        payment_methods=payment_methods,
        publisher=InMemoryEventPublisher(ledger=ledger),
        clock=clock,
        settings=settings,
    )
    app.dependency_overrides[get_fulfillment_service] = lambda: service
    app.dependency_overrides[get_settlement_ledger] = lambda: ledger
    yield TestClient(app)
    app.dependency_overrides.clear()


def place(client, *lines, **extra):
    response = client.post("/api/orders", json={"lines": list(lines), **extra})
    assert response.status_code == 201, response.text
    return response.json()


def test_place_order_returns_decomposed_units(client):
    order = place(client, {"catalog_id": "D-00001", "quantity": 2}, order_type="Dine-In", table_id="T-1")

    assert order["status"] == "Pending"
    assert order["order_type"] == "Dine-In"
    assert len(order["units"]) == 7
    assert order["subtotal"] == 5198.0
    assert order["total_amount"] == 6029.68
    assert order["units"][0]["is_deal_container"] is True


def test_validation_rejects_zero_quantity(client):
    response = client.post("/api/orders", json={"lines": [{"catalog_id": "I-PA-001", "quantity": 0}]})
    assert response.status_code == 422


def test_full_kitchen_flow_and_cashier_balance(client):
    order = place(client, {"catalog_id": "I-PA-001", "quantity": 1}, {"catalog_id": "I-X-001", "quantity": 1})
    order_id = order["id"]
    pasta, water = order["units"]

    assert client.put(f"/api/orders/{order_id}/status", json={"status": "Preparing"}).status_code == 200

    queue = client.get("/api/kds/stations/pasta").json()
    assert queue["total"] == 1
    assert queue["orders"][0]["units"][0]["unit_id"] == pasta["unit_id"]

    response = client.post(f"/api/orders/{order_id}/prepared", json={"unit_ids": [pasta["unit_id"]]})
    assert response.json()["units"][0]["is_prepared"] is True

    response = client.post(f"/api/orders/{order_id}/units/{water['unit_id']}/dispatch")
    assert response.json()["status"] == "Partial Ready"

    response = client.post(f"/api/orders/{order_id}/units/{pasta['unit_id']}/dispatch")
    assert response.json()["status"] == "Ready"
    assert client.get("/api/kds/dispatch").json()["total"] == 0

    response = client.put(
        f"/api/orders/{order_id}/status",
        json={"status": "Completed", "actor": "cashier-1"},
    )
    assert response.json()["status"] == "Completed"

    balance = client.get("/api/cashiers/cashier-1/balance").json()
    assert balance == {"cashier_id": "cashier-1", "balance": 1148.4, "settled_orders": 1}


def test_adjustment_and_payment_change(client):
    order = place(client, {"catalog_id": "I-PA-001", "quantity": 1})

    response = client.post(
        f"/api/orders/{order['id']}/adjustment",
        json={"discount_type": "percentage", "discount_value": "10"},
    )
    assert response.json()["total_amount"] == 929.16

    response = client.put(f"/api/orders/{order['id']}/payment-method", json={"payment_method": "Card"})
    assert response.json()["tax_amount"] == 44.5
    assert response.json()["original_total_amount"] == 934.5
    assert response.json()["total_amount"] == 841.05


def test_add_items(client):
    order = place(client, {"catalog_id": "I-PA-001", "quantity": 1})

    response = client.post(
        f"/api/orders/{order['id']}/items",
        json={"lines": [{"catalog_id": "I-DS-001", "quantity": 2}]},
    )

    assert response.status_code == 200
    assert len(response.json()["units"]) == 2
    assert response.json()["subtotal"] == 1590.0


@pytest.mark.parametrize(
    "method, path, body, status, code",
    [
        ("get", "/api/orders/missing", None, 404, "order_not_found"),
        ("put", "/api/orders/{id}/status", {"status": "Ready"}, 409, "derived_status"),
        ("post", "/api/orders/{id}/units/{unit}/dispatch", None, 409, "not_prepared"),
        ("post", "/api/orders/{id}/prepared", {"unit_ids": ["ghost"]}, 404, "unit_not_found"),
        (
            "post",
            "/api/orders/{id}/adjustment",
            {"discount_type": "amount", "discount_value": "10", "is_complementary": True},
            422,
            "conflicting_adjustment",
        ),
        ("put", "/api/orders/{id}/payment-method", {"payment_method": "Crypto"}, 404, "payment_method_not_found"),
    ],
)
def test_domain_errors_map_to_error_responses(client, method, path, body, status, code):
    order = place(client, {"catalog_id": "I-PA-001", "quantity": 1})
    url = path.format(id=order["id"], unit=order["units"][0]["unit_id"])

    response = client.request(method.upper(), url, json=body)

    assert response.status_code == status
    assert response.json()["success"] is False
    assert response.json()["code"] == code


def test_unknown_items_only_is_catalog_inconsistency(client):
    response = client.post("/api/orders", json={"lines": [{"catalog_id": "I-NOPE", "quantity": 1}]})

    assert response.status_code == 422
    assert response.json()["code"] == "catalog_inconsistency"


def test_list_orders_filters_by_status(client):
    first = place(client, {"catalog_id": "I-PA-001", "quantity": 1})
    place(client, {"catalog_id": "I-PA-001", "quantity": 1})
    client.put(f"/api/orders/{first['id']}/status", json={"status": "Cancelled", "reason": "test"})

    cancelled = client.get("/api/orders", params={"status": "Cancelled"}).json()
    everything = client.get("/api/orders").json()

    assert cancelled["total"] == 1
    assert cancelled["orders"][0]["cancellation_reason"] == "test"
    assert everything["total"] == 2


def test_health(client):
    data = client.get("/health").json()

    assert data["status"] == "operational"
    assert data["repository"] == "healthy"
    assert data["redis"] == "not used"
