"""Integration tests for the cart, order and payment endpoints via TestClient."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from marketplace.api import cart_router, order_router, payment_router, register_exception_handlers
from marketplace.api.dependencies import get_gateway, get_settings
from marketplace.order.order import Order, OrderStatus
from protean import current_domain


@pytest.fixture()
def client(gateway, settings):
    app = FastAPI()
    register_exception_handlers(app)
    app.include_router(cart_router)
    app.include_router(order_router)
    app.include_router(payment_router)
    app.dependency_overrides[get_gateway] = lambda: gateway
    app.dependency_overrides[get_settings] = lambda: settings
    return TestClient(app)


def _add(client, campus, item, quantity=1, vendor=None):
    return client.post(
        f"/carts/{campus.user.id}/items",
        json={
            "item_id": item.id,
            "kind": item.kind,
            "quantity": quantity,
            "vendor_id": (vendor or campus.canteen).id,
        },
    )


def _place(client, campus, **body):
    payload = {"order_type": "delivery", "address": "Hostel 4, Room 212"}
    payload.update(body)
    response = client.post(f"/orders/{campus.user.id}", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def _verify(client, gateway, placed, payment_ref="pay_api_1", signature=None):
    gateway_order_ref = placed["payment_intent"]["order_id"]
    return client.post(
        "/payments/verify",
        json={
            "gateway_order_ref": gateway_order_ref,
            "gateway_payment_ref": payment_ref,
            "gateway_signature": signature or gateway.sign(gateway_order_ref, payment_ref),
            "order_id": placed["order_id"],
        },
    )


class TestCartEndpoints:
    def test_add_item(self, client, campus):
        response = _add(client, campus, campus.chips, 2)

        assert response.status_code == 200
        assert response.json()["quantity"] == 2

    def test_cart_details(self, client, campus):
        _add(client, campus, campus.chips, 2)

        data = client.get(f"/carts/{campus.user.id}").json()

        assert data["vendor_name"] == "Hostel Canteen"
        assert data["total"] == 40.0
        assert data["entries"][0]["total_price"] == 40.0

    def test_increment_and_decrement(self, client, campus):
        _add(client, campus, campus.chips, 2)
        ref = {"item_id": campus.chips.id, "kind": "Retail"}

        assert client.post(f"/carts/{campus.user.id}/items/increment", json=ref).json()["quantity"] == 3
        assert client.post(f"/carts/{campus.user.id}/items/decrement", json=ref).json()["quantity"] == 2

    def test_remove_item(self, client, campus):
        _add(client, campus, campus.chips, 2)

        response = client.delete(f"/carts/{campus.user.id}/items/{campus.chips.id}", params={"kind": "Retail"})

        assert response.status_code == 200
        assert client.get(f"/carts/{campus.user.id}").json()["entries"] == []

    def test_extras(self, client, campus):
        _add(client, campus, campus.juice, 1)

        names = {extra["name"] for extra in client.get(f"/carts/{campus.user.id}/extras").json()["extras"]}
        assert names == {"Masala Chips", "Samosa"}

    def test_stock_conflict_is_409(self, client, campus):
        response = _add(client, campus, campus.juice, 3)

        assert response.status_code == 409
        assert response.json()["error"] == "Only 2 unit(s) available"

    def test_second_vendor_is_409(self, client, campus):
        _add(client, campus, campus.chips, 1)
        response = _add(client, campus, campus.chips, 1, vendor=campus.cafe)

        assert response.status_code == 409
        assert response.json()["error"] == "Cart can contain items from only one vendor"

    def test_cap_is_400(self, client, campus):
        response = _add(client, campus, campus.samosa, 10)
        assert response.status_code == 200

        response = client.post(
            f"/carts/{campus.user.id}/items/increment", json={"item_id": campus.samosa.id, "kind": "Produce"}
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Cannot exceed max quantity of 10 for a single Produce item"

    def test_invalid_kind_is_400(self, client, campus):
        response = client.post(
            f"/carts/{campus.user.id}/items",
            json={"item_id": campus.chips.id, "kind": "Frozen", "quantity": 1, "vendor_id": campus.canteen.id},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid kind provided"

    def test_unknown_user_is_404(self, client, campus):
        response = client.get("/carts/nobody")
        assert response.status_code == 404


class TestOrderEndpoints:
    def test_place_order(self, client, campus, gateway):
        _add(client, campus, campus.chips, 2)
        _add(client, campus, campus.samosa, 1)

        data = _place(client, campus)

        assert data["total"] == 40.0 + 15.0 + 5.0 + 50.0
        assert data["payment_intent"]["amount"] == 11000
        assert data["payment_intent"]["key"] == gateway.key_id

    def test_empty_cart_is_400(self, client, campus):
        response = client.post(f"/orders/{campus.user.id}", json={"order_type": "dinein"})

        assert response.status_code == 400
        assert response.json()["error"] == "Cart is empty"

    def test_gateway_outage_is_502(self, client, campus, gateway):
        _add(client, campus, campus.chips, 1)
        gateway.configure(should_succeed=False)

        response = client.post(f"/orders/{campus.user.id}", json={"order_type": "dinein"})

        assert response.status_code == 502

    def test_status_progression(self, client, campus, gateway):
        _add(client, campus, campus.chips, 1)
        placed = _place(client, campus, order_type="takeaway")
        _verify(client, gateway, placed)

        response = client.put(f"/orders/{placed['order_id']}/status", json={"status": "completed"})

        assert response.status_code == 200
        assert response.json()["status"] == "completed"

    def test_invalid_transition_is_400(self, client, campus):
        _add(client, campus, campus.chips, 1)
        placed = _place(client, campus, order_type="takeaway")

        response = client.put(f"/orders/{placed['order_id']}/status", json={"status": "delivered"})
        assert response.status_code == 400

    def test_expiry_sweep(self, client, campus):
        response = client.post("/orders/maintenance/expire")

        assert response.status_code == 200
        assert response.json()["expired_count"] == 0


class TestPaymentEndpoints:
    def test_verify_settles_order(self, client, campus, gateway):
        _add(client, campus, campus.chips, 2)
        placed = _place(client, campus)

        response = _verify(client, gateway, placed)

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["already_settled"] is False
        assert current_domain.repository_for(Order).get(placed["order_id"]).status == OrderStatus.IN_PROGRESS.value
        assert client.get(f"/carts/{campus.user.id}").json()["entries"] == []

    def test_replayed_callback(self, client, campus, gateway):
        _add(client, campus, campus.chips, 2)
        placed = _place(client, campus)
        _verify(client, gateway, placed)

        response = _verify(client, gateway, placed)

        assert response.status_code == 200
        assert response.json()["already_settled"] is True
        assert campus.seed.quantity_of(campus.canteen, campus.chips) == 28

    def test_bad_signature_is_400(self, client, campus, gateway):
        _add(client, campus, campus.chips, 2)
        placed = _place(client, campus)

        response = _verify(client, gateway, placed, signature="forged")

        assert response.status_code == 400
        assert response.json()["error"] == "Payment verification failed"
        assert current_domain.repository_for(Order).get(placed["order_id"]).status == OrderStatus.FAILED.value
