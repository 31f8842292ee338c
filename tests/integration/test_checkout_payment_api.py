import pytest

from boutique.payments import gateway

ADDRESS = {"street": "12 MG Road", "city": "Pune", "state": "MH", "pincode": "411001"}


@pytest.fixture
def fake_gateway(monkeypatch):
    def _create_intent(order):
        return {"intent_id": f"order_gw_{order['id']}", "amount_minor_units": int(order["total_amount"]) * 100, "currency": "INR"}
    monkeypatch.setattr(gateway, "create_intent", _create_intent)

@pytest.fixture
def shopper(store, customer, login):
    store.add_product("P", price=90, stock=5, name="Kurta")
    login(customer)
    return customer

def _checkout(client):
    r = client.post("/api/v1/orders/checkout", json={"shippingAddress": ADDRESS})
    assert r.status_code == 201, r.text
    return r.json()

def test_unauthenticated_requests_are_rejected(client):
    assert client.get("/api/v1/cart").status_code == 401
    assert client.post("/api/v1/orders/checkout", json={"shippingAddress": ADDRESS}).status_code == 401
    assert client.post("/api/v1/payment/create-intent", json={"orderId": "x"}).status_code == 401

def test_full_purchase_flow(client, store, shopper, fake_gateway):
    # Ajout au panier au prix de 90, puis hausse du prix catalogue à 100
    r = client.post("/api/v1/cart/add", json={"productId": "P", "quantity": 2, "size": "M"})
    assert r.status_code == 200
    assert r.json()["data"]["items"][0]["price"] == 90.0
    store.products["P"]["price"] = 100

    body = _checkout(client)
    assert body["totalAmount"] == 236
    assert body["data"]["payment_status"] == "pending"
    assert client.get("/api/v1/cart").json()["data"]["items"] == []
    order_id = body["orderId"]

    r = client.post("/api/v1/payment/create-intent", json={"orderId": order_id})
    assert r.status_code == 200
    intent = r.json()["data"]
    assert intent["amount"] == 23600
    assert intent["keyId"] == "rzp_test_key"

    signature = gateway.compute_signature(intent["intentId"], "pay_1")
    r = client.post("/api/v1/payment/verify", json={
        "orderId": order_id, "intentId": intent["intentId"], "paymentId": "pay_1", "signature": signature,
    })
    assert r.status_code == 200
    assert r.json()["data"]["payment_status"] == "paid"
    assert r.json()["data"]["order_status"] == "processing"

    # Deuxième vérification identique: succès sans effet
    r = client.post("/api/v1/payment/verify", json={
        "orderId": order_id, "intentId": intent["intentId"], "paymentId": "pay_1", "signature": signature,
    })
    assert r.status_code == 200
    assert len(store.emails_for("order-confirmation")) == 1

    mine = client.get("/api/v1/orders/my-orders").json()
    assert mine["count"] == 1 and mine["data"][0]["id"] == order_id
    assert client.get(f"/api/v1/orders/{order_id}").json()["data"]["payment_status"] == "paid"

def test_tampered_signature_returns_400_with_failed_order(client, store, shopper, fake_gateway):
    store.set_cart("u1", [{"product_id": "P", "quantity": 1, "price": 90, "size": None, "color": None}])
    order_id = _checkout(client)["orderId"]
    intent_id = client.post("/api/v1/payment/create-intent", json={"orderId": order_id}).json()["data"]["intentId"]

    r = client.post("/api/v1/payment/verify", json={
        "orderId": order_id,
        "intentId": intent_id,
        "paymentId": "pay_tampered",
        "signature": gateway.compute_signature(intent_id, "pay_1"),
    })

    assert r.status_code == 400
    body = r.json()
    assert body["success"] is False
    assert body["data"]["payment_status"] == "failed"
    assert body["data"]["order_status"] == "pending"

def test_checkout_errors(client, store, shopper):
    r = client.post("/api/v1/orders/checkout", json={"shippingAddress": ADDRESS})
    assert r.status_code == 400
    assert r.json()["code"] == "empty_cart"

    store.set_cart("u1", [{"product_id": "P", "quantity": 9, "price": 90, "size": None, "color": None}])
    r = client.post("/api/v1/orders/checkout", json={"shippingAddress": ADDRESS})
    assert r.status_code == 400
    assert r.json()["code"] == "insufficient_stock"
    assert store.orders == {}

    store.set_cart("u1", [{"product_id": "gone", "quantity": 1, "price": 90, "size": None, "color": None}])
    r = client.post("/api/v1/orders/checkout", json={"shippingAddress": ADDRESS})
    assert r.status_code == 404
    assert r.json()["code"] == "product_unavailable"

def test_checkout_address_validation_is_field_level(client, store, shopper):
    store.set_cart("u1", [{"product_id": "P", "quantity": 1, "price": 90, "size": None, "color": None}])

    r = client.post("/api/v1/orders/checkout", json={"shippingAddress": {"street": "x", "city": "Pune", "state": "MH", "pincode": "abc"}})

    assert r.status_code == 400
    assert r.json()["code"] == "validation_error"
    assert r.json()["errors"] == [{"field": "shippingAddress.pincode", "message": "Le code postal doit contenir 6 chiffres"}]
    assert store.products["P"]["stock"] == 5

def test_other_users_order_is_hidden_or_forbidden(client, store, shopper, login, fake_gateway):
    store.set_cart("u1", [{"product_id": "P", "quantity": 1, "price": 90, "size": None, "color": None}])
    order_id = _checkout(client)["orderId"]

    login(store.add_user("u2", "bob@example.com"))

    assert client.get(f"/api/v1/orders/{order_id}").status_code == 404
    assert client.post("/api/v1/payment/create-intent", json={"orderId": order_id}).status_code == 403
    r = client.post("/api/v1/payment/verify", json={"orderId": order_id, "intentId": "i", "paymentId": "p", "signature": "s"})
    assert r.status_code == 403

def test_gateway_outage_is_retryable(client, store, shopper, monkeypatch):
    from boutique.utils.errors import GatewayUnavailable

    store.set_cart("u1", [{"product_id": "P", "quantity": 1, "price": 90, "size": None, "color": None}])
    order_id = _checkout(client)["orderId"]

    def _down(order):
        raise GatewayUnavailable()
    monkeypatch.setattr(gateway, "create_intent", _down)

    r = client.post("/api/v1/payment/create-intent", json={"orderId": order_id})
    assert r.status_code == 503
    assert r.json()["retryable"] is True
    assert store.orders[order_id]["payment_status"] == "pending"

def test_cart_endpoints(client, store, shopper):
    store.add_product("Q", price=10, stock=1)

    client.post("/api/v1/cart/add", json={"productId": "P", "quantity": 1, "size": "M"})
    client.post("/api/v1/cart/add", json={"productId": "P", "quantity": 1, "size": "L"})
    r = client.put("/api/v1/cart/update", json={"productId": "P", "quantity": 3, "size": "M"})
    assert [it["quantity"] for it in r.json()["data"]["items"]] == [3, 1]

    r = client.delete("/api/v1/cart/remove/P", params={"size": "L"})
    assert len(r.json()["data"]["items"]) == 1

    r = client.post("/api/v1/cart/merge", json={"items": [{"productId": "Q", "quantity": 5}]})
    items = {it["product_id"]: it["quantity"] for it in r.json()["data"]["items"]}
    assert items == {"P": 3, "Q": 1}

    assert client.post("/api/v1/cart/add", json={"productId": "P", "quantity": 0}).status_code == 400

    assert client.delete("/api/v1/cart/clear").json()["data"]["items"] == []
