"""Tests for API endpoints"""
import pytest
from fastapi.testclient import TestClient

from api.index import app
from cartstore.routers.deps import get_cart_engine


@pytest.fixture
def client(engine):
    """Test client wired to the in-memory engine"""
    app.dependency_overrides[get_cart_engine] = lambda: engine
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def test_health_check(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"app": "OK", "redis": True}


def test_health_reports_redis_down(client, fake_redis):
    fake_redis.fail = True
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["redis"] is False


def test_metrics(client):
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "items_added_total" in response.text


def test_add_creates_cart(client):
    response = client.get("/add/c1/X/2")
    assert response.status_code == 200
    assert response.json() == {
        "items": [{"sku": "X", "name": "Thing", "price": 10.0, "qty": 2, "subtotal": 20.0}],
        "shipping": None,
        "total": 20.0,
        "tax": 4.0,
    }


def test_response_headers(client):
    response = client.get("/add/c1/X/1", headers={"X-Request-ID": "abc-123"})
    assert response.headers["X-Request-ID"] == "abc-123"
    assert response.headers["Timing-Allow-Origin"] == "*"
    assert response.headers["Access-Control-Allow-Origin"] == "*"


def test_request_id_generated(client):
    response = client.get("/health")
    assert response.headers["X-Request-ID"]


@pytest.mark.parametrize("qty", ["0", "-2", "two", "1" + "0" * 30])
def test_add_invalid_quantity(client, fake_redis, qty):
    response = client.get(f"/add/c1/X/{qty}")
    assert response.status_code == 400
    assert fake_redis.writes == []


def test_add_unknown_product(client):
    response = client.get("/add/c1/NOPE/1")
    assert response.status_code == 404
    assert response.json()["detail"] == "Product not found"


def test_add_out_of_stock(client, fake_redis):
    response = client.get("/add/c1/GONE/1")
    assert response.status_code == 404
    assert response.json()["detail"] == "Out of stock"
    assert fake_redis.writes == []


def test_get_cart(client):
    client.get("/add/c1/X/2")
    response = client.get("/cart/c1")
    assert response.status_code == 200
    assert response.json()["total"] == 20.0


def test_get_cart_not_found(client):
    response = client.get("/cart/missing")
    assert response.status_code == 404
    assert response.json()["detail"] == "Cart not found"


def test_get_corrupt_cart(client, fake_redis):
    fake_redis.data["c1"] = "{broken"
    response = client.get("/cart/c1")
    assert response.status_code == 500


def test_get_cart_items(client):
    client.get("/add/c1/X/2")
    client.get("/add/c1/Y/1")
    response = client.get("/cart/c1/items")
    assert response.status_code == 200
    assert [item["sku"] for item in response.json()] == ["X", "Y"]


def test_delete_cart_twice(client):
    client.get("/add/c1/X/1")

    first = client.delete("/cart/c1")
    assert first.status_code == 200
    assert first.text == "OK"

    second = client.delete("/cart/c1")
    assert second.status_code == 404


def test_rename(client):
    client.get("/add/anon/X/2")
    response = client.get("/rename/anon/user-1")
    assert response.status_code == 200
    assert response.json()["items"][0]["qty"] == 2

    assert client.get("/cart/anon").status_code == 404
    assert client.get("/cart/user-1").json()["items"][0]["qty"] == 2


def test_rename_not_found(client):
    assert client.get("/rename/missing/user-1").status_code == 404


def test_update(client):
    client.get("/add/c1/X/2")
    response = client.get("/update/c1/X/5")
    assert response.status_code == 200
    assert response.json()["items"][0]["subtotal"] == 50.0


def test_update_zero_removes(client):
    client.get("/add/c1/X/2")
    response = client.get("/update/c1/X/0")
    assert response.status_code == 200
    assert response.json()["items"] == []
    assert response.json()["total"] == 0.0


def test_update_errors(client):
    client.get("/add/c1/X/2")
    assert client.get("/update/c1/X/-1").status_code == 400
    assert client.get("/update/c1/Y/1").status_code == 404
    assert client.get("/update/missing/X/1").status_code == 404


def test_shipping(client):
    client.get("/add/c1/X/2")
    response = client.post("/shipping/c1", json={"distance": 10, "cost": 5, "location": "Leeds"})
    assert response.status_code == 200
    body = response.json()
    assert body["shipping"] == {"distance": 10.0, "cost": 5.0, "location": "Leeds"}
    assert body["total"] == 25.0


def test_shipping_accumulates(client):
    client.get("/add/c1/X/2")
    payload = {"distance": 10, "cost": 5, "location": "X"}
    client.post("/shipping/c1", json=payload)
    body = client.post("/shipping/c1", json=payload).json()
    assert body["shipping"]["distance"] == 20.0
    assert body["shipping"]["cost"] == 10.0


def test_shipping_missing_field(client):
    client.get("/add/c1/X/2")
    response = client.post("/shipping/c1", json={"distance": 10, "location": "X"})
    assert response.status_code == 400


def test_shipping_amount_too_large(client, fake_redis):
    client.get("/add/c1/X/2")
    response = client.post("/shipping/c1", json={"distance": 1, "cost": 1e30, "location": "X"})
    assert response.status_code == 400
    assert fake_redis.load("c1")["shipping"] is None


def test_shipping_malformed_body(client):
    client.get("/add/c1/X/2")
    response = client.post(
        "/shipping/c1", content="not json", headers={"Content-Type": "application/json"}
    )
    assert response.status_code == 400


def test_shipping_cart_not_found(client):
    response = client.post("/shipping/missing", json={"distance": 1, "cost": 1, "location": "X"})
    assert response.status_code == 404


def test_store_failure(client, fake_redis):
    fake_redis.fail = True
    response = client.get("/cart/c1")
    assert response.status_code == 500
    assert response.json()["detail"] == "Cart store unavailable"


def test_unknown_route(client):
    assert client.get("/nowhere").status_code == 404
