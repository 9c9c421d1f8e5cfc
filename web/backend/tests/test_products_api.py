"""Tests for product CRUD endpoints."""

from sheetsync.core.database import create_product, get_product_by_uuid


def test_create_and_fetch(client, store):
    response = client.post(
        "/api/products",
        json={"product_name": "Mouse", "quantity": 3, "price": 9.99, "discount": True},
    )

    assert response.status_code == 201
    key = response.json()["uuid"]
    assert key.startswith("u-") and len(key) == 10

    fetched = client.get(f"/api/products/{key}").json()
    assert fetched["product_name"] == "Mouse"
    assert fetched["discount"] is True
    assert fetched["last_updated_by"] == "system"


def test_list(client, store):
    create_product(store, "a", "A", 1, 1.0, False, updated_by="system")
    create_product(store, "b", "B", 2, 2.0, True, updated_by="system")

    response = client.get("/api/products")

    assert [p["uuid"] for p in response.json()] == ["a", "b"]


def test_missing_product(client):
    assert client.get("/api/products/nope").status_code == 404


def test_update_ignores_attribution(client, store):
    create_product(store, "a", "A", 1, 1.0, False, updated_by="system")

    response = client.put(
        "/api/products/a", json={"quantity": 7, "last_updated_by": "sync_bot"}
    )

    assert response.status_code == 200
    product = get_product_by_uuid(store, "a")
    assert product["quantity"] == 7
    assert product["last_updated_by"] == "system"


def test_update_without_fields(client, store):
    create_product(store, "a", "A", 1, 1.0, False, updated_by="system")
    response = client.put("/api/products/a", json={"uuid": "b"})
    assert response.status_code == 400


def test_delete(client, store):
    create_product(store, "a", "A", 1, 1.0, False, updated_by="system")

    assert client.delete("/api/products/a").status_code == 200
    assert client.delete("/api/products/a").status_code == 404
