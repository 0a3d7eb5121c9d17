from decimal import Decimal

import pytest


@pytest.fixture
async def placed_order(client, auth_headers, customer, products, fill_cart):
    await fill_cart(customer, [(1, 2), (3, 1)])
    resp = await client.post("/api/orders/create", json={"shipping_address": "123 Green Street"}, headers=auth_headers)
    return resp.json()["order"]


async def test_customers_are_forbidden(client, auth_headers):
    resp = await client.get("/api/admin/orders", headers=auth_headers)
    assert resp.status_code == 403
    assert resp.json()["error"] == "Admin access required"


async def test_list_orders_with_status_filter(client, admin_headers, placed_order):
    resp = await client.get("/api/admin/orders", headers=admin_headers)
    assert [o["id"] for o in resp.json()["data"]] == [placed_order["id"]]

    resp = await client.get("/api/admin/orders", params={"status": "shipped"}, headers=admin_headers)
    assert resp.json()["data"] == []

    resp = await client.get("/api/admin/orders", params={"status": "placed", "limit": 1, "offset": 0}, headers=admin_headers)
    assert len(resp.json()["data"]) == 1


async def test_order_details_include_customer(client, admin_headers, customer, placed_order):
    resp = await client.get(f"/api/admin/orders/{placed_order['id']}", headers=admin_headers)

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["customer"] == {
        "id": customer.id,
        "email": "customer@plantry.com",
        "full_name": "Test User",
        "phone": "(415) 555-0100",
    }
    assert len(data["items"]) == 2
    assert data["payment"] is None


async def test_update_status(client, admin_headers, placed_order):
    resp = await client.put(
        f"/api/admin/orders/{placed_order['id']}/status", json={"status": "shipped"}, headers=admin_headers
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "shipped"

    resp = await client.put(
        f"/api/admin/orders/{placed_order['id']}/status", json={"status": "lost"}, headers=admin_headers
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "Invalid status"

    resp = await client.put("/api/admin/orders/999/status", json={"status": "shipped"}, headers=admin_headers)
    assert resp.status_code == 404

    resp = await client.put("/api/admin/orders/999/status", json={"status": "lost"}, headers=admin_headers)
    assert resp.status_code == 400
    assert resp.json()["error"] == "Invalid status"


async def test_create_product(client, admin_headers):
    resp = await client.post(
        "/api/admin/products",
        json={"name": "Cold Brew Coffee", "price": "6.00", "category": "juices", "stock": 60},
        headers=admin_headers,
    )
    assert resp.status_code == 201
    product = resp.json()["data"]
    assert product["available"] is True

    listing = await client.get("/api/products")
    assert [p["id"] for p in listing.json()["data"]] == [product["id"]]


async def test_create_product_requires_name_and_price(client, admin_headers):
    resp = await client.post("/api/admin/products", json={"name": "Nameless"}, headers=admin_headers)
    assert resp.status_code == 422

    resp = await client.post("/api/admin/products", json={"name": "Free", "price": "0"}, headers=admin_headers)
    assert resp.status_code == 422


async def test_price_change_leaves_orders_alone(client, admin_headers, auth_headers, placed_order):
    resp = await client.put("/api/admin/products/1", json={"price": "15.50"}, headers=admin_headers)
    assert resp.status_code == 200
    assert Decimal(resp.json()["data"]["price"]) == Decimal("15.50")
    assert resp.json()["data"]["name"] == "Morning Ritual Green"

    detail = (await client.get(f"/api/orders/{placed_order['id']}", headers=auth_headers)).json()["data"]
    assert Decimal(detail["items"][0]["price_at_purchase"]) == Decimal("14.00")
    assert Decimal(detail["order"]["total_amount"]) == Decimal("46.00")


async def test_withdraw_product(client, admin_headers, products):
    resp = await client.put("/api/admin/products/2", json={"available": False}, headers=admin_headers)
    assert resp.json()["data"]["available"] is False

    listing = await client.get("/api/products")
    assert 2 not in [p["id"] for p in listing.json()["data"]]


async def test_update_missing_product(client, admin_headers):
    resp = await client.put("/api/admin/products/999", json={"price": "1.00"}, headers=admin_headers)
    assert resp.status_code == 404


async def test_dashboard_stats(client, admin_headers, auth_headers, placed_order):
    resp = await client.get("/api/admin/stats/dashboard", headers=admin_headers)
    stats = resp.json()["data"]
    assert stats["total_orders"] == 1
    assert Decimal(stats["total_revenue"]) == 0
    assert stats["total_products"] == 4
    assert stats["total_users"] == 2

    await client.post(
        "/api/payment/confirm", json={"order_id": placed_order["id"], "charge_id": "ch_1"}, headers=auth_headers
    )

    stats = (await client.get("/api/admin/stats/dashboard", headers=admin_headers)).json()["data"]
    assert Decimal(stats["total_revenue"]) == Decimal("46.00")
