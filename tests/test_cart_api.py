from decimal import Decimal


async def test_add_and_merge(client, auth_headers, products):
    resp = await client.post("/api/cart/add", json={"product_id": 1, "quantity": 2}, headers=auth_headers)
    assert resp.status_code == 201
    item_id = resp.json()["data"]["id"]

    resp = await client.post("/api/cart/add", json={"product_id": 1}, headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json()["data"] == {"id": item_id, "product_id": 1, "quantity": 3}


async def test_get_cart_totals(client, auth_headers, customer, products, fill_cart):
    await fill_cart(customer, [(1, 2), (3, 1)])

    resp = await client.get("/api/cart", headers=auth_headers)

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert Decimal(data["total"]) == Decimal("46.00")
    assert {(i["name"], i["quantity"], Decimal(i["price"])) for i in data["items"]} == {
        ("Morning Ritual Green", 2, Decimal("14.00")),
        ("Stone-Ground Almond Butter", 1, Decimal("18.00")),
    }


async def test_add_unknown_product(client, auth_headers, products):
    resp = await client.post("/api/cart/add", json={"product_id": 999}, headers=auth_headers)
    assert resp.status_code == 404
    assert resp.json()["error"] == "Product not found"


async def test_add_rejects_non_positive_quantity(client, auth_headers, products):
    resp = await client.post("/api/cart/add", json={"product_id": 1, "quantity": 0}, headers=auth_headers)
    assert resp.status_code == 422
    assert resp.json()["error"] == "Validation error"


async def test_update_quantity(client, auth_headers, products):
    item = (await client.post("/api/cart/add", json={"product_id": 2}, headers=auth_headers)).json()["data"]

    resp = await client.put(f"/api/cart/{item['id']}", json={"quantity": 5}, headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["quantity"] == 5

    resp = await client.put(f"/api/cart/{item['id']}", json={"quantity": 0}, headers=auth_headers)
    assert resp.status_code == 422


async def test_cannot_touch_another_users_item(client, auth_headers, other_headers, products):
    item = (await client.post("/api/cart/add", json={"product_id": 2}, headers=auth_headers)).json()["data"]

    resp = await client.put(f"/api/cart/{item['id']}", json={"quantity": 5}, headers=other_headers)
    assert resp.status_code == 404
    resp = await client.delete(f"/api/cart/{item['id']}", headers=other_headers)
    assert resp.status_code == 404

    cart = await client.get("/api/cart", headers=auth_headers)
    assert [i["quantity"] for i in cart.json()["data"]["items"]] == [1]


async def test_remove_and_clear(client, auth_headers, products):
    first = (await client.post("/api/cart/add", json={"product_id": 1}, headers=auth_headers)).json()["data"]
    await client.post("/api/cart/add", json={"product_id": 2}, headers=auth_headers)
    await client.post("/api/cart/add", json={"product_id": 3}, headers=auth_headers)

    resp = await client.delete(f"/api/cart/{first['id']}", headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json()["message"] == "Item removed from cart"
    cart = await client.get("/api/cart", headers=auth_headers)
    assert len(cart.json()["data"]["items"]) == 2

    resp = await client.delete("/api/cart", headers=auth_headers)
    assert resp.json()["message"] == "Cart cleared"
    cart = await client.get("/api/cart", headers=auth_headers)
    assert cart.json()["data"] == {"items": [], "total": "0.00"}
