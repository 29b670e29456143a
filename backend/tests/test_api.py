"""
Tests for the HTTP surface: order and catalog routers, health and
correlation ids.
"""

from shared.config.constants import Messages, OrderStatus


class TestHealth:
    def test_health(self, client):
        response = client.get("/api/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_request_id_is_echoed(self, client):
        response = client.get("/api/health", headers={"X-Request-ID": "abc-123"})

        assert response.headers["X-Request-ID"] == "abc-123"


class TestOrderEndpoints:
    def test_create_then_list(self, client):
        created = client.post("/api/orders", json={"order_type": "DineOut", "customer_phone": "98765 43210"})

        assert created.status_code == 200
        body = created.json()
        order_id = body["data"]["id"]
        assert body["data"]["customer_phone"] == "9876543210"
        assert Messages.ADDRESS_REQUIRED.format(order_type="DineOut") in body["warnings"]

        groups = client.get("/api/orders").json()
        assert groups[0]["orders"][0]["id"] == order_id
        assert groups[0]["orders"][0]["is_selected"] is True

    def test_get_missing_order_is_404(self, client):
        assert client.get("/api/orders/999").status_code == 404

    def test_quantity_endpoints(self, client, make_order, seed_products, seed_charges):
        make_order(order_id=7, lines=[(seed_products["tea"], 2)], charges=[seed_charges["service"]])

        response = client.post("/api/orders/7/lines/decrease", json={"product_id": 3})
        assert response.status_code == 200
        assert response.json()["data"]["price"]["total"] == 120

        response = client.post("/api/orders/7/lines", json={"product_id": 3, "delta": 4})
        assert response.json()["data"]["quantity"] == 5

        quantity = client.get("/api/orders/7/lines/3/quantity").json()
        assert quantity["quantity"] == 5

    def test_zero_delta_is_rejected(self, client, make_order, seed_products):
        order = make_order()

        response = client.post(f"/api/orders/{order.id}/lines", json={"product_id": 3, "delta": 0})

        assert response.status_code == 422

    def test_placed_order_mutation_is_400(self, client, make_order, seed_products):
        order = make_order(status=OrderStatus.PLACED)

        response = client.post(f"/api/orders/{order.id}/lines/increase", json={"product_id": 3})

        assert response.status_code == 400

    def test_stale_order_mutation_is_benign(self, client, seed_products):
        response = client.post("/api/orders/999/lines/increase", json={"product_id": 3})

        assert response.status_code == 200
        assert response.json()["message"] == Messages.ORDER_NOT_FOUND

    def test_toggle_charge(self, client, make_order, seed_products, seed_charges):
        order = make_order(lines=[(seed_products["tea"], 1)])

        response = client.post(f"/api/orders/{order.id}/charges/{seed_charges['service'].id}/toggle")

        assert response.json()["data"]["selected"] is True
        assert client.get(f"/api/orders/{order.id}").json()["price"]["total"] == 120

    def test_toggle_add_on(self, client, make_order, seed_products, seed_add_ons):
        order = make_order(lines=[(seed_products["tea"], 1)])

        client.post(f"/api/orders/{order.id}/add-ons/{seed_add_ons['cheese'].id}/toggle")

        assert client.get(f"/api/orders/{order.id}").json()["add_on_ids"] == [seed_add_ons["cheese"].id]

    def test_select_placed_order_is_400(self, client, make_order):
        order = make_order(status=OrderStatus.PLACED)

        response = client.put("/api/orders/active", json={"order_id": order.id})

        assert response.status_code == 400
        assert response.json()["detail"] == Messages.UNABLE_TO_SELECT_PLACED

    def test_active_order_roundtrip(self, client, make_order):
        order = make_order()

        client.put("/api/orders/active", json={"order_id": order.id})

        assert client.get("/api/orders/active").json()["id"] == order.id

    def test_place_and_view_all(self, client, make_order):
        order = make_order()

        response = client.post(f"/api/orders/{order.id}/place")

        assert response.json()["data"]["placed_ids"] == [order.id]
        assert client.get("/api/orders").json() == []
        assert client.get("/api/orders", params={"view_all": True}).json()[0]["orders"][0]["id"] == order.id

    def test_bulk_delete(self, client, make_order):
        first = make_order()
        second = make_order()

        response = client.post("/api/orders/delete", json={"order_ids": [first.id, second.id]})

        assert response.json()["data"]["deleted_ids"] == [first.id, second.id]
        assert client.get("/api/orders").json() == []

    def test_bulk_delete_requires_ids(self, client):
        assert client.post("/api/orders/delete", json={"order_ids": []}).status_code == 422

    def test_multi_select_flow(self, client, make_order):
        first = make_order()
        second = make_order()

        client.post(f"/api/orders/selection/{first.id}/toggle")
        assert client.get("/api/orders/selection").json() == [first.id]

        assert client.post("/api/orders/selection/all").json() == sorted([first.id, second.id])

        response = client.post("/api/orders/selection/delete")
        assert response.status_code == 200
        assert client.get("/api/orders/selection").json() == []
        assert client.get("/api/orders").json() == []

    def test_delete_selected_with_nothing_selected_is_400(self, client):
        response = client.post("/api/orders/selection/delete")

        assert response.status_code == 400
        assert response.json()["detail"] == Messages.NO_ORDERS_SELECTED

    def test_search(self, client, make_order, seed_address):
        match = make_order(address=seed_address)
        make_order()

        groups = client.get("/api/orders", params={"search": "GPA"}).json()

        assert [o["id"] for g in groups for o in g["orders"]] == [match.id]


class TestCatalogEndpoints:
    def test_product_crud(self, client):
        created = client.post("/api/catalog/products", json={"name": "Lassi", "price": 60})
        assert created.status_code == 201
        product_id = created.json()["id"]

        updated = client.patch(f"/api/catalog/products/{product_id}", json={"price": 70})
        assert updated.json()["price"] == 70

        deleted = client.delete(f"/api/catalog/products/{product_id}")
        assert deleted.json()["deleted"] == product_id
        assert client.get(f"/api/catalog/products/{product_id}").status_code == 404

    def test_negative_price_is_rejected(self, client):
        assert client.post("/api/catalog/products", json={"name": "Bad", "price": -1}).status_code == 422

    def test_charge_with_order_types(self, client):
        response = client.post(
            "/api/catalog/charges",
            json={"name": "Delivery", "amount": 40, "order_types": ["Delivery"]},
        )

        assert response.status_code == 201
        assert response.json()["order_types"] == ["Delivery"]

    def test_customer_lookup(self, client, seed_customer):
        found = client.get("/api/catalog/customers", params={"phone": "98765-43210"})
        missing = client.get("/api/catalog/customers", params={"phone": "1234"})

        assert found.json()["name"] == "Asha"
        assert missing.status_code == 404

    def test_addresses(self, client, seed_address):
        assert client.get("/api/catalog/addresses").json()[0]["name"] == "Green Park Apartments"
