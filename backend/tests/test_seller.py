"""Tests for the seller dashboard endpoints."""


def place_order(client, headers, address, items):
    payload = {"items": items, "shipping_address": address, "payment_method": "cod"}
    return client.post("/api/orders", json=payload, headers=headers).json()["order"]


class TestSellerProducts:
    def test_lists_only_own_products(self, client, seller, make_user, make_product):
        """Test sellers see their own products, inactive ones included."""
        _, headers = seller
        other, _ = make_user("seller")
        make_product("Mine")
        make_product("Hidden", is_active=False)
        make_product("Theirs", seller_id=other.id)

        body = client.get("/api/seller/products", headers=headers).json()

        assert sorted(p["name"] for p in body["data"]) == ["Hidden", "Mine"]
        assert body["pagination"]["total"] == 2

    def test_status_filter(self, client, seller, make_product):
        """Test the active/inactive filter."""
        _, headers = seller
        make_product("Mine")
        make_product("Hidden", is_active=False)

        body = client.get("/api/seller/products?status=inactive", headers=headers).json()
        assert [p["name"] for p in body["data"]] == ["Hidden"]
        assert client.get("/api/seller/products?status=bogus", headers=headers).status_code == 422

    def test_create_assigns_seller(self, client, seller, category):
        """Test products created here belong to the caller."""
        user, headers = seller
        response = client.post(
            "/api/seller/products",
            json={"name": "Amber Night", "price": 750, "category_id": category.id, "stock": 4},
            headers=headers,
        )
        assert response.status_code == 201
        assert response.json()["seller_id"] == user.id
        assert response.json()["slug"] == "amber-night"

    def test_other_sellers_product_is_not_found(self, client, seller, make_user, make_product):
        """Test another seller's product reads as 404, never 403."""
        _, headers = seller
        other, _ = make_user("seller")
        theirs = make_product("Theirs", seller_id=other.id)

        assert client.get(f"/api/seller/products/{theirs.id}", headers=headers).status_code == 404
        assert client.put(
            f"/api/seller/products/{theirs.id}", json={"price": 1}, headers=headers
        ).status_code == 404
        assert client.delete(f"/api/seller/products/{theirs.id}", headers=headers).status_code == 404

    def test_update_and_delete_own(self, client, seller, product):
        """Test sellers can edit and delete their own products."""
        _, headers = seller
        updated = client.put(f"/api/seller/products/{product.id}", json={"price": 1200}, headers=headers)
        assert updated.json()["price"] == 1200

        assert client.delete(f"/api/seller/products/{product.id}", headers=headers).status_code == 200
        assert client.get(f"/api/seller/products/{product.id}", headers=headers).status_code == 404

    def test_customers_are_refused(self, client, customer):
        """Test customers cannot use the seller dashboard."""
        _, headers = customer
        assert client.get("/api/seller/products", headers=headers).status_code == 403


class TestSellerOrders:
    def _mixed_order(self, client, customer, make_user, make_product, address):
        other, _ = make_user("seller")
        mine = make_product("Mine", price=500)
        theirs = make_product("Theirs", price=900, seller_id=other.id)
        _, customer_headers = customer
        return place_order(
            client,
            customer_headers,
            address,
            [{"product_id": mine.id, "quantity": 2}, {"product_id": theirs.id, "quantity": 1}],
        )

    def test_list_shows_only_own_items(self, client, seller, customer, make_user, make_product, shipping_address):
        """Test orders list only the seller's lines with a seller total."""
        _, headers = seller
        order = self._mixed_order(client, customer, make_user, make_product, shipping_address)

        body = client.get("/api/seller/orders", headers=headers).json()

        assert body["pagination"]["total"] == 1
        view = body["data"][0]
        assert view["id"] == order["id"]
        assert len(view["items"]) == 1
        assert view["seller_total"] == 1000
        assert view["customer"]["email"] == customer[0].email

    def test_orders_without_own_items_are_hidden(self, client, seller, customer, make_user, make_product, shipping_address):
        """Test a seller with no lines in an order gets 404 for it."""
        other, _ = make_user("seller")
        theirs = make_product("Theirs", seller_id=other.id)
        _, customer_headers = customer
        order = place_order(client, customer_headers, shipping_address, [{"product_id": theirs.id, "quantity": 1}])
        _, headers = seller

        assert client.get("/api/seller/orders", headers=headers).json()["data"] == []
        assert client.get(f"/api/seller/orders/{order['id']}", headers=headers).status_code == 404

    def test_status_limited_to_fulfilment(self, client, seller, customer, product, shipping_address):
        """Test sellers may only mark orders shipped or delivered."""
        _, headers = seller
        _, customer_headers = customer
        order = place_order(client, customer_headers, shipping_address, [{"product_id": product.id, "quantity": 1}])

        refused = client.patch(f"/api/seller/orders/{order['id']}/status", json={"status": "cancelled"}, headers=headers)
        assert refused.status_code == 422

        shipped = client.patch(f"/api/seller/orders/{order['id']}/status", json={"status": "shipped"}, headers=headers)
        assert shipped.status_code == 200
        assert shipped.json()["data"]["status"] == "shipped"
        assert shipped.json()["data"]["shipped_at"] is not None

    def test_tracking_number(self, client, seller, customer, product, shipping_address):
        """Test sellers can attach a tracking number."""
        _, headers = seller
        _, customer_headers = customer
        order = place_order(client, customer_headers, shipping_address, [{"product_id": product.id, "quantity": 1}])

        response = client.patch(
            f"/api/seller/orders/{order['id']}/tracking", json={"tracking_number": "AWB42"}, headers=headers
        )
        assert response.json()["data"]["tracking_number"] == "AWB42"
        assert response.json()["message"] == "Tracking number updated"

    def test_status_filter(self, client, seller, customer, product, shipping_address):
        """Test filtering seller orders by status."""
        _, headers = seller
        _, customer_headers = customer
        place_order(client, customer_headers, shipping_address, [{"product_id": product.id, "quantity": 1}])

        assert client.get("/api/seller/orders?status=shipped", headers=headers).json()["data"] == []
        assert len(client.get("/api/seller/orders?status=pending", headers=headers).json()["data"]) == 1
