"""Tests for saved addresses and notification preferences."""

ADDRESS = {
    "full_name": "Asha Rao",
    "address_line1": "12 MG Road",
    "city": "Bengaluru",
    "state": "Karnataka",
    "postal_code": "560001",
    "country": "IN",
}


class TestAddresses:
    def test_create_defaults_to_shipping(self, client, customer):
        """Test create fills the address type and owner."""
        user, headers = customer
        response = client.post("/api/addresses", json=ADDRESS, headers=headers)

        assert response.status_code == 201
        body = response.json()
        assert body["address_type"] == "shipping"
        assert body["user_id"] == user.id
        assert body["is_default"] is False

    def test_required_fields(self, client, customer):
        """Test address_line1 and country are required."""
        _, headers = customer
        response = client.post("/api/addresses", json={"city": "Pune", "postal_code": "411001"}, headers=headers)
        assert response.status_code == 422

    def test_single_default(self, client, customer):
        """Test a new default unsets the previous one."""
        _, headers = customer
        first = client.post("/api/addresses", json={**ADDRESS, "is_default": True}, headers=headers).json()
        second = client.post(
            "/api/addresses", json={**ADDRESS, "city": "Mysuru", "is_default": True}, headers=headers
        ).json()

        addresses = client.get("/api/addresses", headers=headers).json()
        defaults = [a["id"] for a in addresses if a["is_default"]]
        assert defaults == [second["id"]]
        assert addresses[0]["id"] == second["id"]
        assert first["id"] in [a["id"] for a in addresses]

    def test_set_default_endpoint(self, client, customer):
        """Test PATCH /{id}/default moves the default flag."""
        _, headers = customer
        first = client.post("/api/addresses", json={**ADDRESS, "is_default": True}, headers=headers).json()
        second = client.post("/api/addresses", json=ADDRESS, headers=headers).json()

        response = client.patch(f"/api/addresses/{second['id']}/default", headers=headers)

        assert response.json()["is_default"] is True
        assert client.get(f"/api/addresses/{first['id']}", headers=headers).json()["is_default"] is False

    def test_update(self, client, customer):
        """Test partial update."""
        _, headers = customer
        address = client.post("/api/addresses", json=ADDRESS, headers=headers).json()
        response = client.put(f"/api/addresses/{address['id']}", json={"city": "Mysuru"}, headers=headers)
        assert response.json()["city"] == "Mysuru"
        assert response.json()["state"] == "Karnataka"

    def test_scoped_to_owner(self, client, customer, make_user):
        """Test other users' addresses return 404."""
        _, headers = customer
        _, other = make_user("customer")
        address = client.post("/api/addresses", json=ADDRESS, headers=headers).json()

        assert client.get(f"/api/addresses/{address['id']}", headers=other).status_code == 404
        assert client.delete(f"/api/addresses/{address['id']}", headers=other).status_code == 404
        assert client.get("/api/addresses", headers=other).json() == []

    def test_delete(self, client, customer):
        """Test delete."""
        _, headers = customer
        address = client.post("/api/addresses", json=ADDRESS, headers=headers).json()
        assert client.delete(f"/api/addresses/{address['id']}", headers=headers).status_code == 200
        assert client.get(f"/api/addresses/{address['id']}", headers=headers).status_code == 404


class TestNotificationPreferences:
    def test_defaults_created_on_first_read(self, client, customer):
        """Test first read creates the default preferences."""
        _, headers = customer
        prefs = client.get("/api/notification-preferences", headers=headers).json()

        assert prefs["email_notifications"] is True
        assert prefs["sms_notifications"] is False
        assert prefs["push_notifications"] is True
        assert prefs["order_updates"] is True
        assert prefs["promotional_emails"] is False
        assert prefs["newsletter"] is True
        assert prefs["product_updates"] is True

    def test_partial_update(self, client, customer):
        """Test PUT changes only the given flags."""
        _, headers = customer
        response = client.put(
            "/api/notification-preferences", json={"newsletter": False, "sms_notifications": True}, headers=headers
        )
        assert response.status_code == 200
        body = response.json()
        assert body["newsletter"] is False
        assert body["sms_notifications"] is True
        assert body["email_notifications"] is True
