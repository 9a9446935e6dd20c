"""Tests for password hashing, tokens and the /api/auth endpoints."""
from datetime import datetime, timedelta, timezone

import jwt

from storefront.auth.security import create_access_token, decode_token, hash_password, verify_password
from storefront.config.settings import settings


class TestPasswordHashing:
    def test_hash_format(self):
        """Test encoded hashes carry scheme, iterations, salt and digest."""
        encoded = hash_password("secret123", iterations=1000)
        scheme, iterations, salt, digest = encoded.split("$")

        assert scheme == "pbkdf2_sha256"
        assert iterations == "1000"
        assert salt and digest

    def test_salts_differ(self):
        """Test the same password hashes differently each time."""
        assert hash_password("secret123") != hash_password("secret123")

    def test_verify(self):
        """Test correct and incorrect passwords."""
        encoded = hash_password("secret123")
        assert verify_password("secret123", encoded) is True
        assert verify_password("wrong-pass", encoded) is False

    def test_verify_rejects_malformed(self):
        """Test malformed or foreign hashes never verify."""
        assert verify_password("x", "not-a-hash") is False
        assert verify_password("x", "bcrypt$10$abc$def") is False
        assert verify_password("x", None) is False


class TestTokens:
    def test_round_trip_claims(self):
        """Test tokens carry subject and role."""
        claims = decode_token(create_access_token("user-1", "seller"))
        assert claims["sub"] == "user-1"
        assert claims["role"] == "seller"

    def test_expired_token(self):
        """Test expired tokens decode to None."""
        past = datetime.now(timezone.utc) - timedelta(hours=2)
        token = jwt.encode(
            {"sub": "user-1", "role": "customer", "iat": past, "exp": past + timedelta(hours=1)},
            settings.jwt_secret,
            algorithm="HS256",
        )
        assert decode_token(token) is None

    def test_wrong_secret(self):
        """Test tokens signed with another key are rejected."""
        token = jwt.encode({"sub": "user-1"}, "another-secret", algorithm="HS256")
        assert decode_token(token) is None


class TestRegisterAndLogin:
    def test_register(self, client):
        """Test registration returns a customer and a token."""
        response = client.post(
            "/api/auth/register",
            json={"email": " New.User@Example.com ", "password": "password123", "full_name": "New User"},
        )
        assert response.status_code == 201
        body = response.json()
        assert body["user"]["email"] == "new.user@example.com"
        assert body["user"]["role"] == "customer"
        assert decode_token(body["token"])["sub"] == body["user"]["id"]

    def test_register_duplicate_email(self, client, customer):
        """Test a taken email returns 409 EMAIL_EXISTS."""
        user, _ = customer
        response = client.post("/api/auth/register", json={"email": user.email, "password": "password123"})
        assert response.status_code == 409
        assert response.json()["code"] == "EMAIL_EXISTS"

    def test_register_short_password(self, client):
        """Test passwords under 8 characters are rejected."""
        response = client.post("/api/auth/register", json={"email": "a@b.com", "password": "short"})
        assert response.status_code == 422

    def test_login(self, client, make_user):
        """Test login with valid credentials."""
        make_user("customer", email="login@example.com", password="password123")
        response = client.post("/api/auth/login", json={"email": "LOGIN@example.com", "password": "password123"})
        assert response.status_code == 200
        assert response.json()["message"] == "Login successful"
        assert response.json()["token"]

    def test_login_wrong_password(self, client, make_user):
        """Test bad credentials return 401 INVALID_CREDENTIALS."""
        make_user("customer", email="login@example.com", password="password123")
        response = client.post("/api/auth/login", json={"email": "login@example.com", "password": "nope-nope"})
        assert response.status_code == 401
        assert response.json()["code"] == "INVALID_CREDENTIALS"

    def test_login_unknown_email(self, client):
        """Test unknown emails get the same 401."""
        response = client.post("/api/auth/login", json={"email": "ghost@example.com", "password": "password123"})
        assert response.status_code == 401

    def test_login_inactive_account(self, client, make_user):
        """Test deactivated accounts cannot log in."""
        make_user("customer", email="off@example.com", password="password123", is_active=False)
        response = client.post("/api/auth/login", json={"email": "off@example.com", "password": "password123"})
        assert response.status_code == 403
        assert response.json()["code"] == "ACCOUNT_INACTIVE"


class TestProfile:
    def test_me(self, client, customer):
        """Test GET /api/auth/me returns the caller."""
        user, headers = customer
        response = client.get("/api/auth/me", headers=headers)
        assert response.status_code == 200
        assert response.json()["id"] == user.id
        assert "password_hash" not in response.json()

    def test_me_without_token(self, client):
        """Test missing tokens return 401 TOKEN_MISSING."""
        response = client.get("/api/auth/me")
        assert response.status_code == 401
        assert response.json()["code"] == "TOKEN_MISSING"

    def test_me_with_garbage_token(self, client):
        """Test invalid tokens return 401 INVALID_TOKEN."""
        response = client.get("/api/auth/me", headers={"Authorization": "Bearer not.a.token"})
        assert response.status_code == 401
        assert response.json()["code"] == "INVALID_TOKEN"

    def test_token_for_inactive_user(self, client, make_user):
        """Test tokens of deactivated accounts are refused with 403."""
        _, headers = make_user("customer", is_active=False)
        response = client.get("/api/auth/me", headers=headers)
        assert response.status_code == 403

    def test_update_profile(self, client, customer):
        """Test partial profile update."""
        _, headers = customer
        response = client.put(
            "/api/auth/profile",
            json={"full_name": "Renamed", "phone": "12345", "date_of_birth": "1990-05-01"},
            headers=headers,
        )
        assert response.status_code == 200
        body = response.json()
        assert body["full_name"] == "Renamed"
        assert body["date_of_birth"] == "1990-05-01"

    def test_change_password(self, client, make_user):
        """Test password change requires the current password."""
        user, headers = make_user("customer", email="pw@example.com", password="password123")

        wrong = client.put(
            "/api/auth/password",
            json={"current_password": "incorrect", "new_password": "newpassword1"},
            headers=headers,
        )
        assert wrong.status_code == 401

        ok = client.put(
            "/api/auth/password",
            json={"current_password": "password123", "new_password": "newpassword1"},
            headers=headers,
        )
        assert ok.status_code == 200

        login = client.post("/api/auth/login", json={"email": "pw@example.com", "password": "newpassword1"})
        assert login.status_code == 200


class TestRoleChecks:
    def test_customer_cannot_create_product(self, client, customer):
        """Test role mismatch returns 403 with required roles."""
        _, headers = customer
        response = client.post("/api/products", json={"name": "X", "price": 10}, headers=headers)
        assert response.status_code == 403
        assert response.json()["details"]["required"] == ["seller", "admin"]

    def test_seller_cannot_reach_admin(self, client, seller):
        """Test admin routes reject sellers."""
        _, headers = seller
        assert client.get("/api/admin/users", headers=headers).status_code == 403
