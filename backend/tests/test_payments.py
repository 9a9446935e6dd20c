"""Tests for the payment gateway client, signature checks and payment endpoints."""
import asyncio
import json
from unittest.mock import MagicMock

import pytest
import requests

from storefront.config.settings import settings
from storefront.errors import PaymentError
from storefront.models.models import Order
from storefront.services import payment_service
from storefront.services.payment_service import (
    GatewayServerError,
    PaymentGatewayClient,
    sign,
    to_paise,
    verify_payment_signature,
    verify_webhook_signature,
)
from storefront.utils.retry import RetryConfig

KEY_SECRET = "key-secret"
WEBHOOK_SECRET = "webhook-secret"


def gateway_response(status_code, body=None):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = body or {}
    return response


class FakeGateway:
    """Stands in for PaymentGatewayClient in endpoint tests."""

    payment_status = "captured"

    def __init__(self, *args, **kwargs):
        pass

    def create_order(self, amount_paise, currency="INR", receipt=None, notes=None):
        return {"id": "order_GW1", "amount": amount_paise, "currency": currency, "receipt": receipt}

    def fetch_payment(self, payment_id):
        return {"id": payment_id, "status": self.payment_status, "method": "upi", "amount": 128000}

    def refund(self, payment_id, amount_paise=None):
        return {"id": "rfnd_1", "payment_id": payment_id, "amount": amount_paise}


@pytest.fixture
def gateway(monkeypatch):
    monkeypatch.setattr(settings, "razorpay_key_id", "rzp_test_key")
    monkeypatch.setattr(settings, "razorpay_key_secret", KEY_SECRET)
    monkeypatch.setattr(settings, "razorpay_webhook_secret", WEBHOOK_SECRET)
    monkeypatch.setattr(payment_service, "PaymentGatewayClient", FakeGateway)
    monkeypatch.setattr(FakeGateway, "payment_status", "captured")
    return FakeGateway


def place_order(client, headers, address, product_id):
    payload = {
        "items": [{"product_id": product_id, "quantity": 1}],
        "shipping_address": address,
        "payment_method": "razorpay",
    }
    return client.post("/api/orders", json=payload, headers=headers).json()["order"]


def post_webhook(client, event, secret=WEBHOOK_SECRET):
    body = json.dumps(event).encode("utf-8")
    return client.post(
        "/api/payments/webhook",
        content=body,
        headers={"Content-Type": "application/json", "X-Razorpay-Signature": sign(body, secret)},
    )


class TestSignatures:
    def test_to_paise(self):
        """Test rupees convert to integer paise."""
        assert to_paise(1280) == 128000
        assert to_paise(19.99) == 1999

    def test_payment_signature(self):
        """Test payment signatures cover order id and payment id."""
        signature = sign(b"order_1|pay_1", KEY_SECRET)
        assert verify_payment_signature("order_1", "pay_1", signature, KEY_SECRET) is True
        assert verify_payment_signature("order_1", "pay_2", signature, KEY_SECRET) is False
        assert verify_payment_signature("order_1", "pay_1", None, KEY_SECRET) is False

    def test_webhook_signature(self):
        """Test webhook signatures cover the raw body."""
        body = b'{"event": "payment.captured"}'
        assert verify_webhook_signature(body, sign(body, WEBHOOK_SECRET), WEBHOOK_SECRET) is True
        assert verify_webhook_signature(body + b" ", sign(body, WEBHOOK_SECRET), WEBHOOK_SECRET) is False


class TestPaymentGatewayClient:
    def setup_method(self):
        self.session = MagicMock()
        self.client = PaymentGatewayClient(
            "key",
            "secret",
            base_url="https://gateway.test/v1/",
            session=self.session,
            retry_config=RetryConfig(
                max_attempts=2, initial_delay=0, retry_on=(GatewayServerError,), retryable_errors=()
            ),
        )

    def test_create_order_request(self):
        """Test the order request carries amount, auth and timeout."""
        self.session.request.return_value = gateway_response(200, {"id": "order_1"})

        assert self.client.create_order(5000, receipt="ORD-1")["id"] == "order_1"

        args, kwargs = self.session.request.call_args
        assert args == ("POST", "https://gateway.test/v1/orders")
        assert kwargs["json"]["amount"] == 5000
        assert kwargs["auth"] == ("key", "secret")
        assert kwargs["timeout"] == 10.0

    def test_server_error_is_retried(self):
        """Test 5xx responses are retried."""
        self.session.request.side_effect = [gateway_response(503), gateway_response(200, {"id": "pay_1"})]
        assert self.client.fetch_payment("pay_1") == {"id": "pay_1"}
        assert self.session.request.call_count == 2

    def test_retries_exhausted(self):
        """Test persistent 5xx becomes GATEWAY_UNAVAILABLE."""
        self.session.request.return_value = gateway_response(500)
        with pytest.raises(PaymentError) as exc_info:
            self.client.fetch_payment("pay_1")
        assert exc_info.value.code == "GATEWAY_UNAVAILABLE"
        assert exc_info.value.status_code == 502

    def test_client_error_not_retried(self):
        """Test 4xx fails at once with the gateway's description."""
        self.session.request.return_value = gateway_response(
            400, {"error": {"description": "The amount must be at least INR 1.00"}}
        )
        with pytest.raises(PaymentError) as exc_info:
            self.client.create_order(10)
        assert exc_info.value.code == "GATEWAY_ERROR"
        assert exc_info.value.message == "The amount must be at least INR 1.00"
        assert self.session.request.call_count == 1

    def test_connection_error(self):
        """Test connection failures are retried then reported."""
        self.session.request.side_effect = requests.ConnectionError("refused")
        self.client.retry_config = RetryConfig(
            max_attempts=2, initial_delay=0, retry_on=(requests.ConnectionError,), retryable_errors=()
        )
        with pytest.raises(PaymentError) as exc_info:
            self.client.fetch_payment("pay_1")
        assert exc_info.value.code == "GATEWAY_UNAVAILABLE"
        assert self.session.request.call_count == 2


class TestPaymentEndpoints:
    def test_not_configured(self, client, customer, product, shipping_address):
        """Test the gateway reports 503 without credentials."""
        _, headers = customer
        order = place_order(client, headers, shipping_address, product.id)

        response = client.post("/api/payments/create-order", json={"order_id": order["id"]}, headers=headers)
        assert response.status_code == 503
        assert response.json()["code"] == "CONFIGURATION_ERROR"

    def test_create_gateway_order(self, client, db, gateway, customer, product, shipping_address):
        """Test a gateway order is created in paise and linked to the order."""
        _, headers = customer
        order = place_order(client, headers, shipping_address, product.id)

        data = client.post("/api/payments/create-order", json={"order_id": order["id"]}, headers=headers).json()["data"]

        assert data["gateway_order_id"] == "order_GW1"
        assert data["amount"] == 128000
        assert data["key_id"] == "rzp_test_key"
        assert data["receipt"] == order["order_number"]
        db.expire_all()
        assert db.get(Order, order["id"]).gateway_order_id == "order_GW1"

    def test_create_gateway_order_for_other_user(self, client, gateway, customer, make_user, product, shipping_address):
        """Test users cannot pay for someone else's order."""
        _, headers = customer
        _, other = make_user("customer")
        order = place_order(client, headers, shipping_address, product.id)

        response = client.post("/api/payments/create-order", json={"order_id": order["id"]}, headers=other)
        assert response.status_code == 404

    def _linked_order(self, client, headers, address, product_id):
        order = place_order(client, headers, address, product_id)
        client.post("/api/payments/create-order", json={"order_id": order["id"]}, headers=headers)
        return order

    def test_verify_success(self, client, db, gateway, customer, product, shipping_address):
        """Test a valid captured payment marks the order paid and confirmed."""
        _, headers = customer
        order = self._linked_order(client, headers, shipping_address, product.id)

        response = client.post(
            "/api/payments/verify",
            json={"gateway_order_id": "order_GW1", "payment_id": "pay_1", "signature": sign(b"order_GW1|pay_1", KEY_SECRET)},
            headers=headers,
        )

        assert response.status_code == 200
        assert response.json()["data"]["verified"] is True
        assert response.json()["data"]["amount"] == 1280
        db.expire_all()
        saved = db.get(Order, order["id"])
        assert saved.payment_status == "paid"
        assert saved.payment_id == "pay_1"
        assert saved.status == "confirmed"

    def test_verify_bad_signature(self, client, gateway, customer, product, shipping_address):
        """Test tampered signatures are rejected."""
        _, headers = customer
        self._linked_order(client, headers, shipping_address, product.id)

        response = client.post(
            "/api/payments/verify",
            json={"gateway_order_id": "order_GW1", "payment_id": "pay_1", "signature": "forged"},
            headers=headers,
        )
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_SIGNATURE"

    def test_verify_not_captured(self, client, gateway, customer, product, shipping_address):
        """Test authorized but uncaptured payments are rejected."""
        _, headers = customer
        gateway.payment_status = "authorized"
        self._linked_order(client, headers, shipping_address, product.id)

        response = client.post(
            "/api/payments/verify",
            json={"gateway_order_id": "order_GW1", "payment_id": "pay_1", "signature": sign(b"order_GW1|pay_1", KEY_SECRET)},
            headers=headers,
        )
        assert response.status_code == 400
        assert response.json()["code"] == "PAYMENT_NOT_CAPTURED"

    def test_verify_unknown_order(self, client, gateway, customer):
        """Test unknown gateway orders return 404."""
        _, headers = customer
        response = client.post(
            "/api/payments/verify",
            json={"gateway_order_id": "order_X", "payment_id": "pay_1", "signature": "x"},
            headers=headers,
        )
        assert response.status_code == 404

    def test_get_payment(self, client, gateway, customer, make_user, product, shipping_address):
        """Test payment details are visible to the owner only."""
        _, headers = customer
        _, other = make_user("customer")
        self._linked_order(client, headers, shipping_address, product.id)
        client.post(
            "/api/payments/verify",
            json={"gateway_order_id": "order_GW1", "payment_id": "pay_1", "signature": sign(b"order_GW1|pay_1", KEY_SECRET)},
            headers=headers,
        )

        assert client.get("/api/payments/payment/pay_1", headers=headers).json()["data"]["id"] == "pay_1"
        assert client.get("/api/payments/payment/pay_1", headers=other).status_code == 404


class TestWebhook:
    def _linked_order(self, client, headers, address, product_id):
        order = place_order(client, headers, address, product_id)
        client.post("/api/payments/create-order", json={"order_id": order["id"]}, headers=headers)
        return order

    def test_not_configured(self, client):
        """Test webhooks need a secret."""
        response = client.post("/api/payments/webhook", content=b"{}")
        assert response.status_code == 503

    def test_bad_signature(self, client, gateway):
        """Test unsigned or mis-signed webhooks get 401."""
        response = post_webhook(client, {"event": "payment.captured"}, secret="wrong")
        assert response.status_code == 401
        assert response.json()["code"] == "INVALID_SIGNATURE"

    def test_payment_captured(self, client, db, gateway, customer, product, shipping_address):
        """Test payment.captured marks the order paid."""
        _, headers = customer
        order = self._linked_order(client, headers, shipping_address, product.id)

        response = post_webhook(
            client,
            {"event": "payment.captured", "payload": {"payment": {"entity": {"id": "pay_9", "order_id": "order_GW1"}}}},
        )

        assert response.json() == {"status": "processed", "event": "payment.captured"}
        db.expire_all()
        saved = db.get(Order, order["id"])
        assert saved.payment_status == "paid"
        assert saved.status == "confirmed"

    def test_payment_failed(self, client, db, gateway, customer, product, shipping_address):
        """Test payment.failed marks the payment failed."""
        _, headers = customer
        order = self._linked_order(client, headers, shipping_address, product.id)

        post_webhook(
            client,
            {"event": "payment.failed", "payload": {"payment": {"entity": {"id": "pay_9", "order_id": "order_GW1"}}}},
        )

        db.expire_all()
        assert db.get(Order, order["id"]).payment_status == "failed"

    def test_handled_off_the_event_loop(self, client, gateway, monkeypatch):
        """Test webhook processing runs in a worker thread, not on the event loop."""
        seen = {}

        def handle_webhook(service, body, signature):
            try:
                asyncio.get_running_loop()
                seen["on_loop"] = True
            except RuntimeError:
                seen["on_loop"] = False
            seen["body"] = body
            return {"status": "ignored"}

        monkeypatch.setattr(payment_service.PaymentService, "handle_webhook", handle_webhook)

        response = post_webhook(client, {"event": "payment.captured"})

        assert response.json() == {"status": "ignored"}
        assert seen == {"on_loop": False, "body": b'{"event": "payment.captured"}'}

    def test_unknown_gateway_order_ignored(self, client, gateway):
        """Test events for unknown orders are ignored, not failed."""
        response = post_webhook(
            client,
            {"event": "payment.captured", "payload": {"payment": {"entity": {"id": "p", "order_id": "nope"}}}},
        )
        assert response.status_code == 200
        assert response.json()["status"] == "ignored"

    def test_refund_created(self, client, db, gateway, customer, product, shipping_address):
        """Test refund.created marks the order refunded."""
        _, headers = customer
        order = self._linked_order(client, headers, shipping_address, product.id)
        post_webhook(
            client,
            {"event": "payment.captured", "payload": {"payment": {"entity": {"id": "pay_9", "order_id": "order_GW1"}}}},
        )

        post_webhook(
            client,
            {"event": "refund.created", "payload": {"refund": {"entity": {"id": "rfnd_1", "payment_id": "pay_9"}}}},
        )

        db.expire_all()
        saved = db.get(Order, order["id"])
        assert saved.payment_status == "refunded"
        assert saved.status == "refunded"

    def test_other_events_acknowledged(self, client, gateway):
        """Test unrelated events are acknowledged."""
        response = post_webhook(client, {"event": "order.paid", "payload": {}})
        assert response.json() == {"status": "acknowledged", "event": "order.paid"}


class TestRefunds:
    def test_admin_refund(self, client, db, gateway, admin, customer, product, shipping_address):
        """Test admins can refund paid orders."""
        _, admin_headers = admin
        _, headers = customer
        order = place_order(client, headers, shipping_address, product.id)
        saved = db.get(Order, order["id"])
        saved.payment_status = "paid"
        saved.payment_id = "pay_1"
        db.commit()

        response = client.post(f"/api/admin/orders/{order['id']}/refund", json={"amount": 500}, headers=admin_headers)

        data = response.json()["data"]
        assert data["refund_id"] == "rfnd_1"
        assert data["amount"] == 500
        assert data["payment_status"] == "refunded"

    def test_refund_requires_paid_order(self, client, gateway, admin, customer, product, shipping_address):
        """Test unpaid orders cannot be refunded."""
        _, admin_headers = admin
        _, headers = customer
        order = place_order(client, headers, shipping_address, product.id)

        response = client.post(f"/api/admin/orders/{order['id']}/refund", headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_ORDER_STATE"
