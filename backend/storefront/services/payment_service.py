"""
Razorpay integration: gateway orders, payment verification, webhooks, refunds.

Amounts sent to the gateway are in paise. Signatures are HMAC-SHA256 hex
digests compared in constant time.
"""
import hashlib
import hmac
import json
import logging
from typing import Any, Dict, Optional

import requests
from sqlalchemy.orm import Session

from storefront.config.settings import Settings, settings
from storefront.errors import (
    AuthenticationFailed,
    ConfigurationError,
    NotFoundError,
    PaymentError,
    ValidationFailed,
)
from storefront.models.models import Order, OrderStatus, PaymentStatus, Profile, UserRole
from storefront.schemas.schemas import PaymentVerifyRequest
from storefront.services.order_service import OrderService
from storefront.utils.retry import RetryConfig, RetryError, call_with_retry

logger = logging.getLogger(__name__)


class GatewayServerError(Exception):
    """5xx from the gateway; retried."""


GATEWAY_RETRY = RetryConfig(
    max_attempts=3,
    initial_delay=0.2,
    retry_on=(requests.ConnectionError, requests.Timeout, GatewayServerError),
)


def to_paise(amount: float) -> int:
    return int(round(amount * 100))


def sign(message: bytes, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def verify_payment_signature(gateway_order_id: str, payment_id: str, signature: str, secret: str) -> bool:
    expected = sign(f"{gateway_order_id}|{payment_id}".encode("utf-8"), secret)
    return hmac.compare_digest(expected, signature or "")


def verify_webhook_signature(body: bytes, signature: str, secret: str) -> bool:
    return hmac.compare_digest(sign(body, secret), signature or "")


class PaymentGatewayClient:
    """Minimal Razorpay REST client."""

    def __init__(
        self,
        key_id: str,
        key_secret: str,
        base_url: str = "https://api.razorpay.com/v1",
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
        retry_config: RetryConfig = GATEWAY_RETRY,
    ):
        self.key_id = key_id
        self.key_secret = key_secret
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.retry_config = retry_config

    def _send(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        response = self.session.request(
            method,
            f"{self.base_url}{path}",
            json=payload,
            auth=(self.key_id, self.key_secret),
            timeout=self.timeout,
        )
        if response.status_code >= 500:
            raise GatewayServerError(f"Payment gateway server error ({response.status_code})")
        if response.status_code >= 400:
            try:
                description = response.json().get("error", {}).get("description")
            except ValueError:
                description = None
            raise PaymentError(
                description or f"Payment gateway rejected the request ({response.status_code})",
                code="GATEWAY_ERROR",
                status_code=502,
            )
        return response.json()

    def _request(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        try:
            return call_with_retry(self._send, method, path, payload, config=self.retry_config)
        except RetryError as e:
            logger.error(f"Payment gateway {method} {path} failed after {e.attempts} attempts")
            raise PaymentError("Payment gateway unavailable", code="GATEWAY_UNAVAILABLE", status_code=502) from e
        except requests.RequestException as e:
            logger.error(f"Payment gateway {method} {path} failed: {e}")
            raise PaymentError("Payment gateway request failed", code="GATEWAY_ERROR", status_code=502) from e

    def create_order(
        self,
        amount_paise: int,
        currency: str = "INR",
        receipt: Optional[str] = None,
        notes: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        payload = {"amount": amount_paise, "currency": currency, "receipt": receipt, "notes": notes or {}}
        return self._request("POST", "/orders", payload)

    def fetch_payment(self, payment_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/payments/{payment_id}")

    def refund(self, payment_id: str, amount_paise: Optional[int] = None) -> Dict[str, Any]:
        payload = {"amount": amount_paise} if amount_paise is not None else {}
        return self._request("POST", f"/payments/{payment_id}/refund", payload)


class PaymentService:
    def __init__(
        self,
        db: Session,
        client: Optional[PaymentGatewayClient] = None,
        config: Settings = settings,
        order_service: Optional[OrderService] = None,
    ):
        self.db = db
        self.config = config
        self._client = client
        self.orders = order_service or OrderService(db)

    @property
    def client(self) -> PaymentGatewayClient:
        if not self.config.payments_configured:
            raise ConfigurationError("Payment service is not configured")
        if self._client is None:
            self._client = PaymentGatewayClient(
                self.config.razorpay_key_id,
                self.config.razorpay_key_secret,
                base_url=self.config.razorpay_api_url,
                timeout=self.config.payment_timeout_seconds,
            )
        return self._client

    # =========================
    # CHECKOUT
    # =========================
    def create_gateway_order(self, user: Profile, order_id: str) -> Dict[str, Any]:
        order = self.orders.get_user_order(user, order_id)
        if order.status != OrderStatus.PENDING.value or order.payment_status == PaymentStatus.PAID.value:
            raise ValidationFailed("Order is not awaiting payment", code="INVALID_ORDER_STATE")

        amount = to_paise(order.total_amount)
        gateway_order = self.client.create_order(
            amount,
            currency=self.config.currency,
            receipt=order.order_number,
            notes={"order_id": order.id, "user_id": user.id},
        )
        order.gateway_order_id = gateway_order["id"]
        self.db.commit()
        logger.info(f"Gateway order {gateway_order['id']} created for {order.order_number}")

        return {
            "gateway_order_id": gateway_order["id"],
            "amount": gateway_order.get("amount", amount),
            "currency": gateway_order.get("currency", self.config.currency),
            "receipt": gateway_order.get("receipt", order.order_number),
            "key_id": self.config.razorpay_key_id,
            "order_id": order.id,
        }

    def _mark_paid(self, order: Order, payment_id: str) -> Order:
        if order.payment_status == PaymentStatus.PAID.value and order.payment_id == payment_id:
            return order

        order.payment_status = PaymentStatus.PAID.value
        order.payment_id = payment_id
        if order.status == OrderStatus.PENDING.value:
            return self.orders.update_status(order, OrderStatus.CONFIRMED.value, message="Payment received")

        self.orders.add_tracking(order, order.status, "Payment received")
        self.db.commit()
        self.db.refresh(order)
        return order

    def verify_payment(self, user: Profile, data: PaymentVerifyRequest) -> Dict[str, Any]:
        if not self.config.razorpay_key_secret:
            raise ConfigurationError("Payment service is not configured")

        order = (
            self.db.query(Order)
            .filter(Order.gateway_order_id == data.gateway_order_id, Order.user_id == user.id)
            .first()
        )
        if not order:
            raise NotFoundError("Order not found for this payment")

        if not verify_payment_signature(
            data.gateway_order_id, data.payment_id, data.signature, self.config.razorpay_key_secret
        ):
            logger.warning(f"Invalid payment signature for gateway order {data.gateway_order_id}")
            raise PaymentError("Invalid payment signature. Payment verification failed.", code="INVALID_SIGNATURE")

        payment = self.client.fetch_payment(data.payment_id)
        if payment.get("status") != "captured":
            logger.warning(f"Payment {data.payment_id} not captured: {payment.get('status')}")
            raise PaymentError("Payment not captured. Please try again.", code="PAYMENT_NOT_CAPTURED")

        order = self._mark_paid(order, data.payment_id)
        return {
            "verified": True,
            "order_id": order.id,
            "payment_id": data.payment_id,
            "status": payment.get("status"),
            "method": payment.get("method"),
            "amount": (payment.get("amount") or 0) / 100,
        }

    def get_payment(self, user: Profile, payment_id: str) -> Dict[str, Any]:
        query = self.db.query(Order).filter(Order.payment_id == payment_id)
        if user.role != UserRole.ADMIN.value:
            query = query.filter(Order.user_id == user.id)
        if not query.first():
            raise NotFoundError("Payment not found")
        return self.client.fetch_payment(payment_id)

    # =========================
    # WEBHOOK
    # =========================
    def handle_webhook(self, body: bytes, signature: Optional[str]) -> Dict[str, Any]:
        secret = self.config.razorpay_webhook_secret
        if not secret:
            raise ConfigurationError("Webhook secret is not configured")
        if not verify_webhook_signature(body, signature or "", secret):
            raise AuthenticationFailed("Invalid webhook signature", code="INVALID_SIGNATURE")

        try:
            event = json.loads(body)
        except ValueError:
            raise ValidationFailed("Invalid webhook payload")

        name = event.get("event", "")
        payload = event.get("payload", {})
        logger.info(f"Payment webhook received: {name}")

        if name in ("payment.captured", "payment.failed"):
            entity = payload.get("payment", {}).get("entity", {})
            order = (
                self.db.query(Order)
                .filter(Order.gateway_order_id == entity.get("order_id"))
                .first()
            )
            if not order:
                logger.warning(f"Webhook {name} for unknown gateway order {entity.get('order_id')}")
                return {"status": "ignored", "event": name}

            if name == "payment.captured":
                self._mark_paid(order, entity.get("id"))
            else:
                self.orders.set_payment_status(order, PaymentStatus.FAILED.value, "Payment failed")
            return {"status": "processed", "event": name}

        if name == "refund.created":
            entity = payload.get("refund", {}).get("entity", {})
            order = self.db.query(Order).filter(Order.payment_id == entity.get("payment_id")).first()
            if not order:
                return {"status": "ignored", "event": name}
            self._mark_refunded(order)
            return {"status": "processed", "event": name}

        return {"status": "acknowledged", "event": name}

    # =========================
    # REFUNDS
    # =========================
    def _mark_refunded(self, order: Order) -> Order:
        if order.payment_status == PaymentStatus.REFUNDED.value:
            return order
        order.payment_status = PaymentStatus.REFUNDED.value
        return self.orders.update_status(order, OrderStatus.REFUNDED.value, message="Payment refunded")

    def refund_order(self, order_id: str, amount: Optional[float] = None) -> Dict[str, Any]:
        order = self.orders.get_order(order_id)
        if order.payment_status != PaymentStatus.PAID.value or not order.payment_id:
            raise ValidationFailed("Only paid orders can be refunded", code="INVALID_ORDER_STATE")

        refund = self.client.refund(order.payment_id, to_paise(amount) if amount else None)
        order = self._mark_refunded(order)
        logger.info(f"Refund {refund.get('id')} issued for {order.order_number}")
        return {
            "refund_id": refund.get("id"),
            "amount": (refund.get("amount") or to_paise(order.total_amount)) / 100,
            "order_id": order.id,
            "payment_status": order.payment_status,
        }
