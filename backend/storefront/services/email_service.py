"""Transactional email over SMTP (order confirmations and status updates)."""
import logging
import smtplib
from email.message import EmailMessage
from email.utils import formataddr
from typing import Any, Callable, Dict, List, Optional

from storefront.config.settings import Settings, settings
from storefront.models.models import Order
from storefront.utils.retry import RetryConfig, RetryError, call_with_retry

logger = logging.getLogger(__name__)

SMTP_RETRY = RetryConfig(
    max_attempts=3,
    initial_delay=0.5,
    retry_on=(smtplib.SMTPServerDisconnected, smtplib.SMTPConnectError, ConnectionError, TimeoutError),
)

STATUS_MESSAGES = {
    "confirmed": "Your order has been confirmed and will be processed shortly.",
    "processing": "Your order is being prepared for shipment.",
    "shipped": "Good news! Your order is on its way.",
    "delivered": "Your order has been delivered. We hope you love it!",
    "cancelled": "Your order has been cancelled.",
    "refunded": "Your payment has been refunded.",
}


def format_money(amount: Optional[float], currency: str = "INR") -> str:
    symbol = "₹" if currency == "INR" else f"{currency} "
    return f"{symbol}{(amount or 0):,.2f}"


def format_address(address: Optional[Dict[str, Any]]) -> List[str]:
    if not address:
        return []
    lines = [address.get("full_name"), address.get("address_line1"), address.get("address_line2")]
    city_line = ", ".join(
        part for part in (address.get("city"), address.get("state"), address.get("postal_code")) if part
    )
    lines += [city_line, address.get("country"), address.get("phone")]
    return [line for line in lines if line]


class EmailService:
    def __init__(self, config: Settings = settings, smtp_factory: Callable[..., smtplib.SMTP] = smtplib.SMTP):
        self.config = config
        self.smtp_factory = smtp_factory

    def _deliver(self, message: EmailMessage) -> None:
        with self.smtp_factory(self.config.smtp_host, self.config.smtp_port, timeout=10) as smtp:
            if self.config.smtp_use_tls:
                smtp.starttls()
            if self.config.smtp_user:
                smtp.login(self.config.smtp_user, self.config.smtp_password)
            smtp.send_message(message)

    def send_email(self, to: str, subject: str, body: str) -> bool:
        """Send a plain-text email. Returns False when disabled or on failure."""
        if not self.config.email_configured:
            logger.warning(f"SMTP not configured; skipping email '{subject}' to {to}")
            return False
        if not to:
            logger.warning(f"No recipient for email '{subject}'")
            return False

        message = EmailMessage()
        message["Subject"] = subject
        message["From"] = formataddr((self.config.email_from_name, self.config.email_from))
        message["To"] = to
        message.set_content(body)

        try:
            call_with_retry(self._deliver, message, config=SMTP_RETRY)
        except (RetryError, smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email '{subject}' to {to}: {e}")
            return False

        logger.info(f"Sent email '{subject}' to {to}")
        return True

    # =========================
    # ORDER EMAILS
    # =========================
    def render_order_summary(self, order: Order) -> str:
        currency = self.config.currency
        lines = ["Items:"]
        for item in order.items:
            snapshot = item.product_snapshot or {}
            name = snapshot.get("name", "Product")
            lines.append(
                f"  - {name} x {item.quantity} @ {format_money(item.unit_price, currency)}"
                f" = {format_money(item.total_price, currency)}"
            )
        lines += [
            "",
            f"Subtotal: {format_money(order.subtotal, currency)}",
            f"Shipping: {format_money(order.shipping_amount, currency)}",
            f"Tax: {format_money(order.tax_amount, currency)}",
        ]
        if order.discount_amount:
            lines.append(f"Discount: -{format_money(order.discount_amount, currency)}")
        lines.append(f"Total: {format_money(order.total_amount, currency)}")

        address_lines = format_address(order.shipping_address)
        if address_lines:
            lines += ["", "Shipping to:"] + [f"  {line}" for line in address_lines]
        return "\n".join(lines)

    def send_order_confirmation(self, order: Order, to: str, customer_name: Optional[str] = None) -> bool:
        body = "\n".join([
            f"Hi {customer_name or 'there'},",
            "",
            f"Thank you for your order! Your order number is {order.order_number}.",
            "",
            self.render_order_summary(order),
            "",
            f"Track your order: {self.config.frontend_url}/orders/{order.id}",
        ])
        return self.send_email(to, f"Order Confirmation - {order.order_number}", body)

    def send_status_update(
        self,
        order: Order,
        to: str,
        customer_name: Optional[str] = None,
        message: Optional[str] = None,
    ) -> bool:
        status = order.status
        lines = [
            f"Hi {customer_name or 'there'},",
            "",
            message or STATUS_MESSAGES.get(status, f"Your order status is now {status}."),
            "",
            f"Order number: {order.order_number}",
            f"Status: {status}",
        ]
        if order.tracking_number:
            lines.append(f"Tracking number: {order.tracking_number}")
        lines += ["", f"View your order: {self.config.frontend_url}/orders/{order.id}"]

        subject = f"Order {order.order_number} - {status.capitalize()}"
        if status == "shipped":
            subject = f"Your Order {order.order_number} Has Shipped!"
        return self.send_email(to, subject, "\n".join(lines))
